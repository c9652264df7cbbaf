"""Queue projection - turn CRM leads into ordered call or email queue items."""

from typing import Any, Optional
from homenest.models.contact import Contact
from homenest.models.property import Property
from homenest.models.queue import QueueBuildFailure, QueueBuildResult, QueueChannel, QueueStatus
from homenest.services.lead_store import LeadStore
from homenest.services.queue_store import QueueStore, validate_queue_number
from homenest.utils.config import Settings
from homenest.utils.errors import QueueValidationError, SupabaseError
from homenest.utils.logging import get_structured_logger, log_timing

logger = get_structured_logger(__name__)

# queue item column -> insights label
INSIGHT_FIELDS = {
    "estimated_equity": "Estimated Equity",
    "estimated_home_value": "Estimated Market Home Value",
    "owner_estimated_age": "Estimated Age",
    "length_of_residence": "Length of Residence",
    "marital_status": "Marital Status",
    "has_children": "Presence of Children",
}


def property_snapshot(prop: Property, default_state: str = "CA") -> dict[str, Any]:
    """Display fields copied onto a queue item when it is created."""
    snapshot = {
        "property_id": prop.id,
        "property_address": prop.street_address,
        "property_city": prop.city,
        "property_state": prop.state or default_state,
        "property_zip": prop.zip,
        "property_price": prop.price,
        "property_dom": prop.dom,
        "property_beds": prop.beds,
        "property_baths": prop.baths,
        "property_sqft": prop.sqft,
        "property_type": prop.property_type,
        "property_remarks": prop.remarks,
    }
    for column, label in INSIGHT_FIELDS.items():
        snapshot[column] = prop.insights.get(label)
    return snapshot


def contact_snapshot(contact: Contact) -> dict[str, Any]:
    first_name = contact.first_name
    if not first_name and contact.name:
        first_name = contact.name.split(" ")[0]
    return {
        "contact_id": contact.id,
        "contact_name": contact.name or "Unknown",
        "contact_first_name": first_name or "",
        "is_absentee_owner": contact.is_absentee_owner,
    }


def select_email_contact(contacts: list[Contact]) -> Optional[Contact]:
    """Decision maker with an email, else the first contact with one."""
    with_email = [contact for contact in contacts if contact.emails]
    for contact in with_email:
        if contact.is_decision_maker:
            return contact
    return with_email[0] if with_email else None


class QueueBuilder:
    """Projects leads into a channel's queue in strict position order."""

    def __init__(self, lead_store: LeadStore, call_store: QueueStore, email_store: QueueStore, settings: Settings):
        self.lead_store = lead_store
        self.stores = {QueueChannel.CALL: call_store, QueueChannel.EMAIL: email_store}
        self.settings = settings

    async def add_leads_to_call_queue(self, lead_ids: list[str], queue_number: int) -> QueueBuildResult:
        """Queue one item per non-DNC phone of every contact of every lead."""
        return await self._build(QueueChannel.CALL, lead_ids, queue_number)

    async def add_leads_to_email_queue(self, lead_ids: list[str], queue_number: int) -> QueueBuildResult:
        """Queue one item per lead: the chosen contact's first email."""
        return await self._build(QueueChannel.EMAIL, lead_ids, queue_number)

    async def _build(self, channel: QueueChannel, lead_ids: list[str], queue_number: int) -> QueueBuildResult:
        if not lead_ids:
            raise QueueValidationError("At least one lead ID is required")
        validate_queue_number(queue_number, self.settings.queue_count)
        # a lead repeated in the request is projected once
        lead_ids = list(dict.fromkeys(lead_ids))

        store = self.stores[channel]
        try:
            await store.check_table()
        except SupabaseError as e:
            logger.error("Queue table unavailable", channel=channel.value, error=str(e))
            return QueueBuildResult(
                success=False,
                message=f"{store.items_table} table not found: {e}",
                failure=QueueBuildFailure.TABLE_MISSING,
            )

        try:
            with log_timing("queue_projection", logger=logger, channel=channel.value, queue_number=queue_number):
                return await self._project(channel, store, lead_ids, queue_number)
        except SupabaseError as e:
            logger.error("Queue projection failed", channel=channel.value, queue_number=queue_number, error=str(e))
            return QueueBuildResult(success=False, message=str(e), failure=QueueBuildFailure.STORAGE_ERROR)

    async def _project(
        self,
        channel: QueueChannel,
        store: QueueStore,
        lead_ids: list[str],
        queue_number: int,
    ) -> QueueBuildResult:
        leads = await self.lead_store.get_leads(lead_ids)
        properties = await self.lead_store.get_properties(
            [lead.property_id for lead in leads if lead.property_id]
        )

        rows: list[dict[str, Any]] = []
        leads_omitted = len(lead_ids) - len(leads)
        matched = 0
        for lead in leads:
            prop = properties.get(lead.property_id) if lead.property_id else None
            if prop is None:
                leads_omitted += 1
                continue
            matched += 1
            contacts = await self.lead_store.get_contacts(prop.id)
            snapshot = {"crm_lead_id": lead.id, **property_snapshot(prop, self.settings.default_state)}
            if channel == QueueChannel.CALL:
                rows.extend(self._call_rows(contacts, snapshot))
            else:
                rows.extend(self._email_rows(contacts, snapshot))

        if not rows:
            return self._empty_result(channel, matched, leads_omitted)

        next_position = await store.get_max_position(queue_number) + 1
        for offset, row in enumerate(rows):
            row.update({
                "queue_number": queue_number,
                "position": next_position + offset,
                "status": QueueStatus.QUEUED.value,
            })
        inserted = await store.insert_items(rows)
        added = len(inserted) or len(rows)

        noun = "phone numbers" if channel == QueueChannel.CALL else "leads"
        logger.info(
            "Leads added to queue",
            channel=channel.value,
            queue_number=queue_number,
            added=added,
            leads_omitted=leads_omitted,
        )
        return QueueBuildResult(
            success=True,
            added=added,
            message=f"Added {added} {noun} to queue {queue_number}",
            leads_omitted=leads_omitted,
        )

    def _call_rows(self, contacts: list[Contact], snapshot: dict[str, Any]) -> list[dict[str, Any]]:
        rows = []
        for contact in contacts:
            for phone in contact.callable_phones():
                rows.append({
                    **snapshot,
                    **contact_snapshot(contact),
                    "phone_id": phone.id,
                    "phone_number": phone.number,
                })
        return rows

    def _email_rows(self, contacts: list[Contact], snapshot: dict[str, Any]) -> list[dict[str, Any]]:
        contact = select_email_contact(contacts)
        if contact is None:
            return []
        email = contact.emails[0]
        return [{
            **snapshot,
            **contact_snapshot(contact),
            "email_id": email.id,
            "contact_email": email.email,
        }]

    def _empty_result(self, channel: QueueChannel, matched: int, leads_omitted: int) -> QueueBuildResult:
        if matched == 0:
            failure = QueueBuildFailure.NO_LEADS_MATCHED
            message = "No matching leads with linked properties found"
        elif channel == QueueChannel.CALL:
            failure = QueueBuildFailure.NO_CALLABLE_PHONES
            message = "No callable phone numbers found; every number is missing or marked DNC"
        else:
            failure = QueueBuildFailure.NO_CONTACTS_WITH_EMAIL
            message = f"No contacts with email found ({matched} properties checked)"
        return QueueBuildResult(success=False, message=message, leads_omitted=leads_omitted, failure=failure)
