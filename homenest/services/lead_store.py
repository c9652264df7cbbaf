"""Typed access to the lead tables (properties, contacts, phones, emails, CRM)."""

from datetime import datetime, timezone
from typing import Any, Optional
from supabase import Client
from homenest.models.contact import Contact, Email, Phone
from homenest.models.property import CrmLead, Property
from homenest.services.supabase_client import NIL_UUID, to_model
from homenest.utils.errors import SupabaseError
from homenest.utils.logging import get_structured_logger

logger = get_structured_logger(__name__)

# Children first so foreign keys never block a delete
LEAD_TABLES_DELETE_ORDER = [
    "email_queue",
    "call_queue",
    "crm_activities",
    "crm_leads",
    "emails",
    "phones",
    "contacts",
    "properties",
]

class LeadStore:
    """Reads and writes lead data; rows are validated into models on read."""

    def __init__(self, client: Client):
        self.client = client

    async def check_table(self, table: str) -> None:
        """Raise SupabaseError when a table cannot be queried."""
        try:
            self.client.table(table).select("id").limit(1).execute()
        except Exception as e:
            raise SupabaseError(f"Failed to access table {table}: {e}")

    async def get_existing_address_keys(self, import_source: str) -> set[str]:
        """Normalized address keys already stored for an import source."""
        try:
            result = (
                self.client.table("properties")
                .select("address_normalized")
                .eq("import_source", import_source)
                .execute()
            )
        except Exception as e:
            raise SupabaseError(f"Failed to load existing addresses: {e}")
        return {row["address_normalized"] for row in result.data or [] if row.get("address_normalized")}

    async def delete_all_leads(self) -> None:
        """Delete every lead row, dependents first."""
        for table in LEAD_TABLES_DELETE_ORDER:
            try:
                self.client.table(table).delete().gte("id", NIL_UUID).execute()
            except Exception as e:
                raise SupabaseError(f"Failed to clear {table}: {e}")
            logger.info("Cleared table", table=table)

    async def insert_property(self, record: dict[str, Any]) -> str:
        """Insert one property and return its ID."""
        try:
            result = self.client.table("properties").insert(record).execute()
        except Exception as e:
            raise SupabaseError(f"Failed to insert property: {e}")
        if not result.data:
            raise SupabaseError("Failed to insert property: no ID returned")
        return result.data[0]["id"]

    async def insert_rows(self, table: str, rows: list[dict[str, Any]]) -> list[dict[str, Any]]:
        """Insert rows into a lead table, returning the stored rows."""
        if not rows:
            return []
        try:
            result = self.client.table(table).insert(rows).execute()
        except Exception as e:
            raise SupabaseError(f"Failed to insert {table}: {e}")
        return result.data or []

    async def insert_import_log(self, entry: dict[str, Any]) -> None:
        try:
            self.client.table("import_log").insert(entry).execute()
        except Exception as e:
            raise SupabaseError(f"Failed to write import log: {e}")

    async def get_leads(self, lead_ids: list[str]) -> list[CrmLead]:
        """CRM leads for the given IDs, once each, in request order."""
        lead_ids = list(dict.fromkeys(lead_ids))
        try:
            result = (
                self.client.table("crm_leads")
                .select("id, property_id, last_activity_date")
                .in_("id", lead_ids)
                .execute()
            )
        except Exception as e:
            raise SupabaseError(f"Failed to fetch leads: {e}")
        leads = {row["id"]: to_model(CrmLead, row) for row in result.data or []}
        return [leads[lead_id] for lead_id in lead_ids if lead_id in leads]

    async def get_properties(self, property_ids: list[str]) -> dict[str, Property]:
        if not property_ids:
            return {}
        try:
            result = self.client.table("properties").select("*").in_("id", property_ids).execute()
        except Exception as e:
            raise SupabaseError(f"Failed to fetch properties: {e}")
        return {row["id"]: to_model(Property, row) for row in result.data or []}

    async def get_contacts(self, property_id: str) -> list[Contact]:
        """Contacts of a property ordered by priority, with phones and emails attached."""
        try:
            contact_rows = (
                self.client.table("contacts")
                .select("*")
                .eq("property_id", property_id)
                .order("priority")
                .execute()
            ).data or []
            if not contact_rows:
                return []
            contact_ids = [row["id"] for row in contact_rows]
            phone_rows = (
                self.client.table("phones")
                .select("*")
                .in_("contact_id", contact_ids)
                .order("created_at")
                .execute()
            ).data or []
            email_rows = (
                self.client.table("emails")
                .select("*")
                .in_("contact_id", contact_ids)
                .order("created_at")
                .execute()
            ).data or []
        except Exception as e:
            raise SupabaseError(f"Failed to fetch contacts: {e}")

        contacts = []
        for row in contact_rows:
            contact = to_model(Contact, row)
            contact.phones = [to_model(Phone, p) for p in phone_rows if p["contact_id"] == contact.id]
            contact.emails = [to_model(Email, m) for m in email_rows if m["contact_id"] == contact.id]
            contacts.append(contact)
        return contacts

    async def get_phone(self, phone_id: str) -> Optional[Phone]:
        try:
            result = self.client.table("phones").select("*").eq("id", phone_id).limit(1).execute()
        except Exception as e:
            raise SupabaseError(f"Failed to fetch phone: {e}")
        return to_model(Phone, result.data[0]) if result.data else None

    async def record_call_activity(self, crm_lead_id: str, outcome: str, notes: str) -> None:
        """Insert a CRM call activity and bump the lead's last activity date."""
        now = datetime.now(timezone.utc).isoformat()
        try:
            self.client.table("crm_activities").insert({
                "crm_lead_id": crm_lead_id,
                "activity_type": "call",
                "outcome": outcome,
                "notes": notes,
            }).execute()
            self.client.table("crm_leads").update({"last_activity_date": now}).eq("id", crm_lead_id).execute()
        except Exception as e:
            raise SupabaseError(f"Failed to record call activity: {e}")
