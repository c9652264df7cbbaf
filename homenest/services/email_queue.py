"""Email queue dispatch - batch handoff to the workflow webhook and per-item status tracking."""

from datetime import datetime, timezone
from typing import Any, Optional
from supabase import Client
from ulid import ULID
from homenest.models.queue import (
    DispatchResult,
    EmailQueueItem,
    EmailQueueSettings,
    EmailScenario,
    QueueSnapshot,
    QueueStats,
    QueueStatus,
    can_transition,
)
from homenest.services.queue_store import QueueStore, validate_queue_number
from homenest.services.retry_policy import RetryPolicy
from homenest.services.webhook_client import WorkflowWebhookClient
from homenest.utils.config import Settings
from homenest.utils.errors import DispatchValidationError, QueueBusyError, WebhookError
from homenest.utils.logging import correlation_context, get_structured_logger

logger = get_structured_logger(__name__)

DEFAULT_SCENARIOS = [
    EmailScenario(key="expired_sympathy", label="Expired Listing - Empathy Approach"),
    EmailScenario(key="market_update", label="Market Update - Data Driven"),
    EmailScenario(key="reengagement", label="Re-engagement - Check In"),
    EmailScenario(key="investor_opportunity", label="Investor - ROI Focus"),
]

SETTINGS_FIELDS = {"queue_label", "scenario_key", "from_name", "from_email", "send_interval_seconds"}

# queue item fields sent to the workflow for each recipient
PAYLOAD_LEAD_FIELDS = [
    "contact_name",
    "contact_first_name",
    "contact_email",
    "property_address",
    "property_city",
    "property_state",
    "property_zip",
    "property_price",
    "property_dom",
    "property_beds",
    "property_baths",
    "property_sqft",
    "property_type",
    "property_remarks",
    "estimated_equity",
    "estimated_home_value",
    "is_absentee_owner",
    "owner_estimated_age",
    "length_of_residence",
    "marital_status",
    "has_children",
]


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def build_batch_payload(batch_id: str, settings: EmailQueueSettings, items: list[EmailQueueItem]) -> dict[str, Any]:
    """JSON body posted to the workflow webhook for one batch."""
    return {
        "batch_id": batch_id,
        "queue_number": settings.queue_number,
        "scenario_key": settings.scenario_key,
        "from_name": settings.from_name,
        "from_email": settings.from_email,
        "send_interval_seconds": settings.send_interval_seconds,
        "leads": [
            {"queue_item_id": item.id, **item.model_dump(include=set(PAYLOAD_LEAD_FIELDS))}
            for item in items
        ],
    }


class EmailQueueService:
    """Starts email batches and applies workflow callbacks to queue items."""

    def __init__(self, store: QueueStore, webhook: WorkflowWebhookClient, settings: Settings, client: Optional[Client] = None):
        self.store = store
        self.webhook = webhook
        self.settings = settings
        self.client = client

    async def get_settings(self, queue_number: int) -> EmailQueueSettings:
        """Stored settings with sender defaults filled in."""
        settings = await self.store.get_settings(queue_number)
        if not settings.queue_label:
            settings.queue_label = f"E{queue_number}"
        if not settings.from_name:
            settings.from_name = self.settings.default_from_name
        if not settings.from_email:
            settings.from_email = self.settings.default_from_email
        return settings

    async def fetch_queue(self, queue_number: int) -> QueueSnapshot:
        validate_queue_number(queue_number, self.settings.queue_count)
        items = await self.store.list_items(queue_number)
        return QueueSnapshot(
            queue_number=queue_number,
            items=items,
            settings=await self.get_settings(queue_number),
            stats=QueueStats.from_items(items),
        )

    async def fetch_queues(self) -> list[QueueSnapshot]:
        return [await self.fetch_queue(n) for n in range(1, self.settings.queue_count + 1)]

    async def start_send(self, queue_number: int) -> DispatchResult:
        """Tag queued items with a new batch ID and hand the batch to the webhook.

        A missing scenario or an empty queue raises DispatchValidationError and
        leaves is_sending untouched. A webhook failure resets is_sending.
        """
        validate_queue_number(queue_number, self.settings.queue_count)
        settings = await self.get_settings(queue_number)
        if not settings.scenario_key:
            raise DispatchValidationError("Please select a scenario first")

        queued = await self.store.list_items(queue_number, [QueueStatus.QUEUED])
        if not queued:
            raise DispatchValidationError("No items to send")

        batch_id = str(ULID())
        with correlation_context(batch_id):
            await self.store.save_settings(queue_number, {
                "is_sending": True,
                "is_paused": False,
                "last_batch_id": batch_id,
                "updated_at": _now(),
            })
            await self.store.update_items_with_status(queue_number, QueueStatus.QUEUED, {"batch_id": batch_id})

            payload = build_batch_payload(batch_id, settings, queued)
            try:
                await self.webhook.post_batch(payload)
            except WebhookError as e:
                logger.error("Email batch handoff failed", queue_number=queue_number, batch_id=batch_id, error=str(e))
                await self.store.save_settings(queue_number, {"is_sending": False, "updated_at": _now()})
                return DispatchResult(
                    success=False,
                    message=f"Webhook error: {e}",
                    batch_id=batch_id,
                    queue_number=queue_number,
                )

            logger.info("Email batch started", queue_number=queue_number, batch_id=batch_id, items=len(queued))
        return DispatchResult(
            success=True,
            message=f"Sending {len(queued)} emails...",
            batch_id=batch_id,
            queue_number=queue_number,
            dispatched=len(queued),
        )

    async def claim_item(self, item_id: str) -> DispatchResult:
        """Move one item from queued to sending, unless its queue is paused."""
        item = await self.store.get_item(item_id)
        if item is None:
            return DispatchResult(success=False, message="Queue item not found", item_id=item_id)

        settings = await self.store.get_settings(item.queue_number)
        if settings.is_paused:
            return DispatchResult(success=False, message="Queue is paused", item_id=item_id, queue_number=item.queue_number)
        if not can_transition(item.status, QueueStatus.SENDING):
            return DispatchResult(
                success=False,
                message=f"Item is {item.status.value}, not queued",
                item_id=item_id,
                queue_number=item.queue_number,
            )

        await self.store.update_item(item_id, {
            "status": QueueStatus.SENDING.value,
            "batch_id": item.batch_id or settings.last_batch_id,
            "attempt_count": item.attempt_count + 1,
        })
        return DispatchResult(
            success=True,
            message="Claimed",
            item_id=item_id,
            queue_number=item.queue_number,
            batch_id=item.batch_id or settings.last_batch_id,
        )

    async def record_result(self, item_id: str, delivered: bool, error_message: Optional[str] = None) -> DispatchResult:
        """Record one delivery outcome; siblings in the batch are untouched."""
        item = await self.store.get_item(item_id)
        if item is None:
            return DispatchResult(success=False, message="Queue item not found", item_id=item_id)

        target = QueueStatus.SENT if delivered else QueueStatus.FAILED
        if not can_transition(item.status, target):
            raise DispatchValidationError(f"Cannot mark {item.status.value} item as {target.value}")

        now = _now()
        values: dict[str, Any] = {"status": target.value, "completed_at": now}
        if delivered:
            values["sent_at"] = now
            values["error_message"] = None
        else:
            values["error_message"] = error_message or "Delivery failed"
        await self.store.update_item(item_id, values)

        logger.info(
            "Email delivery recorded",
            queue_item_id=item_id,
            queue_number=item.queue_number,
            status=target.value,
            batch_id=item.batch_id,
        )
        await self._finish_batch_if_done(item.queue_number, item.batch_id)
        return DispatchResult(success=True, message=target.value, item_id=item_id, queue_number=item.queue_number)

    async def _finish_batch_if_done(self, queue_number: int, batch_id: Optional[str]) -> None:
        remaining = await self.store.count_items(
            queue_number,
            [QueueStatus.QUEUED, QueueStatus.SENDING],
            batch_id=batch_id,
        )
        if remaining:
            return
        settings = await self.store.get_settings(queue_number)
        # an older batch draining must not stop the batch currently sending
        if batch_id != settings.last_batch_id:
            logger.info("Earlier email batch drained", queue_number=queue_number, batch_id=batch_id)
            return
        await self.store.save_settings(queue_number, {"is_sending": False, "updated_at": _now()})
        logger.info("Email batch finished", queue_number=queue_number, batch_id=batch_id)

    async def pause(self, queue_number: int) -> EmailQueueSettings:
        validate_queue_number(queue_number, self.settings.queue_count)
        return await self.store.save_settings(queue_number, {"is_paused": True, "updated_at": _now()})

    async def resume(self, queue_number: int) -> EmailQueueSettings:
        validate_queue_number(queue_number, self.settings.queue_count)
        return await self.store.save_settings(queue_number, {"is_paused": False, "updated_at": _now()})

    async def clear(self, queue_number: int) -> None:
        """Delete every item of a queue; refused while the queue is sending."""
        validate_queue_number(queue_number, self.settings.queue_count)
        settings = await self.store.get_settings(queue_number)
        if settings.is_sending:
            raise QueueBusyError(f"Email queue {queue_number} is sending; pause and wait before clearing")
        await self.store.delete_queue(queue_number)
        await self.store.save_settings(queue_number, {
            "is_sending": False,
            "is_paused": False,
            "last_batch_id": None,
            "updated_at": _now(),
        })

    async def remove_items(self, queue_number: int, item_ids: list[str]) -> None:
        validate_queue_number(queue_number, self.settings.queue_count)
        await self.store.delete_items(queue_number, item_ids)

    async def update_settings(self, queue_number: int, updates: dict[str, Any]) -> EmailQueueSettings:
        """Save sender, label, scenario and pacing settings; other keys are rejected."""
        validate_queue_number(queue_number, self.settings.queue_count)
        unknown = set(updates) - SETTINGS_FIELDS
        if unknown:
            raise DispatchValidationError(f"Unknown email queue settings: {', '.join(sorted(unknown))}")
        return await self.store.save_settings(queue_number, {**updates, "updated_at": _now()})

    async def fetch_scenarios(self) -> list[EmailScenario]:
        """Active email scenarios, or the built-in defaults when none are configured."""
        if self.client is None:
            return list(DEFAULT_SCENARIOS)
        try:
            result = (
                self.client.table("document_scenarios")
                .select("scenario_key, name")
                .eq("is_active", True)
                .eq("content_type", "email")
                .execute()
            )
        except Exception as e:
            logger.warning("Failed to fetch scenarios, using defaults", error=str(e))
            return list(DEFAULT_SCENARIOS)
        if not result.data:
            return list(DEFAULT_SCENARIOS)
        return [EmailScenario(key=row["scenario_key"], label=row["name"]) for row in result.data]

    async def requeue_failed(self, queue_number: int, policy: RetryPolicy, now: Optional[datetime] = None) -> int:
        """Move failed items whose backoff has elapsed back to queued; returns how many."""
        validate_queue_number(queue_number, self.settings.queue_count)
        now = now or datetime.now(timezone.utc)
        requeued = 0
        for item in await self.store.list_items(queue_number, [QueueStatus.FAILED]):
            if policy.is_due(item.attempt_count, item.completed_at, now):
                await self.store.update_item(item.id, {"status": QueueStatus.QUEUED.value, "completed_at": None})
                requeued += 1
        if requeued:
            logger.info("Requeued failed emails", queue_number=queue_number, requeued=requeued)
        return requeued
