"""Call queue dispatch - one outbound call at a time through the telephony API."""

from datetime import datetime, timezone
from typing import Any, Optional
from ulid import ULID
from homenest.models.queue import (
    CallQueueItem,
    CallQueueSettings,
    DispatchResult,
    QueueSnapshot,
    QueueStats,
    QueueStatus,
    can_transition,
)
from homenest.services.lead_store import LeadStore
from homenest.services.queue_store import QueueStore, validate_queue_number
from homenest.services.retry_policy import RetryPolicy
from homenest.services.telephony_client import TelephonyClient
from homenest.utils.config import Settings
from homenest.utils.errors import DispatchValidationError, QueueBusyError, SupabaseError, TelephonyError
from homenest.utils.logging import correlation_context, get_structured_logger, mask_phone

logger = get_structured_logger(__name__)

SETTINGS_FIELDS = {"agent_id", "voice_id", "call_interval_seconds", "schedule_start", "schedule_end"}


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def build_dynamic_variables(item: CallQueueItem) -> dict[str, str]:
    """Personalization variables handed to the voice agent."""
    variables = {
        "homeowner_name": item.contact_name or "there",
        "property_address": item.property_address or "your property",
    }
    if item.property_city:
        variables["property_city"] = item.property_city
    if item.property_dom:
        variables["days_on_market"] = str(item.property_dom)
    if item.property_price:
        variables["list_price"] = str(item.property_price)
    return variables


def format_transcript(transcript: Optional[list[dict[str, Any]]]) -> Optional[str]:
    if not transcript:
        return None
    return "\n".join(f"{turn.get('role')}: {turn.get('message')}" for turn in transcript)


def call_outcome(payload: dict[str, Any]) -> str:
    """Outcome label from a completion webhook."""
    analysis = payload.get("analysis") or {}
    if analysis.get("outcome"):
        return str(analysis["outcome"]).lower()
    if payload.get("status") == "failed":
        return "failed"
    return "completed"


def within_schedule(settings: CallQueueSettings, now: datetime) -> bool:
    """True when now falls inside the HH:MM calling window, bounds included."""
    if not settings.schedule_start or not settings.schedule_end:
        return True
    current = now.strftime("%H:%M")
    return settings.schedule_start <= current <= settings.schedule_end


class CallQueueService:
    """Drives a call queue: start, dial, record completions, pause and clear."""

    def __init__(self, store: QueueStore, lead_store: LeadStore, telephony: TelephonyClient, settings: Settings):
        self.store = store
        self.lead_store = lead_store
        self.telephony = telephony
        self.settings = settings

    async def fetch_queue(self, queue_number: int) -> QueueSnapshot:
        validate_queue_number(queue_number, self.settings.queue_count)
        items = await self.store.list_items(queue_number)
        return QueueSnapshot(
            queue_number=queue_number,
            items=items,
            settings=await self.store.get_settings(queue_number),
            stats=QueueStats.from_items(items),
        )

    async def start(self, queue_number: int, now: Optional[datetime] = None) -> DispatchResult:
        """Mark the queue as sending under a new batch ID and dial the first item.

        Raises DispatchValidationError when no agent is selected or the current
        time is outside the calling window.
        """
        validate_queue_number(queue_number, self.settings.queue_count)
        settings = await self.store.get_settings(queue_number)
        if not settings.agent_id:
            raise DispatchValidationError("No agent selected for this queue")

        now = now or datetime.now()
        if not within_schedule(settings, now):
            raise DispatchValidationError(
                f"Outside calling window ({settings.schedule_start} - {settings.schedule_end})"
            )

        batch_id = str(ULID())
        await self.store.save_settings(queue_number, {
            "is_sending": True,
            "is_paused": False,
            "last_batch_id": batch_id,
            "updated_at": _now(),
        })
        logger.info("Call queue started", queue_number=queue_number, batch_id=batch_id)
        return await self.dial_next(queue_number)

    async def dial_next(self, queue_number: int) -> DispatchResult:
        """Call the lowest-position queued item.

        Items whose phone became DNC after queueing are skipped. When nothing is
        left the queue stops sending.
        """
        settings = await self.store.get_settings(queue_number)
        if settings.is_paused:
            return DispatchResult(success=False, message="Queue is paused", queue_number=queue_number)
        if not settings.is_sending:
            return DispatchResult(success=False, message="Queue is not running", queue_number=queue_number)
        if await self.store.count_items(queue_number, [QueueStatus.CALLING]):
            return DispatchResult(success=False, message="A call is already in progress", queue_number=queue_number)

        while True:
            item = await self.store.next_queued_item(queue_number)
            if item is None:
                await self.store.save_settings(queue_number, {"is_sending": False, "updated_at": _now()})
                logger.info("Call queue finished", queue_number=queue_number, batch_id=settings.last_batch_id)
                return DispatchResult(
                    success=True,
                    message="No pending items in queue",
                    queue_number=queue_number,
                    batch_id=settings.last_batch_id,
                )

            if await self._phone_is_dnc(item):
                await self.store.update_item(item.id, {
                    "status": QueueStatus.SKIPPED.value,
                    "error_message": "Phone marked DNC",
                    "completed_at": _now(),
                })
                logger.info("Skipped DNC queue item", queue_item_id=item.id, queue_number=queue_number)
                continue

            return await self.initiate_call(item, settings)

    async def _phone_is_dnc(self, item: CallQueueItem) -> bool:
        if not item.phone_id:
            return False
        phone = await self.lead_store.get_phone(item.phone_id)
        return bool(phone and phone.is_dnc)

    async def initiate_call(self, item: CallQueueItem, settings: CallQueueSettings) -> DispatchResult:
        """Mark an item as calling and start the call.

        If the telephony API fails the item goes back to queued with its start
        time cleared, and the queue stops sending.
        """
        batch_id = settings.last_batch_id
        with correlation_context(batch_id):
            await self.store.update_item(item.id, {
                "status": QueueStatus.CALLING.value,
                "call_started_at": _now(),
                "batch_id": batch_id,
                "attempt_count": item.attempt_count + 1,
                "error_message": None,
            })

            metadata = {
                "queue_item_id": item.id,
                "queue_number": str(item.queue_number),
                "batch_id": batch_id or "",
                "contact_name": item.contact_name or "",
                "property_address": item.property_address or "",
            }
            if settings.voice_id:
                metadata["voice_override"] = settings.voice_id

            try:
                conversation_id = await self.telephony.initiate_call(
                    settings.agent_id,
                    item.phone_number,
                    metadata=metadata,
                    dynamic_variables=build_dynamic_variables(item),
                )
            except TelephonyError as e:
                logger.error(
                    "Call initiation failed, returning item to queue",
                    queue_item_id=item.id,
                    phone=mask_phone(item.phone_number),
                    error=str(e),
                )
                await self.store.update_item(item.id, {
                    "status": QueueStatus.QUEUED.value,
                    "call_started_at": None,
                    "error_message": str(e),
                })
                await self.store.save_settings(item.queue_number, {"is_sending": False, "updated_at": _now()})
                return DispatchResult(
                    success=False,
                    message=f"Call failed to start: {e}",
                    batch_id=batch_id,
                    queue_number=item.queue_number,
                    item_id=item.id,
                )

            await self.store.update_item(item.id, {"conversation_id": conversation_id})
            logger.info("Call started", queue_item_id=item.id, conversation_id=conversation_id)

        return DispatchResult(
            success=True,
            message="Call started",
            batch_id=batch_id,
            queue_number=item.queue_number,
            item_id=item.id,
            conversation_id=conversation_id,
            dispatched=1,
        )

    async def handle_call_completed(self, payload: dict[str, Any]) -> DispatchResult:
        """Apply a telephony completion webhook and continue the queue."""
        conversation_id = payload.get("conversation_id")
        if not conversation_id:
            raise DispatchValidationError("Missing conversation_id")

        item = await self.store.find_item("conversation_id", conversation_id)
        metadata = payload.get("metadata") or {}
        if item is None and metadata.get("queue_item_id"):
            item = await self.store.get_item(metadata["queue_item_id"])
        if item is None:
            logger.warning("Queue item not found for conversation", conversation_id=conversation_id)
            return DispatchResult(success=False, message="Queue item not found", conversation_id=conversation_id)

        target = QueueStatus.FAILED if payload.get("status") == "failed" else QueueStatus.SENT
        if not can_transition(item.status, target):
            logger.warning(
                "Ignoring completion for item not in flight",
                queue_item_id=item.id,
                status=item.status.value,
            )
            return DispatchResult(
                success=False,
                message=f"Item is {item.status.value}",
                item_id=item.id,
                conversation_id=conversation_id,
            )

        outcome = call_outcome(payload)
        now = _now()
        values = {
            "status": target.value,
            "conversation_id": conversation_id,
            "call_ended_at": now,
            "completed_at": now,
            "call_duration_seconds": payload.get("duration_seconds"),
            "call_outcome": outcome,
            "call_transcript": format_transcript(payload.get("transcript")),
            "call_recording_url": payload.get("recording_url"),
        }
        if target == QueueStatus.FAILED:
            values["error_message"] = payload.get("error") or "Call failed"
        await self.store.update_item(item.id, values)

        if item.crm_lead_id:
            analysis = payload.get("analysis") or {}
            notes = analysis.get("summary") or f"AI call completed. Duration: {payload.get('duration_seconds')}s"
            try:
                await self.lead_store.record_call_activity(item.crm_lead_id, outcome, notes)
            except SupabaseError as e:
                logger.warning("Failed to log call activity", crm_lead_id=item.crm_lead_id, error=str(e))

        logger.info("Call completed", queue_item_id=item.id, outcome=outcome, status=target.value)

        settings = await self.store.get_settings(item.queue_number)
        if settings.is_sending and not settings.is_paused:
            await self.dial_next(item.queue_number)

        return DispatchResult(
            success=True,
            message=outcome,
            item_id=item.id,
            queue_number=item.queue_number,
            conversation_id=conversation_id,
            batch_id=item.batch_id,
        )

    async def pause(self, queue_number: int) -> CallQueueSettings:
        """Toggle the pause flag; an in-flight call is not interrupted."""
        validate_queue_number(queue_number, self.settings.queue_count)
        settings = await self.store.get_settings(queue_number)
        return await self.store.save_settings(queue_number, {
            "is_paused": not settings.is_paused,
            "updated_at": _now(),
        })

    async def resume(self, queue_number: int) -> CallQueueSettings:
        """Clear the pause flag and dial the next item if the queue is still running."""
        validate_queue_number(queue_number, self.settings.queue_count)
        settings = await self.store.save_settings(queue_number, {"is_paused": False, "updated_at": _now()})
        if settings.is_sending:
            await self.dial_next(queue_number)
            settings = await self.store.get_settings(queue_number)
        return settings

    async def clear(self, queue_number: int) -> None:
        """Delete every item of a queue; refused while the queue is sending."""
        validate_queue_number(queue_number, self.settings.queue_count)
        settings = await self.store.get_settings(queue_number)
        if settings.is_sending:
            raise QueueBusyError(f"Call queue {queue_number} is running; stop it before clearing")
        await self.store.delete_queue(queue_number)
        await self.store.save_settings(queue_number, {
            "is_sending": False,
            "is_paused": False,
            "last_batch_id": None,
            "updated_at": _now(),
        })

    async def update_settings(self, queue_number: int, updates: dict[str, Any]) -> CallQueueSettings:
        validate_queue_number(queue_number, self.settings.queue_count)
        unknown = set(updates) - SETTINGS_FIELDS
        if unknown:
            raise DispatchValidationError(f"Unknown call queue settings: {', '.join(sorted(unknown))}")
        return await self.store.save_settings(queue_number, {**updates, "updated_at": _now()})

    async def requeue_failed(
        self,
        queue_number: int,
        policy: RetryPolicy,
        now: Optional[datetime] = None,
    ) -> int:
        """Move failed items whose backoff has elapsed back to queued; returns how many."""
        validate_queue_number(queue_number, self.settings.queue_count)
        now = now or datetime.now(timezone.utc)
        requeued = 0
        for item in await self.store.list_items(queue_number, [QueueStatus.FAILED]):
            if not policy.is_due(item.attempt_count, item.completed_at, now):
                continue
            await self.store.update_item(item.id, {
                "status": QueueStatus.QUEUED.value,
                "conversation_id": None,
                "call_started_at": None,
                "call_ended_at": None,
                "completed_at": None,
            })
            requeued += 1
        if requeued:
            logger.info("Requeued failed calls", queue_number=queue_number, requeued=requeued)
        return requeued
