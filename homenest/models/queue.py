"""Call and email queue models."""

from enum import Enum
from typing import Any, Optional
from pydantic import BaseModel, Field, field_validator


class QueueChannel(str, Enum):
    """Outbound channel; each has an item table and a settings table."""
    CALL = "call"
    EMAIL = "email"

    @property
    def items_table(self) -> str:
        return f"{self.value}_queue"

    @property
    def settings_table(self) -> str:
        return f"{self.value}_queue_settings"


class QueueStatus(str, Enum):
    """Queue item status."""
    QUEUED = "queued"
    CALLING = "calling"
    SENDING = "sending"
    SENT = "sent"
    FAILED = "failed"
    SKIPPED = "skipped"


# failed -> queued is only taken by an explicit requeue
ALLOWED_TRANSITIONS: dict[QueueStatus, frozenset[QueueStatus]] = {
    QueueStatus.QUEUED: frozenset({QueueStatus.CALLING, QueueStatus.SENDING, QueueStatus.SKIPPED}),
    QueueStatus.CALLING: frozenset({QueueStatus.SENT, QueueStatus.FAILED, QueueStatus.QUEUED}),
    QueueStatus.SENDING: frozenset({QueueStatus.SENT, QueueStatus.FAILED}),
    QueueStatus.FAILED: frozenset({QueueStatus.QUEUED}),
    QueueStatus.SENT: frozenset(),
    QueueStatus.SKIPPED: frozenset(),
}


def can_transition(current: QueueStatus, target: QueueStatus) -> bool:
    """Return True when an item may move from current to target status.

    calling -> queued is the rollback taken when a call fails to start.
    """
    return QueueStatus(target) in ALLOWED_TRANSITIONS[QueueStatus(current)]


class QueueItemBase(BaseModel):
    """Fields shared by call and email queue items.

    Property and contact fields are snapshots taken when the item was queued.
    """
    id: str = Field(..., description="Queue item ID")
    queue_number: int = Field(..., ge=1)
    position: int = Field(..., description="Dispatch order within the queue number")
    status: QueueStatus = QueueStatus.QUEUED
    batch_id: Optional[str] = None
    error_message: Optional[str] = None
    attempt_count: int = 0
    crm_lead_id: Optional[str] = None
    property_id: Optional[str] = None
    contact_id: Optional[str] = None
    contact_name: Optional[str] = None
    contact_first_name: Optional[str] = None
    property_address: Optional[str] = None
    property_city: Optional[str] = None
    property_state: Optional[str] = None
    property_zip: Optional[str] = None
    property_price: Optional[int] = None
    property_dom: Optional[int] = None
    property_beds: Optional[int] = None
    property_baths: Optional[float] = None
    property_sqft: Optional[int] = None
    property_type: Optional[str] = None
    property_remarks: Optional[str] = None
    estimated_equity: Optional[str] = None
    estimated_home_value: Optional[str] = None
    owner_estimated_age: Optional[str] = None
    length_of_residence: Optional[str] = None
    marital_status: Optional[str] = None
    has_children: Optional[str] = None
    is_absentee_owner: bool = False
    created_at: Optional[str] = None
    completed_at: Optional[str] = None

    @field_validator("attempt_count", mode="before")
    @classmethod
    def _attempts_default(cls, value: Any) -> Any:
        return 0 if value is None else value

    @field_validator("is_absentee_owner", mode="before")
    @classmethod
    def _absentee_default(cls, value: Any) -> Any:
        return False if value is None else value


class CallQueueItem(QueueItemBase):
    """One phone number's turn in a call queue."""
    phone_id: Optional[str] = None
    phone_number: str = Field(..., description="Number to dial")
    conversation_id: Optional[str] = Field(None, description="Telephony conversation ID")
    call_started_at: Optional[str] = None
    call_ended_at: Optional[str] = None
    call_outcome: Optional[str] = None
    call_duration_seconds: Optional[int] = None
    call_transcript: Optional[str] = None
    call_recording_url: Optional[str] = None


class EmailQueueItem(QueueItemBase):
    """One recipient's turn in an email queue."""
    email_id: Optional[str] = None
    contact_email: str = Field(..., description="Recipient address")
    sent_at: Optional[str] = None


class QueueSettingsBase(BaseModel):
    """Per-queue flags stored in the settings table."""
    id: Optional[str] = None
    queue_number: int = Field(..., ge=1)
    is_sending: bool = False
    is_paused: bool = False
    last_batch_id: Optional[str] = None

    @field_validator("is_sending", "is_paused", mode="before")
    @classmethod
    def _flags_default(cls, value: Any) -> Any:
        return False if value is None else value


class CallQueueSettings(QueueSettingsBase):
    """Call queue settings; agent_id is the dispatch scenario."""
    agent_id: Optional[str] = Field(None, description="Voice agent handling the calls")
    voice_id: Optional[str] = None
    call_interval_seconds: int = 30
    schedule_start: Optional[str] = Field(None, description="HH:MM, inclusive")
    schedule_end: Optional[str] = Field(None, description="HH:MM, inclusive")


class EmailQueueSettings(QueueSettingsBase):
    """Email queue settings; scenario_key selects the template."""
    queue_label: Optional[str] = None
    scenario_key: Optional[str] = None
    from_name: Optional[str] = None
    from_email: Optional[str] = None
    send_interval_seconds: int = 30


class QueueStats(BaseModel):
    total: int = 0
    queued: int = 0
    in_flight: int = 0
    sent: int = 0
    failed: int = 0
    skipped: int = 0

    @classmethod
    def from_items(cls, items: list[QueueItemBase]) -> "QueueStats":
        """Count items per status."""
        stats = cls(total=len(items))
        for item in items:
            if item.status == QueueStatus.QUEUED:
                stats.queued += 1
            elif item.status in (QueueStatus.CALLING, QueueStatus.SENDING):
                stats.in_flight += 1
            elif item.status == QueueStatus.SENT:
                stats.sent += 1
            elif item.status == QueueStatus.FAILED:
                stats.failed += 1
            elif item.status == QueueStatus.SKIPPED:
                stats.skipped += 1
        return stats


class QueueSnapshot(BaseModel):
    """Items, settings and stats for one queue number."""
    queue_number: int
    items: list[Any] = Field(default_factory=list)
    settings: Any = None
    stats: QueueStats = Field(default_factory=QueueStats)


class QueueBuildFailure(str, Enum):
    """Why a projection produced no queue items."""
    NO_LEADS_MATCHED = "no_leads_matched"
    NO_CALLABLE_PHONES = "no_callable_phones"
    NO_CONTACTS_WITH_EMAIL = "no_contacts_with_email"
    STORAGE_ERROR = "storage_error"
    TABLE_MISSING = "table_missing"


class QueueBuildResult(BaseModel):
    """Outcome of projecting leads into a queue."""
    success: bool
    added: int = 0
    message: str = ""
    leads_omitted: int = Field(default=0, description="Leads with no resolvable property")
    failure: Optional[QueueBuildFailure] = None


class DispatchResult(BaseModel):
    """Outcome of a dispatch trigger."""
    success: bool
    message: str = ""
    batch_id: Optional[str] = None
    queue_number: Optional[int] = None
    item_id: Optional[str] = None
    conversation_id: Optional[str] = None
    dispatched: int = 0


class EmailScenario(BaseModel):
    key: str
    label: str
