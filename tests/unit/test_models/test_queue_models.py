"""Tests for queue models."""

import pytest
from pydantic import ValidationError
from homenest.models.queue import (
    CallQueueItem,
    CallQueueSettings,
    EmailQueueItem,
    QueueChannel,
    QueueStats,
    QueueStatus,
    can_transition,
)


@pytest.mark.unit
def test_channel_tables():
    """Test channel table names."""
    assert QueueChannel.CALL.items_table == "call_queue"
    assert QueueChannel.CALL.settings_table == "call_queue_settings"
    assert QueueChannel.EMAIL.items_table == "email_queue"
    assert QueueChannel.EMAIL.settings_table == "email_queue_settings"


@pytest.mark.unit
@pytest.mark.parametrize("current,target", [
    ("queued", "calling"),
    ("queued", "sending"),
    ("queued", "skipped"),
    ("calling", "sent"),
    ("calling", "failed"),
    ("calling", "queued"),
    ("sending", "sent"),
    ("sending", "failed"),
    ("failed", "queued"),
])
def test_allowed_transitions(current, target):
    assert can_transition(QueueStatus(current), QueueStatus(target))


@pytest.mark.unit
@pytest.mark.parametrize("current,target", [
    ("sent", "queued"),
    ("sent", "failed"),
    ("skipped", "queued"),
    ("queued", "sent"),
    ("sending", "queued"),
    ("failed", "sent"),
])
def test_forbidden_transitions(current, target):
    """Terminal and skipping transitions are refused."""
    assert not can_transition(QueueStatus(current), QueueStatus(target))


@pytest.mark.unit
def test_call_queue_item_defaults_from_null_columns():
    """Test that nullable columns fall back to defaults."""
    item = CallQueueItem(
        id="item-1",
        queue_number=2,
        position=1,
        phone_number="(626) 555-0101",
        attempt_count=None,
        is_absentee_owner=None,
    )

    assert item.status == QueueStatus.QUEUED
    assert item.attempt_count == 0
    assert item.is_absentee_owner is False
    assert item.conversation_id is None


@pytest.mark.unit
def test_call_queue_item_requires_phone():
    with pytest.raises(ValidationError):
        CallQueueItem(id="item-1", queue_number=1, position=1)


@pytest.mark.unit
def test_email_queue_item_requires_valid_queue_number():
    with pytest.raises(ValidationError):
        EmailQueueItem(id="item-1", queue_number=0, position=1, contact_email="a@example.com")


@pytest.mark.unit
def test_call_settings_defaults():
    settings = CallQueueSettings(queue_number=1, is_sending=None, is_paused=None)

    assert settings.is_sending is False
    assert settings.is_paused is False
    assert settings.call_interval_seconds == 30
    assert settings.agent_id is None


@pytest.mark.unit
def test_queue_stats_from_items():
    """Test per-status counting."""
    statuses = ["queued", "queued", "calling", "sent", "failed", "skipped"]
    items = [
        CallQueueItem(id=f"i{n}", queue_number=1, position=n, status=s, phone_number="5550101")
        for n, s in enumerate(statuses, start=1)
    ]

    stats = QueueStats.from_items(items)

    assert stats.total == 6
    assert stats.queued == 2
    assert stats.in_flight == 1
    assert stats.sent == 1
    assert stats.failed == 1
    assert stats.skipped == 1
