"""Shared pytest fixtures and configuration."""

import os
import pytest
from datetime import datetime
from freezegun import freeze_time

# Set test environment variables
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("SUPABASE_URL", "https://test.supabase.co")
os.environ.setdefault("SUPABASE_SERVICE_ROLE_KEY", "test-key")
os.environ.setdefault("ELEVENLABS_API_KEY", "test-elevenlabs-key")
os.environ.setdefault("ELEVENLABS_PHONE_NUMBER_ID", "phnum_test")
os.environ.setdefault("N8N_WEBHOOK_BULK_EMAIL", "https://workflows.test/webhook/bulk-email")
os.environ.setdefault("LOG_FORMAT", "text")

from homenest.models.queue import QueueChannel
from homenest.services.lead_store import LeadStore
from homenest.services.queue_store import QueueStore
from homenest.utils.config import Settings
from tests.utils.fake_supabase import FakeSupabase


@pytest.fixture
def fake_db():
    """In-memory Supabase stand-in with every table the services touch."""
    return FakeSupabase()


@pytest.fixture
def settings():
    """Settings with every integration configured."""
    return Settings(
        supabase_url="https://test.supabase.co",
        supabase_key="test-key",
        email_webhook_url="https://workflows.test/webhook/bulk-email",
        telephony_api_key="test-elevenlabs-key",
        telephony_phone_number_id="phnum_test",
        telephony_api_url="https://telephony.test/v1",
    )


@pytest.fixture
def lead_store(fake_db):
    return LeadStore(fake_db)


@pytest.fixture
def call_store(fake_db):
    return QueueStore(fake_db, QueueChannel.CALL)


@pytest.fixture
def email_store(fake_db):
    return QueueStore(fake_db, QueueChannel.EMAIL)


@pytest.fixture
def freeze_time_fixture():
    """Freeze time for deterministic testing."""
    with freeze_time("2024-06-03 14:00:00"):
        yield datetime(2024, 6, 3, 14, 0, 0)


@pytest.fixture(scope="function")
def reset_environment(monkeypatch):
    """Reset environment variables for each test."""
    original_env = os.environ.copy()
    yield
    os.environ.clear()
    os.environ.update(original_env)
