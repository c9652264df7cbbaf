"""Supabase client construction with async context manager support."""

from typing import Any, Optional
from pydantic import BaseModel, ValidationError
from supabase import create_client, Client
from supabase.client import ClientOptions
from homenest.utils.config import Settings
from homenest.utils.errors import SupabaseError
from homenest.utils.logging import get_structured_logger

logger = get_structured_logger(__name__)

# Matches every row on `.gte("id", NIL_UUID)`; postgrest refuses unfiltered deletes
NIL_UUID = "00000000-0000-0000-0000-000000000000"


def to_model(model: type[BaseModel], row: dict[str, Any]) -> Any:
    """Validate a store row, reporting malformed rows as storage errors."""
    try:
        return model(**row)
    except ValidationError as e:
        raise SupabaseError(f"Invalid {model.__name__} row {row.get('id')}: {e}")


def create_supabase_client(settings: Settings) -> Client:
    """Create a Supabase client from settings."""
    if not settings.supabase_url or not settings.supabase_key:
        raise SupabaseError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set")

    # Serverless processes never refresh or persist auth sessions
    options = ClientOptions(
        auto_refresh_token=False,
        persist_session=False,
    )

    client = create_client(settings.supabase_url, settings.supabase_key, options)
    logger.info("Supabase client initialized", url=settings.supabase_url)
    return client


class SupabaseClient:
    """Async context manager owning a Supabase client for one entry-point invocation."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.client: Optional[Client] = None

    async def __aenter__(self) -> Client:
        """Enter async context."""
        self.client = create_supabase_client(self.settings)
        return self.client

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Exit async context."""
        # Supabase-py client doesn't need explicit cleanup
        if exc_type:
            logger.error(
                "Supabase operation error",
                error=str(exc_val),
                type=exc_type.__name__,
            )
        self.client = None
        return False
