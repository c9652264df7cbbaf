"""Application settings loaded from environment variables."""

import os
from typing import Optional
from pydantic import BaseModel, Field


class Settings(BaseModel):
    """Runtime configuration, built once by the process entry point."""
    supabase_url: Optional[str] = Field(None, description="Supabase project URL")
    supabase_key: Optional[str] = Field(None, description="Supabase service role key")
    email_webhook_url: Optional[str] = Field(None, description="Workflow webhook receiving bulk email batches")
    telephony_api_key: Optional[str] = Field(None, description="Voice agent API key")
    telephony_phone_number_id: Optional[str] = Field(None, description="Outbound caller phone number ID")
    telephony_api_url: str = Field(default="https://api.elevenlabs.io/v1", description="Voice agent API base URL")
    http_timeout_seconds: float = Field(default=30.0, gt=0)
    import_source: str = Field(default="csv_vortex", description="Provenance tag written on imported properties")
    import_max_error_messages: int = Field(default=5, ge=0)
    queue_count: int = Field(default=4, ge=1, description="Number of call/email queues per channel")
    default_from_name: str = Field(default="HomeNest")
    default_from_email: str = Field(default="outreach@homenest.house")
    default_state: str = Field(default="CA")

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from the process environment."""
        env = os.environ
        values = {
            "supabase_url": env.get("SUPABASE_URL"),
            "supabase_key": env.get("SUPABASE_SERVICE_ROLE_KEY"),
            "telephony_api_key": env.get("ELEVENLABS_API_KEY"),
            "telephony_phone_number_id": env.get("ELEVENLABS_PHONE_NUMBER_ID"),
        }
        optional = {
            "email_webhook_url": "N8N_WEBHOOK_BULK_EMAIL",
            "telephony_api_url": "ELEVENLABS_API_URL",
            "http_timeout_seconds": "HTTP_TIMEOUT_SECONDS",
            "import_source": "IMPORT_SOURCE",
            "import_max_error_messages": "IMPORT_MAX_ERROR_MESSAGES",
            "queue_count": "QUEUE_COUNT",
            "default_from_name": "DEFAULT_FROM_NAME",
            "default_from_email": "DEFAULT_FROM_EMAIL",
            "default_state": "DEFAULT_STATE",
        }
        for field_name, env_name in optional.items():
            value = env.get(env_name)
            if value:
                values[field_name] = value.strip()
        return cls(**values)
