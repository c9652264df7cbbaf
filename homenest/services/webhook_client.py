"""Workflow automation webhook client for bulk email batches."""

from typing import Any, Optional
import httpx
from homenest.utils.config import Settings
from homenest.utils.errors import WebhookError
from homenest.utils.logging import get_structured_logger

logger = get_structured_logger(__name__)


class WorkflowWebhookClient:
    """Posts JSON batches to the workflow webhook."""

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.url = settings.email_webhook_url
        self.timeout = settings.http_timeout_seconds
        self.transport = transport

    async def post_batch(self, payload: dict[str, Any]) -> None:
        """Deliver a batch; any non-2xx response raises WebhookError."""
        if not self.url:
            raise WebhookError("N8N_WEBHOOK_BULK_EMAIL not configured")

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(self.url, json=payload)
        except httpx.HTTPError as e:
            raise WebhookError(f"Webhook request failed: {e}")

        if not response.is_success:
            raise WebhookError(f"Webhook returned {response.status_code}")

        logger.info(
            "Batch delivered to workflow webhook",
            batch_id=payload.get("batch_id"),
            leads=len(payload.get("leads", [])),
        )
