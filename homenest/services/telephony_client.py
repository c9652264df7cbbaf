"""Voice agent telephony client (ElevenLabs conversational AI outbound calls)."""

from typing import Optional
import httpx
from homenest.services.lead_parser import format_e164
from homenest.utils.config import Settings
from homenest.utils.errors import TelephonyError
from homenest.utils.logging import get_structured_logger, mask_phone

logger = get_structured_logger(__name__)


class TelephonyClient:
    """Starts outbound calls through the voice agent API."""

    OUTBOUND_CALL_PATH = "/convai/twilio/outbound_call"

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.api_key = settings.telephony_api_key
        self.phone_number_id = settings.telephony_phone_number_id
        self.base_url = settings.telephony_api_url.rstrip("/")
        self.timeout = settings.http_timeout_seconds
        self.transport = transport

    def _get_headers(self) -> dict:
        return {
            "xi-api-key": self.api_key or "",
            "Content-Type": "application/json",
        }

    async def initiate_call(
        self,
        agent_id: str,
        phone_number: str,
        metadata: Optional[dict[str, str]] = None,
        dynamic_variables: Optional[dict[str, str]] = None,
    ) -> str:
        """Start a call and return the conversation ID.

        Metadata is only logged; the API correlates calls by conversation ID.
        """
        if not self.api_key:
            raise TelephonyError("ELEVENLABS_API_KEY not configured")
        if not self.phone_number_id:
            raise TelephonyError("ELEVENLABS_PHONE_NUMBER_ID not configured")

        to_number = format_e164(phone_number)
        body = {
            "agent_id": agent_id,
            "agent_phone_number_id": self.phone_number_id,
            "to_number": to_number,
        }
        if dynamic_variables:
            body["conversation_initiation_client_data"] = {"dynamic_variables": dynamic_variables}

        logger.info(
            "Initiating outbound call",
            agent_id=agent_id,
            to_number=mask_phone(to_number),
            queue_item_id=(metadata or {}).get("queue_item_id"),
        )

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(
                    f"{self.base_url}{self.OUTBOUND_CALL_PATH}",
                    headers=self._get_headers(),
                    json=body,
                )
        except httpx.HTTPError as e:
            raise TelephonyError(f"Telephony request failed: {e}")

        if response.status_code >= 300:
            raise TelephonyError(f"Telephony API error: {response.status_code} - {response.text}")

        try:
            conversation_id = response.json().get("conversation_id")
        except ValueError:
            conversation_id = None
        if not conversation_id:
            raise TelephonyError("Telephony API returned no conversation_id")
        return conversation_id
