"""Add CRM leads to a call or email queue."""

import asyncio
from homenest.models.queue import QueueChannel
from homenest.services.factory import build_services
from homenest.services.supabase_client import SupabaseClient
from homenest.utils.config import Settings
from homenest.utils.errors import RequestValidationError
from homenest.utils.logging import correlation_context, get_structured_logger
from homenest.utils.logging_config import LoggingConfig
from homenest.utils.responses import error_response, json_response, parse_json_body

LoggingConfig.setup_logging()
logger = get_structured_logger(__name__)


async def add_leads(settings: Settings, channel: QueueChannel, lead_ids: list[str], queue_number: int):
    async with SupabaseClient(settings) as client:
        builder = build_services(settings, client).queue_builder
        if channel == QueueChannel.CALL:
            return await builder.add_leads_to_call_queue(lead_ids, queue_number)
        return await builder.add_leads_to_email_queue(lead_ids, queue_number)


def handler(request):
    """JSON body: {channel: call|email, queueNumber, leadIds: [...]}."""
    with correlation_context():
        try:
            body = parse_json_body(request)
            try:
                channel = QueueChannel(body.get("channel", ""))
            except ValueError:
                raise RequestValidationError("channel must be call or email")
            lead_ids = body.get("leadIds") or []
            if not isinstance(lead_ids, list):
                raise RequestValidationError("leadIds must be an array")

            settings = Settings.from_env()
            result = asyncio.run(add_leads(settings, channel, lead_ids, body.get("queueNumber", 1)))
            return json_response(200 if result.success else 422, result.model_dump())

        except Exception as e:
            logger.error("Error adding leads to queue", error=str(e), exc_info=True)
            return error_response(e)
