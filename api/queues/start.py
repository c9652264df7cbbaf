"""Start dispatching a call or email queue."""

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


async def start_queue(settings: Settings, channel: QueueChannel, queue_number: int):
    async with SupabaseClient(settings) as client:
        services = build_services(settings, client)
        if channel == QueueChannel.CALL:
            return await services.call_queue.start(queue_number)
        return await services.email_queue.start_send(queue_number)


def handler(request):
    """JSON body: {channel: call|email, queueNumber}."""
    with correlation_context():
        try:
            body = parse_json_body(request)
            try:
                channel = QueueChannel(body.get("channel", ""))
            except ValueError:
                raise RequestValidationError("channel must be call or email")

            settings = Settings.from_env()
            result = asyncio.run(start_queue(settings, channel, body.get("queueNumber")))
            return json_response(200 if result.success else 502, result.model_dump())

        except Exception as e:
            logger.error("Error starting queue", error=str(e), exc_info=True)
            return error_response(e)
