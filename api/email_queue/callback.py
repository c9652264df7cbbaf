"""Workflow callback endpoint: claim email queue items and report delivery results."""

import asyncio
from homenest.services.factory import build_services
from homenest.services.supabase_client import SupabaseClient
from homenest.utils.config import Settings
from homenest.utils.errors import RequestValidationError
from homenest.utils.logging import correlation_context, get_structured_logger
from homenest.utils.logging_config import LoggingConfig
from homenest.utils.responses import error_response, json_response, parse_json_body

LoggingConfig.setup_logging()
logger = get_structured_logger(__name__)


async def apply_callback(settings: Settings, body: dict):
    async with SupabaseClient(settings) as client:
        email_queue = build_services(settings, client).email_queue
        if body["action"] == "claim":
            return await email_queue.claim_item(body["queueItemId"])
        return await email_queue.record_result(
            body["queueItemId"],
            bool(body.get("delivered")),
            body.get("error"),
        )


def handler(request):
    """JSON body: {action: claim|result, queueItemId, delivered, error}."""
    with correlation_context():
        try:
            body = parse_json_body(request)
            if body.get("action") not in ("claim", "result"):
                raise RequestValidationError("action must be claim or result")
            if not body.get("queueItemId"):
                raise RequestValidationError("queueItemId is required")

            settings = Settings.from_env()
            result = asyncio.run(apply_callback(settings, body))
            return json_response(200 if result.success else 409, result.model_dump())

        except Exception as e:
            logger.error("Error applying email callback", error=str(e), exc_info=True)
            return error_response(e)
