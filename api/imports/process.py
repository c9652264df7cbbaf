"""CSV lead import endpoint: preview or import an uploaded export."""

import asyncio
from typing import Optional
from homenest.models.lead_import import ImportMode
from homenest.services.csv_reader import read_csv_rows
from homenest.services.factory import build_services
from homenest.services.import_preview import generate_preview
from homenest.services.supabase_client import SupabaseClient
from homenest.utils.config import Settings
from homenest.utils.errors import RequestValidationError
from homenest.utils.logging import correlation_context, get_structured_logger
from homenest.utils.logging_config import LoggingConfig
from homenest.utils.responses import error_response, json_response, parse_body

LoggingConfig.setup_logging()
logger = get_structured_logger(__name__)


async def run_import(settings: Settings, rows: list[dict[str, str]], mode: ImportMode, confirmation: Optional[str]):
    async with SupabaseClient(settings) as client:
        services = build_services(settings, client)
        return await services.importer.import_rows(rows, mode, confirmation=confirmation)


def handler(request):
    """
    Import a CSV export.

    Body is the CSV text. Query parameters: mode (append|replace), confirm
    (must be DELETE for replace), dry_run (true returns the preview only).
    """
    with correlation_context():
        try:
            query = request.get("query", {}) or {}
            rows = read_csv_rows(parse_body(request))
            if not rows:
                raise RequestValidationError("CSV body has no data rows")

            if str(query.get("dry_run", "")).lower() in ("1", "true", "yes"):
                preview = generate_preview(rows)
                return json_response(200, {
                    "ok": True,
                    "preview": preview.model_dump(),
                    "top_cities": preview.top_cities(),
                })

            try:
                mode = ImportMode(query.get("mode", ImportMode.APPEND.value))
            except ValueError:
                raise RequestValidationError(f"Unknown import mode: {query.get('mode')}")

            settings = Settings.from_env()
            result = asyncio.run(run_import(settings, rows, mode, query.get("confirm")))
            return json_response(200, {"ok": result.success, "result": result.model_dump()})

        except Exception as e:
            logger.error("Error processing import", error=str(e), exc_info=True)
            return error_response(e)
