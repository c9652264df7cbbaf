"""Telephony webhook endpoint: record call completions and dial the next item."""

from http.server import BaseHTTPRequestHandler
import asyncio
import json
from homenest.services.factory import build_services
from homenest.services.supabase_client import SupabaseClient
from homenest.utils.config import Settings
from homenest.utils.logging import correlation_context, get_structured_logger
from homenest.utils.logging_config import LoggingConfig
from homenest.utils.responses import status_for_error

LoggingConfig.setup_logging()
logger = get_structured_logger(__name__)


async def process_completion(settings: Settings, payload: dict):
    async with SupabaseClient(settings) as client:
        return await build_services(settings, client).call_queue.handle_call_completed(payload)


class handler(BaseHTTPRequestHandler):
    """Vercel serverless function handler for telephony webhooks."""

    def _send_json(self, status: int, body: dict) -> None:
        self.send_response(status)
        self.send_header('Content-Type', 'application/json')
        self.end_headers()
        self.wfile.write(json.dumps(body).encode('utf-8'))

    def do_POST(self):
        """Handle a call completion webhook."""
        with correlation_context():
            try:
                content_length = int(self.headers.get('Content-Length', 0))
                raw_body = self.rfile.read(content_length).decode('utf-8') if content_length > 0 else ""
                try:
                    payload = json.loads(raw_body) if raw_body else {}
                except json.JSONDecodeError:
                    self._send_json(400, {"error": "invalid JSON"})
                    return

                result = asyncio.run(process_completion(Settings.from_env(), payload))
                if result.success:
                    self._send_json(200, {"success": True, "outcome": result.message})
                else:
                    # Unknown conversations are acknowledged so the provider stops retrying
                    self._send_json(200, {"received": True, "message": result.message})

            except Exception as e:
                logger.error("Error processing telephony webhook", error=str(e), exc_info=True)
                self._send_json(status_for_error(e), {"error": str(e)})

    def do_GET(self):
        """Handle GET request (health check)."""
        self._send_json(200, {"status": "ok", "endpoint": "call_queue/webhook"})
