"""Health check endpoint."""

from http.server import BaseHTTPRequestHandler
import json
from homenest.utils.config import Settings


def health_status() -> dict:
    """Service status plus which external integrations are configured."""
    settings = Settings.from_env()
    return {
        "status": "ok",
        "service": "homenest-backend",
        "integrations": {
            "supabase": bool(settings.supabase_url and settings.supabase_key),
            "email_webhook": bool(settings.email_webhook_url),
            "telephony": bool(settings.telephony_api_key and settings.telephony_phone_number_id),
        },
    }


class handler(BaseHTTPRequestHandler):
    """Health check handler for Vercel serverless function."""

    def do_GET(self):
        """Handle GET request."""
        self.send_response(200)
        self.send_header('Content-Type', 'application/json')
        self.end_headers()
        self.wfile.write(json.dumps(health_status()).encode('utf-8'))

    def do_POST(self):
        """Handle POST request (same as GET for health check)."""
        self.do_GET()
