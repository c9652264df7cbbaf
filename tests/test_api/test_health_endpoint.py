"""Tests for health check endpoint."""

import pytest
import json
from io import BytesIO
from unittest.mock import Mock
from http.server import BaseHTTPRequestHandler
from api.health import handler, health_status


class MockSocket:
    def __init__(self, request_line: bytes):
        self.request_line = request_line

    def makefile(self, *args, **kwargs):
        return BytesIO(self.request_line)

    def sendall(self, data):
        pass

    def close(self):
        pass


def make_handler(request_line: bytes):
    h = handler(MockSocket(request_line), ("127.0.0.1", 8000), None)
    h.wfile = BytesIO()
    h.send_response = Mock()
    h.send_header = Mock()
    h.end_headers = Mock()
    return h


@pytest.mark.unit
def test_health_handler_class():
    """Test that handler is a BaseHTTPRequestHandler subclass."""
    assert issubclass(handler, BaseHTTPRequestHandler)


@pytest.mark.unit
def test_health_get_request():
    """Test GET request to health endpoint."""
    h = make_handler(b"GET /api/health HTTP/1.1\r\n\r\n")

    h.do_GET()

    assert h.send_response.call_args[0][0] == 200
    h.wfile.seek(0)
    response_data = json.loads(h.wfile.read().decode('utf-8'))

    assert response_data["status"] == "ok"
    assert response_data["service"] == "homenest-backend"
    assert response_data["integrations"]["supabase"] is True


@pytest.mark.unit
def test_health_post_request():
    """Test POST request to health endpoint."""
    h = make_handler(b"POST /api/health HTTP/1.1\r\n\r\n")

    h.do_POST()

    h.wfile.seek(0)
    assert json.loads(h.wfile.read().decode('utf-8'))["status"] == "ok"


@pytest.mark.unit
def test_health_status_reports_missing_integrations(monkeypatch):
    monkeypatch.delenv("N8N_WEBHOOK_BULK_EMAIL", raising=False)
    monkeypatch.delenv("ELEVENLABS_API_KEY", raising=False)

    status = health_status()

    assert status["integrations"]["email_webhook"] is False
    assert status["integrations"]["telephony"] is False
