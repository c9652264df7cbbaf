"""Test helper functions."""

import csv
import io
import json
from typing import Any, Dict, Optional
from io import BytesIO
from unittest.mock import Mock


def rows_to_csv(rows: list[dict]) -> str:
    """Render export rows as CSV text with the union of their columns as header."""
    header: list[str] = []
    for row in rows:
        for key in row:
            if key not in header:
                header.append(key)
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=header, restval="")
    writer.writeheader()
    writer.writerows(rows)
    return buffer.getvalue()


def create_request(
    method: str = "POST",
    path: str = "/api/imports/process",
    body: Any = None,
    query: Optional[Dict[str, str]] = None,
    headers: Optional[Dict[str, str]] = None,
) -> Dict[str, Any]:
    """Create a Vercel request object for testing."""
    if headers is None:
        headers = {"content-type": "application/json"}

    return {
        "method": method,
        "path": path,
        "headers": headers,
        "body": json.dumps(body) if isinstance(body, dict) else (body or ""),
        "query": query or {},
    }


def invoke_handler_post(handler_class, path: str, payload: Any):
    """Run a BaseHTTPRequestHandler's do_POST against a payload; strings are sent as-is.

    Returns (status_code, parsed JSON body).
    """
    text = payload if isinstance(payload, str) else json.dumps(payload)
    raw = text.encode("utf-8")

    # Skip the socket handshake done in __init__
    h = handler_class.__new__(handler_class)
    h.headers = {"Content-Length": str(len(raw))}
    h.rfile = BytesIO(raw)
    h.wfile = BytesIO()
    h.send_response = Mock()
    h.send_header = Mock()
    h.end_headers = Mock()
    h.path = path

    h.do_POST()

    h.wfile.seek(0)
    return h.send_response.call_args[0][0], json.loads(h.wfile.read().decode("utf-8"))
