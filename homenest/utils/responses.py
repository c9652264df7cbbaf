"""Response helpers for the serverless entry points."""

import json
from typing import Any
from homenest.utils.errors import (
    DispatchValidationError,
    HomeNestError,
    ImportValidationError,
    QueueBusyError,
    QueueValidationError,
    RequestValidationError,
)

VALIDATION_ERRORS = (ImportValidationError, QueueValidationError, DispatchValidationError, RequestValidationError)


def json_response(status_code: int, body: Any) -> dict:
    """Vercel-style response dict with a JSON body."""
    return {
        "statusCode": status_code,
        "headers": {"Content-Type": "application/json"},
        "body": json.dumps(body, default=str),
    }


def status_for_error(error: Exception) -> int:
    """400 for validation errors, 409 when the queue is busy, 500 otherwise."""
    if isinstance(error, VALIDATION_ERRORS):
        return 400
    if isinstance(error, QueueBusyError):
        return 409
    return 500


def error_response(error: Exception) -> dict:
    body = {"error": str(error)}
    if isinstance(error, HomeNestError):
        body["type"] = type(error).__name__
    return json_response(status_for_error(error), body)


def parse_body(request: dict) -> str:
    """Request body as text."""
    body = request.get("body") or ""
    if isinstance(body, bytes):
        body = body.decode("utf-8")
    if isinstance(body, (dict, list)):
        body = json.dumps(body)
    return body


def parse_json_body(request: dict) -> dict:
    """Request body as a JSON object; malformed JSON is a validation error."""
    body = request.get("body")
    if isinstance(body, dict):
        return body
    text = parse_body(request)
    if not text:
        return {}
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise RequestValidationError(f"Invalid JSON body: {e}")
    if not isinstance(data, dict):
        raise RequestValidationError("JSON body must be an object")
    return data
