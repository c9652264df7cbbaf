"""Custom assertion helpers."""

from typing import Any, Dict
import json


def assert_valid_response(response: Dict[str, Any], expected_status: int = 200) -> dict:
    """Assert that a Vercel function response is valid and return its JSON body."""
    assert 'statusCode' in response
    assert response['statusCode'] == expected_status, response.get('body')
    assert 'headers' in response
    assert 'body' in response
    assert 'application/json' in response['headers'].get('Content-Type', '')

    try:
        return json.loads(response['body'])
    except json.JSONDecodeError:
        assert False, "Response body is not valid JSON"


def assert_contiguous_positions(items: list[Dict[str, Any]], start: int) -> None:
    """Assert queue positions run start, start+1, ... with no gaps."""
    positions = sorted(item["position"] for item in items)
    assert positions == list(range(start, start + len(positions)))


def assert_no_dnc_in_queue(db) -> None:
    """Assert that no call queue item points at a DNC phone."""
    dnc_ids = {p["id"] for p in db.rows("phones") if p.get("is_dnc")}
    dnc_numbers = {p["number"] for p in db.rows("phones") if p.get("is_dnc")}
    for item in db.rows("call_queue"):
        assert item.get("phone_id") not in dnc_ids
        assert item.get("phone_number") not in dnc_numbers
