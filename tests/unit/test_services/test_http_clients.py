"""Tests for the telephony and workflow webhook HTTP clients."""

import json
import httpx
import pytest
from homenest.services.telephony_client import TelephonyClient
from homenest.services.webhook_client import WorkflowWebhookClient
from homenest.utils.errors import TelephonyError, WebhookError


def transport_returning(response: httpx.Response, seen: list):
    def handle(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return response
    return httpx.MockTransport(handle)


def failing_transport():
    def handle(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)
    return httpx.MockTransport(handle)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_initiate_call_posts_outbound_request(settings):
    seen = []
    client = TelephonyClient(settings, transport=transport_returning(
        httpx.Response(200, json={"conversation_id": "conv_abc"}), seen,
    ))

    conversation_id = await client.initiate_call(
        "agent_123",
        "(626) 555-0101",
        metadata={"queue_item_id": "item-1"},
        dynamic_variables={"homeowner_name": "Jane"},
    )

    assert conversation_id == "conv_abc"
    request = seen[0]
    assert str(request.url) == "https://telephony.test/v1/convai/twilio/outbound_call"
    assert request.headers["xi-api-key"] == "test-elevenlabs-key"
    body = json.loads(request.content)
    assert body == {
        "agent_id": "agent_123",
        "agent_phone_number_id": "phnum_test",
        "to_number": "+16265550101",
        "conversation_initiation_client_data": {"dynamic_variables": {"homeowner_name": "Jane"}},
    }


@pytest.mark.unit
@pytest.mark.asyncio
@pytest.mark.parametrize("response", [
    httpx.Response(422, text="invalid number"),
    httpx.Response(200, json={"success": True}),
    httpx.Response(200, text="not json"),
])
async def test_initiate_call_errors(settings, response):
    client = TelephonyClient(settings, transport=transport_returning(response, []))

    with pytest.raises(TelephonyError):
        await client.initiate_call("agent_123", "6265550101")


@pytest.mark.unit
@pytest.mark.asyncio
async def test_initiate_call_transport_error(settings):
    client = TelephonyClient(settings, transport=failing_transport())

    with pytest.raises(TelephonyError, match="request failed"):
        await client.initiate_call("agent_123", "6265550101")


@pytest.mark.unit
@pytest.mark.asyncio
async def test_initiate_call_requires_configuration(settings):
    settings.telephony_phone_number_id = None
    seen = []
    client = TelephonyClient(settings, transport=transport_returning(httpx.Response(200), seen))

    with pytest.raises(TelephonyError, match="ELEVENLABS_PHONE_NUMBER_ID"):
        await client.initiate_call("agent_123", "6265550101")
    assert seen == []


@pytest.mark.unit
@pytest.mark.asyncio
async def test_post_batch(settings):
    seen = []
    client = WorkflowWebhookClient(settings, transport=transport_returning(httpx.Response(202), seen))

    await client.post_batch({"batch_id": "b1", "leads": [{"queue_item_id": "i1"}]})

    assert str(seen[0].url) == "https://workflows.test/webhook/bulk-email"
    assert json.loads(seen[0].content)["batch_id"] == "b1"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_post_batch_errors(settings):
    client = WorkflowWebhookClient(settings, transport=transport_returning(httpx.Response(500), []))
    with pytest.raises(WebhookError, match="500"):
        await client.post_batch({"batch_id": "b1", "leads": []})

    client = WorkflowWebhookClient(settings, transport=failing_transport())
    with pytest.raises(WebhookError):
        await client.post_batch({"batch_id": "b1", "leads": []})

    settings.email_webhook_url = None
    with pytest.raises(WebhookError, match="not configured"):
        await WorkflowWebhookClient(settings).post_batch({"batch_id": "b1", "leads": []})
