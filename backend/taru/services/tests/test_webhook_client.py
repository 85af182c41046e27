import asyncio

import aiohttp
import pytest
from aioresponses import aioresponses

from taru.services.webhook import AutomationWebhookClient

WEBHOOK_URL = "https://automation.example.com/webhook/learning-path"


@pytest.mark.asyncio
async def test_trigger_returns_parsed_body():
    client = AutomationWebhookClient(WEBHOOK_URL)

    with aioresponses() as m:
        m.post(WEBHOOK_URL, status=200, payload=[{"output": {"greeting": "Hi"}}])
        result = await client.trigger({"uniqueid": "STU123"})

    assert result.ok
    assert result.status == 200
    assert result.data == [{"output": {"greeting": "Hi"}}]


@pytest.mark.asyncio
async def test_trigger_get_sends_query_parameters():
    client = AutomationWebhookClient(WEBHOOK_URL)

    with aioresponses() as m:
        m.get(f"{WEBHOOK_URL}?uniqueid=STU123", status=200, payload={"ok": True})
        result = await client.trigger({"uniqueid": "STU123"}, method="GET")

    assert result.ok
    assert result.data == {"ok": True}


@pytest.mark.asyncio
async def test_trigger_reports_error_status_softly():
    client = AutomationWebhookClient(WEBHOOK_URL)

    with aioresponses() as m:
        m.post(WEBHOOK_URL, status=500, body="workflow crashed")
        result = await client.trigger({"uniqueid": "STU123"})

    assert not result.ok
    assert result.status == 500
    assert "500" in result.error


@pytest.mark.asyncio
async def test_trigger_reports_timeout_softly():
    client = AutomationWebhookClient(WEBHOOK_URL, request_timeout=1)

    with aioresponses() as m:
        m.post(WEBHOOK_URL, exception=asyncio.TimeoutError())
        result = await client.trigger({"uniqueid": "STU123"})

    assert not result.ok
    assert "timed out after 1s" in result.error


@pytest.mark.asyncio
async def test_trigger_reports_connection_errors_softly():
    client = AutomationWebhookClient(WEBHOOK_URL)

    with aioresponses() as m:
        m.post(WEBHOOK_URL, exception=aiohttp.ClientConnectionError("refused"))
        result = await client.trigger({"uniqueid": "STU123"})

    assert not result.ok
    assert "refused" in result.error


@pytest.mark.asyncio
async def test_trigger_without_url():
    result = await AutomationWebhookClient(None).trigger({})

    assert not result.ok
    assert result.error == "Webhook URL not configured"
