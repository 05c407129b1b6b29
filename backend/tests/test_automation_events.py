"""
Tests for the outbound automation webhook.
"""
import json

import httpx
import pytest

from app.services import automation
from app.services.automation import build_event, publish_automation_event


class TestAutomationEvents:

    def test_event_envelope(self):
        event = build_event("task.updated", taskId=3, status="running")

        assert event["type"] == "task.updated"
        assert event["taskId"] == 3
        assert event["source"] == "cyop-control-tower"
        assert event["emittedAt"].endswith("Z")

    @pytest.mark.asyncio
    async def test_delivered(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(json.loads(request.content))
            return httpx.Response(200)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            delivered = await publish_automation_event(
                "dataset.created",
                endpoint="https://hooks.example.com/ct",
                client=client,
                datasetId=1,
            )

        assert delivered is True
        assert seen[0]["type"] == "dataset.created"
        assert seen[0]["datasetId"] == 1

    @pytest.mark.asyncio
    async def test_noop_without_url(self, monkeypatch):
        monkeypatch.setattr(automation.settings, "automation_webhook_url", None)

        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("no request expected")

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            assert await publish_automation_event("task.created", client=client) is False

    @pytest.mark.asyncio
    async def test_http_error_is_swallowed(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(502))
        async with httpx.AsyncClient(transport=transport) as client:
            assert await publish_automation_event(
                "task.created", endpoint="https://hooks.example.com/ct", client=client
            ) is False

    @pytest.mark.asyncio
    async def test_network_error_is_swallowed(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused")

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            assert await publish_automation_event(
                "task.created", endpoint="https://hooks.example.com/ct", client=client
            ) is False
