"""Tests for WebhookSink — HTTP delivery and status categorisation.

HTTP is faked with httpx.MockTransport; no network access.
"""
from __future__ import annotations

import json

import httpx
import pytest

from herald.comms.webhook import DeliveryStatus, WebhookSink, categorize
from herald.digest.cards import Batch, Card, Field

URL = "https://discord.example/api/webhooks/1/abc"


def _sink(handler, hard_cap: int = 8000) -> WebhookSink:
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return WebhookSink(URL, hard_cap=hard_cap, client=client)


def _batch() -> Batch:
    return Batch([Card(title="Villager Status Report", description="Total Villagers: 3")])


@pytest.mark.unit
class TestCategorize:
    @pytest.mark.parametrize("code,expected", [
        (200, DeliveryStatus.SUCCESS),
        (204, DeliveryStatus.SUCCESS),
        (429, DeliveryStatus.RATE_LIMITED),
        (400, DeliveryStatus.MALFORMED_REQUEST),
        (404, DeliveryStatus.NOT_FOUND),
        (500, DeliveryStatus.OTHER_FAILURE),
        (401, DeliveryStatus.OTHER_FAILURE),
    ])
    def test_status_codes(self, code, expected):
        assert categorize(code) is expected


@pytest.mark.unit
class TestDeliver:
    def test_posts_json_payload(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(204)

        status = _sink(handler).deliver(_batch())
        assert status is DeliveryStatus.SUCCESS
        assert len(seen) == 1
        req = seen[0]
        assert req.method == "POST"
        assert str(req.url) == URL
        assert req.headers["content-type"] == "application/json"
        body = json.loads(req.content)
        assert body["embeds"][0]["title"] == "Villager Status Report"

    @pytest.mark.parametrize("code,expected", [
        (429, DeliveryStatus.RATE_LIMITED),
        (400, DeliveryStatus.MALFORMED_REQUEST),
        (404, DeliveryStatus.NOT_FOUND),
        (503, DeliveryStatus.OTHER_FAILURE),
    ])
    def test_failures_are_categorised_not_raised(self, code, expected):
        sink = _sink(lambda request: httpx.Response(code, text="nope"))
        assert sink.deliver(_batch()) is expected
        assert sink.last_status is expected

    def test_network_error_is_other_failure(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        assert _sink(handler).deliver(_batch()) is DeliveryStatus.OTHER_FAILURE

    def test_oversized_payload_is_refused_before_io(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(204)

        big = Batch([Card(title="x", fields=[Field("n", "v" * 500)])])
        assert _sink(handler, hard_cap=200).deliver(big) is DeliveryStatus.OTHER_FAILURE
        assert calls == []

    def test_empty_batch_is_not_sent(self):
        calls = []
        sink = _sink(lambda request: calls.append(request) or httpx.Response(204))
        assert sink.deliver(Batch()) is DeliveryStatus.OTHER_FAILURE
        assert calls == []

    def test_empty_batch_updates_last_status(self):
        sink = _sink(lambda request: httpx.Response(204))
        sink.deliver(_batch())
        assert sink.last_status is DeliveryStatus.SUCCESS
        sink.deliver(Batch())
        assert sink.last_status is DeliveryStatus.OTHER_FAILURE


@pytest.mark.unit
class TestSubmit:
    def test_submit_runs_on_background_thread(self):
        sink = _sink(lambda request: httpx.Response(204))
        thread = sink.submit(_batch())
        thread.join(timeout=5)
        assert not thread.is_alive()
        assert thread.daemon
        assert sink.last_status is DeliveryStatus.SUCCESS

    def test_drain_waits_for_in_flight(self):
        sink = _sink(lambda request: httpx.Response(429))
        sink.submit(_batch())
        sink.submit(_batch())
        sink.drain(timeout=5)
        assert sink.last_status is DeliveryStatus.RATE_LIMITED
