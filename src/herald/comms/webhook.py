"""WebhookSink — posts finished batches to the notification endpoint.

Delivery is best-effort.  Every attempt ends in exactly one
``DeliveryStatus``; nothing is retried, no backoff state is kept, and
no exception escapes into the caller.  ``submit()`` runs the POST on a
daemon thread so the host's tick never waits on the network.
"""

from __future__ import annotations

import enum
import threading

import httpx
from loguru import logger

from herald.digest.cards import DEFAULT_BUDGET, Batch

_USER_AGENT = "villager-herald/0.1.0"


class DeliveryStatus(enum.Enum):
    SUCCESS = "success"
    RATE_LIMITED = "rate_limited"
    MALFORMED_REQUEST = "malformed_request"
    NOT_FOUND = "not_found"
    OTHER_FAILURE = "other_failure"


def categorize(status_code: int) -> DeliveryStatus:
    if 200 <= status_code < 300:
        return DeliveryStatus.SUCCESS
    if status_code == 429:
        return DeliveryStatus.RATE_LIMITED
    if status_code == 400:
        return DeliveryStatus.MALFORMED_REQUEST
    if status_code == 404:
        return DeliveryStatus.NOT_FOUND
    return DeliveryStatus.OTHER_FAILURE


class WebhookSink:
    """HTTP delivery of batches to a webhook URL."""

    def __init__(
        self,
        url: str,
        timeout: float = 10.0,
        hard_cap: int = DEFAULT_BUDGET.hard_cap,
        client: httpx.Client | None = None,
    ) -> None:
        self.url = url
        self.timeout = timeout
        self.hard_cap = hard_cap
        self._client = client
        self._lock = threading.Lock()
        self._in_flight: list[threading.Thread] = []
        self.last_status: DeliveryStatus | None = None

    def deliver(self, batch: Batch) -> DeliveryStatus:
        """POST ``batch`` synchronously and categorise the outcome."""
        if not batch.cards:
            logger.debug("No cards to send")
            return self._record(DeliveryStatus.OTHER_FAILURE)

        body = batch.encode()
        if len(body) > self.hard_cap:
            logger.error(
                f"Webhook payload is too large ({len(body)} bytes). "
                f"Maximum allowed is {self.hard_cap} bytes. Aborting request."
            )
            return self._record(DeliveryStatus.OTHER_FAILURE)

        logger.debug(f"Sending {len(batch.cards)} cards, payload size: {len(body)} bytes")
        headers = {"Content-Type": "application/json", "User-Agent": _USER_AGENT}
        try:
            if self._client is not None:
                resp = self._client.post(self.url, content=body, headers=headers, timeout=self.timeout)
            else:
                with httpx.Client(timeout=self.timeout) as client:
                    resp = client.post(self.url, content=body, headers=headers)
        except httpx.HTTPError as e:
            logger.error(f"Webhook request failed: {e}")
            return self._record(DeliveryStatus.OTHER_FAILURE)

        status = categorize(resp.status_code)
        if status is DeliveryStatus.SUCCESS:
            logger.debug(f"Webhook request successful, response code: {resp.status_code}")
        elif status is DeliveryStatus.RATE_LIMITED:
            logger.error("Rate limited by the webhook endpoint; this update is dropped")
        elif status is DeliveryStatus.MALFORMED_REQUEST:
            logger.error(f"Endpoint rejected the request (400 Bad Request): {resp.text[:200]}")
            logger.debug(f"First 100 chars of payload: {body[:100].decode('utf-8', 'replace')}...")
        elif status is DeliveryStatus.NOT_FOUND:
            logger.error("Webhook URL not found (404). Check that the URL is correct and still valid.")
        else:
            logger.error(f"Unexpected response code {resp.status_code}: {resp.text[:200]}")
        return self._record(status)

    def submit(self, batch: Batch) -> threading.Thread:
        """Fire-and-forget delivery on a daemon thread."""
        thread = threading.Thread(
            target=self.deliver, args=(batch,), name="webhook-send", daemon=True
        )
        with self._lock:
            self._in_flight = [t for t in self._in_flight if t.is_alive()]
            self._in_flight.append(thread)
        thread.start()
        return thread

    def drain(self, timeout: float = 5.0) -> None:
        """Wait for in-flight sends (used at shutdown and in tests)."""
        with self._lock:
            threads = list(self._in_flight)
        for t in threads:
            t.join(timeout=timeout)

    def _record(self, status: DeliveryStatus) -> DeliveryStatus:
        self.last_status = status
        return status
