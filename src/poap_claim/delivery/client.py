"""Backend delivery queue client - submits claims and reads queue messages over HTTP."""

from __future__ import annotations

import logging

import httpx

from poap_claim.models.event import RewardEvent
from poap_claim.models.records import QueueRecord

log = logging.getLogger(__name__)


class QueueClientError(Exception):
    """A backend request failed or returned something unusable."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class HttpDeliveryQueueClient:
    """Talks to the backend delivery API.

    Endpoints:
    - POST actions/claim-delivery-v2: request a delivery for an address
    - GET queue-message/{uid}: poll a queued delivery
    - GET events: reward definitions
    """

    def __init__(
        self,
        api_url: str,
        api_key: str = "",
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = api_url.rstrip("/")
        self._timeout = timeout
        self._headers = {"Accept": "application/json"}
        if api_key:
            self._headers["X-API-Key"] = api_key
        self._transport = transport

    def _url(self, endpoint: str) -> str:
        return f"{self._base_url}/{endpoint}"

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=httpx.Timeout(self._timeout, connect=10),
            headers=self._headers,
            transport=self._transport,
        )

    async def _request(self, method: str, endpoint: str, **kwargs) -> object:
        try:
            async with self._client() as client:
                resp = await client.request(method, self._url(endpoint), **kwargs)
                resp.raise_for_status()
                return resp.json()
        except httpx.HTTPStatusError as exc:
            raise QueueClientError(
                f"{method} {endpoint}: HTTP {exc.response.status_code}"
                f" {exc.response.text[:200]}",
                status_code=exc.response.status_code,
            ) from exc
        except httpx.HTTPError as exc:
            raise QueueClientError(f"{method} {endpoint}: {exc!r}") from exc
        except ValueError as exc:
            raise QueueClientError(f"{method} {endpoint}: invalid JSON body") from exc

    async def submit_claim(self, delivery_id: int, address: str) -> str:
        log.info("Requesting delivery %d for %s", delivery_id, address)
        data = await self._request(
            "POST",
            "actions/claim-delivery-v2",
            json={"id": delivery_id, "address": address},
        )
        queue_uid = data.get("queue_uid") if isinstance(data, dict) else None
        if not queue_uid:
            raise QueueClientError("claim acknowledgement has no queue_uid")
        return str(queue_uid)

    async def get_queue_status(self, queue_uid: str) -> QueueRecord:
        data = await self._request("GET", f"queue-message/{queue_uid}")
        if not isinstance(data, dict):
            raise QueueClientError(f"queue message {queue_uid} is not an object")
        return QueueRecord.from_json(queue_uid, data)

    async def get_reward_events(self) -> list[RewardEvent]:
        data = await self._request("GET", "events")
        if not isinstance(data, list):
            raise QueueClientError("events listing is not a list")
        events = []
        for item in data:
            try:
                events.append(RewardEvent.from_json(item))
            except (KeyError, TypeError, ValueError) as exc:
                log.debug("Skipping malformed event entry: %s", exc)
        return events
