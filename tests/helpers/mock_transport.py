"""Scripted backend and realtime doubles for client tests."""

from typing import Any, Callable, Dict, List, Optional, Union

import httpx


Scripted = Union[httpx.Response, Exception]


def json_response(status: int, body: Any = None, headers: Optional[Dict[str, str]] = None) -> httpx.Response:
    """Response with a JSON body (no body when ``body`` is None)."""
    if body is None:
        return httpx.Response(status, headers=headers)
    return httpx.Response(status, json=body, headers=headers)


def rate_limited(retry_after: Optional[str] = "1", remaining: str = "0") -> httpx.Response:
    """A 429 response with Retry-After and rate limit headers."""
    headers = {"x-ratelimit-remaining": remaining, "x-ratelimit-limit": "100"}
    if retry_after is not None:
        headers["retry-after"] = retry_after
    return httpx.Response(429, json={"message": "Too many requests"}, headers=headers)


class MockBackend:
    """
    Serves scripted responses through ``httpx.MockTransport``.

    Each incoming request consumes the next scripted item; exceptions are
    raised as if the transport failed. A ``handler`` replaces the script.
    """

    def __init__(
        self,
        responses: Optional[List[Scripted]] = None,
        handler: Optional[Callable[[httpx.Request], httpx.Response]] = None,
    ):
        self.requests: List[httpx.Request] = []
        self._responses = list(responses or [])
        self._handler = handler

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self._handler is not None:
            return self._handler(request)
        if not self._responses:
            raise AssertionError(f"Unexpected request: {request.method} {request.url}")
        scripted = self._responses.pop(0)
        if isinstance(scripted, Exception):
            raise scripted
        return scripted

    def add(self, *responses: Scripted) -> None:
        self._responses.extend(responses)

    @property
    def last_request(self) -> httpx.Request:
        return self.requests[-1]

    def http_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self))


class FakeChannel:
    """Stands in for a realtime channel."""

    def __init__(self, topic: str, fail_subscribe: bool = False):
        self.topic = topic
        self.bindings: List[Dict[str, Any]] = []
        self.subscribed = False
        self._fail_subscribe = fail_subscribe

    def on_postgres_changes(self, event, *, callback, schema="public", table="*", filter=None):
        self.bindings.append({
            "event": event,
            "schema": schema,
            "table": table,
            "filter": filter,
            "callback": callback,
        })
        return self

    async def subscribe(self):
        if self._fail_subscribe:
            raise ConnectionError("socket closed")
        self.subscribed = True
        return self

    def push(self, payload: Any) -> None:
        for binding in self.bindings:
            binding["callback"](payload)


class FakeRealtime:
    """Stands in for the realtime connection handed to the client."""

    def __init__(self, fail_subscribe: bool = False):
        self.channels: Dict[str, FakeChannel] = {}
        self.removed: List[FakeChannel] = []
        self._fail_subscribe = fail_subscribe

    def channel(self, topic: str) -> FakeChannel:
        channel = FakeChannel(topic, fail_subscribe=self._fail_subscribe)
        self.channels[topic] = channel
        return channel

    async def remove_channel(self, channel: FakeChannel) -> None:
        self.removed.append(channel)
