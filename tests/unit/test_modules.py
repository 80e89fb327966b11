"""Unit tests for the built-in example and analytics modules."""

import asyncio
import json

import pytest

from supa_sdk.core.errors import ConfigurationError, NetworkError
from supa_sdk.modules.analytics import AnalyticsConfig, AnalyticsModule
from supa_sdk.modules.example import ExampleModule
from supa_sdk.observability import LogLevel, SDKEventType
from tests.helpers.mock_transport import FakeRealtime, MockBackend, json_response


def ok_backend():
    return MockBackend(handler=lambda request: json_response(200, {"ok": True}))


def body_of(request):
    return json.loads(request.content)


async def drain(module: AnalyticsModule):
    """Wait for the module's background flushes and sends."""
    while module._pending:
        await asyncio.gather(*list(module._pending))


class TestExampleModule:
    """Test example CRUD routing and subscriptions."""

    @pytest.fixture
    def realtime(self):
        return FakeRealtime()

    @pytest.fixture
    def example(self, make_client, backend, realtime):
        client = make_client(backend, modules=None, realtime_client=realtime)
        return client.module("example")

    @pytest.mark.asyncio
    async def test_get_item(self, example, backend):
        backend.add(json_response(200, {"id": "42"}))

        assert await example.get_item("42") == {"id": "42"}
        assert backend.last_request.method == "GET"
        assert backend.last_request.url.path == "/v1/examples/42"

    @pytest.mark.asyncio
    async def test_list_items(self, example, backend):
        backend.add(json_response(200, [{"id": "1"}]), json_response(200, []))

        assert await example.list_items(limit=5, offset=10) == [{"id": "1"}]
        assert dict(backend.last_request.url.params) == {"limit": "5", "offset": "10"}

        await example.list_items()
        assert backend.last_request.url.query == b""

    @pytest.mark.asyncio
    async def test_create_item(self, example, backend):
        backend.add(json_response(201, {"id": "7"}))

        assert await example.create_item("Widget") == {"id": "7"}
        assert backend.last_request.method == "POST"
        assert body_of(backend.last_request) == {"name": "Widget"}

    @pytest.mark.asyncio
    async def test_update_item(self, example, backend):
        backend.add(json_response(200, {"id": "7"}))

        await example.update_item("7", description="Updated")

        assert backend.last_request.method == "PUT"
        assert backend.last_request.url.path == "/v1/examples/7"
        assert body_of(backend.last_request) == {"description": "Updated"}

    @pytest.mark.asyncio
    async def test_delete_item(self, example, backend):
        backend.add(json_response(200, {"success": True}))

        assert await example.delete_item("7") == {"success": True}
        assert backend.last_request.method == "DELETE"

    @pytest.mark.asyncio
    async def test_subscribe_to_item(self, example, realtime, event_sink):
        received = []

        channel = await example.subscribe_to_item("42", received.append)

        assert channel is realtime.channels["item:42"]
        assert channel.subscribed
        binding = channel.bindings[0]
        assert binding["event"] == "*"
        assert binding["table"] == "examples"
        assert binding["filter"] == "id=eq.42"

        channel.push({"new": {"id": "42", "name": "Changed"}})
        assert received == [{"id": "42", "name": "Changed"}]

        start = event_sink.get_events(SDKEventType.SUBSCRIPTION_START)[0]
        assert start.channel == "item:42"
        assert start.module_id == "example"

    @pytest.mark.asyncio
    async def test_unsubscribe(self, example, realtime, event_sink):
        channel = await example.subscribe_to_item("42", lambda item: None)

        await example.unsubscribe(channel)

        assert realtime.removed == [channel]
        end = event_sink.get_events(SDKEventType.SUBSCRIPTION_END)[0]
        assert end.channel == "item:42"

    @pytest.mark.asyncio
    async def test_subscription_failure(self, make_client, backend, event_sink):
        client = make_client(backend, modules=None, realtime_client=FakeRealtime(fail_subscribe=True))

        with pytest.raises(NetworkError) as exc_info:
            await client.module("example").subscribe_to_item("42", lambda item: None)

        assert exc_info.value.details.error_type == "ConnectionError"
        error_event = event_sink.get_events(SDKEventType.SUBSCRIPTION_ERROR)[0]
        assert error_event.error is exc_info.value

    @pytest.mark.asyncio
    async def test_subscription_without_realtime(self, make_client, backend):
        client = make_client(backend, modules=None)

        with pytest.raises(ConfigurationError):
            await client.module("example").subscribe_to_item("42", lambda item: None)

    def test_is_base_module(self, example):
        assert isinstance(example, ExampleModule)
        assert example.name == "example"


class TestAnalyticsModule:
    """Test analytics collection, batching and persistence."""

    @pytest.fixture
    def backend(self):
        return ok_backend()

    @pytest.fixture
    def client(self, make_client, backend):
        return make_client(backend, modules=None)

    @pytest.fixture
    def analytics(self, client):
        return client.module("analytics")

    def persisted_batches(self, backend):
        return [
            body_of(request)
            for request in backend.requests
            if request.url.path == "/v1/analytics/events"
        ]

    @pytest.mark.asyncio
    async def test_disabled_until_initialized(self, analytics, backend):
        assert analytics.is_enabled is False

        await analytics.track("ignored")

        assert analytics.queued_events == []
        assert backend.requests == []

    @pytest.mark.asyncio
    async def test_initialize_installs_handler(self, analytics, observability):
        analytics.initialize(flush_interval=60)

        assert analytics.is_enabled
        assert observability.config.enable_telemetry is True
        assert observability.config.telemetry_handler == analytics._handle_event

        await analytics.shutdown()

    @pytest.mark.asyncio
    async def test_initialize_disabled(self, analytics, observability):
        analytics.initialize(AnalyticsConfig(enabled=False))

        assert analytics.is_enabled is False
        assert observability.config.telemetry_handler != analytics._handle_event

    @pytest.mark.asyncio
    async def test_flushes_at_batch_size(self, analytics, backend):
        analytics.initialize(batch_size=3, flush_interval=60)

        await analytics.track("a")
        await analytics.track("b", {"step": 2})
        assert len(analytics.queued_events) == 2
        assert backend.requests == []

        await analytics.track("c")
        await drain(analytics)

        batches = self.persisted_batches(backend)
        assert len(batches) == 1
        events = batches[0]["events"]
        assert [event["name"] for event in events] == ["a", "b", "c"]
        assert events[1]["properties"] == {"step": 2}
        assert events[0]["context"]["session_id"] == analytics.session_id
        assert batches[0]["session_id"] == analytics.session_id
        assert analytics.queued_events == []

        await analytics.shutdown()

    @pytest.mark.asyncio
    async def test_own_persistence_calls_are_not_queued(self, analytics, backend):
        analytics.initialize(batch_size=1, flush_interval=60)

        await analytics.track("only")
        await drain(analytics)

        assert len(self.persisted_batches(backend)) == 1
        assert analytics.queued_events == []

        await analytics.shutdown()

    @pytest.mark.asyncio
    async def test_failed_flush_requeues(self, make_client, log_records):
        backend = MockBackend(handler=lambda request: json_response(500, {"message": "down"}))
        analytics = make_client(backend, modules=None).module("analytics")
        analytics.initialize(batch_size=10, flush_interval=60)

        await analytics.track("a")
        await analytics.track("b")
        await analytics.flush()

        assert [event["name"] for event in analytics.queued_events] == ["a", "b"]
        failures = [r for r in log_records if r[1] == "Failed to flush analytics events"]
        assert failures[0][0] == LogLevel.ERROR
        assert failures[0][2] == {"count": 2, "code": "server_error"}

        analytics.disable()
        await drain(analytics)
        assert [event["name"] for event in analytics.queued_events] == ["a", "b"]

    @pytest.mark.asyncio
    async def test_global_context_and_identify(self, analytics, backend):
        analytics.initialize(global_context={"app": "demo"}, flush_interval=60)

        await analytics.identify("user-1", {"plan": "pro"})
        await analytics.track("after")

        identify = [r for r in backend.requests if r.url.path == "/v1/analytics/identify"][0]
        assert body_of(identify) == {
            "user_id": "user-1",
            "properties": {"plan": "pro"},
            "session_id": analytics.session_id,
        }
        last = analytics.queued_events[-1]
        assert last["name"] == "after"
        assert last["context"] == {"app": "demo", "user_id": "user-1", "session_id": analytics.session_id}

        await analytics.shutdown()

    @pytest.mark.asyncio
    async def test_sdk_events_are_collected(self, analytics, client):
        analytics.initialize(batch_size=100, flush_interval=60)

        await client.request("/items")

        types = [event["type"] for event in analytics.queued_events]
        assert types == ["request_start", "request_end"]

        await analytics.shutdown()

    @pytest.mark.asyncio
    async def test_unbatched_events_sent_immediately(self, analytics, backend):
        analytics.initialize(batch_events=False)

        await analytics.track("now")
        await drain(analytics)

        batches = self.persisted_batches(backend)
        assert [[event["name"] for event in batch["events"]] for batch in batches] == [["now"]]

    @pytest.mark.asyncio
    async def test_background_flush(self, analytics, backend):
        analytics.initialize(flush_interval=0.01)

        await analytics.track("timed")
        for _ in range(200):
            if self.persisted_batches(backend):
                break
            await asyncio.sleep(0.01)

        assert [event["name"] for event in self.persisted_batches(backend)[0]["events"]] == ["timed"]

        await analytics.shutdown()

    @pytest.mark.asyncio
    async def test_disable_stops_collection(self, analytics, observability):
        analytics.initialize(flush_interval=60)

        analytics.disable()
        await analytics.track("ignored")

        assert analytics.is_enabled is False
        assert observability.config.enable_telemetry is False
        assert analytics.queued_events == []

    @pytest.mark.asyncio
    async def test_shutdown_flushes_remaining(self, analytics, backend):
        analytics.initialize(flush_interval=60)
        await analytics.track("last")

        await analytics.shutdown()

        assert analytics._flush_task is None
        assert [event["name"] for event in self.persisted_batches(backend)[0]["events"]] == ["last"]
        assert analytics.is_enabled is False

    @pytest.mark.asyncio
    async def test_get_analytics(self, analytics, backend):
        await analytics.get_analytics(start_date="2024-01-01", event_types=["custom_event", "request_end"])

        request = backend.last_request
        assert request.url.path == "/v1/analytics/data"
        assert request.url.params["start_date"] == "2024-01-01"
        assert request.url.params.get_list("event_types") == ["custom_event", "request_end"]
