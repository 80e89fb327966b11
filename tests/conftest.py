"""Shared pytest fixtures for Supa SDK tests."""

from typing import List

import pytest

from supa_sdk.api.client import SupaSDKClient
from supa_sdk.api.options import ClientOptions
from supa_sdk.modules.registry import get_global_registry
from supa_sdk.observability import (
    InMemoryEventSink,
    LogLevel,
    Observability,
    ObservabilityConfig,
    set_observability,
)
from supa_sdk.reliability import RateLimitRetryManager
from tests.helpers.mock_transport import MockBackend

API_URL = "https://api.test"


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast isolated tests")
    config.addinivalue_line("markers", "integration: end-to-end scenarios against a mock backend")


class SleepRecorder:
    """Async stand-in for asyncio.sleep that records requested delays."""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture(autouse=True)
def reset_global_state(monkeypatch):
    """Isolate the process-wide observability and module registry."""
    monkeypatch.delenv("SUPA_SDK_ENV", raising=False)
    set_observability(None)
    get_global_registry().clear()
    yield
    set_observability(None)
    get_global_registry().clear()


@pytest.fixture
def event_sink():
    return InMemoryEventSink()


@pytest.fixture
def log_records():
    """Log calls captured by the custom logger of the ``observability`` fixture."""
    return []


@pytest.fixture
def observability(event_sink, log_records):
    """Observability with debug logging and telemetry captured in memory."""
    return Observability(ObservabilityConfig(
        enable_logging=True,
        log_level=LogLevel.DEBUG,
        logger=lambda level, message, data: log_records.append((level, message, data)),
        enable_telemetry=True,
        telemetry_handler=event_sink,
    ))


@pytest.fixture
def sleep_recorder():
    return SleepRecorder()


@pytest.fixture
def backend():
    return MockBackend()


@pytest.fixture
def make_client(observability, sleep_recorder):
    """
    Factory for clients wired to a mock backend.

    No modules are loaded unless ``modules`` is given; pass ``modules=None``
    for the default module set.
    """
    def factory(backend: MockBackend, modules=(), realtime_client=None, **option_values):
        option_values.setdefault("api_url", API_URL)
        return SupaSDKClient(
            ClientOptions(**option_values),
            observability=observability,
            modules=modules,
            http_client=backend.http_client(),
            realtime_client=realtime_client,
            retry_manager=RateLimitRetryManager(observability, sleep=sleep_recorder),
        )

    return factory
