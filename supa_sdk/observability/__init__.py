"""Observability layer for logging and telemetry.

This layer handles:
- Level-filtered structured logging
- Lifecycle events for requests, subscriptions and configuration
- Pluggable telemetry handlers
"""

from .events import (
    ConfigurationEvent,
    CustomEvent,
    RateLimitEvent,
    RequestEvent,
    SDKEvent,
    SDKEventType,
    SubscriptionEvent,
)
from .logging import LogLevel, SDKLogger
from .observability import (
    LoggerFunction,
    Observability,
    ObservabilityConfig,
    TelemetryHandler,
    get_observability,
    set_observability,
)
from .sinks import InMemoryEventSink, TelemetrySink

__all__ = [
    # Events
    "SDKEvent",
    "SDKEventType",
    "RequestEvent",
    "RateLimitEvent",
    "SubscriptionEvent",
    "ConfigurationEvent",
    "CustomEvent",

    # Runtime
    "Observability",
    "ObservabilityConfig",
    "TelemetryHandler",
    "LoggerFunction",
    "get_observability",
    "set_observability",

    # Logging
    "LogLevel",
    "SDKLogger",

    # Sinks
    "TelemetrySink",
    "InMemoryEventSink",
]
