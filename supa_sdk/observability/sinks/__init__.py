"""Telemetry sinks for SDK events.

Available sinks:
- InMemory (for testing and debugging)
- Custom implementations via the TelemetrySink protocol
"""

from .base import TelemetrySink
from .in_memory import EventSummary, InMemoryEventSink

__all__ = ["TelemetrySink", "InMemoryEventSink", "EventSummary"]
