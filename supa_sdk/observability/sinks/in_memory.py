"""
In-memory telemetry sink for testing and debugging.

This sink stores events in memory and provides query capabilities,
useful for testing, debugging, and local development. Pass an instance as
``telemetry_handler``.
"""

import statistics
from collections import defaultdict, deque
from dataclasses import dataclass, field
from typing import Deque, Dict, List, Optional

from ..events import RequestEvent, SDKEvent, SDKEventType
from .base import TelemetrySink


@dataclass
class EventSummary:
    """Summary statistics for recorded events."""
    count: int = 0
    requests: int = 0
    request_errors: int = 0
    rate_limit_hits: int = 0
    avg_duration_ms: float = 0.0
    p50_duration_ms: float = 0.0
    error_rate: float = 0.0
    by_type: Dict[str, int] = field(default_factory=dict)
    errors: Dict[str, int] = field(default_factory=dict)


class InMemoryEventSink(TelemetrySink):
    """
    In-memory event storage with query capabilities.

    Features:
    - Fixed-size circular buffer
    - Lookup by event type and operation id
    - Summary statistics over request events
    """

    def __init__(self, max_size: int = 10000):
        """
        Initialize the in-memory sink.

        Args:
            max_size: Maximum number of events to store
        """
        self.max_size = max_size
        self._events: Deque[SDKEvent] = deque(maxlen=max_size)

    def __call__(self, event: SDKEvent) -> None:
        """Record an event."""
        self._events.append(event)

    @property
    def events(self) -> List[SDKEvent]:
        return list(self._events)

    def get_events(
        self,
        event_type: Optional[SDKEventType] = None,
        operation_id: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[SDKEvent]:
        """
        Query events with filters, oldest first.

        Args:
            event_type: Filter by event type
            operation_id: Filter by operation id
            limit: Maximum number of results
        """
        results = []
        for event in self._events:
            if event_type is not None and event.type != event_type:
                continue
            if operation_id is not None and event.operation_id != operation_id:
                continue
            results.append(event)
            if limit is not None and len(results) >= limit:
                break
        return results

    def types(self) -> List[SDKEventType]:
        """Event types in the order they were recorded."""
        return [event.type for event in self._events]

    def count(self, event_type: Optional[SDKEventType] = None) -> int:
        if event_type is None:
            return len(self._events)
        return sum(1 for event in self._events if event.type == event_type)

    def get_summary(self) -> EventSummary:
        """Summarize everything currently stored."""
        by_type: Dict[str, int] = defaultdict(int)
        errors: Dict[str, int] = defaultdict(int)
        durations: List[float] = []
        request_errors = 0

        for event in self._events:
            by_type[event.type.value] += 1
            if not isinstance(event, RequestEvent):
                continue
            if event.duration_ms is not None:
                durations.append(event.duration_ms)
            if event.type == SDKEventType.REQUEST_ERROR:
                request_errors += 1
                if event.error is not None:
                    errors[event.error.code.value] += 1

        summary = EventSummary()
        summary.count = len(self._events)
        summary.requests = by_type.get(SDKEventType.REQUEST_START.value, 0)
        summary.request_errors = request_errors
        summary.rate_limit_hits = by_type.get(SDKEventType.RATE_LIMIT_HIT.value, 0)
        if durations:
            summary.avg_duration_ms = statistics.mean(durations)
            summary.p50_duration_ms = statistics.median(durations)
            summary.error_rate = request_errors / len(durations)
        summary.by_type = dict(by_type)
        summary.errors = dict(errors)
        return summary

    def clear(self) -> None:
        """Clear all stored events."""
        self._events.clear()
