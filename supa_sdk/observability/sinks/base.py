"""Base interface for telemetry sinks."""

from typing import Protocol

from ..events import SDKEvent


class TelemetrySink(Protocol):
    """Protocol for telemetry handler implementations."""

    def __call__(self, event: SDKEvent) -> None:
        """Receive one event."""
        ...
