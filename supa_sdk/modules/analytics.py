"""
Analytics module for tracking SDK usage and events.

Once enabled, the module installs itself as the telemetry handler of the
client's observability context, enriches every event with the global
context and a session id, and persists events to the backend in batches.
"""

import asyncio
import time
import uuid
from typing import Any, Dict, List, Optional, Set

from pydantic import BaseModel, Field

from ..core.errors import SDKError
from ..observability import CustomEvent, LogLevel, SDKEvent
from .base import BaseModule


EVENTS_PATH = "/analytics/events"
IDENTIFY_PATH = "/analytics/identify"
DATA_PATH = "/analytics/data"


class AnalyticsConfig(BaseModel):
    """Analytics configuration."""
    enabled: bool = Field(default=True, description="Start collecting on initialize")
    batch_events: bool = Field(default=True, description="Batch events to reduce API calls")
    batch_size: int = Field(default=10, ge=1, description="Queued events that trigger a flush")
    flush_interval: float = Field(default=5.0, gt=0, description="Seconds between background flushes")
    global_context: Dict[str, Any] = Field(
        default_factory=dict,
        description="Context merged into every event",
    )


def _running_loop() -> Optional[asyncio.AbstractEventLoop]:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None


class AnalyticsModule(BaseModule):
    """Collects SDK events and custom events and persists them via the API."""

    name = "analytics"

    def __init__(self, client):
        super().__init__(client)
        self.config = AnalyticsConfig()
        self.session_id = f"session_{int(time.time() * 1000)}_{uuid.uuid4().hex[:7]}"

        self._queue: List[Dict[str, Any]] = []
        self._enabled = False
        self._initialized = False
        self._flush_task: Optional[asyncio.Task] = None
        self._pending: Set[asyncio.Task] = set()

    @property
    def is_enabled(self) -> bool:
        return self._enabled

    @property
    def queued_events(self) -> List[Dict[str, Any]]:
        return list(self._queue)

    def initialize(self, config: Optional[AnalyticsConfig] = None, **overrides: Any) -> None:
        """
        Initialize analytics.

        Args:
            config: Analytics configuration (defaults when omitted)
            **overrides: Individual AnalyticsConfig fields
        """
        base = config or AnalyticsConfig()
        self.config = base.model_copy(update=overrides) if overrides else base
        self._initialized = True

        if self.config.enabled:
            self.enable()

        self._observability.log(LogLevel.INFO, "Analytics module initialized", {
            "batch_events": self.config.batch_events,
            "batch_size": self.config.batch_size,
            "flush_interval": self.config.flush_interval,
        })

    def enable(self) -> None:
        """Install the telemetry handler and start collecting."""
        if self._enabled or not self._initialized:
            return

        self._observability.configure(
            enable_telemetry=True,
            telemetry_handler=self._handle_event,
        )
        self._enabled = True

        if self.config.batch_events:
            self._start_flush_timer()

        self._observability.log(LogLevel.INFO, "Analytics collection enabled")

    def disable(self) -> None:
        """
        Stop collecting.

        Pending events are flushed in the background when an event loop is
        running; otherwise they stay queued until ``flush``.
        """
        if not self._enabled:
            return

        self._observability.configure(enable_telemetry=False)
        self._enabled = False
        self._cancel_flush_timer()

        if self._queue and _running_loop() is not None:
            self._spawn(self.flush())

        self._observability.log(LogLevel.INFO, "Analytics collection disabled")

    async def track(self, event_name: str, properties: Optional[Dict[str, Any]] = None) -> None:
        """
        Track a custom event.

        Args:
            event_name: Name of the event
            properties: Event properties
        """
        if not self._enabled:
            return

        self._handle_event(CustomEvent(
            name=event_name,
            properties=dict(properties or {}),
            module_id=self.name,
        ))

    async def identify(self, user_id: str, properties: Optional[Dict[str, Any]] = None) -> None:
        """Set persistent user properties and tag later events with the user id."""
        if not self._enabled:
            return

        await self._request(IDENTIFY_PATH, "POST", {
            "user_id": user_id,
            "properties": dict(properties or {}),
            "session_id": self.session_id,
        })

        self.config.global_context = {**self.config.global_context, "user_id": user_id}
        self._observability.log(LogLevel.DEBUG, "User identified", {"user_id": user_id})

    async def get_analytics(
        self,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        event_types: Optional[List[str]] = None,
    ) -> Any:
        """Get analytics data for a period."""
        params: Dict[str, Any] = {}
        if start_date is not None:
            params["start_date"] = start_date
        if end_date is not None:
            params["end_date"] = end_date
        if event_types:
            params["event_types"] = list(event_types)
        return await self._request(DATA_PATH, "GET", params=params or None)

    async def flush(self) -> None:
        """
        Persist queued events.

        On failure the events go back to the front of the queue.
        """
        if not self._queue:
            return

        events = self._queue
        self._queue = []

        try:
            await self._persist(events)
        except SDKError as e:
            self._queue = events + self._queue
            self._observability.log(LogLevel.ERROR, "Failed to flush analytics events", {
                "count": len(events),
                "code": e.code.value,
            })
            return

        self._observability.log(LogLevel.DEBUG, "Flushed analytics events", {"count": len(events)})

    async def shutdown(self) -> None:
        """Stop collecting, wait for background work and flush what is left."""
        if self._enabled:
            self._observability.configure(enable_telemetry=False)
            self._enabled = False

        task = self._cancel_flush_timer()
        if task is not None:
            try:
                await task
            except asyncio.CancelledError:
                pass

        if self._pending:
            await asyncio.gather(*self._pending)

        await self.flush()

    # Private methods

    def _handle_event(self, event: SDKEvent) -> None:
        if not self._enabled or self._is_own_persistence(event):
            return

        enriched = event.to_dict()
        enriched["context"] = {**self.config.global_context, "session_id": self.session_id}

        if not self.config.batch_events and _running_loop() is not None:
            self._spawn(self._persist_one(enriched))
            return

        self._queue.append(enriched)
        if len(self._queue) >= self.config.batch_size:
            self._spawn(self.flush())

    @staticmethod
    def _is_own_persistence(event: SDKEvent) -> bool:
        path = getattr(event, "path", "")
        return bool(path) and path.endswith(EVENTS_PATH)

    async def _persist(self, events: List[Dict[str, Any]]) -> None:
        await self._request(EVENTS_PATH, "POST", {
            "events": events,
            "session_id": self.session_id,
        })

    async def _persist_one(self, event: Dict[str, Any]) -> None:
        try:
            await self._persist([event])
        except SDKError as e:
            self._observability.log(LogLevel.ERROR, "Failed to persist analytics event", {
                "code": e.code.value,
            })

    def _spawn(self, coro) -> None:
        """Run ``coro`` on the current loop; without one, it is dropped and events stay queued."""
        loop = _running_loop()
        if loop is None:
            coro.close()
            return

        task = loop.create_task(coro)
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    def _start_flush_timer(self) -> None:
        """Start the background flush loop."""
        self._cancel_flush_timer()

        loop = _running_loop()
        if loop is None:
            self._observability.log(LogLevel.DEBUG, "No running event loop; background flush not started")
            return

        async def flush_loop():
            while self._enabled:
                try:
                    await asyncio.sleep(self.config.flush_interval)
                    await self.flush()
                except asyncio.CancelledError:
                    break
                except Exception as e:
                    self._observability.log(LogLevel.ERROR, "Error in analytics flush loop", {
                        "error_type": type(e).__name__,
                        "error_msg": str(e),
                    })

        self._flush_task = loop.create_task(flush_loop())

    def _cancel_flush_timer(self) -> Optional[asyncio.Task]:
        task = self._flush_task
        self._flush_task = None
        if task is not None and not task.done():
            task.cancel()
        return task
