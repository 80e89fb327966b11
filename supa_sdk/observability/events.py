"""Event models for SDK telemetry.

This module defines the lifecycle events emitted by the request pipeline,
subscriptions and configuration changes.
"""

import time
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel

from ..core.errors import SDKError


class SDKEventType(str, Enum):
    """SDK event types for telemetry."""
    REQUEST_START = "request_start"
    REQUEST_END = "request_end"
    REQUEST_ERROR = "request_error"
    SUBSCRIPTION_START = "subscription_start"
    SUBSCRIPTION_END = "subscription_end"
    SUBSCRIPTION_ERROR = "subscription_error"
    RATE_LIMIT_HIT = "rate_limit_hit"
    CONFIGURATION_CHANGE = "configuration_change"
    CUSTOM_EVENT = "custom_event"


REQUEST_EVENT_TYPES = frozenset({
    SDKEventType.REQUEST_START,
    SDKEventType.REQUEST_END,
    SDKEventType.REQUEST_ERROR,
})

SUBSCRIPTION_EVENT_TYPES = frozenset({
    SDKEventType.SUBSCRIPTION_START,
    SDKEventType.SUBSCRIPTION_END,
    SDKEventType.SUBSCRIPTION_ERROR,
})


def to_jsonable(value: Any) -> Any:
    """Convert event payloads into JSON-safe values."""
    if value is None or isinstance(value, (bool, int, float)):
        return value
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, str):
        return value
    if isinstance(value, SDKError):
        return value.to_dict()
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if isinstance(value, dict):
        return {str(k): to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [to_jsonable(v) for v in value]
    if callable(value):
        return getattr(value, "__qualname__", None) or repr(value)
    return repr(value)


@dataclass
class SDKEvent:
    """Base class for all SDK events."""
    type: SDKEventType = SDKEventType.CUSTOM_EVENT
    timestamp: float = field(default_factory=time.time)
    module_id: Optional[str] = None
    operation_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Plain, JSON-safe representation of the event."""
        return {f.name: to_jsonable(getattr(self, f.name)) for f in fields(self)}


@dataclass
class RequestEvent(SDKEvent):
    """Start, end or failure of a single pipeline request."""
    type: SDKEventType = SDKEventType.REQUEST_START
    method: str = ""
    path: str = ""
    api_version: str = ""
    status: Optional[int] = None
    duration_ms: Optional[float] = None
    error: Optional[SDKError] = None

    def __post_init__(self):
        if self.type not in REQUEST_EVENT_TYPES:
            raise ValueError(f"Not a request event type: {self.type}")


@dataclass
class RateLimitEvent(SDKEvent):
    """Emitted each time the backend answers with HTTP 429."""
    type: SDKEventType = field(default=SDKEventType.RATE_LIMIT_HIT, init=False)
    method: str = ""
    path: str = ""
    api_version: str = ""
    retry_after: Optional[float] = None

    def __post_init__(self):
        self.type = SDKEventType.RATE_LIMIT_HIT


@dataclass
class SubscriptionEvent(SDKEvent):
    """Lifecycle of a live-update subscription."""
    type: SDKEventType = SDKEventType.SUBSCRIPTION_START
    channel: str = ""
    error: Optional[Any] = None

    def __post_init__(self):
        if self.type not in SUBSCRIPTION_EVENT_TYPES:
            raise ValueError(f"Not a subscription event type: {self.type}")


@dataclass
class ConfigurationEvent(SDKEvent):
    """Observability configuration changed.

    ``changes`` maps each changed setting to ``{"old_value": ..., "new_value": ...}``.
    """
    type: SDKEventType = field(default=SDKEventType.CONFIGURATION_CHANGE, init=False)
    changes: Dict[str, Dict[str, Any]] = field(default_factory=dict)

    def __post_init__(self):
        self.type = SDKEventType.CONFIGURATION_CHANGE


@dataclass
class CustomEvent(SDKEvent):
    """Application-defined event, e.g. from analytics tracking."""
    type: SDKEventType = field(default=SDKEventType.CUSTOM_EVENT, init=False)
    name: str = ""
    properties: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        self.type = SDKEventType.CUSTOM_EVENT
