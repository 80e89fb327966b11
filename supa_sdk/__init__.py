"""
Supa SDK - Client runtime for a versioned backend API.

Features:
- One request pipeline for every read and write (versioned paths, bearer
  auth, operation ids)
- A typed error taxonomy for HTTP, transport and configuration failures
- Automatic retry with backoff for rate-limited calls
- Structured logging and pluggable telemetry events
- Pluggable feature modules built per client
"""

__version__ = "0.1.0"

from .api.client import SupaSDKClient, create_client
from .api.options import ClientOptions
from .core.errors import (
    AuthError,
    ConfigurationError,
    ErrorCode,
    ModuleLookupError,
    NetworkError,
    RateLimitError,
    RequestTimeoutError,
    SDKError,
)
from .core.versioning import ApiVersion, version_specific
from .models.rate_limit import RateLimitInfo
from .modules import (
    AnalyticsConfig,
    AnalyticsModule,
    BaseModule,
    ExampleModule,
    ModuleDescriptor,
    ModuleRegistry,
    get_global_registry,
    register_module,
)
from .observability import (
    InMemoryEventSink,
    LogLevel,
    Observability,
    ObservabilityConfig,
    SDKEvent,
    SDKEventType,
    get_observability,
    set_observability,
)
from .reliability import RateLimitConfig, RateLimitedResult, RateLimitRetryManager

__all__ = [
    # Main client
    "SupaSDKClient",
    "ClientOptions",
    "create_client",

    # Errors
    "SDKError",
    "ErrorCode",
    "NetworkError",
    "RequestTimeoutError",
    "AuthError",
    "RateLimitError",
    "ConfigurationError",
    "ModuleLookupError",

    # Versioning
    "ApiVersion",
    "version_specific",

    # Rate limiting
    "RateLimitConfig",
    "RateLimitInfo",
    "RateLimitedResult",
    "RateLimitRetryManager",

    # Observability
    "Observability",
    "ObservabilityConfig",
    "LogLevel",
    "SDKEvent",
    "SDKEventType",
    "InMemoryEventSink",
    "get_observability",
    "set_observability",

    # Modules
    "BaseModule",
    "ModuleDescriptor",
    "ModuleRegistry",
    "get_global_registry",
    "register_module",
    "ExampleModule",
    "AnalyticsModule",
    "AnalyticsConfig",
]
