"""Construction options for the SDK client."""

import os
from typing import Any, Callable, Dict, List, Optional, Union

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..core.versioning import DEFAULT_API_VERSION, ApiVersion, coerce_api_version
from ..observability.observability import ObservabilityConfig
from ..reliability.rate_limiting import RateLimitConfig


RealtimeFactory = Callable[[Optional[str], Optional[str]], Any]

# Option name -> environment variable read by ClientOptions.from_env()
ENV_VARS: Dict[str, str] = {
    "api_url": "SUPA_SDK_API_URL",
    "supabase_url": "SUPABASE_URL",
    "supabase_anon_key": "SUPABASE_ANON_KEY",
    "api_version": "SUPA_SDK_API_VERSION",
    "auth_token": "SUPA_SDK_AUTH_TOKEN",
    "timeout": "SUPA_SDK_TIMEOUT",
}


class ClientOptions(BaseModel):
    """Options for constructing a ``SupaSDKClient``."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    # Backend API
    api_url: str = Field(..., description="Base URL of the backend API")

    # Realtime service credentials, handed to the realtime factory
    supabase_url: Optional[str] = Field(
        default=None,
        description="URL of the realtime service used for live-update subscriptions",
    )
    supabase_anon_key: Optional[str] = Field(
        default=None,
        description="Public key for the realtime service",
    )

    # Request behaviour
    api_version: ApiVersion = Field(
        default=DEFAULT_API_VERSION,
        description="API version used for versioned paths",
    )
    auth_token: Optional[str] = Field(
        default=None,
        description="Pre-obtained bearer token (if already authenticated)",
    )
    rate_limit: Optional[RateLimitConfig] = Field(
        default=None,
        description="Retry policy for rate-limited calls",
    )
    timeout: float = Field(
        default=30.0,
        gt=0,
        description="Transport timeout in seconds",
    )

    # Extensibility
    modules: Optional[List[str]] = Field(
        default=None,
        description="Names of the modules to load (all available modules by default)",
    )
    realtime_factory: Optional[RealtimeFactory] = Field(
        default=None,
        description="Builds the live-update connection from (supabase_url, supabase_anon_key)",
    )

    # Observability
    observability: Optional[ObservabilityConfig] = Field(
        default=None,
        description="Observability settings applied to the client's observability context",
    )

    @field_validator("api_url")
    @classmethod
    def validate_api_url(cls, v: str) -> str:
        v = v.strip()
        if not v.startswith(("http://", "https://")):
            raise ValueError("api_url must be an http(s) URL")
        return v.rstrip("/")

    @field_validator("api_version", mode="before")
    @classmethod
    def validate_api_version(cls, v: Union[ApiVersion, str]) -> ApiVersion:
        return coerce_api_version(v)

    @classmethod
    def from_env(cls, env_file: Optional[str] = None, **overrides: Any) -> "ClientOptions":
        """
        Build options from environment variables (and a ``.env`` file).

        Args:
            env_file: Optional path to a .env file; searched for when omitted
            **overrides: Values that take precedence over the environment
        """
        load_dotenv(env_file)

        values: Dict[str, Any] = {}
        for option, env_var in ENV_VARS.items():
            value = os.getenv(env_var)
            if value:
                values[option] = value
        values.update(overrides)

        return cls(**values)
