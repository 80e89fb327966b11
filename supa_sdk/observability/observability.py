"""
Observability context for the SDK runtime.

One ``Observability`` instance holds the logging and telemetry policy for a
client and everything built on it. The client receives it at construction;
``get_observability()`` returns a process-wide default for applications that
want a single shared instance.
"""

import itertools
import os
import time
from typing import Any, Callable, Dict, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..core.errors import ConfigurationDetails, ConfigurationError
from .events import ConfigurationEvent, SDKEvent
from .logging import LogLevel, SDKLogger, level_at_least


TelemetryHandler = Callable[[SDKEvent], None]
LoggerFunction = Callable[[LogLevel, str, Any], None]

ENVIRONMENT_ENV_VAR = "SUPA_SDK_ENV"

# Shared by every context so ids stay unique across clients.
_operation_counter = itertools.count(1)


def _default_logging_enabled() -> bool:
    return os.getenv(ENVIRONMENT_ENV_VAR, "development").strip().lower() != "production"


class ObservabilityConfig(BaseModel):
    """Configuration for SDK observability.

    Only fields set explicitly take part in ``Observability.configure``;
    omitted fields keep their current value.
    """

    model_config = ConfigDict(extra="forbid")

    enable_logging: bool = Field(
        default_factory=_default_logging_enabled,
        description="Enable SDK logging (off by default when SUPA_SDK_ENV=production)",
    )
    log_level: LogLevel = Field(default=LogLevel.INFO, description="Minimum log level to record")
    logger: Optional[LoggerFunction] = Field(
        default=None,
        description="Custom logger function; logs go to the 'supa_sdk' stdlib logger otherwise",
    )
    enable_telemetry: bool = Field(default=False, description="Enable telemetry events")
    telemetry_handler: Optional[TelemetryHandler] = Field(
        default=None,
        description="Receives every event; without one, events are logged at debug level",
    )


def _explicit_fields(config: ObservabilityConfig) -> Dict[str, Any]:
    return {name: getattr(config, name) for name in config.model_fields_set}


class Observability:
    """
    Logging and telemetry emitter.

    Features:
    - Level-filtered logging to a custom function or the stdlib logger
    - Telemetry events delivered to a pluggable handler
    - Runtime reconfiguration with change events
    - Operation id generation for request correlation
    """

    def __init__(self, config: Optional[ObservabilityConfig] = None):
        """
        Initialize the observability context.

        Args:
            config: Initial configuration; unset fields use the defaults
        """
        self.config = ObservabilityConfig()
        if config is not None:
            self.config = self.config.model_copy(update=_explicit_fields(config))
        self._logger = SDKLogger("runtime")

    def configure(
        self,
        config: Union[ObservabilityConfig, Mapping[str, Any], None] = None,
        **overrides: Any,
    ) -> Dict[str, Dict[str, Any]]:
        """
        Shallow-merge new settings over the current configuration.

        A ``configuration_change`` event is emitted after the merge, so a
        change that installs a telemetry handler is delivered to that handler.
        Settings equal to the current value are not reported, and a call that
        changes nothing emits nothing.

        Args:
            config: Partial configuration (only explicitly set fields apply)
            **overrides: Individual settings, applied after ``config``

        Returns:
            Mapping of changed setting -> {"old_value", "new_value"}
        """
        updates: Dict[str, Any] = {}
        if isinstance(config, ObservabilityConfig):
            updates.update(_explicit_fields(config))
        elif config is not None:
            updates.update(config)
        updates.update(overrides)

        old_config = self.config
        current = {name: getattr(old_config, name) for name in ObservabilityConfig.model_fields}
        try:
            new_config = ObservabilityConfig(**{**current, **updates})
        except ValidationError as e:
            raise ConfigurationError(
                f"Invalid observability configuration: {e.error_count()} error(s)",
                details=ConfigurationDetails(
                    setting="observability",
                    value=sorted(updates),
                    allowed=sorted(ObservabilityConfig.model_fields),
                ),
            ) from e

        changes: Dict[str, Dict[str, Any]] = {}
        for key in updates:
            old_value = getattr(old_config, key)
            new_value = getattr(new_config, key)
            if old_value != new_value:
                changes[key] = {"old_value": old_value, "new_value": new_value}

        self.config = new_config

        if changes:
            self.emit_event(ConfigurationEvent(changes=changes))
            self.log(LogLevel.DEBUG, "Observability configuration changed", {
                "changed": ",".join(sorted(changes)),
            })

        return changes

    def generate_operation_id(self) -> str:
        """Generate a unique operation id for request correlation."""
        return f"op_{int(time.time() * 1000)}_{next(_operation_counter)}"

    def log(self, level: Union[LogLevel, str], message: str, data: Any = None) -> None:
        """
        Log a message if logging is enabled and ``level`` meets the minimum.

        Args:
            level: Log level
            message: Log message
            data: Additional structured data
        """
        if not self.config.enable_logging:
            return

        level = LogLevel(level)
        if not level_at_least(level, self.config.log_level):
            return

        custom_logger = self.config.logger
        if custom_logger is None:
            self._logger.log(level, message, data)
            return

        try:
            custom_logger(level, message, data)
        except Exception as e:  # noqa: BLE001
            self._logger.error("Custom logger failed", error=e, original_message=message)

    def emit_event(self, event: SDKEvent) -> None:
        """
        Deliver a telemetry event.

        Handler failures are logged and never propagate to the caller.

        Args:
            event: SDK event
        """
        if not self.config.enable_telemetry:
            return

        handler = self.config.telemetry_handler
        if handler is None:
            self.log(LogLevel.DEBUG, "SDK event", event.to_dict())
            return

        try:
            handler(event)
        except Exception as e:  # noqa: BLE001
            self.log(LogLevel.ERROR, "Error in telemetry handler", {
                "error_type": type(e).__name__,
                "error_msg": str(e),
                "event_type": event.type.value,
                "operation_id": event.operation_id,
            })


# Global observability instance
_global_observability: Optional[Observability] = None


def get_observability() -> Observability:
    """Get the process-wide observability instance, creating it on first use."""
    global _global_observability
    if _global_observability is None:
        _global_observability = Observability()
    return _global_observability


def set_observability(observability: Optional[Observability]) -> None:
    """Replace (or with None, reset) the process-wide observability instance."""
    global _global_observability
    _global_observability = observability
