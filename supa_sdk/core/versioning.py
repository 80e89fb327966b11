"""API version resolution."""

from enum import Enum
from typing import Callable, Mapping, Optional, TypeVar, Union

from .errors import ConfigurationDetails, ConfigurationError


T = TypeVar("T")


class ApiVersion(str, Enum):
    """Supported backend API versions."""
    V1 = "v1"
    V2 = "v2"


DEFAULT_API_VERSION = ApiVersion.V1

SUPPORTED_API_VERSIONS = tuple(version.value for version in ApiVersion)


def coerce_api_version(value: Union[ApiVersion, str]) -> ApiVersion:
    """
    Turn a version tag into an ``ApiVersion``.

    Raises:
        ConfigurationError: If the tag is not a supported version
    """
    if isinstance(value, ApiVersion):
        return value
    try:
        return ApiVersion(str(value).strip().lower())
    except ValueError:
        raise ConfigurationError(
            f"Unsupported API version {value!r}. Supported versions: {', '.join(SUPPORTED_API_VERSIONS)}",
            details=ConfigurationDetails(
                setting="api_version",
                value=str(value),
                allowed=list(SUPPORTED_API_VERSIONS),
            ),
        ) from None


def build_versioned_path(path: str, version: Union[ApiVersion, str] = DEFAULT_API_VERSION) -> str:
    """
    Build the wire path for a logical API path.

    ``build_versioned_path("items/42", "v1")`` and
    ``build_versioned_path("//items/42", "v1")`` both give ``"/v1/items/42"``.
    """
    tag = version.value if isinstance(version, ApiVersion) else str(version)
    return f"/{tag}/{path.lstrip('/')}"


def version_specific(
    version: Union[ApiVersion, str],
    handlers: Mapping[Union[ApiVersion, str], Callable[[], T]],
    fallback: Optional[Callable[[], T]] = None,
) -> T:
    """
    Run the handler registered for ``version``.

    Handlers are matched exactly on the version tag. When no handler matches,
    ``fallback`` runs if given.

    Raises:
        ConfigurationError: If no handler matches and there is no fallback
    """
    tag = version.value if isinstance(version, ApiVersion) else str(version)

    for key, handler in handlers.items():
        key_tag = key.value if isinstance(key, ApiVersion) else str(key)
        if key_tag == tag:
            return handler()

    if fallback is not None:
        return fallback()

    raise ConfigurationError(
        f"No handler found for API version {tag}",
        details=ConfigurationDetails(
            setting="api_version",
            value=tag,
            allowed=[key.value if isinstance(key, ApiVersion) else str(key) for key in handlers],
        ),
    )
