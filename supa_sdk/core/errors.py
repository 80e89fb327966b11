"""
Error taxonomy for the SDK.

Every failure that reaches the application is an ``SDKError`` carrying a
closed ``ErrorCode``, an optional HTTP status, a ``retryable`` flag and an
optional request id for correlation. Transport and parsing failures are
normalized into this taxonomy before they leave the request pipeline.
"""

import json
import math
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Union

import httpx
from pydantic import BaseModel, Field

from ..models.rate_limit import RateLimitInfo


class ErrorCode(str, Enum):
    """Standard error codes for the SDK."""
    # Generic
    UNKNOWN_ERROR = "unknown_error"
    NETWORK_ERROR = "network_error"
    TIMEOUT_ERROR = "timeout_error"

    # Authentication
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    TOKEN_EXPIRED = "token_expired"

    # Request
    INVALID_PARAMETERS = "invalid_parameters"
    RESOURCE_NOT_FOUND = "resource_not_found"
    CONFLICT = "conflict"

    # Rate limiting
    RATE_LIMITED = "rate_limited"

    # Server
    SERVER_ERROR = "server_error"

    # SDK configuration
    CONFIGURATION_ERROR = "configuration_error"
    MODULE_NOT_FOUND = "module_not_found"


_STATUS_CODE_MAP: Dict[int, ErrorCode] = {
    400: ErrorCode.INVALID_PARAMETERS,
    401: ErrorCode.UNAUTHORIZED,
    403: ErrorCode.FORBIDDEN,
    404: ErrorCode.RESOURCE_NOT_FOUND,
    409: ErrorCode.CONFLICT,
    429: ErrorCode.RATE_LIMITED,
}

_KNOWN_CODES = {code.value for code in ErrorCode}


# Error details, one variant per call-site category

class HttpErrorBody(BaseModel):
    """Structured JSON error body returned by the backend."""
    kind: Literal["http"] = "http"
    message: Optional[str] = None
    code: Optional[str] = None
    request_id: Optional[str] = None
    body: Dict[str, Any] = Field(default_factory=dict)
    rate_limit: Optional[RateLimitInfo] = None


class RawErrorText(BaseModel):
    """Error body that could not be parsed as a JSON object."""
    kind: Literal["raw"] = "raw"
    raw_text: Optional[str] = None
    rate_limit: Optional[RateLimitInfo] = None


class TransportFailure(BaseModel):
    """The request never produced an HTTP response."""
    kind: Literal["transport"] = "transport"
    error_type: str
    reason: str


class SerializationFailure(BaseModel):
    """A request or response body could not be (de)serialized."""
    kind: Literal["serialization"] = "serialization"
    reason: str
    raw_text: Optional[str] = None


class ModuleLookupDetails(BaseModel):
    kind: Literal["module_lookup"] = "module_lookup"
    requested: str
    available: List[str] = Field(default_factory=list)


class ConfigurationDetails(BaseModel):
    kind: Literal["configuration"] = "configuration"
    setting: str
    value: Any = None
    allowed: List[str] = Field(default_factory=list)


ErrorDetails = Union[
    HttpErrorBody,
    RawErrorText,
    TransportFailure,
    SerializationFailure,
    ModuleLookupDetails,
    ConfigurationDetails,
]


class SDKError(Exception):
    """
    Base exception for all SDK errors.

    Attributes:
        message: Human readable error message
        code: One of ``ErrorCode``
        status: HTTP status code if applicable
        details: Tagged details describing where the error came from
        request_id: Backend request id for correlation
        retryable: Whether a retry might succeed
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.UNKNOWN_ERROR,
        *,
        status: Optional[int] = None,
        details: Optional[ErrorDetails] = None,
        request_id: Optional[str] = None,
        retryable: bool = False,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status = status
        self.details = details
        self.request_id = request_id
        self.retryable = retryable

    def to_dict(self) -> Dict[str, Any]:
        """Convert the error to a plain dict for logging and telemetry."""
        return {
            "name": type(self).__name__,
            "message": self.message,
            "code": self.code.value,
            "status": self.status,
            "details": self.details.model_dump() if self.details is not None else None,
            "request_id": self.request_id,
            "retryable": self.retryable,
        }

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(message={self.message!r}, code={self.code.value!r}, "
            f"status={self.status!r}, retryable={self.retryable!r})"
        )


class NetworkError(SDKError):
    """Transport-level failure."""

    def __init__(
        self,
        message: str = "Network error occurred",
        *,
        details: Optional[ErrorDetails] = None,
        request_id: Optional[str] = None,
    ):
        super().__init__(
            message,
            ErrorCode.NETWORK_ERROR,
            details=details,
            request_id=request_id,
            retryable=True,
        )


class RequestTimeoutError(SDKError):
    """The transport gave up waiting for the backend."""

    def __init__(
        self,
        message: str = "Request timed out",
        *,
        details: Optional[ErrorDetails] = None,
        request_id: Optional[str] = None,
    ):
        super().__init__(
            message,
            ErrorCode.TIMEOUT_ERROR,
            details=details,
            request_id=request_id,
            retryable=True,
        )


class AuthError(SDKError):
    """Authentication or authorization failure (401/403)."""

    def __init__(
        self,
        message: str = "Authentication error",
        code: ErrorCode = ErrorCode.UNAUTHORIZED,
        *,
        status: Optional[int] = None,
        details: Optional[ErrorDetails] = None,
        request_id: Optional[str] = None,
    ):
        super().__init__(
            message,
            code,
            status=status,
            details=details,
            request_id=request_id,
            retryable=code == ErrorCode.TOKEN_EXPIRED,
        )


class RateLimitError(SDKError):
    """
    The backend rejected the call with HTTP 429.

    ``retry_after`` is the number of seconds the backend asked us to wait,
    or None when it did not say.
    """

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        *,
        status: Optional[int] = 429,
        details: Optional[ErrorDetails] = None,
        request_id: Optional[str] = None,
        retry_after: Optional[float] = None,
    ):
        super().__init__(
            message,
            ErrorCode.RATE_LIMITED,
            status=status,
            details=details,
            request_id=request_id,
            retryable=True,
        )
        self.retry_after = retry_after

    @property
    def rate_limit(self) -> Optional[RateLimitInfo]:
        """Headroom parsed from the rejected response, if any."""
        return getattr(self.details, "rate_limit", None)

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["retry_after"] = self.retry_after
        return data


class ConfigurationError(SDKError):
    """The SDK was configured or called in a way it cannot honour."""

    def __init__(self, message: str, *, details: Optional[ErrorDetails] = None):
        super().__init__(message, ErrorCode.CONFIGURATION_ERROR, details=details)


class ModuleLookupError(SDKError):
    """A module was requested that is not loaded on the client."""

    def __init__(self, name: str, available: List[str]):
        available = list(available)
        super().__init__(
            f'Module "{name}" not found. Available modules: {", ".join(available) or "none"}',
            ErrorCode.MODULE_NOT_FOUND,
            details=ModuleLookupDetails(requested=name, available=available),
        )
        self.module_name = name
        self.available = available


def status_to_error_code(status: int, api_code: Optional[Any] = None) -> ErrorCode:
    """
    Map an HTTP status to an ``ErrorCode``.

    A code embedded in the response body wins when it is a recognized member
    of the enumeration.
    """
    if isinstance(api_code, str) and api_code in _KNOWN_CODES:
        return ErrorCode(api_code)

    if status in _STATUS_CODE_MAP:
        return _STATUS_CODE_MAP[status]
    if 500 <= status < 600:
        return ErrorCode.SERVER_ERROR
    return ErrorCode.UNKNOWN_ERROR


def is_retryable_status(status: int) -> bool:
    """429 and 5xx responses may succeed on retry."""
    return status == 429 or 500 <= status < 600


def parse_retry_after(value: Optional[str]) -> Optional[float]:
    """
    Parse a ``Retry-After`` header into seconds.

    Accepts delta-seconds or an HTTP-date. Missing, invalid, non-finite,
    zero or past values yield None.
    """
    if not value:
        return None

    try:
        seconds = float(value)
    except ValueError:
        try:
            retry_at = parsedate_to_datetime(value)
        except (TypeError, ValueError):
            return None
        if retry_at is None:
            return None
        if retry_at.tzinfo is None:
            retry_at = retry_at.replace(tzinfo=timezone.utc)
        seconds = (retry_at - datetime.now(timezone.utc)).total_seconds()

    if not math.isfinite(seconds):
        return None
    return seconds if seconds > 0 else None


def _extract_message(data: Dict[str, Any]) -> str:
    message = data.get("message")
    if isinstance(message, str) and message:
        return message

    error = data.get("error")
    if isinstance(error, str) and error:
        return error
    if isinstance(error, dict) and isinstance(error.get("message"), str):
        return error["message"]

    return "API error occurred"


def parse_api_error(response: httpx.Response) -> SDKError:
    """
    Build the appropriate SDK error from a non-success HTTP response.

    Never raises: bodies that are not JSON objects fall back to a generic
    error carrying the raw text.

    Args:
        response: A response whose body has already been read

    Returns:
        RateLimitError for 429, AuthError for 401/403, SDKError otherwise
    """
    status = response.status_code
    text = response.text
    rate_limit = RateLimitInfo.from_headers(response.headers)
    request_id = response.headers.get("x-request-id") or None

    try:
        data = json.loads(text) if text else None
    except ValueError:
        data = None

    if isinstance(data, dict):
        message = _extract_message(data)
        code = status_to_error_code(status, data.get("code"))
        body_request_id = data.get("requestId", data.get("request_id"))
        if request_id is None and body_request_id is not None:
            request_id = str(body_request_id)
        details: ErrorDetails = HttpErrorBody(
            message=message,
            code=data.get("code") if isinstance(data.get("code"), str) else None,
            request_id=request_id,
            body=data,
            rate_limit=rate_limit,
        )
    else:
        message = text or f"API error: {status} {response.reason_phrase}".rstrip()
        code = status_to_error_code(status)
        details = RawErrorText(raw_text=text or None, rate_limit=rate_limit)

    if status == 429:
        return RateLimitError(
            message,
            status=status,
            details=details,
            request_id=request_id,
            retry_after=parse_retry_after(response.headers.get("retry-after")),
        )

    if status in (401, 403):
        return AuthError(
            message,
            code,
            status=status,
            details=details,
            request_id=request_id,
        )

    return SDKError(
        message,
        code,
        status=status,
        details=details,
        request_id=request_id,
        retryable=is_retryable_status(status),
    )


def map_transport_error(error: Exception) -> SDKError:
    """Normalize an httpx transport exception into the taxonomy."""
    details = TransportFailure(error_type=type(error).__name__, reason=str(error))

    if isinstance(error, httpx.TimeoutException):
        return RequestTimeoutError(f"Request timed out: {error}", details=details)

    return NetworkError(f"Network error: {error}", details=details)


def serialization_error(
    reason: str,
    *,
    raw_text: Optional[str] = None,
    status: Optional[int] = None,
    request_id: Optional[str] = None,
) -> SDKError:
    """Error for a request or response body that could not be (de)serialized."""
    return SDKError(
        f"Serialization error: {reason}",
        ErrorCode.UNKNOWN_ERROR,
        status=status,
        details=SerializationFailure(reason=reason, raw_text=raw_text),
        request_id=request_id,
    )
