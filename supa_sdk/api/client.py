"""Main client interface for the Supa SDK runtime."""

import json
import time
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Type, Union

import httpx
from pydantic import BaseModel, ValidationError

from ..core.errors import (
    ConfigurationDetails,
    ConfigurationError,
    ErrorCode,
    ModuleLookupError,
    RateLimitError,
    SDKError,
    map_transport_error,
    parse_api_error,
    serialization_error,
)
from ..core.versioning import ApiVersion, build_versioned_path, coerce_api_version
from ..modules import default_module_descriptors
from ..modules.base import SDKModule
from ..modules.loader import load_modules
from ..modules.registry import ModuleDescriptor, ModuleRegistry, get_global_registry
from ..observability import (
    LogLevel,
    Observability,
    RateLimitEvent,
    RequestEvent,
    SDKEventType,
    get_observability,
)
from ..reliability.rate_limiting import RateLimitConfig, RateLimitedResult, RateLimitRetryManager
from .options import ClientOptions


HTTP_METHODS = ("GET", "POST", "PUT", "PATCH", "DELETE")

ModuleSource = Union[ModuleRegistry, Iterable[ModuleDescriptor]]


class SupaSDKClient:
    """
    Client for the backend API.

    Every read and write goes through ``request``, which handles API
    versioning, authentication headers, rate-limit retries, error
    classification and telemetry. Feature modules are built once, at
    construction, and looked up with ``module``.
    """

    def __init__(
        self,
        options: Optional[ClientOptions] = None,
        *,
        observability: Optional[Observability] = None,
        modules: Optional[ModuleSource] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        realtime_client: Any = None,
        retry_manager: Optional[RateLimitRetryManager] = None,
        **option_values: Any,
    ):
        """
        Initialize the client.

        Args:
            options: Client options; alternatively pass them as keyword arguments
            observability: Observability context (the process-wide one by default)
            modules: Module registry or ordered descriptors to load; by default
                the built-in modules followed by the global registry
            http_client: Optional httpx client (one is created and owned otherwise)
            realtime_client: Optional live-update connection
            retry_manager: Optional retry manager for rate-limited calls
            **option_values: ClientOptions fields, when ``options`` is not given
        """
        if options is not None and option_values:
            raise TypeError("Pass either a ClientOptions instance or keyword options, not both")
        self.options = options if options is not None else ClientOptions(**option_values)

        self._api_version: ApiVersion = self.options.api_version
        self._auth_token: Optional[str] = self.options.auth_token
        self._rate_limit_config = self.options.rate_limit or RateLimitConfig()

        # Set up observability
        self.observability = observability or get_observability()
        if self.options.observability is not None:
            self.observability.configure(self.options.observability)

        self._retry_manager = retry_manager or RateLimitRetryManager(self.observability)

        self.observability.log(LogLevel.INFO, "Initializing SDK client", {
            "api_version": self._api_version.value,
            "api_url": self.options.api_url,
            "modules": ",".join(self.options.modules) if self.options.modules is not None else "all",
        })

        self._owns_http_client = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=self.options.timeout)

        if realtime_client is not None:
            self._realtime = realtime_client
        elif self.options.realtime_factory is not None:
            self._realtime = self.options.realtime_factory(
                self.options.supabase_url,
                self.options.supabase_anon_key,
            )
        else:
            self._realtime = None

        self._modules: Dict[str, SDKModule] = load_modules(
            self,
            self._module_descriptors(modules),
            self.options.modules,
        )

        self.observability.log(LogLevel.DEBUG, "SDK client initialized", {
            "module_count": len(self._modules),
            "module_names": ",".join(self._modules),
        })

    @staticmethod
    def _module_descriptors(modules: Optional[ModuleSource]) -> List[ModuleDescriptor]:
        if modules is None:
            return [*default_module_descriptors(), *get_global_registry().descriptors()]
        if isinstance(modules, ModuleRegistry):
            return modules.descriptors()
        return list(modules)

    # Authentication and versioning

    def set_auth_token(self, token: Optional[str]) -> None:
        """
        Set the bearer token for subsequent API requests.

        Requests already in flight keep the token they started with.
        """
        self._auth_token = token
        self.observability.log(LogLevel.DEBUG, "Auth token updated", {"has_token": token is not None})

    def get_auth_token(self) -> Optional[str]:
        return self._auth_token

    def get_api_version(self) -> ApiVersion:
        return self._api_version

    def set_api_version(self, version: Union[ApiVersion, str]) -> None:
        """
        Set the API version used by subsequent requests.

        Raises:
            ConfigurationError: If the version is not supported
        """
        new_version = coerce_api_version(version)
        old_version = self._api_version
        self._api_version = new_version

        self.observability.log(LogLevel.INFO, "API version changed", {
            "old_version": old_version.value,
            "new_version": new_version.value,
        })

    def get_rate_limit_config(self) -> RateLimitConfig:
        return self._rate_limit_config

    def configure_rate_limit(self, config: RateLimitConfig) -> None:
        """Replace the retry policy for subsequent requests."""
        self._rate_limit_config = config
        self.observability.log(LogLevel.DEBUG, "Rate limit policy updated", {
            "enable_retry": config.enable_retry,
            "max_retries": config.max_retries,
        })

    def get_api_url(self) -> str:
        return self.options.api_url

    # Live updates

    def get_realtime_client(self) -> Any:
        """
        Get the live-update connection.

        This is provided for real-time subscriptions only; reads and writes
        must go through ``request``.

        Raises:
            ConfigurationError: If no realtime client or factory was configured
        """
        if self._realtime is None:
            raise ConfigurationError(
                "No realtime client configured. Pass realtime_client or options.realtime_factory.",
                details=ConfigurationDetails(setting="realtime_client"),
            )
        return self._realtime

    # Requests

    async def request(
        self,
        path: str,
        method: str = "GET",
        body: Any = None,
        *,
        params: Optional[Mapping[str, Any]] = None,
        response_model: Optional[Type[BaseModel]] = None,
    ) -> Any:
        """
        Make an authenticated request to the backend API.

        Args:
            path: Logical API path, e.g. "/items/42"
            method: HTTP method
            body: JSON payload, sent for non-GET methods
            params: Query string parameters
            response_model: Optional pydantic model to validate the response

        Returns:
            The parsed JSON body (or a ``response_model`` instance); None for
            an empty body

        Raises:
            SDKError: Any failure, classified into the SDK error taxonomy
        """
        outcome = await self.request_with_rate_limit(
            path,
            method,
            body,
            params=params,
            response_model=response_model,
        )
        return outcome.result

    async def request_with_rate_limit(
        self,
        path: str,
        method: str = "GET",
        body: Any = None,
        *,
        params: Optional[Mapping[str, Any]] = None,
        response_model: Optional[Type[BaseModel]] = None,
    ) -> RateLimitedResult[Any]:
        """Like ``request``, also returning rate limit headroom seen while retrying."""
        method = self._normalize_method(method)

        # Snapshot per-call state
        api_version = self._api_version
        auth_token = self._auth_token
        rate_limit_config = self._rate_limit_config

        versioned_path = build_versioned_path(path, api_version)
        operation_id = self.observability.generate_operation_id()

        self.observability.emit_event(RequestEvent(
            type=SDKEventType.REQUEST_START,
            method=method,
            path=versioned_path,
            api_version=api_version.value,
            operation_id=operation_id,
        ))

        async def attempt() -> Any:
            return await self._send(
                method,
                versioned_path,
                api_version,
                auth_token,
                operation_id,
                body,
                params,
                response_model,
            )

        return await self._retry_manager.execute_with_retry(attempt, rate_limit_config)

    async def _send(
        self,
        method: str,
        path: str,
        api_version: ApiVersion,
        auth_token: Optional[str],
        operation_id: str,
        body: Any,
        params: Optional[Mapping[str, Any]],
        response_model: Optional[Type[BaseModel]],
    ) -> Any:
        """One physical attempt; emits exactly one request_end or request_error."""
        start_time = time.perf_counter()

        try:
            headers = self._build_headers(api_version, operation_id, auth_token)
            content = self._encode_body(method, body)

            self.observability.log(LogLevel.DEBUG, f"API request: {method} {path}", {
                "operation_id": operation_id,
            })

            try:
                response = await self._http.request(
                    method,
                    f"{self.options.api_url}{path}",
                    headers=headers,
                    content=content,
                    params=params,
                )
            except (httpx.HTTPError, httpx.InvalidURL) as e:
                raise map_transport_error(e) from e
            except (TypeError, ValueError) as e:
                raise serialization_error(f"request could not be encoded: {e}") from e

            if not response.is_success:
                raise parse_api_error(response)

            result = self._decode_body(response, response_model)
        except SDKError as error:
            self._report_failure(error, method, path, api_version, operation_id, start_time)
            raise

        self.observability.emit_event(RequestEvent(
            type=SDKEventType.REQUEST_END,
            method=method,
            path=path,
            api_version=api_version.value,
            status=response.status_code,
            duration_ms=(time.perf_counter() - start_time) * 1000,
            operation_id=operation_id,
        ))

        return result

    def _report_failure(
        self,
        error: SDKError,
        method: str,
        path: str,
        api_version: ApiVersion,
        operation_id: str,
        start_time: float,
    ) -> None:
        self.observability.emit_event(RequestEvent(
            type=SDKEventType.REQUEST_ERROR,
            method=method,
            path=path,
            api_version=api_version.value,
            status=error.status,
            duration_ms=(time.perf_counter() - start_time) * 1000,
            error=error,
            operation_id=operation_id,
        ))

        if isinstance(error, RateLimitError):
            self.observability.emit_event(RateLimitEvent(
                method=method,
                path=path,
                api_version=api_version.value,
                retry_after=error.retry_after,
                operation_id=operation_id,
            ))

        level = LogLevel.WARN if isinstance(error, RateLimitError) else LogLevel.ERROR
        self.observability.log(level, f"API request failed: {method} {path}", {
            "operation_id": operation_id,
            "code": error.code.value,
            "status": error.status,
            "request_id": error.request_id,
        })

    @staticmethod
    def _normalize_method(method: str) -> str:
        normalized = str(method).upper()
        if normalized not in HTTP_METHODS:
            raise SDKError(
                f"Unsupported HTTP method {method!r}",
                ErrorCode.INVALID_PARAMETERS,
                details=ConfigurationDetails(setting="method", value=str(method), allowed=list(HTTP_METHODS)),
            )
        return normalized

    @staticmethod
    def _build_headers(api_version: ApiVersion, operation_id: str, auth_token: Optional[str]) -> Dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "X-API-Version": api_version.value,
            "X-SDK-Operation-ID": operation_id,
        }
        if auth_token:
            headers["Authorization"] = f"Bearer {auth_token}"
        return headers

    @staticmethod
    def _encode_body(method: str, body: Any) -> Optional[str]:
        if method == "GET" or body is None:
            return None
        if isinstance(body, BaseModel):
            return body.model_dump_json()
        try:
            return json.dumps(body)
        except (TypeError, ValueError) as e:
            raise serialization_error(f"request body is not JSON serializable: {e}") from e

    @staticmethod
    def _decode_body(response: httpx.Response, response_model: Optional[Type[BaseModel]]) -> Any:
        request_id = response.headers.get("x-request-id") or None
        text = response.text

        if not text.strip():
            data = None
        else:
            try:
                data = json.loads(text)
            except ValueError as e:
                raise serialization_error(
                    "response body is not valid JSON",
                    raw_text=text,
                    status=response.status_code,
                    request_id=request_id,
                ) from e

        if response_model is None:
            return data

        try:
            return response_model.model_validate(data)
        except ValidationError as e:
            raise serialization_error(
                f"response does not match {response_model.__name__} ({e.error_count()} error(s))",
                raw_text=text,
                status=response.status_code,
                request_id=request_id,
            ) from e

    # Modules

    def module(self, name: str) -> SDKModule:
        """
        Get a loaded module instance by name.

        Raises:
            ModuleLookupError: If no module with that name was loaded
        """
        instance = self._modules.get(name)

        if instance is None:
            available = list(self._modules)
            self.observability.log(LogLevel.ERROR, f'Module "{name}" not found', {
                "available_modules": ",".join(available),
            })
            raise ModuleLookupError(name, available)

        return instance

    @property
    def modules(self) -> Mapping[str, SDKModule]:
        """Read-only view of the loaded modules."""
        return MappingProxyType(self._modules)

    # Lifecycle

    async def aclose(self) -> None:
        """Close the HTTP client if this client created it."""
        if self._owns_http_client:
            await self._http.aclose()

    async def __aenter__(self) -> "SupaSDKClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()


def create_client(options: Optional[ClientOptions] = None, **kwargs: Any) -> SupaSDKClient:
    """
    Create and configure a new SDK client instance.

    Args:
        options: Client options; alternatively pass ClientOptions fields and
            client keyword arguments directly

    Returns:
        Configured client
    """
    return SupaSDKClient(options, **kwargs)
