"""
Base Module Interface

This module defines the base class every SDK feature module is built on.

Routing rule for module authors: every read and every write goes through
``_request`` (the backend API). ``_get_realtime`` is reserved for registering
live-update subscriptions and must not be used to read or write data.
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Dict, Optional, Protocol, Type

from pydantic import BaseModel

if TYPE_CHECKING:
    from ..api.client import SupaSDKClient
    from ..observability.observability import Observability


class SDKModule(Protocol):
    """Anything a module factory may return."""
    name: str


class BaseModule(ABC):
    """
    Base class for SDK modules.

    Holds a back-reference to the client that built it. The client owns the
    module instance; a module never outlives its client.
    """

    def __init__(self, client: "SupaSDKClient"):
        self._client = client

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique name for this module."""
        pass

    @property
    def _observability(self) -> "Observability":
        return self._client.observability

    async def _request(
        self,
        path: str,
        method: str = "GET",
        body: Any = None,
        *,
        params: Optional[Dict[str, Any]] = None,
        response_model: Optional[Type[BaseModel]] = None,
    ) -> Any:
        """
        Make a backend API request for reads and writes.

        Args:
            path: Logical API path (unversioned)
            method: HTTP method
            body: JSON payload for non-GET methods
            params: Query string parameters
            response_model: Optional pydantic model to validate the response

        Returns:
            The parsed response body
        """
        return await self._client.request(
            path,
            method,
            body,
            params=params,
            response_model=response_model,
        )

    def _get_realtime(self) -> Any:
        """
        Get the live-update connection.

        Only for registering real-time subscriptions.
        """
        return self._client.get_realtime_client()
