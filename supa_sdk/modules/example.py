"""
Example module demonstrating the module architecture.

New modules follow the same pattern: reads and writes through the API,
live updates through the realtime connection.
"""

import inspect
from typing import Any, Callable, Dict, List, Mapping, Optional

from ..core.errors import SDKError, map_transport_error
from ..observability import LogLevel, SDKEventType, SubscriptionEvent
from .base import BaseModule


ItemCallback = Callable[[Any], None]

ITEMS_PATH = "/examples"
ITEMS_TABLE = "examples"


async def _maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


def _changed_record(payload: Any) -> Any:
    """Pull the new row out of a change payload."""
    if isinstance(payload, Mapping):
        if "new" in payload:
            return payload["new"]
        data = payload.get("data")
        if isinstance(data, Mapping) and "record" in data:
            return data["record"]
    return payload


class ExampleModule(BaseModule):
    """CRUD access to example items plus live item updates."""

    name = "example"

    async def get_item(self, item_id: str) -> Dict[str, Any]:
        """Get an example item by ID."""
        return await self._request(f"{ITEMS_PATH}/{item_id}", "GET")

    async def list_items(
        self,
        filter: Optional[str] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """
        List example items.

        Args:
            filter: Optional filter expression
            limit: Maximum number of items
            offset: Number of items to skip
        """
        params = {
            key: value
            for key, value in (("filter", filter), ("limit", limit), ("offset", offset))
            if value is not None
        }
        return await self._request(ITEMS_PATH, "GET", params=params or None)

    async def create_item(self, name: str, description: Optional[str] = None) -> Dict[str, Any]:
        """Create a new example item; returns the created item's id."""
        body: Dict[str, Any] = {"name": name}
        if description is not None:
            body["description"] = description
        return await self._request(ITEMS_PATH, "POST", body)

    async def update_item(
        self,
        item_id: str,
        name: Optional[str] = None,
        description: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Update the given fields of an existing example item."""
        body = {
            key: value
            for key, value in (("name", name), ("description", description))
            if value is not None
        }
        return await self._request(f"{ITEMS_PATH}/{item_id}", "PUT", body)

    async def delete_item(self, item_id: str) -> Dict[str, Any]:
        return await self._request(f"{ITEMS_PATH}/{item_id}", "DELETE")

    async def subscribe_to_item(self, item_id: str, callback: ItemCallback) -> Any:
        """
        Subscribe to changes on an example item.

        Uses the realtime connection directly; this is the only kind of
        access that bypasses the API.

        Args:
            item_id: ID of the item to watch
            callback: Called with the new row on every change

        Returns:
            The subscribed channel, to pass to ``unsubscribe``

        Raises:
            ConfigurationError: If no realtime connection is configured
            NetworkError: If the subscription could not be established
        """
        realtime = self._get_realtime()
        topic = f"item:{item_id}"

        def on_change(payload: Any) -> None:
            callback(_changed_record(payload))

        try:
            channel = realtime.channel(topic)
            channel.on_postgres_changes(
                "*",
                schema="public",
                table=ITEMS_TABLE,
                filter=f"id=eq.{item_id}",
                callback=on_change,
            )
            await _maybe_await(channel.subscribe())
        except SDKError:
            raise
        except Exception as e:
            error = map_transport_error(e)
            self._observability.emit_event(SubscriptionEvent(
                type=SDKEventType.SUBSCRIPTION_ERROR,
                channel=topic,
                error=error,
                module_id=self.name,
            ))
            self._observability.log(LogLevel.ERROR, "Subscription failed", {
                "channel": topic,
                "error_type": type(e).__name__,
            })
            raise error from e

        self._observability.emit_event(SubscriptionEvent(
            type=SDKEventType.SUBSCRIPTION_START,
            channel=topic,
            module_id=self.name,
        ))
        return channel

    async def unsubscribe(self, channel: Any) -> None:
        """Remove a channel returned by ``subscribe_to_item``."""
        await _maybe_await(self._get_realtime().remove_channel(channel))

        self._observability.emit_event(SubscriptionEvent(
            type=SDKEventType.SUBSCRIPTION_END,
            channel=getattr(channel, "topic", None) or str(channel),
            module_id=self.name,
        ))
