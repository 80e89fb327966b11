"""Module registry.

The registry maps module names to factories. Host applications build the
registry (or a plain ordered list of descriptors) before constructing a
client; the client's loader then invokes every factory once.
"""

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Dict, Iterable, Iterator, List, Optional

from ..core.errors import ConfigurationDetails, ConfigurationError

if TYPE_CHECKING:
    from ..api.client import SupaSDKClient
    from .base import SDKModule

logger = logging.getLogger(__name__)


ModuleFactory = Callable[["SupaSDKClient"], "SDKModule"]


@dataclass(frozen=True)
class ModuleDescriptor:
    """A module name and the factory that builds it for a client."""
    name: str
    factory: ModuleFactory


def duplicate_module_error(name: str, registered: Iterable[str]) -> ConfigurationError:
    return ConfigurationError(
        f'Module with name "{name}" is already registered',
        details=ConfigurationDetails(setting="modules", value=name, allowed=list(registered)),
    )


class ModuleRegistry:
    """Registry of SDK modules.

    Names are unique; registering a name twice fails instead of replacing
    the earlier entry. Iteration follows registration order.
    """

    def __init__(self, descriptors: Iterable[ModuleDescriptor] = ()):
        self._descriptors: Dict[str, ModuleDescriptor] = {}
        for descriptor in descriptors:
            self.register(descriptor)

    def register(self, descriptor: ModuleDescriptor) -> ModuleDescriptor:
        """Register a module descriptor.

        Args:
            descriptor: Descriptor to register

        Raises:
            ConfigurationError: If a module with the same name is registered
        """
        if descriptor.name in self._descriptors:
            raise duplicate_module_error(descriptor.name, self._descriptors)

        self._descriptors[descriptor.name] = descriptor
        logger.debug(f"Registered module '{descriptor.name}'")
        return descriptor

    def register_module(self, name: str, factory: ModuleFactory) -> ModuleDescriptor:
        """Register ``factory`` under ``name``."""
        return self.register(ModuleDescriptor(name=name, factory=factory))

    def get(self, name: str) -> Optional[ModuleDescriptor]:
        return self._descriptors.get(name)

    def descriptors(self) -> List[ModuleDescriptor]:
        """All descriptors in registration order."""
        return list(self._descriptors.values())

    def names(self) -> List[str]:
        return list(self._descriptors)

    def has_module(self, name: str) -> bool:
        return name in self._descriptors

    def unregister(self, name: str) -> bool:
        """Unregister a module (mainly for testing).

        Returns:
            True if the module was unregistered, False if not found
        """
        if name in self._descriptors:
            del self._descriptors[name]
            logger.debug(f"Unregistered module '{name}'")
            return True
        return False

    def clear(self) -> None:
        """Clear all registered modules (mainly for testing)."""
        self._descriptors.clear()

    def __iter__(self) -> Iterator[ModuleDescriptor]:
        return iter(self.descriptors())

    def __len__(self) -> int:
        return len(self._descriptors)

    def __contains__(self, name: object) -> bool:
        return name in self._descriptors


# Global registry instance
_global_registry = ModuleRegistry()


def get_global_registry() -> ModuleRegistry:
    """Get the process-wide module registry.

    Modules registered here are loaded by every client constructed without
    an explicit module list, after the built-in modules.
    """
    return _global_registry


def register_module(name: str, factory: ModuleFactory) -> ModuleDescriptor:
    """Register a module in the process-wide registry."""
    return _global_registry.register_module(name, factory)
