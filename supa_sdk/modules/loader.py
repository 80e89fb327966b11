"""Builds module instances for a client."""

from typing import TYPE_CHECKING, Dict, Iterable, List, Optional, Set

from ..core.errors import ModuleLookupError
from ..observability.logging import LogLevel
from .registry import ModuleDescriptor, duplicate_module_error

if TYPE_CHECKING:
    from ..api.client import SupaSDKClient
    from .base import SDKModule


def load_modules(
    client: "SupaSDKClient",
    descriptors: Iterable[ModuleDescriptor],
    allow: Optional[Iterable[str]] = None,
) -> Dict[str, "SDKModule"]:
    """
    Invoke each module factory once with ``client``.

    Args:
        client: The client the modules are built for
        descriptors: Ordered module descriptors
        allow: Optional allow-list of module names to load

    Returns:
        Mapping of module name to instance, in descriptor order

    Raises:
        ConfigurationError: If two descriptors share a name
        ModuleLookupError: If the allow-list names an unknown module
    """
    ordered: List[ModuleDescriptor] = []
    seen: Set[str] = set()
    for descriptor in descriptors:
        if descriptor.name in seen:
            raise duplicate_module_error(descriptor.name, seen)
        seen.add(descriptor.name)
        ordered.append(descriptor)

    if allow is not None:
        allowed = list(allow)
        for name in allowed:
            if name not in seen:
                raise ModuleLookupError(name, [d.name for d in ordered])
        ordered = [d for d in ordered if d.name in allowed]

    modules: Dict[str, "SDKModule"] = {}
    for descriptor in ordered:
        modules[descriptor.name] = descriptor.factory(client)
        client.observability.log(LogLevel.DEBUG, "Loaded module", {"module": descriptor.name})

    return modules
