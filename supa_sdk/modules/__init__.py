"""Feature modules and the machinery that loads them."""

from typing import List

from .analytics import AnalyticsConfig, AnalyticsModule
from .base import BaseModule, SDKModule
from .example import ExampleModule
from .loader import load_modules
from .registry import (
    ModuleDescriptor,
    ModuleFactory,
    ModuleRegistry,
    get_global_registry,
    register_module,
)


def default_module_descriptors() -> List[ModuleDescriptor]:
    """The built-in modules, in load order."""
    return [
        ModuleDescriptor(name=ExampleModule.name, factory=ExampleModule),
        ModuleDescriptor(name=AnalyticsModule.name, factory=AnalyticsModule),
    ]


__all__ = [
    "BaseModule",
    "SDKModule",
    "ModuleDescriptor",
    "ModuleFactory",
    "ModuleRegistry",
    "get_global_registry",
    "register_module",
    "load_modules",
    "default_module_descriptors",
    "ExampleModule",
    "AnalyticsModule",
    "AnalyticsConfig",
]
