"""
Public API Layer

This layer contains the public-facing API of the Supa SDK.
All user-facing classes and functions should be exposed through this layer.
"""

from .client import SupaSDKClient, create_client
from .options import ClientOptions

__all__ = ["SupaSDKClient", "ClientOptions", "create_client"]
