"""Core building blocks of the request runtime.

This package contains:
- errors: the closed error taxonomy and HTTP error classification
- versioning: API version tags and versioned path resolution
"""

__all__ = []
