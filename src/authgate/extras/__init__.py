"""Optional helpers for common HTTP clients.

Dependency-free by default. Extractors attempt optional imports and fall
back to ``failure_of`` when the client library is missing.
"""

from .httpx import httpx_failure

__all__ = ["httpx_failure"]
