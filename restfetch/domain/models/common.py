"""Defines common Value Objects used across the client.

These objects represent simple values like resource paths, cache keys and
credentials, keeping signatures readable and consistent.
"""

from typing import Any, Dict, List, NewType, Optional, TypedDict

# === Core Value Objects ===

# Using NewType for semantic clarity, although they are strings at runtime.
ResourcePath = NewType("ResourcePath", str)    # e.g. '/repos/octocat/Hello-World'
Credential = NewType("Credential", str)        # Bearer token, never logged
CacheKey = NewType("CacheKey", str)            # Unique key for a cache entry

# === Payloads ===
ResourcePage = NewType("ResourcePage", List[Any])  # One page of a collection

QueryParams = Dict[str, Any]

# --- Structured Data ---
class PageRequest(TypedDict):
    """Query parameters sent for one page of a collection."""
    page: int
    per_page: int

def describe_params(params: Optional[QueryParams]) -> str:
    """Renders query parameters in a stable order for logs and keys."""
    if not params:
        return ""
    return "&".join(f"{k}={params[k]}" for k in sorted(params))
