"""Result cache implementation.

In-memory cache with a time-to-live freshness window.
Bounded Context: Cache Management
"""
