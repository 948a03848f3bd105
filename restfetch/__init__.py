"""restfetch: resilient paginated client for JSON REST services."""

__version__ = "0.1.0"
