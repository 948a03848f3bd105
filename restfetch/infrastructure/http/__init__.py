"""HTTP transport built on httpx."""
