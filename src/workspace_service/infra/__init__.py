"""Infrastructure adapters (cache store, HTTP transport)."""
