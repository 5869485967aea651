"""Cross-cutting request concerns (authentication and access gates)."""
