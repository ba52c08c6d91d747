"""Error types and handlers."""
