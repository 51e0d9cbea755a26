"""Models — enums, catalog schemas, and per-quote state."""
