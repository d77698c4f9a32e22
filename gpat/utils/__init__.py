"""Git access and logging helpers."""
