"""Data providers connecting the migration to its host platform."""

__all__ = [
    "base",
    "memory",
    "snapshot",
]
