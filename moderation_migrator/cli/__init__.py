"""Command-line interface: the click group and its subcommands."""

__all__ = [
    "commands",
    "common",
    "migrate_cmd",
    "purge_cmd",
    "status_cmd",
    "validate_cmd",
]
