#!/usr/bin/env python3
"""
Main execution module for the moderation migration tool.

Importing the command modules registers their subcommands on the ``cli``
group.
"""

from moderation_migrator.cli import (  # noqa: F401
    migrate_cmd,
    purge_cmd,
    status_cmd,
    validate_cmd,
)
from moderation_migrator.cli.common import cli, handle_exception  # noqa: F401


def main() -> None:
    """Main entry point for the moderation migration tool."""
    cli()


if __name__ == "__main__":
    main()
