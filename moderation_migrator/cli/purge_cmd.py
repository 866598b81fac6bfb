"""CLI command handlers for cleaning up and purging migration storage."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional

import click

from moderation_migrator.cli.common import (
    build_migrator,
    cli,
    common_options,
    handle_exception,
    resolve_storage_dir,
)
from moderation_migrator.core.config import load_config
from moderation_migrator.utils.logging import setup_logger

# ---------------------------------------------------------------------------
# cleanup subcommand
# ---------------------------------------------------------------------------


@cli.command()
@common_options
def cleanup(
    site: Path,
    config: Path,
    storage_dir: Optional[Path],
    verbose: bool,
) -> None:
    """Delete staged state and transition definitions.

    State-map records that have not been applied yet are kept.

    Args:
        site: Path to the site snapshot.
        config: Path to config YAML.
        storage_dir: Directory for checkpoint and staging data.
        verbose: Enable verbose console logging.
    """
    setup_logger(verbose)
    cfg = load_config(config)

    try:
        migrator = build_migrator(site, cfg, resolve_storage_dir(cfg, storage_dir))
        migrator.cleanup()
    except Exception as e:
        handle_exception(e)
        sys.exit(1)
    click.echo("Staged definitions deleted.")


# ---------------------------------------------------------------------------
# purge subcommand
# ---------------------------------------------------------------------------


@cli.command()
@common_options
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation prompt.")
def purge(
    site: Path,
    config: Path,
    storage_dir: Optional[Path],
    verbose: bool,
    yes: bool,
) -> None:
    """Delete all checkpoint and staging data (use when uninstalling).

    Args:
        site: Path to the site snapshot.
        config: Path to config YAML.
        storage_dir: Directory for checkpoint and staging data.
        verbose: Enable verbose console logging.
        yes: Skip confirmation prompt.
    """
    setup_logger(verbose)
    cfg = load_config(config)

    try:
        migrator = build_migrator(site, cfg, resolve_storage_dir(cfg, storage_dir))
        remaining = migrator.remaining_state_map_entries()
        if not yes:
            prompt = "This deletes all migration checkpoints and staged data. Continue?"
            if remaining:
                prompt = (
                    f"{remaining} moderation states have not been applied yet and "
                    f"will be lost. {prompt}"
                )
            if not click.confirm(prompt):
                click.echo("Purge cancelled.")
                sys.exit(0)
        migrator.purge_all()
    except Exception as e:
        handle_exception(e)
        sys.exit(1)
    click.echo("All migration checkpoints and staged data deleted.")
