"""CLI command handler for pre-flight validation."""

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
# validate subcommand
# ---------------------------------------------------------------------------


@cli.command()
@common_options
def validate(
    site: Path,
    config: Path,
    storage_dir: Optional[Path],
    verbose: bool,
) -> None:
    """Check that the site is ready to be migrated.

    Exits non-zero when any validation message is reported.

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
        messages = migrator.validate()
    except Exception as e:
        handle_exception(e)
        sys.exit(1)

    if migrator.has_started():
        click.echo("The migration has already started; source checks are skipped.")
    if messages:
        click.echo("The migration cannot start:")
        for message_id, message in messages:
            click.echo(f"  - [{message_id}] {message}")
        sys.exit(1)
    click.echo("The migration is ready to run.")
