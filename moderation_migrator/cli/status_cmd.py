"""CLI command handler for reporting migration progress."""

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
# status subcommand
# ---------------------------------------------------------------------------


@cli.command()
@common_options
@click.option(
    "--reset",
    "reset_step",
    default=None,
    metavar="STEP",
    help="Mark STEP incomplete so the next migrate run repeats it",
)
def status(
    site: Path,
    config: Path,
    storage_dir: Optional[Path],
    verbose: bool,
    reset_step: Optional[str],
) -> None:
    """Show which steps are complete and how much state is left to apply.

    Args:
        site: Path to the site snapshot.
        config: Path to config YAML.
        storage_dir: Directory for checkpoint and staging data.
        verbose: Enable verbose console logging.
        reset_step: Optional step to mark incomplete.
    """
    setup_logger(verbose)
    cfg = load_config(config)

    try:
        migrator = build_migrator(site, cfg, resolve_storage_dir(cfg, storage_dir))
        if reset_step is not None:
            names = [step.name for step in migrator.steps]
            if reset_step not in names:
                raise click.BadParameter(
                    f"unknown step {reset_step!r}, expected one of: {', '.join(names)}",
                    param_hint="--reset",
                )
            migrator.checkpoints.reset_step(reset_step)
            click.echo(f"Step {reset_step} marked incomplete.")

        report = migrator.step_report()
        remaining = migrator.remaining_state_map_entries()
        finished = migrator.is_finished()
        complete = migrator.is_complete()
    except click.ClickException:
        raise
    except Exception as e:
        handle_exception(e)
        sys.exit(1)

    for name, description, checkpoint in report:
        click.echo(f"{name:<8} {checkpoint.value:<11} {description}")
    click.echo("")
    click.echo(f"Remaining state-map records: {remaining}")
    click.echo(f"Finished: {'yes' if finished else 'no'}")
    click.echo(f"Complete: {'yes' if complete else 'no'}")
