"""CLI command handler for the migrate workflow."""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Callable, Optional

import click
from tqdm import tqdm

from moderation_migrator.cli.common import (
    build_migrator,
    cli,
    common_options,
    handle_exception,
    resolve_storage_dir,
)
from moderation_migrator.core.config import load_config
from moderation_migrator.core.migrator import ModerationMigrator
from moderation_migrator.utils.logging import log_with_context, setup_logger


class StepProgressBar:
    """Progress sink that shows checkpointed steps on a tqdm bar."""

    def __init__(self, total: int, completed: Callable[[], int]) -> None:
        self._completed = completed
        self.bar = tqdm(total=total, desc="Migrating", unit="step")

    def start(self) -> None:
        self.bar.n = self._completed()
        self.bar.refresh()

    def __call__(self, step: str, message: str) -> None:
        tqdm.write(f"[{step}] {message}")
        self.bar.n = self._completed()
        self.bar.set_postfix_str(step)
        self.bar.refresh()

    def close(self) -> None:
        self.bar.close()


def log_startup_info(site: Path, config: Path, storage_dir: Path, ticks: Optional[int]) -> None:
    """Log startup information."""
    log_with_context(logging.INFO, "Starting migration with the following parameters:")
    log_with_context(logging.INFO, f"- Site snapshot: {site}")
    log_with_context(logging.INFO, f"- Config: {config}")
    log_with_context(logging.INFO, f"- Storage directory: {storage_dir}")
    log_with_context(
        logging.INFO, f"- Ticks: {ticks if ticks is not None else 'until finished'}"
    )


def _completed_steps(migrator: ModerationMigrator) -> int:
    return sum(
        1 for step in migrator.steps if migrator.checkpoints.is_step_complete(step.name)
    )


# ---------------------------------------------------------------------------
# migrate subcommand
# ---------------------------------------------------------------------------


@cli.command()
@common_options
@click.option(
    "--ticks",
    type=click.IntRange(min=1),
    default=None,
    help="Stop after this many batch ticks (default: run until finished)",
)
@click.option(
    "--log_json",
    is_flag=True,
    default=False,
    help="Write the migration log file as JSON lines",
)
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation prompt.")
def migrate(
    site: Path,
    config: Path,
    storage_dir: Optional[Path],
    verbose: bool,
    ticks: Optional[int],
    log_json: bool,
    yes: bool,
) -> None:
    """Run (or resume) the moderation migration.

    Every completed step is checkpointed, so an interrupted or failed run
    resumes where it stopped when this command is run again.

    Args:
        site: Path to the site snapshot.
        config: Path to config YAML.
        storage_dir: Directory for checkpoint and staging data.
        verbose: Enable verbose console logging.
        ticks: Maximum number of batch ticks to run.
        log_json: Write the log file as JSON lines.
        yes: Skip confirmation prompt.
    """
    cfg = load_config(config)
    storage = resolve_storage_dir(cfg, storage_dir)
    setup_logger(verbose, str(storage), log_json=log_json)
    log_startup_info(site, config, storage, ticks)

    try:
        migrator = build_migrator(site, cfg, storage)
        if migrator.is_complete():
            click.echo("The migration is already complete.")
            return

        if not yes and not migrator.has_started():
            if not click.confirm(
                f"This will uninstall {cfg.source_module} and move all moderation "
                "state to the target module. Continue?"
            ):
                click.echo("Migration cancelled.")
                sys.exit(0)

        bar = StepProgressBar(len(migrator.steps), lambda: _completed_steps(migrator))
        migrator.executor.progress = bar
        bar.start()
        try:
            outcome = migrator.run(max_ticks=ticks)
        finally:
            bar.close()

        log_with_context(
            logging.INFO,
            f"Steps completed in this run: {', '.join(outcome.completed_steps) or 'none'}",
        )
        success, message = migrator.finished_message(outcome)
        click.echo(message)
        outcome.raise_for_failure()
    except Exception as e:
        handle_exception(e)
        sys.exit(1)

    sys.exit(0 if success else 1)
