"""Shared CLI infrastructure: option decorators, error handlers, and the CLI group."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Optional

import click

import moderation_migrator
from moderation_migrator.core.config import MigrationConfig
from moderation_migrator.core.executor import ProgressSink
from moderation_migrator.core.keyvalue import KeyValueFactory
from moderation_migrator.core.migrator import ModerationMigrator
from moderation_migrator.exceptions import (
    MigratorError,
    PreconditionError,
    StepFailedError,
    StorageError,
)
from moderation_migrator.providers.snapshot import SnapshotDataProvider
from moderation_migrator.utils.logging import log_with_context

# Create logger instance
logger = logging.getLogger("moderation_migrator")


# ---------------------------------------------------------------------------
# Shared option decorator
# ---------------------------------------------------------------------------


def common_options(f: Callable[..., None]) -> Callable[..., None]:
    """Decorator that adds options shared across all subcommands.

    Args:
        f: The Click command function to decorate.

    Returns:
        The decorated function with common options attached.
    """
    f = click.option(
        "--site",
        required=True,
        type=click.Path(dir_okay=False, path_type=Path),
        help="Path to the site snapshot (YAML or JSON)",
    )(f)
    f = click.option(
        "--config",
        default="config.yaml",
        show_default=True,
        type=click.Path(dir_okay=False, path_type=Path),
        help="Path to config YAML",
    )(f)
    f = click.option(
        "--storage_dir",
        default=None,
        type=click.Path(file_okay=False, path_type=Path),
        help="Directory for checkpoint and staging data (overrides config)",
    )(f)
    f = click.option(
        "--verbose",
        "-v",
        is_flag=True,
        default=False,
        help="Enable verbose console logging (shows DEBUG level messages)",
    )(f)
    return f


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group(
    invoke_without_command=True,
    context_settings={"help_option_names": ["-h", "--help"]},
)
@click.version_option(
    version=moderation_migrator.__version__, prog_name="moderation-migrator"
)
@click.pass_context
def cli(ctx: click.Context) -> None:
    """Source to target moderation migration tool.

    Args:
        ctx: The Click context (injected by ``@click.pass_context``).
    """
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


# ---------------------------------------------------------------------------
# Migrator construction
# ---------------------------------------------------------------------------


def resolve_storage_dir(cfg: MigrationConfig, storage_dir: Optional[Path]) -> Path:
    return storage_dir if storage_dir is not None else Path(cfg.storage_dir)


def build_migrator(
    site: Path,
    cfg: MigrationConfig,
    storage_dir: Path,
    progress: Optional[ProgressSink] = None,
) -> ModerationMigrator:
    """Create a migrator over a site snapshot and file-backed checkpoints.

    Args:
        site: Path to the site snapshot.
        cfg: The loaded configuration.
        storage_dir: Directory holding the checkpoint and staging namespaces.
        progress: Optional progress sink for step messages.

    Returns:
        A ModerationMigrator ready to validate or run.
    """
    provider = SnapshotDataProvider(site, field_owners=[cfg.source_module])
    factory = KeyValueFactory.json_files(storage_dir)
    return ModerationMigrator(provider, factory, cfg, progress=progress)


# ---------------------------------------------------------------------------
# Error handlers
# ---------------------------------------------------------------------------


def handle_exception(e: BaseException) -> None:
    """Handle different types of exceptions.

    Args:
        e: The exception to handle.
    """
    if isinstance(e, PreconditionError):
        log_with_context(logging.ERROR, "Migration cannot start:")
        for message_id, message in e.messages:
            log_with_context(logging.ERROR, f"  - [{message_id}] {message}")
    elif isinstance(e, StepFailedError):
        log_with_context(logging.ERROR, str(e), step=e.step)
        log_with_context(
            logging.INFO,
            "Completed steps are checkpointed; run migrate again to resume at this step.",
        )
    elif isinstance(e, StorageError):
        log_with_context(logging.ERROR, f"Checkpoint storage error: {e}")
        log_with_context(
            logging.INFO,
            "Do not delete the storage directory by hand; restore it or use 'purge'.",
        )
    elif isinstance(e, MigratorError):
        log_with_context(logging.ERROR, str(e))
    elif isinstance(e, FileNotFoundError):
        log_with_context(logging.ERROR, f"File not found: {e}")
        log_with_context(
            logging.INFO,
            "Check the --site, --config and --storage_dir paths.",
        )
    elif isinstance(e, KeyboardInterrupt):
        log_with_context(logging.WARNING, "Migration interrupted by user.")
        log_with_context(
            logging.INFO, "Progress is checkpointed; run migrate again to resume."
        )
    else:
        log_with_context(logging.ERROR, f"Unexpected error: {e}", exc_info=True)
