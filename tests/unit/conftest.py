"""Unit test configuration and shared fixtures."""

from __future__ import annotations

from typing import Any, Optional

import pytest

from moderation_migrator.core.config import MigrationConfig
from moderation_migrator.core.keyvalue import KeyValueFactory
from moderation_migrator.core.migrator import ModerationMigrator
from moderation_migrator.core.staging import StagingRepository
from moderation_migrator.providers.base import DataProvider


@pytest.fixture()
def factory() -> KeyValueFactory:
    return KeyValueFactory.memory()


@pytest.fixture()
def staging(factory: KeyValueFactory) -> StagingRepository:
    return StagingRepository(factory.get("migration"), factory.get("migration.state_map"))


def _build_migrator(
    provider: DataProvider,
    factory: Optional[KeyValueFactory] = None,
    **config_overrides: Any,
) -> ModerationMigrator:
    """Build a ModerationMigrator over ``provider`` with memory-backed storage.

    Keyword arguments override ``MigrationConfig`` fields.
    """
    config = MigrationConfig(**config_overrides)
    return ModerationMigrator(provider, factory or KeyValueFactory.memory(), config)


@pytest.fixture()
def make_migrator():
    """Factory fixture. Call it with a provider and config overrides.

    Usage in tests::

        def test_something(site, make_migrator):
            migrator = make_migrator(site, batch_size=1)
    """
    return _build_migrator
