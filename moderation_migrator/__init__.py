#!/usr/bin/env python3
"""
Source to target moderation migration tool
"""

__version__ = "0.1.0"

from moderation_migrator.core.config import MigrationConfig, load_config
from moderation_migrator.core.keyvalue import KeyValueFactory

# Import the main classes for easier access
from moderation_migrator.core.migrator import ModerationMigrator
from moderation_migrator.core.state import RunOutcome
from moderation_migrator.providers.memory import InMemoryDataProvider
from moderation_migrator.providers.snapshot import SnapshotDataProvider
