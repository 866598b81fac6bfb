"""File-backed data provider used by the command-line interface.

A site snapshot is a YAML or JSON document describing installed modules,
configuration objects, entity types, entity revisions and workflows. The
provider loads it into memory and writes it back atomically after every
mutation, so successive CLI invocations resume against the same site state.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from pathlib import Path
from typing import Optional

import yaml

from moderation_migrator.exceptions import ProviderError
from moderation_migrator.providers.memory import InMemoryDataProvider
from moderation_migrator.utils.logging import log_with_context

_YAML_SUFFIXES = {".yml", ".yaml"}


class SnapshotDataProvider(InMemoryDataProvider):
    """In-memory provider persisted to a snapshot file.

    ``field_owners``, when given, replaces the owners recorded in the snapshot.
    """

    def __init__(self, path: Path, field_owners: Optional[Iterable[str]] = None) -> None:
        super().__init__()
        self.path = Path(path)
        self._loading = True
        try:
            self.load_dict(self._read())
            if field_owners is not None:
                self.field_owners = set(field_owners)
        finally:
            self._loading = False
        log_with_context(
            logging.INFO,
            f"Loaded site snapshot {self.path} "
            f"({sum(len(r) for r in self.revisions.values())} revisions)",
        )

    def _is_yaml(self) -> bool:
        return self.path.suffix.lower() in _YAML_SUFFIXES

    def _read(self) -> dict:
        if not self.path.exists():
            raise ProviderError(f"Site snapshot not found: {self.path}")
        try:
            text = self.path.read_text()
            data = yaml.safe_load(text) if self._is_yaml() else json.loads(text)
        except (yaml.YAMLError, json.JSONDecodeError, OSError) as e:
            raise ProviderError(f"Failed to read site snapshot {self.path}: {e}") from e
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ProviderError(f"Site snapshot {self.path} must contain a mapping")
        return data

    def save(self) -> None:
        """Atomically write the snapshot back to disk (write .tmp + rename)."""
        data = self.to_dict()
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            if self._is_yaml():
                tmp.write_text(yaml.safe_dump(data, default_flow_style=False, sort_keys=True))
            else:
                tmp.write_text(json.dumps(data, indent=2, sort_keys=True) + "\n")
            tmp.replace(self.path)
        except OSError as e:
            raise ProviderError(f"Failed to write site snapshot {self.path}: {e}") from e

    def _changed(self) -> None:
        if not self._loading:
            self.save()
