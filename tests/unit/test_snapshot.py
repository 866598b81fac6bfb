"""Unit tests for the file-backed snapshot provider."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
import yaml

from moderation_migrator.exceptions import ProviderError
from moderation_migrator.providers.snapshot import SnapshotDataProvider


def _write_snapshot(path: Path, site) -> Path:
    data = site.to_dict()
    if path.suffix == ".json":
        path.write_text(json.dumps(data))
    else:
        path.write_text(yaml.safe_dump(data))
    return path


class TestSnapshotDataProvider:
    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(ProviderError, match="not found"):
            SnapshotDataProvider(tmp_path / "site.yaml")

    def test_invalid_yaml(self, tmp_path: Path):
        path = tmp_path / "site.yaml"
        path.write_text("modules: [unclosed")
        with pytest.raises(ProviderError, match="Failed to read"):
            SnapshotDataProvider(path)

    def test_non_mapping(self, tmp_path: Path):
        path = tmp_path / "site.json"
        path.write_text("[]")
        with pytest.raises(ProviderError, match="mapping"):
            SnapshotDataProvider(path)

    def test_empty_file_is_empty_site(self, tmp_path: Path):
        path = tmp_path / "site.yaml"
        path.write_text("")
        provider = SnapshotDataProvider(path)
        assert provider.modules == set()
        assert provider.revisions == {}

    @pytest.mark.parametrize("filename", ["site.yaml", "site.json"])
    def test_loads_snapshot(self, tmp_path: Path, site, filename):
        provider = SnapshotDataProvider(_write_snapshot(tmp_path / filename, site))
        assert provider.to_dict() == site.to_dict()

    def test_loading_does_not_rewrite_file(self, tmp_path: Path, site):
        path = _write_snapshot(tmp_path / "site.json", site)
        original = path.read_text()
        SnapshotDataProvider(path)
        assert path.read_text() == original

    @pytest.mark.parametrize("filename", ["site.yaml", "site.json"])
    def test_mutations_are_persisted(self, tmp_path: Path, site, filename):
        path = _write_snapshot(tmp_path / filename, site)
        provider = SnapshotDataProvider(path)

        entity = provider.load_revision("node", 1)
        provider.clear_moderation_state(entity, "en")
        provider.save_revision(entity)
        provider.install_modules(["workflows"])

        reloaded = SnapshotDataProvider(path)
        assert reloaded.revisions["node"][1]["moderation"]["en"] is None
        assert reloaded.is_module_installed("workflows")
        assert not path.with_suffix(path.suffix + ".tmp").exists()

    def test_field_owners_override(self, tmp_path: Path, site):
        path = _write_snapshot(tmp_path / "site.yaml", site)
        provider = SnapshotDataProvider(path, field_owners=["old_moderation"])
        assert provider.field_owners == {"old_moderation"}
        assert SnapshotDataProvider(path).field_owners == {"workbench_moderation"}
