"""Shared test fixtures for the moderation_migrator test suite."""

from __future__ import annotations

from typing import Any

import pytest

from moderation_migrator.providers.base import EntityTypeDefinition
from moderation_migrator.providers.memory import InMemoryDataProvider

STATE_PREFIX = "workbench_moderation.moderation_state."
TRANSITION_PREFIX = "workbench_moderation.moderation_state_transition."


def sample_states() -> list[dict[str, Any]]:
    """Return source moderation state config objects."""
    return [
        {"id": "draft", "label": "Draft", "published": False, "default_revision": False},
        {"id": "published", "label": "Published", "published": True, "default_revision": True},
    ]


def sample_transitions() -> list[dict[str, Any]]:
    """Return source moderation transition config objects."""
    return [
        {
            "id": "draft_published",
            "label": "Publish",
            "stateFrom": "draft",
            "stateTo": "published",
        },
    ]


def sample_entity_types() -> list[EntityTypeDefinition]:
    return [
        EntityTypeDefinition(id="node", provider="node"),
        EntityTypeDefinition(
            id="node_type", provider="node", config_prefix="type", bundle_of="node"
        ),
        EntityTypeDefinition(id="block_content", provider="block_content"),
        EntityTypeDefinition(
            id="block_content_type",
            provider="block_content",
            config_prefix="type",
            bundle_of="block_content",
        ),
    ]


def build_site(
    states: list[dict[str, Any]] | None = None,
    transitions: list[dict[str, Any]] | None = None,
    moderated_bundles: tuple[str, ...] = ("node.type.article",),
    unmoderated_bundles: tuple[str, ...] = ("node.type.page",),
) -> InMemoryDataProvider:
    """Build a provider with source moderation installed and configured."""
    config: dict[str, Any] = {}
    for state in sample_states() if states is None else states:
        config[f"{STATE_PREFIX}{state['id']}"] = dict(state)
    for transition in sample_transitions() if transitions is None else transitions:
        config[f"{TRANSITION_PREFIX}{transition['id']}"] = dict(transition)
    for name in moderated_bundles:
        config[name] = {
            "name": name.rsplit(".", 1)[1],
            "third_party_settings": {"workbench_moderation": {"enabled": True}},
        }
    for name in unmoderated_bundles:
        config[name] = {"name": name.rsplit(".", 1)[1]}
    return InMemoryDataProvider(
        modules={"node", "block_content", "workbench_moderation"},
        config=config,
        entity_types=sample_entity_types(),
    )


@pytest.fixture()
def site() -> InMemoryDataProvider:
    """Return a site with three draft articles, each with one revision."""
    provider = build_site()
    for entity_id in (1, 2, 3):
        provider.add_revision("node", entity_id, entity_id, "article", "draft")
    return provider


@pytest.fixture()
def translated_site() -> InMemoryDataProvider:
    """Return a site with one article revision translated into two languages."""
    provider = build_site()
    provider.add_revision(
        "node",
        1,
        10,
        "article",
        "draft",
        translations={"fr": "published", "de": "draft"},
    )
    return provider


@pytest.fixture()
def site_factory():
    """Return ``build_site`` so tests can seed custom source configuration."""
    return build_site
