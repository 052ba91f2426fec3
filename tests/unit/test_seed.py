"""Tests for the example vault and note templates."""

from typing import Any

from notes_vault.core.events import Event
from notes_vault.core.seed import seed_example_vault
from notes_vault.core.tree.store import NodeStore
from notes_vault.core.tree.templates import TEMPLATES, template_fields, template_icon
from notes_vault.models.node import DEFAULT_ICON, Node


def test_seed_builds_example_tree(store: NodeStore, seeded: dict[str, Node]) -> None:
    assert [store.nodes[i].name for i in store.root_nodes] == ["NPCs", "Locations", "Quests"]
    assert [n.name for n in store.get_node_path(seeded["Grahda"].id)] == [
        "NPCs",
        "Trolls",
        "Emerald Trolls",
        "Grahda",
    ]
    assert store.stats() == {"nodes": 10, "folders": 6, "leaves": 4, "active": 2}


def test_seed_links_notes_and_fills_templates(store: NodeStore, seeded: dict[str, Node]) -> None:
    quest = store.get_content(seeded["Oil in the Midnight Marsh"].id)

    assert quest.links == (seeded["Emerald Mire"].id, seeded["Grahda"].id)
    assert quest.fields["Status"] == "Active"
    assert quest.fields["Giver"] == "Mayor Elara of Millbrook"
    assert "side-quest" in quest.tags


def test_seed_writes_note_content_through_the_store(
    store: NodeStore, recorded: list[tuple[Event, Any]]
) -> None:
    seeded = seed_example_vault(store)

    changed = [payload.node_id for event, payload in recorded if event is Event.CONTENT_CHANGED]
    notes = ["Grahda", "Emerald Mire", "Oil in the Midnight Marsh", "Mayor Elara"]
    assert changed == [seeded[name].id for name in notes]

    grahda = seeded["Grahda"]
    content = store.get_content(grahda.id)
    assert content.markdown.startswith("# Grahda")
    assert content.updated_at > grahda.created_at
    assert store.selected_id is None
    assert store.current_content is None


def test_seed_expands_folders_above_notes(store: NodeStore, seeded: dict[str, Node]) -> None:
    for name in ["NPCs", "Trolls", "Emerald Trolls", "Locations", "Swamps", "Quests"]:
        assert store.is_expanded(seeded[name].id), name


def test_template_icon_and_fields() -> None:
    assert template_icon("monster") == "🐉"
    assert template_icon("unknown") == DEFAULT_ICON
    assert template_icon(None) == DEFAULT_ICON
    assert template_fields("unknown") == {}


def test_template_fields_are_fresh_copies() -> None:
    fields = template_fields("quest")
    fields["Status"] = "Done"

    assert TEMPLATES["quest"].fields["Status"] == "Active"
