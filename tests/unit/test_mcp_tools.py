"""Tests for MCP tool core functions."""

from notes_vault.core.tree.store import NodeStore
from notes_vault.mcp.server import (
    vault_create_node,
    vault_list_children,
    vault_read_node,
    vault_recent_notes,
    vault_search,
    vault_update_content,
)
from notes_vault.models.node import Node


def test_vault_search_returns_results_with_metadata(
    store: NodeStore, seeded: dict[str, Node]
) -> None:
    result = vault_search(store, query="grahda")
    assert result["count"] == 1
    first = result["results"][0]
    assert first["node_id"] == seeded["Grahda"].id
    assert first["path"] == "NPCs > Trolls > Emerald Trolls > Grahda"
    assert first["score"] == 110
    assert first["active"] is True


def test_vault_search_empty_query_is_an_error(store: NodeStore) -> None:
    result = vault_search(store, query="  ")
    assert "error" in result
    assert result["results"] == []


def test_vault_search_clamps_limit(store: NodeStore, seeded: dict[str, Node]) -> None:
    result = vault_search(store, query="e", limit=0)
    assert result["count"] == 1


def test_vault_read_node_returns_markdown(store: NodeStore, seeded: dict[str, Node]) -> None:
    result = vault_read_node(store, node_id=seeded["Swamps"].id)
    assert "error" not in result
    assert "Emerald Mire" in result["content"]
    assert "phosphorescent" in result["content"]
    assert result["path"] == "Locations > Swamps"


def test_vault_read_node_json_includes_recursive_children(
    store: NodeStore, seeded: dict[str, Node]
) -> None:
    result = vault_read_node(store, node_id=seeded["NPCs"].id, output_format="json")
    assert "error" not in result
    children = result["node"]["children"]
    assert [c["name"] for c in children] == ["Trolls", "Mayor Elara"]
    elara = children[1]
    assert elara["content"]["fields"]["Role"] == "Mayor of Millbrook"


def test_vault_read_node_json_truncates_at_max_depth(
    store: NodeStore, seeded: dict[str, Node]
) -> None:
    """At max_depth boundary, nodes have child_count but no children key."""
    result = vault_read_node(
        store, node_id=seeded["NPCs"].id, output_format="json", max_depth=1
    )
    trolls = result["node"]["children"][0]
    assert trolls["child_count"] == 1
    assert "children" not in trolls


def test_vault_read_node_unknown_id(store: NodeStore) -> None:
    assert "error" in vault_read_node(store, node_id="missing")


def test_vault_list_children_root_and_folder(store: NodeStore, seeded: dict[str, Node]) -> None:
    roots = vault_list_children(store)
    assert [c["name"] for c in roots["children"]] == ["NPCs", "Locations", "Quests"]
    assert roots["children"][0]["child_count"] == 2

    swamps = vault_list_children(store, node_id=seeded["Swamps"].id)
    assert [c["name"] for c in swamps["children"]] == ["Emerald Mire"]

    assert "error" in vault_list_children(store, node_id="missing")


def test_vault_recent_notes(store: NodeStore, seeded: dict[str, Node]) -> None:
    recent = vault_recent_notes(store, limit=2)
    assert recent["count"] == 2

    active = vault_recent_notes(store, active_only=True)
    assert {n["name"] for n in active["notes"]} == {"Grahda", "Oil in the Midnight Marsh"}


def test_vault_create_node(store: NodeStore, seeded: dict[str, Node]) -> None:
    result = vault_create_node(
        store, name="Bog Hag", parent_id=seeded["Swamps"].id, template="monster"
    )
    assert result["success"] is True
    assert result["path"] == "Locations > Swamps > Bog Hag"
    assert store.get_content(result["node_id"]).icon == "🐉"


def test_vault_create_node_rejects_bad_input(store: NodeStore) -> None:
    assert vault_create_node(store, name=" ")["success"] is False
    assert vault_create_node(store, name="X", node_type="document")["success"] is False
    assert vault_create_node(store, name="X", parent_id="missing")["success"] is False


def test_vault_update_content_merges_fields(store: NodeStore, seeded: dict[str, Node]) -> None:
    grahda = seeded["Grahda"].id

    result = vault_update_content(
        store, node_id=grahda, markdown="New body", fields={"Age": "341 years"}, tags=["boss"]
    )

    assert result["success"] is True
    content = store.get_content(grahda)
    assert content.markdown == "New body"
    assert content.fields["Age"] == "341 years"
    assert content.fields["Species"] == "Emerald Troll"
    assert content.tags == ("boss",)


def test_vault_update_content_rejects_folders_and_empty_updates(
    store: NodeStore, seeded: dict[str, Node]
) -> None:
    assert vault_update_content(store, node_id=seeded["NPCs"].id, markdown="x")["success"] is False
    assert vault_update_content(store, node_id=seeded["Grahda"].id)["success"] is False
