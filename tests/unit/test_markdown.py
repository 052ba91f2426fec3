"""Tests for markdown rendering of vault subtrees."""

from notes_vault.core.tree.markdown import render_subtree_as_markdown
from notes_vault.core.tree.store import NodeStore
from notes_vault.models.node import Node


def test_render_leaf_includes_fields_tags_and_body(
    store: NodeStore, seeded: dict[str, Node]
) -> None:
    md = render_subtree_as_markdown(store, node_id=seeded["Grahda"].id)
    lines = md.splitlines()

    assert lines[0] == "- 🧌 Grahda (active)"
    assert "  Species: Emerald Troll" in lines
    assert "  tags: #green-marsh #marsh #quest-giver #troll" in lines
    assert "  > # Grahda" in lines
    assert "  >" in lines  # blank body lines keep the quote marker
    # Empty template fields are skipped.
    assert not any(line.startswith("  Personality") for line in lines)


def test_render_subtree_with_depth_limit_shows_truncation(
    store: NodeStore, seeded: dict[str, Node]
) -> None:
    """Folders at the depth boundary show how many children were cut off."""
    md = render_subtree_as_markdown(store, node_id=seeded["NPCs"].id, max_depth=1)

    assert md.startswith("- 📁 NPCs\n    - 📁 Trolls\n")
    assert f"        - ... (1 more child, id={seeded['Trolls'].id})" in md
    assert "Emerald Trolls" not in md
    assert "    - 👤 Mayor Elara" in md


def test_render_full_subtree_nests_by_depth(store: NodeStore, seeded: dict[str, Node]) -> None:
    md = render_subtree_as_markdown(store, node_id=seeded["NPCs"].id, include_content=False)

    assert md.splitlines() == [
        "- 📁 NPCs",
        "    - 📁 Trolls",
        "        - 📁 Emerald Trolls",
        "            - 🧌 Grahda (active)",
        "    - 👤 Mayor Elara",
    ]


def test_render_unknown_node_is_empty(store: NodeStore) -> None:
    assert render_subtree_as_markdown(store, node_id="missing") == ""
