"""Tests for search scoring and the search index."""

from notes_vault.core.search.index import IndexEntry, SearchIndex, normalize_query, score
from notes_vault.core.tree.store import NodeStore
from notes_vault.models.node import Node, NodeType


def _entry(name: str, path: str) -> IndexEntry:
    return IndexEntry(id=name, name=name.lower(), type=NodeType.LEAF, path=path.lower())


def _index(*names: str) -> SearchIndex:
    """Flat index where every node sits at the root."""
    nodes = [Node(n, None, NodeType.LEAF, n, i) for i, n in enumerate(names)]
    by_id = {n.id: n for n in nodes}
    index = SearchIndex()
    index.rebuild(nodes, lambda node_id: [by_id[node_id]])
    return index


def test_normalize_query_trims_and_lowercases() -> None:
    assert normalize_query("  Grahda ") == "grahda"


def test_score_tiers_add_path_bonus() -> None:
    entry = _entry("Emerald Mire", "Locations > Swamps > Emerald Mire")

    assert score("emerald mire", entry) == 110
    assert score("emerald", entry) == 60
    assert score("mire", entry) == 30
    assert score("swamps", entry) == 10
    assert score("troll", entry) == 0


def test_score_name_tiers_are_exclusive() -> None:
    # Name matches "grahda" exactly; prefix and substring tiers must not stack.
    entry = _entry("Grahda", "Elsewhere")

    assert score("grahda", entry) == 100


def test_search_empty_query_returns_nothing() -> None:
    index = _index("Grahda")

    assert index.search("") == []
    assert index.search("   ") == []


def test_search_nonpositive_limit_returns_nothing() -> None:
    assert _index("Grahda").search("grahda", limit=0) == []


def test_search_sorts_by_score_and_truncates() -> None:
    index = _index("Marsh Oil", "Marsh", "The Marsh")

    results = index.search("marsh", limit=2)

    assert results == [("Marsh", 110), ("Marsh Oil", 60)]


def test_search_ties_keep_index_order() -> None:
    index = _index("b-troll", "a-troll", "c-troll")

    assert [node_id for node_id, _ in index.search("troll")] == ["b-troll", "a-troll", "c-troll"]


def test_rebuild_replaces_entries() -> None:
    index = _index("Old")
    index.rebuild([Node("new", None, NodeType.FOLDER, "New", 0)], lambda _: [])

    assert "Old" not in index
    assert "new" in index
    assert len(index) == 1

    index.clear()
    assert len(index) == 0


def test_seeded_vault_exact_match_ranks_first(store: NodeStore, seeded: dict[str, Node]) -> None:
    results = store.search("grahda")

    assert results[0].node.id == seeded["Grahda"].id
    assert results[0].score == 110
    assert results[0].path_names == "NPCs > Trolls > Emerald Trolls > Grahda"


def test_seeded_vault_prefix_beats_path_only_match(
    store: NodeStore, seeded: dict[str, Node]
) -> None:
    results = {r.node.name: r.score for r in store.search("em")}

    assert results["Emerald Mire"] == 60
    # Grahda only matches through its "Emerald Trolls" ancestor.
    assert results["Grahda"] == 10
    ranked = [r.node.name for r in store.search("em")]
    assert ranked.index("Emerald Mire") < ranked.index("Grahda")


def test_search_ignores_tags(store: NodeStore, seeded: dict[str, Node]) -> None:
    assert store.search("quest-giver") == []
