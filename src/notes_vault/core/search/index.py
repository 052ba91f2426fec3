"""In-memory substring search over node names and paths."""

from collections.abc import Callable, Iterable
from dataclasses import dataclass

from notes_vault.models.node import Node, NodeType

PATH_SEPARATOR = " > "

EXACT_NAME_SCORE = 100
PREFIX_NAME_SCORE = 50
SUBSTRING_NAME_SCORE = 20
PATH_SCORE = 10


@dataclass(frozen=True)
class IndexEntry:
    """Normalized search fields for one node."""

    id: str
    name: str
    type: NodeType
    path: str


def normalize_query(query: str) -> str:
    return query.strip().lower()


def score(query: str, entry: IndexEntry) -> int:
    """Score a normalized query against an entry.

    The name tier (exact, prefix or substring) and the path bonus add up.
    """
    total = 0
    if entry.name == query:
        total += EXACT_NAME_SCORE
    elif entry.name.startswith(query):
        total += PREFIX_NAME_SCORE
    elif query in entry.name:
        total += SUBSTRING_NAME_SCORE
    if query in entry.path:
        total += PATH_SCORE
    return total


class SearchIndex:
    """Derived lookup table, rebuilt wholesale from the store's nodes.

    Entries keep insertion order, so equal scores come back in node order.
    """

    def __init__(self) -> None:
        self._entries: dict[str, IndexEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._entries

    def get(self, node_id: str) -> IndexEntry | None:
        return self._entries.get(node_id)

    def rebuild(self, nodes: Iterable[Node], path_of: Callable[[str], list[Node]]) -> None:
        """Replace every entry, using path_of to resolve each node's ancestry."""
        entries: dict[str, IndexEntry] = {}
        for node in nodes:
            path = PATH_SEPARATOR.join(n.name for n in path_of(node.id))
            entries[node.id] = IndexEntry(
                id=node.id,
                name=node.name.lower(),
                type=node.type,
                path=path.lower(),
            )
        self._entries = entries

    def clear(self) -> None:
        self._entries = {}

    def search(self, query: str, limit: int = 20) -> list[tuple[str, int]]:
        """Return (node id, score) pairs, best first, at most limit long.

        An empty query matches nothing; callers show recent notes instead.
        """
        needle = normalize_query(query)
        if not needle or limit <= 0:
            return []

        hits = []
        for entry in self._entries.values():
            s = score(needle, entry)
            if s > 0:
                hits.append((entry.id, s))

        # sorted() is stable, so ties keep index order.
        hits = sorted(hits, key=lambda hit: hit[1], reverse=True)
        return hits[:limit]
