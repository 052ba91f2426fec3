"""Fake implementations for testing the vault store."""

from notes_vault.errors import PersistenceError
from notes_vault.models.node import SNAPSHOT_VERSION, Content, Node, Snapshot


class FakeRepository:
    """In-memory fake for SqliteRepository.

    Records every call for assertions. Methods registered with fail() raise
    PersistenceError once their allowance of successful calls is used up.
    """

    def __init__(self) -> None:
        self.nodes: dict[str, Node] = {}
        self.contents: dict[str, Content] = {}
        self.calls: list[tuple[str, tuple]] = []
        self.closed = False
        self._failures: dict[str, int] = {}

    def fail(self, method: str, *, after: int = 0) -> None:
        """Make method raise PersistenceError after `after` successful calls."""
        self._failures[method] = after

    def calls_to(self, method: str) -> list[tuple]:
        return [args for name, args in self.calls if name == method]

    def _record(self, method: str, *args: object) -> None:
        self.calls.append((method, args))
        if method not in self._failures:
            return
        if self._failures[method] <= 0:
            msg = f"FakeRepository: {method} failed"
            raise PersistenceError(msg)
        self._failures[method] -= 1

    def get_all_nodes(self) -> list[Node]:
        self._record("get_all_nodes")
        return list(self.nodes.values())

    def get_children(self, parent_id: str | None) -> list[Node]:
        self._record("get_children", parent_id)
        children = [n for n in self.nodes.values() if n.parent_id == parent_id]
        return sorted(children, key=lambda n: n.order_index)

    def save_node(self, node: Node) -> None:
        self._record("save_node", node)
        self.nodes[node.id] = node

    def delete_node_and_content(self, node_id: str) -> None:
        self._record("delete_node_and_content", node_id)
        self.nodes.pop(node_id, None)
        self.contents.pop(node_id, None)

    def get_content(self, node_id: str) -> Content:
        self._record("get_content", node_id)
        return self.contents.get(node_id) or Content.default(node_id)

    def save_content(self, content: Content) -> None:
        self._record("save_content", content)
        self.contents[content.node_id] = content

    def export_all(self) -> Snapshot:
        self._record("export_all")
        return Snapshot(
            version=SNAPSHOT_VERSION,
            export_date="2024-01-01T00:00:00+00:00",
            nodes=tuple(self.nodes.values()),
            contents=tuple(self.contents.values()),
        )

    def import_all(self, snapshot: Snapshot) -> None:
        self._record("import_all", snapshot)
        self.nodes = {n.id: n for n in snapshot.nodes}
        self.contents = {c.node_id: c for c in snapshot.contents}

    def close(self) -> None:
        self._record("close")
        self.closed = True
