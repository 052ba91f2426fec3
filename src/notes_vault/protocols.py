"""Protocols for dependency injection in the vault store."""

from typing import Protocol, runtime_checkable

from notes_vault.models.node import Content, Node, Snapshot


@runtime_checkable
class PersistenceProtocol(Protocol):
    """Durable storage of nodes and leaf content.

    Every method may raise PersistenceError.
    """

    def get_all_nodes(self) -> list[Node]:
        """Return every stored node."""
        ...

    def get_children(self, parent_id: str | None) -> list[Node]:
        """Return stored nodes under parent_id, ordered by order_index."""
        ...

    def save_node(self, node: Node) -> None:
        """Insert or replace a node."""
        ...

    def delete_node_and_content(self, node_id: str) -> None:
        """Remove a node and its content atomically."""
        ...

    def get_content(self, node_id: str) -> Content:
        """Return the content for node_id, or a default record if none is stored."""
        ...

    def save_content(self, content: Content) -> None:
        """Insert or replace a content record."""
        ...

    def export_all(self) -> Snapshot:
        """Return every node and content record."""
        ...

    def import_all(self, snapshot: Snapshot) -> None:
        """Atomically replace all stored records with the snapshot's."""
        ...

    def close(self) -> None:
        """Release the underlying storage."""
        ...
