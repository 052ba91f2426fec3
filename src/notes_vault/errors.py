"""Exception types raised by the notes vault."""


class VaultError(Exception):
    """Base class for vault errors."""


class PersistenceError(VaultError):
    """The durable store is unreachable or rejected an operation."""


class CycleError(VaultError):
    """A move would make a node its own ancestor."""

    def __init__(self, node_id: str, new_parent_id: str | None) -> None:
        self.node_id = node_id
        self.new_parent_id = new_parent_id
        super().__init__(f"Cannot move node {node_id!r} into its own descendant {new_parent_id!r}")


class SnapshotError(VaultError):
    """Snapshot data is malformed."""
