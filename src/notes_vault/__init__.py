"""Local hierarchical note vault: folders, notes, search and snapshots."""

from notes_vault.core.database.repository import SqliteRepository
from notes_vault.core.events import Event, EventChannel
from notes_vault.core.tree.store import NodeStore
from notes_vault.errors import CycleError, PersistenceError, SnapshotError, VaultError
from notes_vault.protocols import PersistenceProtocol

__all__ = [
    "CycleError",
    "Event",
    "EventChannel",
    "NodeStore",
    "PersistenceError",
    "PersistenceProtocol",
    "SnapshotError",
    "SqliteRepository",
    "VaultError",
]
