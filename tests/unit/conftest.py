"""Shared test fixtures."""

import itertools
from collections.abc import Iterator
from typing import Any

import pytest

from notes_vault.core.database.repository import SqliteRepository
from notes_vault.core.events import Event
from notes_vault.core.seed import seed_example_vault
from notes_vault.core.tree.store import NodeStore
from notes_vault.models.node import Node, NodeType
from tests.unit.fakes import FakeRepository


class TickingClock:
    """Millisecond clock that advances by one on every reading."""

    def __init__(self, start: int = 1_000) -> None:
        self.now = start

    def __call__(self) -> int:
        self.now += 1
        return self.now


def make_store(repository: Any) -> NodeStore:
    """Loaded store with a deterministic clock and ids n1, n2, ..."""
    counter = itertools.count(1)
    store = NodeStore(
        repository,
        clock=TickingClock(),
        id_factory=lambda: f"n{next(counter)}",
    )
    store.load()
    return store


@pytest.fixture
def repo() -> FakeRepository:
    return FakeRepository()


@pytest.fixture
def store(repo: FakeRepository) -> NodeStore:
    return make_store(repo)


@pytest.fixture
def tree(store: NodeStore) -> dict[str, Node]:
    """A small tree, four levels deep at its longest branch.

    A/            (n1)
        B/        (n2)
            C/    (n3)
                D (n4)
        E         (n5)
    F             (n6)
    """
    folder, leaf = NodeType.FOLDER, NodeType.LEAF
    a = store.create_node("A", folder)
    b = store.create_node("B", folder, a.id)
    c = store.create_node("C", folder, b.id)
    d = store.create_node("D", leaf, c.id)
    e = store.create_node("E", leaf, a.id)
    f = store.create_node("F", leaf)
    return {"A": a, "B": b, "C": c, "D": d, "E": e, "F": f}


@pytest.fixture
def seeded(store: NodeStore) -> dict[str, Node]:
    return seed_example_vault(store)


@pytest.fixture
def recorded(store: NodeStore) -> list[tuple[Event, Any]]:
    """Every event the store emits from now on, in order."""
    log: list[tuple[Event, Any]] = []
    for event in Event:
        store.subscribe(event, lambda payload, event=event: log.append((event, payload)))
    return log


@pytest.fixture
def sqlite_repo() -> Iterator[SqliteRepository]:
    repository = SqliteRepository.open(":memory:")
    yield repository
    repository.close()
