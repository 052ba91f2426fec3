"""Tests for the event channel."""

import pytest

from notes_vault.core.events import Event, EventChannel


def test_handlers_run_in_subscription_order() -> None:
    channel = EventChannel()
    calls: list[str] = []
    channel.subscribe(Event.NODES_CHANGED, lambda _: calls.append("first"))
    channel.subscribe(Event.NODES_CHANGED, lambda _: calls.append("second"))

    channel.emit(Event.NODES_CHANGED)

    assert calls == ["first", "second"]


def test_emit_passes_payload_only_to_matching_event() -> None:
    channel = EventChannel()
    deleted: list[str] = []
    moved: list[str] = []
    channel.subscribe(Event.NODE_DELETED, deleted.append)
    channel.subscribe(Event.NODE_MOVED, moved.append)

    channel.emit(Event.NODE_DELETED, "n1")

    assert deleted == ["n1"]
    assert moved == []


def test_unsubscribe_callable_removes_handler() -> None:
    channel = EventChannel()
    calls: list[object] = []
    unsubscribe = channel.subscribe(Event.SELECTION_CHANGED, calls.append)

    unsubscribe()
    channel.emit(Event.SELECTION_CHANGED, "n1")

    assert calls == []
    assert channel.handler_count(Event.SELECTION_CHANGED) == 0


def test_handler_may_unsubscribe_during_emit() -> None:
    channel = EventChannel()
    calls: list[str] = []

    def once(_: object) -> None:
        calls.append("once")
        unsubscribe()

    unsubscribe = channel.subscribe(Event.NODES_CHANGED, once)
    channel.subscribe(Event.NODES_CHANGED, lambda _: calls.append("always"))

    channel.emit(Event.NODES_CHANGED)
    channel.emit(Event.NODES_CHANGED)

    assert calls == ["once", "always", "always"]


def test_unsubscribing_unknown_handler_is_ignored() -> None:
    channel = EventChannel()

    channel.unsubscribe(Event.NODES_CHANGED, print)

    assert channel.handler_count(Event.NODES_CHANGED) == 0


def test_handler_errors_reach_the_emitter() -> None:
    channel = EventChannel()

    def broken(_: object) -> None:
        msg = "handler failed"
        raise RuntimeError(msg)

    channel.subscribe(Event.CONTENT_CHANGED, broken)

    with pytest.raises(RuntimeError, match="handler failed"):
        channel.emit(Event.CONTENT_CHANGED)


def test_subscribe_accepts_event_values() -> None:
    channel = EventChannel()
    calls: list[object] = []
    channel.subscribe("node_created", calls.append)  # type: ignore[arg-type]

    channel.emit(Event.NODE_CREATED, "payload")

    assert calls == ["payload"]
