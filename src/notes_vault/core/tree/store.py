"""The vault tree: in-memory node state kept in step with persistence.

Every mutation is written through the persistence port first and applied to
memory afterwards, then announced on the event channel. Persistence errors
propagate unchanged; a cascade that fails halfway leaves memory matching
storage up to the last completed step, and callers should reload.
"""

import time
import uuid
from collections import defaultdict
from collections.abc import Callable
from dataclasses import replace
from typing import Any

from loguru import logger

from notes_vault.config import RECENT_LIMIT, SEARCH_LIMIT
from notes_vault.core.events import Event, EventChannel, Handler
from notes_vault.core.search.index import SearchIndex
from notes_vault.core.snapshot import validate_snapshot
from notes_vault.core.tree.templates import (
    merge_template_fields,
    template_fields,
    template_icon,
)
from notes_vault.errors import CycleError, SnapshotError
from notes_vault.models.node import Content, Node, NodeType, SearchResult, Snapshot
from notes_vault.protocols import PersistenceProtocol

_IMMUTABLE_NODE_FIELDS = frozenset({"id", "type", "created_at"})


def _now_ms() -> int:
    return int(time.time() * 1000)


def _new_id() -> str:
    return uuid.uuid4().hex


class NodeStore:
    """Canonical tree state: nodes, root order, expansion and selection."""

    def __init__(
        self,
        repository: PersistenceProtocol,
        *,
        events: EventChannel | None = None,
        clock: Callable[[], int] | None = None,
        id_factory: Callable[[], str] | None = None,
    ) -> None:
        self.repository = repository
        self.events = events if events is not None else EventChannel()
        self._clock = clock or _now_ms
        self._new_id = id_factory or _new_id

        self.nodes: dict[str, Node] = {}
        self.root_nodes: list[str] = []
        self.expanded: set[str] = set()
        self.selected_id: str | None = None
        self.current_content: Content | None = None
        self.index = SearchIndex()
        self.initialized = False

    def subscribe(self, event: Event, handler: Handler) -> Callable[[], None]:
        return self.events.subscribe(event, handler)

    def close(self) -> None:
        self.repository.close()

    # --- Loading ---

    def load(self) -> None:
        """Replace in-memory state with what persistence holds."""
        nodes = self.repository.get_all_nodes()
        self.nodes = {n.id: n for n in nodes}
        self._sort_roots()
        self._rebuild_index()

        orphans = [
            n.id for n in nodes if n.parent_id is not None and n.parent_id not in self.nodes
        ]
        if orphans:
            logger.warning("{} nodes reference a missing parent: {}", len(orphans), orphans[:5])
        logger.debug("Loaded {} nodes ({} at root)", len(self.nodes), len(self.root_nodes))

        self.events.emit(Event.NODES_CHANGED)
        if not self.initialized:
            self.initialized = True
            self.events.emit(Event.INITIALIZED)

    # --- Queries ---

    def get_node(self, node_id: str) -> Node | None:
        return self.nodes.get(node_id)

    def get_content(self, node_id: str) -> Content:
        return self.repository.get_content(node_id)

    def get_children(self, parent_id: str | None) -> list[Node]:
        """Direct children of parent_id (None for the root level), by order_index."""
        children = [n for n in self.nodes.values() if n.parent_id == parent_id]
        return sorted(children, key=lambda n: n.order_index)

    def get_node_path(self, node_id: str) -> list[Node]:
        """Nodes from the root down to node_id inclusive; empty if unknown."""
        path: list[Node] = []
        seen: set[str] = set()
        current = self.nodes.get(node_id)
        while current is not None and current.id not in seen:
            seen.add(current.id)
            path.append(current)
            current = self.nodes.get(current.parent_id) if current.parent_id else None
        path.reverse()
        return path

    def is_descendant(self, candidate_id: str | None, ancestor_id: str) -> bool:
        """True if candidate_id is ancestor_id or lies somewhere below it."""
        seen: set[str] = set()
        current = candidate_id
        while current is not None and current not in seen:
            if current == ancestor_id:
                return True
            seen.add(current)
            node = self.nodes.get(current)
            current = node.parent_id if node else None
        return False

    def get_descendants(self, node_id: str) -> list[Node]:
        """Every node below node_id, children ahead of their parents."""
        if node_id not in self.nodes:
            return []
        return self._post_order(node_id)[:-1]

    def search(self, query: str, limit: int = SEARCH_LIMIT) -> list[SearchResult]:
        return [
            SearchResult(
                node=self.nodes[node_id],
                score=score,
                path=tuple(self.get_node_path(node_id)),
            )
            for node_id, score in self.index.search(query, limit)
        ]

    def get_active_notes(self) -> list[Node]:
        """Active leaves, most recently updated first."""
        active = [n for n in self.nodes.values() if n.is_leaf and n.active]
        return sorted(active, key=lambda n: n.updated_at, reverse=True)

    def get_recent_notes(self, limit: int = RECENT_LIMIT) -> list[Node]:
        leaves = [n for n in self.nodes.values() if n.is_leaf]
        return sorted(leaves, key=lambda n: n.updated_at, reverse=True)[:limit]

    def stats(self) -> dict[str, int]:
        leaves = [n for n in self.nodes.values() if n.is_leaf]
        return {
            "nodes": len(self.nodes),
            "folders": len(self.nodes) - len(leaves),
            "leaves": len(leaves),
            "active": sum(1 for n in leaves if n.active),
        }

    # --- Mutations ---

    def create_node(
        self,
        name: str,
        type: NodeType | str,
        parent_id: str | None = None,
        *,
        template: str | None = None,
        icon: str | None = None,
        active: bool = False,
    ) -> Node:
        """Create a folder or leaf at the end of parent_id's children.

        Leaves get a content record with the template's icon and fields.
        Raises ValueError if parent_id is not a known node.
        """
        node_type = NodeType(type)
        parent_id = self._resolve_parent(parent_id)
        now = self._clock()
        node = Node(
            id=self._new_id(),
            parent_id=parent_id,
            type=node_type,
            name=name,
            order_index=len(self.get_children(parent_id)),
            active=active and node_type is NodeType.LEAF,
            created_at=now,
            updated_at=now,
        )

        content = None
        if node_type is NodeType.LEAF:
            content = Content(
                node_id=node.id,
                icon=icon or template_icon(template),
                fields=template_fields(template),
                updated_at=now,
            )

        self._insert(node, content)
        return node

    def update_node(self, node_id: str, **changes: Any) -> Node | None:
        """Merge changes into a node; None if the node is unknown."""
        node = self.nodes.get(node_id)
        if node is None:
            return None

        bad = _IMMUTABLE_NODE_FIELDS & changes.keys()
        if bad:
            msg = f"Cannot change {', '.join(sorted(bad))} of node {node_id!r}"
            raise ValueError(msg)
        if "parent_id" in changes:
            msg = "Use move_node to change a node's parent"
            raise ValueError(msg)

        updated = replace(node, **{**changes, "updated_at": self._clock()})
        self.repository.save_node(updated)
        self.nodes[node_id] = updated

        if updated.parent_id is None and updated.order_index != node.order_index:
            self._sort_roots()
        if "name" in changes:
            self._rebuild_index()

        logger.debug("Updated node {} ({})", node_id, ", ".join(changes))
        self.events.emit(Event.NODE_UPDATED, updated)
        return updated

    def rename_node(self, node_id: str, name: str) -> Node | None:
        return self.update_node(node_id, name=name)

    def delete_node(self, node_id: str) -> bool:
        """Delete a node, its descendants and their content, children first.

        Returns False if the node is unknown.
        """
        node = self.nodes.get(node_id)
        if node is None:
            return False

        doomed = self._post_order(node_id)
        for target in doomed:
            self.repository.delete_node_and_content(target.id)
            self._forget(target.id)
            self.events.emit(Event.NODE_DELETED, target.id)

        self._close_gap(node.parent_id, node.order_index)
        self._rebuild_index()
        logger.debug("Deleted node {} and {} descendants", node_id, len(doomed) - 1)
        self.events.emit(Event.NODES_CHANGED)
        return True

    def move_node(self, node_id: str, new_parent_id: str | None) -> Node | None:
        """Append a node to new_parent_id's children (None moves it to the root).

        Raises CycleError before touching anything if the target is the node
        itself or one of its descendants. Dropping onto a leaf places the node
        next to that leaf. The old sibling group keeps its order_index values.
        Returns None if the node or the target is unknown.
        """
        node = self.nodes.get(node_id)
        if node is None:
            return None
        if self.is_descendant(new_parent_id, node_id):
            raise CycleError(node_id, new_parent_id)

        target_id = new_parent_id
        if target_id is not None:
            target = self.nodes.get(target_id)
            if target is None:
                return None
            if target.is_leaf:
                target_id = target.parent_id

        updated = replace(
            node,
            parent_id=target_id,
            order_index=len(self.get_children(target_id)),
            updated_at=self._clock(),
        )
        self.repository.save_node(updated)
        self.nodes[node_id] = updated

        if target_id is None:
            if node_id not in self.root_nodes:
                self.root_nodes.append(node_id)
            self._sort_roots()
        elif node_id in self.root_nodes:
            self.root_nodes.remove(node_id)

        self._rebuild_index()
        logger.debug("Moved node {} under {}", node_id, target_id)
        self.events.emit(Event.NODE_MOVED, updated)
        self.events.emit(Event.NODES_CHANGED)
        return updated

    def reorder_node(self, node_id: str, new_index: int) -> bool:
        """Move a node to new_index among its siblings and renumber the group.

        Out-of-range indexes and unchanged positions are no-ops (False).
        """
        node = self.nodes.get(node_id)
        if node is None:
            return False

        siblings = self.get_children(node.parent_id)
        old_index = next(i for i, s in enumerate(siblings) if s.id == node_id)
        if not 0 <= new_index < len(siblings) or new_index == old_index:
            return False

        siblings.insert(new_index, siblings.pop(old_index))
        now = self._clock()
        for position, sibling in enumerate(siblings):
            if sibling.order_index != position:
                renumbered = replace(sibling, order_index=position, updated_at=now)
                self.repository.save_node(renumbered)
                self.nodes[sibling.id] = renumbered

        if node.parent_id is None:
            self._sort_roots()
        self.events.emit(Event.NODES_CHANGED)
        return True

    def duplicate_node(self, node_id: str) -> Node | None:
        """Copy a node and its subtree next to the original.

        The top-level copy is named "<name> (Copy)"; leaf content is copied
        verbatim under the new ids.
        """
        node = self.nodes.get(node_id)
        if node is None:
            return None

        children = self._children_by_parent()
        top = self._copy(node, f"{node.name} (Copy)", node.parent_id)

        stack = [(child, top.id) for child in reversed(children[node.id])]
        while stack:
            source, parent_id = stack.pop()
            copy = self._copy(source, source.name, parent_id)
            stack.extend((child, copy.id) for child in reversed(children[source.id]))

        logger.debug("Duplicated node {} as {}", node_id, top.id)
        return top

    def toggle_active(self, node_id: str) -> Node | None:
        """Flip the active flag of a leaf; None for folders and unknown ids."""
        node = self.nodes.get(node_id)
        if node is None or not node.is_leaf:
            return None
        updated = self.update_node(node_id, active=not node.active)
        self.events.emit(Event.ACTIVE_CHANGED, node_id)
        return updated

    # --- Selection and content ---

    def select_node(self, node_id: str | None) -> None:
        """Select a node (None clears), loading a leaf's content."""
        content = None
        if node_id is not None:
            node = self.nodes.get(node_id)
            if node is not None and node.is_leaf:
                content = self.repository.get_content(node_id)

        self.selected_id = node_id
        self.current_content = content
        self.events.emit(Event.SELECTION_CHANGED, node_id)

    def update_content(self, **changes: Any) -> Content | None:
        """Merge changes into the selected leaf's content.

        No-op (None) when nothing with content is selected. Tags are not part
        of the search index, so this never rebuilds it.
        """
        if self.selected_id is None or self.current_content is None:
            return None
        if "node_id" in changes:
            msg = "Cannot change the node_id of content"
            raise ValueError(msg)

        updated = replace(self.current_content, **{**changes, "updated_at": self._clock()})
        self.repository.save_content(updated)
        self.current_content = updated
        self.events.emit(Event.CONTENT_CHANGED, updated)
        return updated

    def apply_template(self, template: str) -> Content | None:
        """Fill in a template's fields on the selected leaf.

        Fields the note already has keep their values. Raises ValueError for
        unknown templates.
        """
        if self.current_content is None:
            return None
        fields = merge_template_fields(template, self.current_content.fields)
        return self.update_content(fields=fields)

    # --- Expansion ---

    def toggle_expanded(self, node_id: str) -> bool:
        """Flip a folder's expansion state; returns the new state."""
        if node_id in self.expanded:
            self.expanded.discard(node_id)
        else:
            self.expanded.add(node_id)
        self.events.emit(Event.EXPANSION_CHANGED, node_id)
        return node_id in self.expanded

    def is_expanded(self, node_id: str) -> bool:
        return node_id in self.expanded

    def expand_path(self, node_id: str) -> None:
        """Expand every folder above node_id so it is visible."""
        for ancestor in self.get_node_path(node_id)[:-1]:
            if ancestor.is_folder and ancestor.id not in self.expanded:
                self.expanded.add(ancestor.id)
                self.events.emit(Event.EXPANSION_CHANGED, ancestor.id)

    # --- Export / import ---

    def export_vault(self) -> Snapshot:
        snapshot = self.repository.export_all()
        logger.info(
            "Exported {} nodes and {} contents", len(snapshot.nodes), len(snapshot.contents)
        )
        return snapshot

    def export_subtree(self, node_id: str) -> dict[str, Any] | None:
        """A node with its content and nested children, for sharing one branch.

        Returns None if the node is unknown.
        """
        if node_id not in self.nodes:
            return None

        def _collect(node: Node) -> dict[str, Any]:
            content = self.repository.get_content(node.id) if node.is_leaf else None
            return {
                "node": node.to_record(),
                "content": content.to_record() if content else None,
                "children": [_collect(c) for c in self.get_children(node.id)],
            }

        subtree = _collect(self.nodes[node_id])
        logger.info("Exported subtree of {}", node_id)
        return subtree

    def import_vault(self, snapshot: Snapshot) -> None:
        """Replace the whole vault with a snapshot, then reload.

        Raises SnapshotError if the snapshot would break the tree invariants.
        """
        problems = validate_snapshot(snapshot)
        if problems:
            msg = f"Refusing to import snapshot: {'; '.join(problems[:5])}"
            raise SnapshotError(msg)

        self.repository.import_all(snapshot)
        self.selected_id = None
        self.current_content = None
        self.expanded.clear()
        self.load()
        self.events.emit(Event.SELECTION_CHANGED, None)

    # --- Internals ---

    def _resolve_parent(self, parent_id: str | None) -> str | None:
        if parent_id is None:
            return None
        parent = self.nodes.get(parent_id)
        if parent is None:
            msg = f"Unknown parent node {parent_id!r}"
            raise ValueError(msg)
        return parent_id if parent.is_folder else parent.parent_id

    def _insert(self, node: Node, content: Content | None) -> None:
        self.repository.save_node(node)
        if content is not None:
            self.repository.save_content(content)

        self.nodes[node.id] = node
        if node.parent_id is None:
            self.root_nodes.append(node.id)
        self._rebuild_index()

        logger.debug("Created {} {!r} ({})", node.type, node.name, node.id)
        self.events.emit(Event.NODE_CREATED, node)
        self.events.emit(Event.NODES_CHANGED)

    def _copy(self, source: Node, name: str, parent_id: str | None) -> Node:
        now = self._clock()
        node = Node(
            id=self._new_id(),
            parent_id=parent_id,
            type=source.type,
            name=name,
            order_index=len(self.get_children(parent_id)),
            created_at=now,
            updated_at=now,
        )
        content = None
        if source.is_leaf:
            content = replace(self.repository.get_content(source.id), node_id=node.id)
        self._insert(node, content)
        return node

    def _children_by_parent(self) -> defaultdict[str | None, list[Node]]:
        children: defaultdict[str | None, list[Node]] = defaultdict(list)
        for node in self.nodes.values():
            children[node.parent_id].append(node)
        for group in children.values():
            group.sort(key=lambda n: n.order_index)
        return children

    def _post_order(self, node_id: str) -> list[Node]:
        """node_id's subtree with every child ahead of its parent."""
        children = self._children_by_parent()
        visited: list[Node] = []
        stack = [self.nodes[node_id]]
        while stack:
            current = stack.pop()
            visited.append(current)
            stack.extend(children[current.id])
        visited.reverse()
        return visited

    def _forget(self, node_id: str) -> None:
        del self.nodes[node_id]
        if node_id in self.root_nodes:
            self.root_nodes.remove(node_id)
        self.expanded.discard(node_id)
        if self.selected_id == node_id:
            self.selected_id = None
            self.current_content = None
            self.events.emit(Event.SELECTION_CHANGED, None)

    def _close_gap(self, parent_id: str | None, removed_index: int) -> None:
        """Shift later siblings down by one after a removal."""
        now = self._clock()
        for sibling in self.get_children(parent_id):
            if sibling.order_index > removed_index:
                shifted = replace(sibling, order_index=sibling.order_index - 1, updated_at=now)
                self.repository.save_node(shifted)
                self.nodes[sibling.id] = shifted
        if parent_id is None:
            self._sort_roots()

    def _sort_roots(self) -> None:
        self.root_nodes = [n.id for n in self.get_children(None)]

    def _rebuild_index(self) -> None:
        self.index.rebuild(self.nodes.values(), self.get_node_path)
