"""Domain models for the notes vault."""

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from notes_vault.errors import SnapshotError

DEFAULT_ICON = "📄"
SNAPSHOT_VERSION = 2


class NodeType(StrEnum):
    """Kind of a tree node."""

    FOLDER = "folder"
    LEAF = "leaf"


@dataclass(frozen=True)
class Node:
    """A folder or a leaf note in the vault tree."""

    id: str
    parent_id: str | None
    type: NodeType
    name: str
    order_index: int
    active: bool = False
    created_at: int = 0
    updated_at: int = 0

    @property
    def is_folder(self) -> bool:
        return self.type is NodeType.FOLDER

    @property
    def is_leaf(self) -> bool:
        return self.type is NodeType.LEAF

    def to_record(self) -> dict[str, Any]:
        """Serialize to the camelCase record used in snapshots."""
        return {
            "id": self.id,
            "parentId": self.parent_id,
            "type": self.type.value,
            "name": self.name,
            "orderIndex": self.order_index,
            "active": self.active,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "Node":
        try:
            return cls(
                id=str(record["id"]),
                parent_id=record.get("parentId") or None,
                type=NodeType(record["type"]),
                name=str(record.get("name", "")),
                order_index=int(record.get("orderIndex", 0)),
                active=bool(record.get("active", False)),
                created_at=int(record.get("createdAt", 0)),
                updated_at=int(record.get("updatedAt", 0)),
            )
        except (KeyError, TypeError, ValueError) as e:
            msg = f"Invalid node record {record!r}: {e}"
            raise SnapshotError(msg) from e


def _unique(values: Any) -> tuple[str, ...]:
    """Drop duplicates, keeping first-seen order."""
    return tuple(dict.fromkeys(str(v) for v in values))


@dataclass(frozen=True)
class Content:
    """Structured body attached to exactly one leaf node."""

    node_id: str
    icon: str = DEFAULT_ICON
    markdown: str = ""
    fields: dict[str, str] = field(default_factory=dict)
    tags: tuple[str, ...] = ()
    links: tuple[str, ...] = ()
    updated_at: int = 0

    def __post_init__(self) -> None:
        # Tags and links behave as sets; normalize whatever sequence was given.
        object.__setattr__(self, "tags", _unique(self.tags))
        object.__setattr__(self, "links", _unique(self.links))
        object.__setattr__(self, "fields", {str(k): str(v) for k, v in self.fields.items()})

    @classmethod
    def default(cls, node_id: str, *, now: int = 0) -> "Content":
        return cls(node_id=node_id, updated_at=now)

    def to_record(self) -> dict[str, Any]:
        return {
            "nodeId": self.node_id,
            "icon": self.icon,
            "markdown": self.markdown,
            "fields": dict(self.fields),
            "tags": list(self.tags),
            "links": list(self.links),
            "updatedAt": self.updated_at,
        }

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "Content":
        try:
            return cls(
                node_id=str(record["nodeId"]),
                icon=str(record.get("icon") or DEFAULT_ICON),
                markdown=str(record.get("markdown", "")),
                fields=dict(record.get("fields") or {}),
                tags=tuple(record.get("tags") or ()),
                links=tuple(record.get("links") or ()),
                updated_at=int(record.get("updatedAt", 0)),
            )
        except (KeyError, TypeError, ValueError) as e:
            msg = f"Invalid content record {record!r}: {e}"
            raise SnapshotError(msg) from e


@dataclass(frozen=True)
class Snapshot:
    """A self-contained export of every node and content record."""

    version: int
    export_date: str
    nodes: tuple[Node, ...] = ()
    contents: tuple[Content, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "exportDate": self.export_date,
            "nodes": [n.to_record() for n in self.nodes],
            "contents": [c.to_record() for c in self.contents],
        }

    @classmethod
    def from_dict(cls, data: Any) -> "Snapshot":
        """Parse snapshot data, raising SnapshotError on malformed input."""
        if not isinstance(data, dict):
            msg = f"Snapshot must be a JSON object, got {type(data).__name__}"
            raise SnapshotError(msg)

        nodes = data.get("nodes", [])
        contents = data.get("contents", [])
        if not isinstance(nodes, list) or not isinstance(contents, list):
            msg = "Snapshot 'nodes' and 'contents' must be arrays"
            raise SnapshotError(msg)

        try:
            version = int(data.get("version", 0))
        except (TypeError, ValueError) as e:
            msg = f"Invalid snapshot version: {data.get('version')!r}"
            raise SnapshotError(msg) from e

        return cls(
            version=version,
            export_date=str(data.get("exportDate", "")),
            nodes=tuple(Node.from_record(r) for r in nodes),
            contents=tuple(Content.from_record(r) for r in contents),
        )


@dataclass(frozen=True)
class SearchResult:
    """A search hit with its score and root-to-node path."""

    node: Node
    score: int
    path: tuple[Node, ...] = ()

    @property
    def path_names(self) -> str:
        return " > ".join(n.name for n in self.path)
