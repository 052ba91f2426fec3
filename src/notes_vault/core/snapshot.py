"""Read, write and validate vault snapshot files."""

import json
import re
from datetime import date
from pathlib import Path
from typing import Any

from loguru import logger

from notes_vault.errors import SnapshotError
from notes_vault.models.node import NodeType, Snapshot


def default_export_name(today: date | None = None) -> str:
    """File name for an export made on the given day, e.g. vault-2024-05-01.json."""
    today = today or date.today()
    return f"vault-{today.isoformat()}.json"


def subtree_export_name(name: str) -> str:
    """File name for a subtree export, e.g. emerald_trolls-subtree.json."""
    slug = re.sub(r"[^a-z0-9]", "_", name, flags=re.IGNORECASE).lower()
    return f"{slug}-subtree.json"


def _write_json(data: dict[str, Any], path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")


def write_snapshot(snapshot: Snapshot, path: Path) -> Path:
    """Write a snapshot as pretty-printed JSON, creating parent directories."""
    _write_json(snapshot.to_dict(), path)
    logger.debug("Wrote snapshot with {} nodes to {}", len(snapshot.nodes), path)
    return path


def write_subtree(subtree: dict[str, Any], path: Path) -> Path:
    """Write a subtree export (see NodeStore.export_subtree) as pretty-printed JSON."""
    _write_json(subtree, path)
    logger.debug("Wrote subtree of {} to {}", subtree["node"]["id"], path)
    return path


def read_snapshot(path: Path) -> Snapshot:
    """Load a snapshot file, raising SnapshotError if it is not valid JSON."""
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        msg = f"{path} is not valid JSON: {e}"
        raise SnapshotError(msg) from e
    return Snapshot.from_dict(data)


def validate_snapshot(snapshot: Snapshot) -> list[str]:
    """Return a list of problems that would break the tree if imported.

    Dangling content links are not problems; they are tolerated everywhere.
    """
    problems: list[str] = []
    nodes = {}
    for node in snapshot.nodes:
        if node.id in nodes:
            problems.append(f"duplicate node id {node.id!r}")
        nodes[node.id] = node

    for node in nodes.values():
        if node.parent_id is None:
            continue
        parent = nodes.get(node.parent_id)
        if parent is None:
            problems.append(f"node {node.id!r} has unknown parent {node.parent_id!r}")
        elif parent.type is not NodeType.FOLDER:
            problems.append(f"node {node.id!r} has non-folder parent {node.parent_id!r}")

    for node in nodes.values():
        seen = {node.id}
        current = nodes.get(node.parent_id) if node.parent_id else None
        while current is not None:
            if current.id in seen:
                problems.append(f"node {node.id!r} has a cyclic ancestor chain")
                break
            seen.add(current.id)
            current = nodes.get(current.parent_id) if current.parent_id else None

    for content in snapshot.contents:
        owner = nodes.get(content.node_id)
        if owner is None:
            problems.append(f"content for unknown node {content.node_id!r}")
        elif owner.type is not NodeType.LEAF:
            problems.append(f"content attached to folder {content.node_id!r}")

    return problems
