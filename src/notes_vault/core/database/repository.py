"""SQLite-backed persistence for nodes and leaf content."""

import json
import sqlite3
import time
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, datetime
from pathlib import Path

from loguru import logger

from notes_vault.core.database.schema import migrate_schema
from notes_vault.errors import PersistenceError
from notes_vault.models.node import SNAPSHOT_VERSION, Content, Node, NodeType, Snapshot

_NODE_COLUMNS = "id, parent_id, type, name, order_index, active, created_at, updated_at"
_CONTENT_COLUMNS = "node_id, icon, markdown, fields, tags, links, updated_at"

# Upserts keep the rowid stable, so load order survives updates.
_UPSERT_NODE = (
    f"INSERT INTO nodes ({_NODE_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?) "
    "ON CONFLICT(id) DO UPDATE SET parent_id = excluded.parent_id, type = excluded.type, "
    "name = excluded.name, order_index = excluded.order_index, active = excluded.active, "
    "created_at = excluded.created_at, updated_at = excluded.updated_at"
)
_UPSERT_CONTENT = (
    f"INSERT INTO contents ({_CONTENT_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?) "
    "ON CONFLICT(node_id) DO UPDATE SET icon = excluded.icon, markdown = excluded.markdown, "
    "fields = excluded.fields, tags = excluded.tags, links = excluded.links, "
    "updated_at = excluded.updated_at"
)


@contextmanager
def _translate_errors(action: str) -> Iterator[None]:
    """Re-raise sqlite3 errors as PersistenceError."""
    try:
        yield
    except sqlite3.Error as e:
        msg = f"Failed to {action}: {e}"
        raise PersistenceError(msg) from e


def _row_to_node(row: sqlite3.Row | tuple) -> Node:
    return Node(
        id=row[0],
        parent_id=row[1],
        type=NodeType(row[2]),
        name=row[3],
        order_index=row[4],
        active=bool(row[5]),
        created_at=row[6],
        updated_at=row[7],
    )


def _row_to_content(row: sqlite3.Row | tuple) -> Content:
    return Content(
        node_id=row[0],
        icon=row[1],
        markdown=row[2],
        fields=json.loads(row[3]),
        tags=tuple(json.loads(row[4])),
        links=tuple(json.loads(row[5])),
        updated_at=row[6],
    )


def _node_params(n: Node) -> tuple:
    return (
        n.id, n.parent_id, n.type.value, n.name, n.order_index,
        int(n.active), n.created_at, n.updated_at,
    )


def _content_params(c: Content) -> tuple:
    return (
        c.node_id, c.icon, c.markdown,
        json.dumps(c.fields, ensure_ascii=False),
        json.dumps(list(c.tags), ensure_ascii=False),
        json.dumps(list(c.links), ensure_ascii=False),
        c.updated_at,
    )


class SqliteRepository:
    """Persistence port implementation on a single SQLite connection.

    Multi-record operations run inside one transaction, so a failure leaves
    the database as it was before the call.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn

    @classmethod
    def open(cls, db_path: str | Path) -> "SqliteRepository":
        """Open (creating if needed) the vault database at db_path."""
        if str(db_path) != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        with _translate_errors(f"open vault database {db_path}"):
            conn = sqlite3.connect(str(db_path))
            try:
                conn.execute("PRAGMA journal_mode=WAL")
                migrate_schema(conn)
            except sqlite3.Error:
                conn.close()
                raise
        logger.debug("Opened vault database {}", db_path)
        return cls(conn)

    def close(self) -> None:
        self.conn.close()

    def get_all_nodes(self) -> list[Node]:
        with _translate_errors("read nodes"):
            rows = self.conn.execute(
                f"SELECT {_NODE_COLUMNS} FROM nodes ORDER BY rowid"
            ).fetchall()
        return [_row_to_node(r) for r in rows]

    def get_children(self, parent_id: str | None) -> list[Node]:
        with _translate_errors("read children"):
            rows = self.conn.execute(
                f"SELECT {_NODE_COLUMNS} FROM nodes WHERE parent_id IS ? "
                "ORDER BY order_index, rowid",
                (parent_id,),
            ).fetchall()
        return [_row_to_node(r) for r in rows]

    def save_node(self, node: Node) -> None:
        with _translate_errors(f"save node {node.id}"), self.conn:
            self.conn.execute(_UPSERT_NODE, _node_params(node))

    def delete_node_and_content(self, node_id: str) -> None:
        with _translate_errors(f"delete node {node_id}"), self.conn:
            self.conn.execute("DELETE FROM contents WHERE node_id = ?", (node_id,))
            self.conn.execute("DELETE FROM nodes WHERE id = ?", (node_id,))

    def get_content(self, node_id: str) -> Content:
        with _translate_errors(f"read content {node_id}"):
            row = self.conn.execute(
                f"SELECT {_CONTENT_COLUMNS} FROM contents WHERE node_id = ?",
                (node_id,),
            ).fetchone()
        if row is None:
            return Content.default(node_id, now=int(time.time() * 1000))
        return _row_to_content(row)

    def save_content(self, content: Content) -> None:
        with _translate_errors(f"save content {content.node_id}"), self.conn:
            self.conn.execute(_UPSERT_CONTENT, _content_params(content))

    def export_all(self) -> Snapshot:
        with _translate_errors("export vault"):
            node_rows = self.conn.execute(
                f"SELECT {_NODE_COLUMNS} FROM nodes ORDER BY rowid"
            ).fetchall()
            content_rows = self.conn.execute(
                f"SELECT {_CONTENT_COLUMNS} FROM contents ORDER BY rowid"
            ).fetchall()
        return Snapshot(
            version=SNAPSHOT_VERSION,
            export_date=datetime.now(tz=UTC).isoformat(),
            nodes=tuple(_row_to_node(r) for r in node_rows),
            contents=tuple(_row_to_content(r) for r in content_rows),
        )

    def import_all(self, snapshot: Snapshot) -> None:
        with _translate_errors("import vault"), self.conn:
            self.conn.execute("DELETE FROM contents")
            self.conn.execute("DELETE FROM nodes")
            self.conn.executemany(
                f"INSERT INTO nodes ({_NODE_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                [_node_params(n) for n in snapshot.nodes],
            )
            self.conn.executemany(
                f"INSERT INTO contents ({_CONTENT_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?)",
                [_content_params(c) for c in snapshot.contents],
            )
        logger.info(
            "Imported {} nodes and {} contents", len(snapshot.nodes), len(snapshot.contents)
        )
