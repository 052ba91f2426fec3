"""MCP server exposing vault search, navigation and note editing tools."""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from loguru import logger
from mcp.server.fastmcp import Context, FastMCP

from notes_vault.config import RECENT_LIMIT, SEARCH_LIMIT, db_path, resolve_data_directory
from notes_vault.core.database.repository import SqliteRepository
from notes_vault.core.tree.markdown import render_subtree_as_markdown
from notes_vault.core.tree.store import NodeStore
from notes_vault.errors import VaultError
from notes_vault.models.node import Node, NodeType


def _iso(ms: int) -> str:
    return datetime.fromtimestamp(ms / 1000, tz=UTC).isoformat()


def _path_str(store: NodeStore, node_id: str) -> str:
    return " > ".join(n.name for n in store.get_node_path(node_id))


def _node_entry(store: NodeStore, node: Node) -> dict[str, Any]:
    entry: dict[str, Any] = {
        "node_id": node.id,
        "name": node.name,
        "type": node.type.value,
        "path": _path_str(store, node.id),
        "updated": _iso(node.updated_at),
    }
    if node.is_leaf:
        entry["active"] = node.active
    else:
        entry["child_count"] = len(store.get_children(node.id))
    return entry


# --- Core functions (testable without MCP context) ---


def vault_search(store: NodeStore, *, query: str = "", limit: int = SEARCH_LIMIT) -> dict[str, Any]:
    """Search node names and paths.

    Exact name matches rank first, then name prefixes, then substrings;
    a match anywhere in the path adds a small bonus.

    Args:
        query: Search text (case-insensitive).
        limit: Max results (1-50, default 20).
    """
    if not query.strip():
        return {"error": "No search query provided.", "results": [], "count": 0}

    limit = max(1, min(limit, 50))
    results = [
        {**_node_entry(store, r.node), "score": r.score} for r in store.search(query, limit)
    ]
    return {"results": results, "count": len(results)}


def vault_read_node(
    store: NodeStore,
    *,
    node_id: str,
    max_depth: int | None = None,
    output_format: str = "markdown",
) -> dict[str, Any]:
    """Read a note, or a folder with everything below it.

    Args:
        node_id: Node to start from.
        max_depth: Levels below node_id to include (None = all).
        output_format: "markdown" for an indented outline, "json" for nested records.
    """
    node = store.get_node(node_id)
    if node is None:
        return {"error": f"Node '{node_id}' not found."}

    if output_format == "markdown":
        md = render_subtree_as_markdown(store, node_id=node_id, max_depth=max_depth)
        return {"content": md, "node_id": node_id, "path": _path_str(store, node_id)}

    def _build(current: Node, remaining_depth: int | None) -> dict[str, Any]:
        entry: dict[str, Any] = {"id": current.id, "name": current.name, "type": current.type.value}
        if current.is_leaf:
            entry["content"] = store.get_content(current.id).to_record()
        children = store.get_children(current.id)
        if children and (remaining_depth is None or remaining_depth > 0):
            next_depth = None if remaining_depth is None else remaining_depth - 1
            entry["children"] = [_build(c, next_depth) for c in children]
        elif children:
            entry["child_count"] = len(children)
        return entry

    return {"node": _build(node, max_depth), "path": _path_str(store, node_id)}


def vault_list_children(store: NodeStore, *, node_id: str | None = None) -> dict[str, Any]:
    """List the direct children of a folder, or the root level when node_id is None."""
    if node_id is not None and store.get_node(node_id) is None:
        return {"error": f"Node '{node_id}' not found.", "children": [], "count": 0}
    children = [_node_entry(store, c) for c in store.get_children(node_id)]
    return {"children": children, "count": len(children)}


def vault_recent_notes(
    store: NodeStore, *, limit: int = RECENT_LIMIT, active_only: bool = False
) -> dict[str, Any]:
    """Recently updated notes, or only the active ones."""
    limit = max(1, min(limit, 100))
    notes = store.get_active_notes()[:limit] if active_only else store.get_recent_notes(limit)
    return {"notes": [_node_entry(store, n) for n in notes], "count": len(notes)}


def vault_create_node(
    store: NodeStore,
    *,
    name: str,
    node_type: str = "leaf",
    parent_id: str | None = None,
    template: str | None = None,
) -> dict[str, Any]:
    """Create a folder or note at the end of a folder's children."""
    if not name.strip():
        return {"success": False, "error": "Name must not be empty."}
    try:
        node = store.create_node(name.strip(), NodeType(node_type), parent_id, template=template)
    except (ValueError, VaultError) as e:
        return {"success": False, "error": str(e)}
    return {"success": True, **_node_entry(store, node)}


def vault_update_content(
    store: NodeStore,
    *,
    node_id: str,
    markdown: str | None = None,
    fields: dict[str, str] | None = None,
    tags: list[str] | None = None,
) -> dict[str, Any]:
    """Replace a note's body, merge fields, or replace its tags."""
    node = store.get_node(node_id)
    if node is None or not node.is_leaf:
        return {"success": False, "error": f"Note '{node_id}' not found."}

    try:
        store.select_node(node_id)
        current = store.current_content
        changes: dict[str, Any] = {}
        if markdown is not None:
            changes["markdown"] = markdown
        if fields:
            changes["fields"] = {**(current.fields if current else {}), **fields}
        if tags is not None:
            changes["tags"] = tags
        if not changes:
            return {"success": False, "error": "No fields to update."}
        content = store.update_content(**changes)
    except VaultError as e:
        return {"success": False, "error": str(e)}

    if content is None:
        return {"success": False, "error": f"Note '{node_id}' could not be selected."}
    return {"success": True, "node_id": node_id, "content": content.to_record()}


# --- MCP Server Setup ---


@dataclass
class ServerContext:
    """The loaded vault, shared by every tool call."""

    store: NodeStore
    # Store operations are read-modify-write; run them one at a time.
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)


@asynccontextmanager
async def server_lifespan(_server: FastMCP) -> AsyncIterator[ServerContext]:
    """Open and load the vault on startup, close on shutdown."""
    path = db_path(resolve_data_directory())
    store = NodeStore(SqliteRepository.open(path))
    try:
        store.load()
        logger.info("Serving vault {} ({} nodes)", path, len(store.nodes))
        yield ServerContext(store=store)
    finally:
        store.close()


mcp_server = FastMCP(
    "notes-vault",
    instructions="""\
The vault is a tree of folders and notes. Notes carry an icon, a markdown
body, named fields, tags and links to other notes.

1. Use vault_search_tool to find notes by name or folder path.
2. Use vault_read_node_tool on a result to read its body, or on a folder to
   read everything below it (use max_depth for large folders).
3. Use vault_list_children_tool to browse folder by folder.
""",
    lifespan=server_lifespan,
)


def _ctx(mcp_ctx: Context) -> ServerContext:
    return mcp_ctx.request_context.lifespan_context  # type: ignore[return-value]


# --- MCP Tool Wrappers ---


@mcp_server.tool()
async def vault_search_tool(ctx: Context, query: str, limit: int = SEARCH_LIMIT) -> dict[str, Any]:
    """Search note and folder names and paths.

    Args:
        query: Search text (case-insensitive substring).
        limit: Max results (1-50, default 20).
    """
    async with _ctx(ctx).lock:
        return vault_search(_ctx(ctx).store, query=query, limit=limit)


@mcp_server.tool()
async def vault_read_node_tool(
    ctx: Context,
    node_id: str,
    max_depth: int | None = None,
    output_format: str = "markdown",
) -> dict[str, Any]:
    """Read a note, or a folder and everything below it.

    Args:
        node_id: Node ID from search or listing results.
        max_depth: Max depth levels (None = unlimited).
        output_format: "markdown" (human-readable) or "json" (structured).
    """
    async with _ctx(ctx).lock:
        return vault_read_node(
            _ctx(ctx).store, node_id=node_id, max_depth=max_depth, output_format=output_format
        )


@mcp_server.tool()
async def vault_list_children_tool(ctx: Context, node_id: str | None = None) -> dict[str, Any]:
    """List a folder's direct children (omit node_id for the top level)."""
    async with _ctx(ctx).lock:
        return vault_list_children(_ctx(ctx).store, node_id=node_id)


@mcp_server.tool()
async def vault_recent_notes_tool(
    ctx: Context, limit: int = RECENT_LIMIT, active_only: bool = False
) -> dict[str, Any]:
    """Recently updated notes; set active_only to list the active ones."""
    async with _ctx(ctx).lock:
        return vault_recent_notes(_ctx(ctx).store, limit=limit, active_only=active_only)


@mcp_server.tool()
async def vault_create_node_tool(
    ctx: Context,
    name: str,
    node_type: str = "leaf",
    parent_id: str | None = None,
    template: str | None = None,
) -> dict[str, Any]:
    """Create a note ("leaf") or folder under parent_id (omit for the top level).

    Args:
        name: Name of the new node.
        node_type: "leaf" or "folder".
        parent_id: Parent folder ID.
        template: Note template: npc, location, item, quest, monster or faction.
    """
    async with _ctx(ctx).lock:
        return vault_create_node(
            _ctx(ctx).store, name=name, node_type=node_type, parent_id=parent_id, template=template
        )


@mcp_server.tool()
async def vault_update_content_tool(
    ctx: Context,
    node_id: str,
    markdown: str | None = None,
    fields: dict[str, str] | None = None,
    tags: list[str] | None = None,
) -> dict[str, Any]:
    """Update a note: replace its markdown body, merge fields, or replace tags.

    Args:
        node_id: Note ID.
        markdown: New markdown body.
        fields: Fields to set (merged into the existing ones).
        tags: New tag list.
    """
    async with _ctx(ctx).lock:
        return vault_update_content(
            _ctx(ctx).store, node_id=node_id, markdown=markdown, fields=fields, tags=tags
        )


def run_mcp_server() -> None:
    """Run the MCP server with stdio transport."""
    from notes_vault.logging_config import configure_logging

    configure_logging(quiet=True)
    mcp_server.run(transport="stdio")
