"""CLI for the notes vault (browse, edit, search, export/import, MCP server)."""

import json
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, datetime
from pathlib import Path
from typing import Annotated

import typer
from loguru import logger

from notes_vault.config import RECENT_LIMIT, SEARCH_LIMIT, db_path, resolve_data_directory
from notes_vault.core.database.repository import SqliteRepository
from notes_vault.core.seed import seed_example_vault
from notes_vault.core.snapshot import (
    default_export_name,
    read_snapshot,
    subtree_export_name,
    write_snapshot,
    write_subtree,
)
from notes_vault.core.tree.markdown import FOLDER_ICON, render_subtree_as_markdown
from notes_vault.core.tree.store import NodeStore
from notes_vault.errors import VaultError
from notes_vault.logging_config import configure_logging
from notes_vault.models.node import Node, NodeType

app = typer.Typer(help="Notes vault: organize folders and notes, search and export them.")

DataDirOption = Annotated[
    Path | None,
    typer.Option("--data-dir", "-d", help="Vault data directory (default: $NOTES_VAULT_DIR)"),
]


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    configure_logging(verbose=verbose)


@contextmanager
def _open_store(data_dir: Path | None, *, create: bool = False) -> Iterator[NodeStore]:
    """Open and load the vault, turning vault errors into exit code 1."""
    path = db_path(data_dir or resolve_data_directory())
    if not create and not path.exists():
        logger.error("Vault database not found: {}. Run 'init' first.", path)
        raise typer.Exit(1)

    try:
        store = NodeStore(SqliteRepository.open(path))
        store.load()
    except VaultError as e:
        logger.error("{}", e)
        raise typer.Exit(1) from e

    try:
        yield store
    except VaultError as e:
        logger.error("{}", e)
        raise typer.Exit(1) from e
    finally:
        store.close()


def _resolve_node(store: NodeStore, ref: str) -> Node:
    """Find a node by id, unique id prefix, or unique name (case-insensitive)."""
    node = store.get_node(ref)
    if node is not None:
        return node

    matches = [n for n in store.nodes.values() if n.id.startswith(ref)]
    if not matches:
        matches = [n for n in store.nodes.values() if n.name.lower() == ref.lower()]
    if len(matches) == 1:
        return matches[0]

    if matches:
        typer.echo(f"'{ref}' is ambiguous ({len(matches)} matches); use a longer id.")
    else:
        typer.echo(f"Node '{ref}' not found.")
    raise typer.Exit(1)


def _short(node_id: str) -> str:
    return node_id[:8]


def _format_time(ms: int) -> str:
    return f"{datetime.fromtimestamp(ms / 1000, tz=UTC):%Y-%m-%d %H:%M}"


@app.command()
def init(
    seed: bool = typer.Option(False, "--seed", help="Add an example campaign to an empty vault"),
    data_dir: DataDirOption = None,
) -> None:
    """Create the vault database."""
    with _open_store(data_dir, create=True) as store:
        if seed:
            if store.nodes:
                logger.warning("Vault already has {} nodes, not seeding", len(store.nodes))
            else:
                seed_example_vault(store)
        typer.echo(f"Vault ready at {db_path(data_dir or resolve_data_directory())}")


@app.command()
def tree(data_dir: DataDirOption = None) -> None:
    """Print the whole tree with node ids."""
    with _open_store(data_dir) as store:
        if not store.nodes:
            typer.echo("Vault is empty.")
            return

        stack = [(store.nodes[i], 0) for i in reversed(store.root_nodes)]
        while stack:
            node, depth = stack.pop()
            icon = FOLDER_ICON if node.is_folder else store.get_content(node.id).icon
            marker = " *" if node.active else ""
            typer.echo(f"{'  ' * depth}{icon} {node.name}{marker}  [{_short(node.id)}]")
            stack.extend((c, depth + 1) for c in reversed(store.get_children(node.id)))


@app.command()
def create(
    name: str = typer.Argument(..., help="Name of the new node"),
    folder: bool = typer.Option(False, "--folder", "-F", help="Create a folder instead of a note"),
    parent: Annotated[
        str | None, typer.Option("--parent", "-p", help="Parent folder id or name")
    ] = None,
    template: Annotated[
        str | None, typer.Option("--template", "-t", help="Note template (npc, location, ...)")
    ] = None,
    icon: Annotated[str | None, typer.Option("--icon", help="Icon for the note")] = None,
    active: bool = typer.Option(False, "--active", help="Mark the note active"),
    data_dir: DataDirOption = None,
) -> None:
    """Create a folder or note."""
    if not name.strip():
        typer.echo("Name must not be empty.")
        raise typer.Exit(1)

    with _open_store(data_dir) as store:
        parent_id = _resolve_node(store, parent).id if parent else None
        node = store.create_node(
            name.strip(),
            NodeType.FOLDER if folder else NodeType.LEAF,
            parent_id,
            template=template,
            icon=icon,
            active=active,
        )
        typer.echo(f"Created {node.type} '{node.name}' [{node.id}]")


@app.command()
def rename(
    ref: str = typer.Argument(..., help="Node id or name"),
    name: str = typer.Argument(..., help="New name"),
    data_dir: DataDirOption = None,
) -> None:
    """Rename a node."""
    if not name.strip():
        typer.echo("Name must not be empty.")
        raise typer.Exit(1)
    with _open_store(data_dir) as store:
        node = _resolve_node(store, ref)
        store.rename_node(node.id, name.strip())
        typer.echo(f"Renamed '{node.name}' to '{name.strip()}'")


@app.command()
def move(
    ref: str = typer.Argument(..., help="Node id or name"),
    to: Annotated[
        str | None, typer.Option("--to", help="Target folder id or name (omit for root)")
    ] = None,
    data_dir: DataDirOption = None,
) -> None:
    """Move a node under another folder, or to the root."""
    with _open_store(data_dir) as store:
        node = _resolve_node(store, ref)
        target_id = _resolve_node(store, to).id if to else None
        moved = store.move_node(node.id, target_id) or node
        where = " > ".join(n.name for n in store.get_node_path(moved.id)[:-1]) or "root"
        typer.echo(f"Moved '{moved.name}' to {where}")


@app.command()
def reorder(
    ref: str = typer.Argument(..., help="Node id or name"),
    index: int = typer.Argument(..., help="New zero-based position among siblings"),
    data_dir: DataDirOption = None,
) -> None:
    """Change a node's position among its siblings."""
    with _open_store(data_dir) as store:
        node = _resolve_node(store, ref)
        if store.reorder_node(node.id, index):
            typer.echo(f"Moved '{node.name}' to position {index}")
        else:
            typer.echo("Nothing to reorder.")


@app.command()
def duplicate(
    ref: str = typer.Argument(..., help="Node id or name"),
    data_dir: DataDirOption = None,
) -> None:
    """Copy a node and everything below it."""
    with _open_store(data_dir) as store:
        copy = store.duplicate_node(_resolve_node(store, ref).id)
        if copy is not None:
            typer.echo(f"Created '{copy.name}' [{copy.id}]")


@app.command()
def delete(
    ref: str = typer.Argument(..., help="Node id or name"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
    data_dir: DataDirOption = None,
) -> None:
    """Delete a node and everything below it."""
    with _open_store(data_dir) as store:
        node = _resolve_node(store, ref)
        descendants = len(store.get_descendants(node.id))
        if not yes:
            typer.confirm(
                f"Delete '{node.name}' and {descendants} descendants?", abort=True
            )
        store.delete_node(node.id)
        typer.echo(f"Deleted '{node.name}'")


@app.command("toggle-active")
def toggle_active(
    ref: str = typer.Argument(..., help="Note id or name"),
    data_dir: DataDirOption = None,
) -> None:
    """Mark a note active or inactive."""
    with _open_store(data_dir) as store:
        node = store.toggle_active(_resolve_node(store, ref).id)
        if node is None:
            typer.echo("Only notes can be active.")
            raise typer.Exit(1)
        typer.echo(f"'{node.name}' is now {'active' if node.active else 'inactive'}")


def _parse_fields(pairs: list[str]) -> dict[str, str]:
    fields = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key.strip():
            typer.echo(f"Invalid field '{pair}', expected KEY=VALUE.")
            raise typer.Exit(1)
        fields[key.strip()] = value
    return fields


@app.command()
def edit(
    ref: str = typer.Argument(..., help="Note id or name"),
    markdown: Annotated[str | None, typer.Option("--markdown", "-m", help="New body")] = None,
    markdown_file: Annotated[
        Path | None, typer.Option("--markdown-file", help="Read the new body from a file")
    ] = None,
    icon: Annotated[str | None, typer.Option("--icon", help="New icon")] = None,
    field: Annotated[
        list[str] | None, typer.Option("--field", "-f", help="Set a field (KEY=VALUE)")
    ] = None,
    tag: Annotated[list[str] | None, typer.Option("--tag", help="Add a tag")] = None,
    untag: Annotated[list[str] | None, typer.Option("--untag", help="Remove a tag")] = None,
    link: Annotated[list[str] | None, typer.Option("--link", help="Link to a node")] = None,
    unlink: Annotated[
        list[str] | None, typer.Option("--unlink", help="Remove a link to a node")
    ] = None,
    template: Annotated[
        str | None,
        typer.Option("--template", "-t", help="Add a template's missing fields"),
    ] = None,
    data_dir: DataDirOption = None,
) -> None:
    """Edit a note's body, icon, fields, tags or links, or apply a template."""
    with _open_store(data_dir) as store:
        node = _resolve_node(store, ref)
        if not node.is_leaf:
            typer.echo("Folders have no content.")
            raise typer.Exit(1)

        store.select_node(node.id)
        if template is not None:
            try:
                store.apply_template(template)
            except ValueError as e:
                typer.echo(str(e))
                raise typer.Exit(1) from e
        current = store.current_content or store.get_content(node.id)

        changes: dict[str, object] = {}
        if markdown_file is not None:
            changes["markdown"] = markdown_file.read_text(encoding="utf-8")
        elif markdown is not None:
            changes["markdown"] = markdown
        if icon is not None:
            changes["icon"] = icon
        if field:
            changes["fields"] = {**current.fields, **_parse_fields(field)}
        if tag or untag:
            removed = set(untag or ())
            changes["tags"] = [t for t in (*current.tags, *(tag or ())) if t not in removed]
        if link or unlink:
            # Dangling links no longer resolve by name, so match stored ids first.
            unlinked = {
                r if r in current.links else _resolve_node(store, r).id for r in unlink or ()
            }
            added = [_resolve_node(store, r).id for r in link or ()]
            changes["links"] = [ln for ln in (*current.links, *added) if ln not in unlinked]

        if changes:
            store.update_content(**changes)
        updated = [*(["template"] if template else []), *changes]
        if not updated:
            typer.echo("Nothing to change.")
            return
        typer.echo(f"Updated '{node.name}' ({', '.join(updated)})")


@app.command()
def search(
    query: str = typer.Argument(..., help="Search query"),
    limit: int = typer.Option(SEARCH_LIMIT, "--limit", "-n", help="Max results"),
    output_json: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
    data_dir: DataDirOption = None,
) -> None:
    """Search node names and paths."""
    with _open_store(data_dir) as store:
        results = store.search(query, limit)

        if output_json:
            data = {
                "results": [
                    {
                        "node_id": r.node.id,
                        "name": r.node.name,
                        "type": r.node.type.value,
                        "score": r.score,
                        "path": r.path_names,
                    }
                    for r in results
                ],
                "count": len(results),
            }
            typer.echo(json.dumps(data, indent=2, ensure_ascii=False))
            return

        typer.echo(f"Found {len(results)} results:\n")
        for r in results:
            typer.echo(f"  [{r.score:>3}] {r.node.name}")
            typer.echo(f"        {r.path_names}  id={_short(r.node.id)}")


@app.command()
def recent(
    limit: int = typer.Option(RECENT_LIMIT, "--limit", "-n", help="Max results"),
    data_dir: DataDirOption = None,
) -> None:
    """Show recently updated notes."""
    with _open_store(data_dir) as store:
        for node in store.get_recent_notes(limit):
            path = " > ".join(n.name for n in store.get_node_path(node.id))
            typer.echo(f"  {_format_time(node.updated_at)}  {path}  id={_short(node.id)}")


@app.command()
def active(data_dir: DataDirOption = None) -> None:
    """List active notes, most recently updated first."""
    with _open_store(data_dir) as store:
        notes = store.get_active_notes()
        if not notes:
            typer.echo("No active notes.")
        for node in notes:
            typer.echo(f"  {node.name}  ({_format_time(node.updated_at)})  id={_short(node.id)}")


@app.command()
def read(
    ref: str = typer.Argument(..., help="Node id or name"),
    max_depth: Annotated[
        int | None, typer.Option("--max-depth", "-m", help="Max depth levels to render")
    ] = None,
    data_dir: DataDirOption = None,
) -> None:
    """Read a node and its subtree as markdown."""
    with _open_store(data_dir) as store:
        node = _resolve_node(store, ref)
        typer.echo(render_subtree_as_markdown(store, node_id=node.id, max_depth=max_depth))


@app.command()
def export(
    output: Annotated[
        Path | None, typer.Argument(help="Snapshot file (default: vault-YYYY-MM-DD.json)")
    ] = None,
    node: Annotated[
        str | None, typer.Option("--node", help="Export only this node and everything below it")
    ] = None,
    data_dir: DataDirOption = None,
) -> None:
    """Export the whole vault, or one subtree, to JSON."""
    with _open_store(data_dir) as store:
        if node is not None:
            target = _resolve_node(store, node)
            subtree = store.export_subtree(target.id)
            path = write_subtree(subtree, output or Path(subtree_export_name(target.name)))
            count = 1 + len(store.get_descendants(target.id))
            typer.echo(f"Exported {count} nodes under '{target.name}' to {path}")
            return

        snapshot = store.export_vault()
        path = write_snapshot(snapshot, output or Path(default_export_name()))
        typer.echo(
            f"Exported {len(snapshot.nodes)} nodes and {len(snapshot.contents)} notes to {path}"
        )


@app.command(name="import")
def import_cmd(
    source: Path = typer.Argument(..., help="Snapshot file to import"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
    data_dir: DataDirOption = None,
) -> None:
    """Replace the whole vault with a JSON snapshot."""
    if not source.exists():
        logger.error("Snapshot file not found: {}", source)
        raise typer.Exit(1)

    with _open_store(data_dir, create=True) as store:
        snapshot = read_snapshot(source)
        if not yes:
            typer.confirm("This will replace all current data. Are you sure?", abort=True)
        store.import_vault(snapshot)
        typer.echo(f"Imported {len(snapshot.nodes)} nodes from {source}")


@app.command()
def serve() -> None:
    """Start the MCP server (stdio transport)."""
    from notes_vault.mcp.server import run_mcp_server

    run_mcp_server()
