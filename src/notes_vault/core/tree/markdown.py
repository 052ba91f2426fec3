"""Render vault subtrees as markdown."""

import io

from notes_vault.core.tree.store import NodeStore
from notes_vault.models.node import Content, Node

FOLDER_ICON = "📁"


def _write_content(out: io.StringIO, content: Content, indent: str) -> None:
    for key, value in content.fields.items():
        if value:
            out.write(f"{indent}  {key}: {value}\n")
    if content.tags:
        out.write(f"{indent}  tags: {' '.join('#' + t for t in sorted(content.tags))}\n")
    if content.markdown:
        for line in content.markdown.split("\n"):
            out.write(f"{indent}  > {line}".rstrip() + "\n")


def render_subtree_as_markdown(
    store: NodeStore,
    *,
    node_id: str,
    max_depth: int | None = None,
    include_content: bool = True,
) -> str:
    """Render a node and its descendants as an indented bullet list.

    Args:
        store: Loaded node store.
        node_id: The node to start rendering from.
        max_depth: Max levels below the start node to include (None = unlimited).
        include_content: Whether to include leaf fields, tags and body text.

    Returns:
        Markdown string, or "" if node_id is unknown.
    """
    start = store.get_node(node_id)
    if start is None:
        return ""

    out = io.StringIO()
    stack: list[tuple[Node, int]] = [(start, 0)]
    while stack:
        node, depth = stack.pop()
        indent = "    " * depth

        if node.is_folder:
            out.write(f"{indent}- {FOLDER_ICON} {node.name}\n")
        else:
            content = store.get_content(node.id)
            marker = " (active)" if node.active else ""
            out.write(f"{indent}- {content.icon} {node.name}{marker}\n")
            if include_content:
                _write_content(out, content, indent)

        children = store.get_children(node.id)
        if not children:
            continue

        # Truncation indicator when children are cut off by max_depth
        if max_depth is not None and depth >= max_depth:
            noun = "child" if len(children) == 1 else "children"
            out.write(f"{indent}    - ... ({len(children)} more {noun}, id={node.id})\n")
            continue

        stack.extend((child, depth + 1) for child in reversed(children))

    return out.getvalue()
