"""Lookups over a Target's node arena. Parent links are keys, so every walk goes through node_map()."""

import re

from aa_auditor.core.types import Bounds, Color, Node, Target

NONTEXT_NAME_RE = re.compile(r'icon|input|button|radio|checkbox|toggle|tab', re.I)


def node_map(target: Target) -> dict[str, Node]:
    return {node.id: node for node in target.nodes}


def children_by_parent(target: Target) -> dict[str, list[Node]]:
    """parent id → children in paint order (later = on top)."""
    out: dict[str, list[Node]] = {}
    for node in target.nodes:
        if node.parent_id:
            out.setdefault(node.parent_id, []).append(node)
    return out


def ancestors(target: Target, node: Node, nodes: dict[str, Node] | None = None) -> list[Node]:
    """Ancestors nearest first. A cyclic parent link ends the walk."""
    nodes = nodes if nodes is not None else node_map(target)
    out = []
    seen = {node.id}
    current = node
    while current.parent_id and current.parent_id not in seen:
        parent = nodes.get(current.parent_id)
        if parent is None:
            break
        seen.add(parent.id)
        out.append(parent)
        current = parent
    return out


def root_node(target: Target) -> Node | None:
    """The audited node itself, else the first parentless node."""
    for node in target.nodes:
        if node.id == target.id:
            return node
    return next((node for node in target.nodes if not node.parent_id), None)


def layer_path(target: Target, node: Node) -> str:
    """'Root > Card > Label' style path from the outermost known ancestor."""
    names = [a.name for a in reversed(ancestors(target, node))]
    names.append(node.name)
    return ' > '.join(names)


def is_text_like(node: Node) -> bool:
    return node.type.upper() == 'TEXT' or node.text is not None


def likely_text_nodes(target: Target) -> list[Node]:
    return [node for node in target.nodes if is_text_like(node)]


def likely_nontext_nodes(target: Target) -> list[Node]:
    """Non-text nodes with a visible fill or stroke that look like controls or icons."""
    out = []
    for node in target.nodes:
        if not (node.fills or node.strokes) or node.type.upper() == 'TEXT':
            continue
        if node.is_interactive or NONTEXT_NAME_RE.search(node.name):
            out.append(node)
    return out


def likely_interactive_nodes(target: Target) -> list[Node]:
    return [node for node in target.nodes if node.is_interactive]


def first_fill(node: Node) -> Color | None:
    return node.fills[0] if node.fills else None


def first_stroke(node: Node) -> Color | None:
    return node.strokes[0] if node.strokes else None


def accumulated_bounds(target: Target, node: Node, nodes: dict[str, Node] | None = None) -> Bounds | None:
    """Node bounds with every ancestor's x/y offset added. Ancestors without bounds add nothing."""
    if node.bounds is None:
        return None
    x, y = node.bounds.x, node.bounds.y
    for ancestor in ancestors(target, node, nodes):
        if ancestor.bounds is not None:
            x += ancestor.bounds.x
            y += ancestor.bounds.y
    return Bounds(x, y, node.bounds.width, node.bounds.height)


def absolute_bounds(target: Target, node: Node, nodes: dict[str, Node] | None = None) -> Bounds | None:
    """Bounds in the target's absolute space: accumulated for tag metadata, raw otherwise."""
    if target.context_source == 'metadata-fallback':
        return accumulated_bounds(target, node, nodes)
    return node.bounds


def find_nearest_background(target: Target, node: Node) -> Color | None:
    """First ancestor with any fill, then the root's fill. No coverage reasoning; None when nothing is painted."""
    for ancestor in ancestors(target, node):
        if ancestor.fills:
            return ancestor.fills[0]
    root = next((n for n in target.nodes if not n.parent_id and n.fills), None)
    if root is not None:
        return root.fills[0]
    return None
