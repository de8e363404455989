"""Regex-based parser for tag-style layer metadata.

Metadata arrives as XML-like text where every opening tag is a layer:

    <frame id="1:1" name="Root" x="0" y="0" width="320" height="200">
      <text id="1:2" name="Title" x="8" y="8" width="120" height="24" />
    </frame>

Tag nesting implies parent/child. Coordinates are local to the parent.
Does NOT attempt to be a full XML parser. Regex is sufficient.

Also ranks sub-layers for supplementary fetching: a collaborator that only
got truncated metadata can ask which child ids are worth expanding.
"""

import math
import re
from dataclasses import dataclass

_TAG_RE = re.compile(r'<\/?([a-zA-Z0-9_-]+)([^>]*)>')
_ATTR_RE = re.compile(r'([a-zA-Z_:][a-zA-Z0-9_:-]*)="([^"]*)"')

_CONTROL_TYPE_RE = re.compile(r'INSTANCE|BUTTON|INPUT|COMPONENT|FRAME|RECTANGLE|ROUNDED_RECTANGLE')
_CONTROL_NAME_RE = re.compile(r'button|input|field|search|label|title|tab|menu|toggle|checkbox|radio|link|icon', re.I)


@dataclass
class MarkupNode:
    """One opening tag, with visibility already inherited from enclosing tags."""

    id: str
    name: str
    type: str
    parent_id: str | None
    depth: int
    attrs: dict[str, str]
    hidden: bool
    zero_opacity: bool

    @property
    def visible(self) -> bool:
        return not self.hidden and not self.zero_opacity


@dataclass
class _Open:
    id: str | None
    depth: int
    hidden: bool
    zero_opacity: bool


def parse_attributes(raw: str) -> dict[str, str]:
    return {m.group(1): m.group(2) for m in _ATTR_RE.finditer(raw)}


def parse_number(value: str | None) -> float | None:
    """Finite float from an attribute value, else None."""
    if not value:
        return None
    try:
        parsed = float(value)
    except ValueError:
        return None
    return parsed if math.isfinite(parsed) else None


def tag_to_type(tag_name: str) -> str:
    return tag_name.replace('-', '_').upper()


def parse_markup(text: str, drop_invisible: bool = False) -> list[MarkupNode]:
    """Parse every id-bearing opening tag into a MarkupNode.

    With drop_invisible, hidden and zero-opacity tags are left out and their
    descendants re-parent to the nearest visible ancestor (they are hidden
    too, so in practice the whole subtree disappears).
    """
    nodes: list[MarkupNode] = []
    stack: list[_Open] = []

    for m in _TAG_RE.finditer(text):
        full = m.group(0)
        if full.startswith('</'):
            if stack:
                stack.pop()
            continue

        attrs = parse_attributes(m.group(2) or '')
        hidden = any(o.hidden for o in stack) or attrs.get('hidden') == 'true' or attrs.get('visible') == 'false'
        opacity = parse_number(attrs.get('opacity'))
        zero_opacity = any(o.zero_opacity for o in stack) or (opacity if opacity is not None else 1) <= 0
        depth = sum(1 for o in stack if o.id)

        node_id = attrs.get('id') or None
        keep = node_id is not None and not (drop_invisible and (hidden or zero_opacity))
        if keep:
            nodes.append(
                MarkupNode(
                    id=node_id,
                    name=attrs.get('name') or m.group(1),
                    type=tag_to_type(m.group(1)),
                    parent_id=_nearest_parent_id(stack),
                    depth=depth,
                    attrs=attrs,
                    hidden=hidden,
                    zero_opacity=zero_opacity,
                )
            )

        if not full.endswith('/>'):
            stack.append(_Open(id=node_id if keep else None, depth=depth, hidden=hidden, zero_opacity=zero_opacity))

    return nodes


def _nearest_parent_id(stack: list[_Open]) -> str | None:
    for entry in reversed(stack):
        if entry.id:
            return entry.id
    return None


def _area(node: MarkupNode) -> float:
    width = parse_number(node.attrs.get('width'))
    height = parse_number(node.attrs.get('height'))
    if not width or not height:
        return 0.0
    return max(0.0, width * height)


def _score(node: MarkupNode) -> float:
    score = 0.0
    if node.type == 'TEXT':
        score += 45
    if _CONTROL_TYPE_RE.search(node.type):
        score += 20
    if _CONTROL_NAME_RE.search(node.name):
        score += 25
    if node.depth == 1:
        score += 12
    score += min(35.0, math.log10(_area(node) + 1) * 9)
    return score


def select_sublayer_candidates(text: str, root_id: str, limit: int) -> list[str]:
    """Rank visible descendants of root_id worth fetching as expansions."""
    if limit <= 0:
        return []

    nodes = [n for n in parse_markup(text) if n.id != root_id and n.visible]
    immediate = [n for n in nodes if n.parent_id == root_id]
    near = [n for n in nodes if n.parent_id != root_id and n.depth <= 2]
    pool = immediate + near if immediate else nodes

    # sorted() is stable, so equal scores keep document order
    ranked = sorted(pool, key=lambda n: (-_score(n), -_area(n)))
    out: list[str] = []
    for n in ranked:
        if n.id not in out:
            out.append(n.id)
        if len(out) >= limit:
            break
    return out


def select_ancestor_candidates(text: str, node_id: str, limit: int) -> list[str]:
    """Ancestor ids of node_id, nearest first, at most limit of them."""
    if limit <= 0:
        return []

    by_id = {n.id: n for n in parse_markup(text)}
    out: list[str] = []
    visited = {node_id}
    current = by_id.get(node_id)
    while current is not None and current.parent_id and len(out) < limit:
        parent_id = current.parent_id
        if parent_id in visited:
            break
        visited.add(parent_id)
        out.append(parent_id)
        current = by_id.get(parent_id)
    return out
