"""Node normalizer: raw design payloads → one canonical Target.

Payload shapes are told apart exactly once, in classify_payload():

  TreePayload    nested object graph (id/type/name/children, bounding boxes,
                 paint lists, reactions). Coordinates are absolute.
  MarkupPayload  tag-style metadata text (see core.markup). Coordinates are
                 local to the parent, so the Target is flagged
                 'metadata-fallback'.
  CodePayload    generated markup code. Contributes colour hints and a
                 document background; the node graph then comes from the
                 payload's tag metadata.
  EmptyPayload   nothing usable.

Hidden and zero-opacity layers are dropped together with their subtrees.
Records for the same id coming from several payloads (primary context plus
sub-layer expansions) are merged. Style hints only fill paint lists that
structural data left empty.
"""

import math
import re
from dataclasses import dataclass, replace
from typing import Any

from aa_auditor.core.color import make_color
from aa_auditor.core.markup import parse_markup, parse_number
from aa_auditor.core.style_hints import extract_document_background, extract_node_style_hints, looks_like_code
from aa_auditor.core.tokens import extract_design_tokens
from aa_auditor.core.types import Bounds, Color, Node, StyleHint, Target, TargetPayload

NO_NODES_WARNING = 'No traversable nodes were found in design context; checks may be incomplete.'

INTERACTIVE_TYPES = frozenset(
    {'BUTTON', 'LINK', 'INPUT', 'TEXTBOX', 'CHECKBOX', 'RADIO', 'SWITCH', 'TOGGLE', 'TAB', 'MENU_ITEM'}
)
INTERACTIVE_NAME_RE = re.compile(r'button|link|input|field|checkbox|radio|switch|tab|menu|dropdown|submit|cta', re.I)
INTERACTIVE_ROLE_RE = re.compile(r'button|link|checkbox|tab|menuitem|switch|textbox', re.I)
# Tag metadata has no reactions or roles, so component-ish tag names count too
_MARKUP_INTERACTIVE_TYPE_RE = re.compile(r'INSTANCE|BUTTON|LINK|INPUT|ICON|CHECKBOX|RADIO|SWITCH|TAB')


@dataclass(frozen=True)
class TreePayload:
    root: dict | list


@dataclass(frozen=True)
class MarkupPayload:
    text: str


@dataclass(frozen=True)
class CodePayload:
    code: str


@dataclass(frozen=True)
class EmptyPayload:
    pass


Payload = TreePayload | MarkupPayload | CodePayload | EmptyPayload


def classify_payload(raw: Any) -> Payload:
    """Resolve the shape of a raw design payload. Wrappers with 'document' or 'node' are unwrapped."""
    if isinstance(raw, dict):
        for key in ('document', 'node'):
            if raw.get(key) is not None:
                return classify_payload(raw[key])
        return TreePayload(raw)
    if isinstance(raw, list):
        return TreePayload(raw) if raw else EmptyPayload()
    if isinstance(raw, str) and raw.strip():
        return CodePayload(raw) if looks_like_code(raw) else MarkupPayload(raw)
    return EmptyPayload()


def collect_payload_tokens(payload: TargetPayload) -> dict[str, str]:
    """Token palette carried by the payload: extracted variable defs, then explicit tokens on top."""
    tokens = extract_design_tokens(payload.variable_defs) if payload.variable_defs is not None else {}
    tokens.update(payload.design_tokens)
    return tokens


def normalize_target(payload: TargetPayload) -> Target:
    warnings = list(payload.warnings)
    tokens = collect_payload_tokens(payload)
    primary = classify_payload(payload.design_context)

    hints: dict[str, StyleHint] = {}
    fallback_background = payload.fallback_background
    if isinstance(primary, CodePayload):
        hints = extract_node_style_hints(primary.code, tokens)
        if fallback_background is None:
            fallback_background = extract_document_background(primary.code, tokens)
        if payload.metadata:
            primary = MarkupPayload(payload.metadata)
        else:
            warnings.append('Design context is generated code without layer metadata; layer tree unavailable.')
            primary = EmptyPayload()
    elif isinstance(primary, EmptyPayload) and payload.metadata:
        primary = MarkupPayload(payload.metadata)
    hints.update(payload.style_hints)

    raw_nodes = _nodes_from(primary, None)
    for expansion in payload.expanded_contexts:
        raw_nodes.extend(_nodes_from(classify_payload(expansion.context), payload.target_id))

    nodes = _apply_style_hints(_merge_by_id(raw_nodes), hints)
    if not nodes:
        warnings.append(NO_NODES_WARNING)

    context_source = payload.context_source
    if context_source is None:
        context_source = 'metadata-fallback' if isinstance(primary, MarkupPayload) else 'design-context'

    return Target(
        id=payload.target_id,
        name=payload.name or f'Node {payload.target_id}',
        source_ref=payload.source_ref,
        nodes=nodes,
        context_source=context_source,
        fallback_background=fallback_background,
        warnings=warnings,
    )


def _nodes_from(payload: Payload, fallback_parent_id: str | None) -> list[Node]:
    out: list[Node] = []
    if isinstance(payload, TreePayload):
        roots = payload.root if isinstance(payload.root, list) else [payload.root]
        for root in roots:
            _walk_tree(root, out, fallback_parent_id)
    elif isinstance(payload, MarkupPayload):
        out.extend(_markup_nodes(payload.text, fallback_parent_id))
    return out


# ── markup ────────────────────────────────────────────────────────────────


def _markup_nodes(text: str, fallback_parent_id: str | None) -> list[Node]:
    nodes = []
    for m in parse_markup(text, drop_invisible=True):
        x, y, width, height = (parse_number(m.attrs.get(k)) for k in ('x', 'y', 'width', 'height'))
        bounds = Bounds(x, y, width, height) if None not in (x, y, width, height) else None
        parent_id = m.parent_id or fallback_parent_id
        nodes.append(
            Node(
                id=m.id,
                name=m.name,
                type=m.type,
                parent_id=parent_id if parent_id != m.id else None,
                bounds=bounds,
                text=m.name if m.type == 'TEXT' else None,
                is_interactive=_is_interactive_markup(m.type, m.name),
            )
        )
    return nodes


def _is_interactive_markup(node_type: str, name: str) -> bool:
    if node_type in INTERACTIVE_TYPES or _MARKUP_INTERACTIVE_TYPE_RE.search(node_type):
        return True
    return bool(INTERACTIVE_NAME_RE.search(name))


# ── object tree ───────────────────────────────────────────────────────────


def _walk_tree(value: Any, out: list[Node], parent_id: str | None) -> None:
    if not isinstance(value, dict):
        return
    if _is_hidden(value) or _has_zero_opacity(value):
        return

    node = _normalize_node(value, parent_id)
    if node is not None:
        out.append(node)
    current_parent = node.id if node is not None else parent_id

    children = value.get('children')
    if not isinstance(children, list):
        children = value.get('nodes') if isinstance(value.get('nodes'), list) else []
    for child in children:
        _walk_tree(child, out, current_parent)


def _normalize_node(obj: dict, parent_id: str | None) -> Node | None:
    node_id = _read_string(obj.get('id')) or _read_string(obj.get('nodeId'))
    node_type = _read_string(obj.get('type'))
    if not node_id or not node_type:
        return None

    name = _read_string(obj.get('name')) or node_type
    style = obj.get('style') if isinstance(obj.get('style'), dict) else {}

    return Node(
        id=node_id,
        name=name,
        type=node_type,
        parent_id=parent_id if parent_id != node_id else None,
        bounds=_parse_bounds(obj),
        fills=_parse_paints(obj.get('fills')),
        strokes=_parse_paints(obj.get('strokes')),
        text=_read_string(obj.get('characters')) or _read_string(obj.get('text')),
        font_size=_first_number(obj.get('fontSize'), style.get('fontSize')),
        font_weight=_first_number(obj.get('fontWeight'), style.get('fontWeight')),
        line_height=_first_number(obj.get('lineHeightPx'), style.get('lineHeightPx')),
        is_interactive=_is_interactive_tree(obj, node_type, name),
    )


def _is_interactive_tree(obj: dict, node_type: str, name: str) -> bool:
    if node_type.upper() in INTERACTIVE_TYPES:
        return True
    if INTERACTIVE_NAME_RE.search(name):
        return True
    reactions = obj.get('reactions')
    if isinstance(reactions, list) and reactions:
        return True
    if obj.get('onClick'):
        return True
    role = _read_string(obj.get('role'))
    return bool(role and INTERACTIVE_ROLE_RE.search(role))


def _is_hidden(obj: dict) -> bool:
    return obj.get('visible') is False or obj.get('hidden') is True


def _has_zero_opacity(obj: dict) -> bool:
    style = obj.get('style') if isinstance(obj.get('style'), dict) else {}
    opacity = _first_number(obj.get('opacity'), style.get('opacity'))
    return opacity is not None and opacity <= 0


def _parse_bounds(obj: dict) -> Bounds | None:
    for key in ('absoluteBoundingBox', 'absoluteRenderBounds', 'bounds'):
        box = obj.get(key)
        if isinstance(box, dict):
            values = [_read_number(box.get(k)) for k in ('x', 'y', 'width', 'height')]
            if None not in values:
                return Bounds(*values)
            # first present box wins, even when incomplete
            break

    size, position = obj.get('size'), obj.get('position')
    if isinstance(size, dict) and isinstance(position, dict):
        values = [
            _read_number(position.get('x')),
            _read_number(position.get('y')),
            _read_number(size.get('width')),
            _read_number(size.get('height')),
        ]
        if None not in values:
            return Bounds(*values)
    return None


def _parse_paints(value: Any) -> list[Color]:
    if not isinstance(value, list):
        return []
    colors = []
    for paint in value:
        if not isinstance(paint, dict) or paint.get('visible') is False:
            continue
        color = paint.get('color')
        if not isinstance(color, dict):
            continue
        r, g, b = (_read_number(color.get(k)) for k in ('r', 'g', 'b'))
        if r is None or g is None or b is None:
            continue
        a = _read_number(color.get('a'))
        colors.append(make_color(r, g, b, a if a is not None else _read_number(paint.get('opacity'))))
    return colors


# ── merging ───────────────────────────────────────────────────────────────


def _merge_by_id(nodes: list[Node]) -> list[Node]:
    """Fold duplicate records into one per id, keeping first-seen order."""
    merged: dict[str, Node] = {}
    for node in nodes:
        existing = merged.get(node.id)
        if existing is None:
            merged[node.id] = node
            continue
        merged[node.id] = Node(
            id=node.id,
            name=_richer(existing.name, node.name),
            type=_richer(existing.type, node.type),
            parent_id=existing.parent_id or node.parent_id,
            bounds=existing.bounds or node.bounds,
            fills=node.fills or existing.fills,
            strokes=node.strokes or existing.strokes,
            text=node.text if node.text is not None else existing.text,
            font_size=existing.font_size if existing.font_size is not None else node.font_size,
            font_weight=existing.font_weight if existing.font_weight is not None else node.font_weight,
            line_height=existing.line_height if existing.line_height is not None else node.line_height,
            is_interactive=existing.is_interactive or node.is_interactive,
        )
    return list(merged.values())


def _richer(a: str, b: str) -> str:
    if not a:
        return b
    if not b:
        return a
    return b if len(b) > len(a) else a


def _apply_style_hints(nodes: list[Node], hints: dict[str, StyleHint]) -> list[Node]:
    if not hints:
        return nodes
    out = []
    for node in nodes:
        hint = hints.get(node.id)
        if hint is None:
            out.append(node)
            continue
        text_like = node.type.upper() == 'TEXT' or node.text is not None
        hinted_fills = hint.text_fills if text_like and hint.text_fills else hint.fills
        out.append(
            replace(
                node,
                fills=node.fills or list(hinted_fills),
                strokes=node.strokes or list(hint.strokes),
            )
        )
    return out


# ── readers ───────────────────────────────────────────────────────────────


def _read_string(value: Any) -> str | None:
    return value if isinstance(value, str) and value.strip() else None


def _read_number(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value) if math.isfinite(value) else None


def _first_number(*values: Any) -> float | None:
    for value in values:
        number = _read_number(value)
        if number is not None:
            return number
    return None
