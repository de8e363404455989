"""Colour hints recovered from generated markup code.

Design tools can emit code where each element carries the layer id and
Tailwind-style arbitrary colour classes:

    <p className="text-[color:var(--text,#102b7c)]" data-node-id="10:2">Label</p>
    <div class='bg-[#FAFAFA] border-[color:var(--border)]' data-node-id="12:1"></div>

  bg-[...]      → fills
  text-[...]    → text_fills
  border-[...]  → strokes

A var(...) reference resolves through its inline fallback hex first, then
through the design-token palette. Unresolvable references are skipped.
"""

import re

from aa_auditor.core.color import is_opaque, is_valid_hex_color, normalize_hex, parse_hex_color
from aa_auditor.core.types import Color, StyleHint

_NODE_TAG_RE = re.compile(r'<[^>]*data-node-id="([^"]+)"[^>]*>')
_ANY_TAG_RE = re.compile(r'<[^>]*>')
_CLASS_NAME_RE = re.compile(r'\bclassName=(["\'])(.*?)\1')
_CLASS_RE = re.compile(r'\bclass=(["\'])(.*?)\1')
_HEX_PART_RE = re.compile(r'^#[0-9A-Fa-f]{3,8}$')

_KIND_FIELDS = {'text': 'text_fills', 'bg': 'fills', 'border': 'strokes'}


def looks_like_code(text: str) -> bool:
    """True when text is generated markup code rather than layer metadata."""
    return 'data-node-id=' in text or 'className=' in text


def extract_node_style_hints(code: str, design_tokens: dict[str, str] | None = None) -> dict[str, StyleHint]:
    """Map data-node-id → colours found in that element's class list."""
    palette = _normalize_palette(design_tokens)
    hints: dict[str, StyleHint] = {}
    for m in _NODE_TAG_RE.finditer(code):
        class_name = _read_class_name(m.group(0))
        if not class_name:
            continue
        hint = hints.setdefault(m.group(1), StyleHint())
        for kind, field_name in _KIND_FIELDS.items():
            getattr(hint, field_name).extend(_extract_colors(class_name, kind, palette))
    return {node_id: hint for node_id, hint in hints.items() if hint.fills or hint.text_fills or hint.strokes}


def extract_document_background(code: str, design_tokens: dict[str, str] | None = None) -> Color | None:
    """First solid bg-[...] colour anywhere in the code, used as a page-level fallback."""
    palette = _normalize_palette(design_tokens)
    for m in _ANY_TAG_RE.finditer(code):
        class_name = _read_class_name(m.group(0))
        if not class_name:
            continue
        for color in _extract_colors(class_name, 'bg', palette):
            if is_opaque(color):
                return color
    return None


def _read_class_name(tag: str) -> str | None:
    for pattern in (_CLASS_NAME_RE, _CLASS_RE):
        m = pattern.search(tag)
        if m and m.group(2):
            return m.group(2)
    return None


def _extract_colors(class_name: str, kind: str, palette: dict[str, str]) -> list[Color]:
    """Colours for one class prefix, var(...) forms first, de-duplicated by hex."""
    var_re = re.compile(rf'{kind}-\[color:var\(([^\)]*)\)\]')
    direct_re = re.compile(rf'{kind}-\[(#[0-9A-Fa-f]{{3,8}})\]')

    candidates: list[str] = []
    for m in var_re.finditer(class_name):
        inside = m.group(1).strip()
        if not inside:
            continue
        parts = [p.strip() for p in inside.split(',')]
        fallback = next((p for p in parts if _HEX_PART_RE.match(p)), None)
        resolved = fallback or _resolve_css_var(parts[0], palette)
        if resolved:
            candidates.append(resolved)
    candidates.extend(m.group(1) for m in direct_re.finditer(class_name))

    out: list[Color] = []
    seen: set[str] = set()
    for raw in candidates:
        hex_value = normalize_hex(raw)
        if hex_value in seen or not is_valid_hex_color(hex_value):
            continue
        color = parse_hex_color(hex_value)
        if color is not None:
            seen.add(hex_value)
            out.append(color)
    return out


def normalize_token_key(token: str) -> str:
    """Token names compare case-insensitively with '/', '_' and escaped '\\/' treated alike."""
    key = token.strip().lower().replace('\\/', '/')
    key = re.sub(r'\s+', '', key)
    return key.replace('_', '/')


def _normalize_palette(design_tokens: dict[str, str] | None) -> dict[str, str]:
    return {normalize_token_key(k): v for k, v in (design_tokens or {}).items()}


def _resolve_css_var(var_name: str, palette: dict[str, str]) -> str | None:
    cleaned = var_name.strip()
    if cleaned.startswith('--'):
        cleaned = cleaned[2:]
    return palette.get(normalize_token_key(cleaned))
