"""Design-token palette extraction from variable-definition payloads.

Variable definitions come in many shapes; all of these are accepted:

    {"text.primary": "#1f2937"}                                   flat map
    {"variables": [{"name": "text.muted", "resolvedValue": {...rgba...}}]}
    {"surface": {"canvas": {"r": 1, "g": 1, "b": 1}}}              nested rgba
    "{'icon/default/secondary': #949494, 'text/link': #2563EB}"     free text

Output is token → upper-case #RRGGBB (or #RRGGBBAA when translucent),
sorted by token name.
"""

import math
import re
from typing import Any

from aa_auditor.core.color import color_to_hex, is_valid_hex_color, make_color, normalize_hex

_PAIR_RE = re.compile(r'["\']?([A-Za-z0-9._/-][A-Za-z0-9._/\-\s]*?)["\']?\s*[:=]\s*(#[0-9A-Fa-f]{3,8})\b')
_NAME_KEYS = ('name', 'variableName', 'token', 'slug')
_VALUE_KEYS = ('value', 'resolvedValue', 'hex')
_COLOR_KEYS = ('value', 'resolvedValue', 'color', 'resolvedColor')
_CONTAINER_KEYS = {'values', 'variables', 'tokens'}


def extract_design_tokens(defs: Any) -> dict[str, str]:
    out: dict[str, str] = {}
    _collect(defs, out, [])
    return dict(sorted(out.items()))


def _collect(value: Any, out: dict[str, str], path: list[str]) -> None:
    if value is None:
        return
    if isinstance(value, str):
        for m in _PAIR_RE.finditer(value):
            _set_token(out, m.group(1), m.group(2))
        return
    if isinstance(value, list):
        for item in value:
            _collect(item, out, path)
        return
    if not isinstance(value, dict):
        return

    token_name = next((_read_string(value.get(k)) for k in _NAME_KEYS if _read_string(value.get(k))), None)
    skip: set[str] = set()
    if token_name:
        # the value fields belong to the named token, not to tokens of their own
        skip = {*_NAME_KEYS, *_VALUE_KEYS, *_COLOR_KEYS}
        hex_value = next(
            (v for v in (_read_string(value.get(k)) for k in _VALUE_KEYS) if v and is_valid_hex_color(v)), None
        )
        if hex_value:
            _set_token(out, token_name, hex_value)
        rgba = next((c for c in (_as_rgba_hex(value.get(k)) for k in _COLOR_KEYS) if c), None)
        if rgba:
            _set_token(out, token_name, rgba)

    for key, nested in value.items():
        if key in skip:
            continue
        if isinstance(nested, str) and is_valid_hex_color(nested):
            _set_token(out, _token_for_path(path, key), nested)
            continue
        nested_rgba = _as_rgba_hex(nested)
        if nested_rgba:
            _set_token(out, _token_for_path(path, key), nested_rgba)
            continue
        _collect(nested, out, [*path, key])


def _set_token(out: dict[str, str], token: str, color: str) -> None:
    name = token.strip()
    if not _is_likely_token_name(name):
        return
    out[name] = normalize_hex(color)


def _is_likely_token_name(token: str) -> bool:
    if not token or is_valid_hex_color(token):
        return False
    return bool(re.search(r'[A-Za-z]', token)) or '/' in token or '.' in token


def _token_for_path(path: list[str], key: str) -> str:
    if not path or path[-1] in _CONTAINER_KEYS:
        return key
    return f'{path[-1]}.{key}'


def _read_number(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value) if math.isfinite(value) else None


def _read_string(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _as_rgba_hex(value: Any) -> str | None:
    if not isinstance(value, dict):
        return None
    r, g, b = (_read_number(value.get(k)) for k in ('r', 'g', 'b'))
    if r is None or g is None or b is None:
        return None
    a = _read_number(value.get('a'))
    if a is None:
        a = _read_number(value.get('opacity'))
    return color_to_hex(make_color(r, g, b, a))
