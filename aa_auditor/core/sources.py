"""Load target payloads from JSON bundle files.

A bundle is what a data-fetch step saved for one audited design node:

    {
      "targetId": "1:2",
      "name": "Checkout Form",
      "sourceRef": "https://design.example/file/abc?node-id=1-2",
      "designContext": {...tree...} | "<frame ...>" | "<div data-node-id=...>",
      "expandedContexts": [{"nodeId": "1:5", "context": {...}}],
      "metadata": "<frame id=\\"1:2\\" ...>",
      "styleHints": {"1:5": {"fills": ["#F5F5F5"], "textFills": [], "strokes": []}},
      "fallbackBackground": "#FFFFFF",
      "contextSource": "design-context",
      "variableDefs": {...},
      "designTokens": {"text.primary": "#111827"},
      "screenshot": "checkout.png"
    }

Only targetId is required. The screenshot path is relative to the bundle.
A screenshot that is missing or unreadable only adds a warning. Images the
built-in decoder cannot read (JPEG, palette or 16-bit PNG, interlaced) are
re-encoded through Pillow as 8-bit RGBA PNG.
"""

import io
import json
from pathlib import Path
from typing import Any

from PIL import Image, UnidentifiedImageError

from aa_auditor.core.color import parse_hex_color
from aa_auditor.core.png import is_supported_png
from aa_auditor.core.types import Color, ExpandedContext, StyleHint, TargetPayload

_CONTEXT_SOURCES = ('design-context', 'metadata-fallback')


class PayloadError(ValueError):
    """A bundle file that cannot be turned into a TargetPayload."""


def load_payload_file(path: str | Path) -> TargetPayload:
    path = Path(path)
    try:
        raw = json.loads(path.read_text(encoding='utf-8'))
    except OSError as e:
        raise PayloadError(f'{path}: cannot read bundle ({e.strerror})') from e
    except json.JSONDecodeError as e:
        raise PayloadError(f'{path}: invalid JSON ({e.msg} at line {e.lineno})') from e
    if not isinstance(raw, dict):
        raise PayloadError(f'{path}: bundle must be a JSON object')

    target_id = raw.get('targetId')
    if not isinstance(target_id, str) or not target_id.strip():
        raise PayloadError(f'{path}: targetId must be a non-empty string')

    warnings: list[str] = []
    context_source = raw.get('contextSource')
    if context_source is not None and context_source not in _CONTEXT_SOURCES:
        warnings.append(f'Unknown contextSource {context_source!r} ignored.')
        context_source = None

    fallback = raw.get('fallbackBackground')
    fallback_color = parse_hex_color(fallback) if isinstance(fallback, str) else None
    if fallback is not None and fallback_color is None:
        warnings.append(f'fallbackBackground {fallback!r} is not a hex color; ignored.')

    screenshot = None
    if isinstance(raw.get('screenshot'), str):
        screenshot = _read_screenshot(path.parent / raw['screenshot'], warnings)

    tokens = raw.get('designTokens')
    metadata = raw.get('metadata')
    return TargetPayload(
        target_id=target_id.strip(),
        name=raw.get('name') if isinstance(raw.get('name'), str) else '',
        source_ref=raw.get('sourceRef') if isinstance(raw.get('sourceRef'), str) else str(path),
        design_context=raw.get('designContext'),
        expanded_contexts=_parse_expanded(raw.get('expandedContexts')),
        metadata=metadata if isinstance(metadata, str) and metadata.strip() else None,
        style_hints=_parse_style_hints(raw.get('styleHints')),
        fallback_background=fallback_color,
        context_source=context_source,
        variable_defs=raw.get('variableDefs'),
        design_tokens={k: v for k, v in tokens.items() if isinstance(v, str)} if isinstance(tokens, dict) else {},
        screenshot=screenshot,
        warnings=warnings,
    )


def _parse_expanded(value: Any) -> list[ExpandedContext]:
    if isinstance(value, dict):
        return [ExpandedContext(node_id=k, context=v) for k, v in value.items()]
    if not isinstance(value, list):
        return []
    return [
        ExpandedContext(node_id=item['nodeId'], context=item.get('context'))
        for item in value
        if isinstance(item, dict) and isinstance(item.get('nodeId'), str)
    ]


def _colors(value: Any) -> list[Color]:
    if not isinstance(value, list):
        return []
    parsed = (parse_hex_color(v) for v in value if isinstance(v, str))
    return [c for c in parsed if c is not None]


def _parse_style_hints(value: Any) -> dict[str, StyleHint]:
    if not isinstance(value, dict):
        return {}
    return {
        node_id: StyleHint(
            fills=_colors(hint.get('fills')),
            text_fills=_colors(hint.get('textFills')),
            strokes=_colors(hint.get('strokes')),
        )
        for node_id, hint in value.items()
        if isinstance(hint, dict)
    }


def _read_screenshot(path: Path, warnings: list[str]) -> bytes | None:
    if not path.is_file():
        warnings.append(f'Screenshot not found: {path}')
        return None
    data = path.read_bytes()
    if is_supported_png(data):
        return data
    return reencode_png(data, warnings, str(path))


def reencode_png(data: bytes, warnings: list[str], label: str = 'screenshot') -> bytes | None:
    """Re-encode any image Pillow can open as 8-bit RGBA PNG."""
    try:
        with Image.open(io.BytesIO(data)) as image:
            out = io.BytesIO()
            image.convert('RGBA').save(out, format='PNG')
    except (UnidentifiedImageError, OSError) as e:
        warnings.append(f'Screenshot {label} could not be decoded ({e}); pixel sampling disabled.')
        return None
    return out.getvalue()
