"""Colour math: channel normalisation, hex parsing, WCAG luminance and contrast, alpha compositing."""

import math
import re

from aa_auditor.core.types import Color

WHITE = Color(255, 255, 255, 1.0)
BLACK = Color(0, 0, 0, 1.0)

# Alpha at or above this is treated as fully opaque
OPAQUE_ALPHA = 0.999

_HEX_RE = re.compile(r'^#[0-9A-F]{6}([0-9A-F]{2})?$')


def _clamp(value: float, lo: float, hi: float) -> float:
    return min(hi, max(lo, value))


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positive channels, not to the nearest even."""
    return math.floor(value + 0.5)


def to_255(value: float) -> int:
    """Channel in either 0-1 or 0-255 form to an int byte."""
    if value <= 1:
        return int(_clamp(round_half_up(value * 255), 0, 255))
    return int(_clamp(round_half_up(value), 0, 255))


def normalize_alpha(value: float | None) -> float:
    """Alpha in either 0-1 or 0-255 form to a 0-1 fraction. Missing alpha is opaque."""
    if value is None:
        return 1.0
    if value <= 1:
        return float(_clamp(value, 0.0, 1.0))
    return float(_clamp(value / 255, 0.0, 1.0))


def make_color(r: float, g: float, b: float, a: float | None = None) -> Color:
    """Build a Color from loosely-typed channels (0-1 floats or 0-255)."""
    return Color(to_255(r), to_255(g), to_255(b), normalize_alpha(a))


def normalize_hex(value: str) -> str:
    """Expand #RGB / #RGBA shorthand and upper-case. Anything else is only trimmed and upper-cased."""
    trimmed = value.strip()
    if re.fullmatch(r'#[0-9A-Fa-f]{3,4}', trimmed):
        return ('#' + ''.join(ch * 2 for ch in trimmed[1:])).upper()
    return trimmed.upper()


def is_valid_hex_color(value: str) -> bool:
    return bool(_HEX_RE.match(normalize_hex(value)))


def parse_hex_color(value: str) -> Color | None:
    """Parse #RGB, #RGBA, #RRGGBB or #RRGGBBAA. Returns None for anything else."""
    hex_value = normalize_hex(value)
    if not _HEX_RE.match(hex_value):
        return None
    raw = hex_value[1:]
    r, g, b = int(raw[0:2], 16), int(raw[2:4], 16), int(raw[4:6], 16)
    a = int(raw[6:8], 16) / 255 if len(raw) == 8 else 1.0
    return Color(r, g, b, a)


def color_to_hex(color: Color) -> str:
    """#RRGGBB, with an alpha byte appended only when the colour is translucent."""
    base = f'#{color.r:02X}{color.g:02X}{color.b:02X}'
    alpha = round_half_up(color.a * 255)
    return base if alpha >= 255 else f'{base}{alpha:02X}'


def color_to_string(color: Color) -> str:
    alpha = round(color.a, 2)
    if alpha == int(alpha):
        alpha = int(alpha)
    return f'rgba({color.r}, {color.g}, {color.b}, {alpha})'


def rgb_distance(a: Color, b: Color) -> float:
    """Euclidean distance in RGB space, alpha ignored."""
    return math.sqrt((a.r - b.r) ** 2 + (a.g - b.g) ** 2 + (a.b - b.b) ** 2)


def luminance(color: Color) -> float:
    """WCAG relative luminance."""
    channels = []
    for c in (color.r, color.g, color.b):
        srgb = c / 255
        channels.append(srgb / 12.92 if srgb <= 0.03928 else ((srgb + 0.055) / 1.055) ** 2.4)
    return 0.2126 * channels[0] + 0.7152 * channels[1] + 0.0722 * channels[2]


def flatten_alpha(foreground: Color, background: Color) -> Color:
    """Composite foreground over background ("over" operator). Opaque foregrounds pass through."""
    a = _clamp(foreground.a, 0.0, 1.0)
    if a >= 1:
        return foreground
    return Color(
        round_half_up(foreground.r * a + background.r * (1 - a)),
        round_half_up(foreground.g * a + background.g * (1 - a)),
        round_half_up(foreground.b * a + background.b * (1 - a)),
        1.0,
    )


def contrast_ratio(foreground: Color, background: Color) -> float:
    """WCAG contrast ratio, with a translucent foreground flattened onto the background first."""
    l1 = luminance(flatten_alpha(foreground, background))
    l2 = luminance(background)
    lighter, darker = max(l1, l2), min(l1, l2)
    return (lighter + 0.05) / (darker + 0.05)


def is_large_text(font_size: float | None, font_weight: float | None = None) -> bool:
    """Large text is >= 24px, or >= 18.5px when bold (weight >= 700)."""
    if not font_size:
        return False
    if (font_weight if font_weight is not None else 400) >= 700:
        return font_size >= 18.5
    return font_size >= 24


def is_opaque(color: Color) -> bool:
    return color.a >= OPAQUE_ALPHA
