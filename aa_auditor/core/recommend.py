"""Design-token fix suggestions for failing colour pairs.

Three independent searches over the token palette:

  Fix A  replace the foreground: tokens passing against the current background
  Fix B  replace the background: opaque tokens passing against the current foreground
  Fix C  replace both: every foreground token × opaque background token pair

Candidates rank by RGB distance to the colour they replace (summed for
pairs), then by higher ratio, then by token name.
"""

from dataclasses import dataclass

from aa_auditor.core.color import contrast_ratio, is_opaque, normalize_hex, parse_hex_color, rgb_distance
from aa_auditor.core.types import Color

MAX_SHOWN = 3


@dataclass(frozen=True)
class TokenColor:
    token: str
    hex: str
    color: Color


@dataclass(frozen=True)
class Candidate:
    token: TokenColor
    ratio: float
    distance: float


@dataclass(frozen=True)
class PairCandidate:
    foreground: TokenColor
    background: TokenColor
    ratio: float
    distance: float


def parse_palette(tokens: dict[str, str] | None) -> list[TokenColor]:
    """Valid palette entries sorted by token name. Invalid hex values are skipped."""
    out = []
    for token, value in sorted((tokens or {}).items()):
        color = parse_hex_color(value)
        if color is not None:
            out.append(TokenColor(token, normalize_hex(value), color))
    return out


def foreground_candidates(palette: list[TokenColor], fg: Color, bg: Color, threshold: float) -> list[Candidate]:
    out = []
    for entry in palette:
        ratio = contrast_ratio(entry.color, bg)
        if ratio >= threshold:
            out.append(Candidate(entry, ratio, rgb_distance(entry.color, fg)))
    return sorted(out, key=lambda c: (c.distance, -c.ratio, c.token.token))


def background_candidates(palette: list[TokenColor], fg: Color, bg: Color, threshold: float) -> list[Candidate]:
    out = []
    for entry in palette:
        if not is_opaque(entry.color):
            continue
        ratio = contrast_ratio(fg, entry.color)
        if ratio >= threshold:
            out.append(Candidate(entry, ratio, rgb_distance(entry.color, bg)))
    return sorted(out, key=lambda c: (c.distance, -c.ratio, c.token.token))


def best_pair(palette: list[TokenColor], fg: Color, bg: Color, threshold: float) -> PairCandidate | None:
    best = None
    best_key = None
    for bg_entry in palette:
        if not is_opaque(bg_entry.color):
            continue
        for fg_entry in palette:
            ratio = contrast_ratio(fg_entry.color, bg_entry.color)
            if ratio < threshold:
                continue
            distance = rgb_distance(fg_entry.color, fg) + rgb_distance(bg_entry.color, bg)
            key = (distance, -ratio, fg_entry.token, bg_entry.token)
            if best_key is None or key < best_key:
                best_key = key
                best = PairCandidate(fg_entry, bg_entry, ratio, distance)
    return best


def _describe(candidates: list[Candidate]) -> str:
    return '; '.join(f'{c.token.token} ({c.token.hex}, {c.ratio:.2f}:1)' for c in candidates[:MAX_SHOWN])


def recommend_colors(tokens: dict[str, str] | None, fg: Color, bg: Color, threshold: float) -> str | None:
    """Recommendation text for a failing pair, or None when there is no palette."""
    palette = parse_palette(tokens)
    if not palette:
        return None

    fix_a = foreground_candidates(palette, fg, bg, threshold)
    fix_b = background_candidates(palette, fg, bg, threshold)
    fix_c = best_pair(palette, fg, bg, threshold)
    if not fix_a and not fix_b and fix_c is None:
        return f'No design-system color token meets {threshold:.1f}:1 contrast against this background.'

    parts = [
        'Fix A (replace foreground variable): '
        + (_describe(fix_a) if fix_a else 'no foreground token passes against the current background.'),
        'Fix B (replace background variable): '
        + (_describe(fix_b) if fix_b else 'no opaque background token passes against the current foreground.'),
    ]
    if fix_c is not None:
        parts.append(
            f'Fix C (replace both with variables): {fix_c.foreground.token} ({fix_c.foreground.hex}) on '
            f'{fix_c.background.token} ({fix_c.background.hex}), {fix_c.ratio:.2f}:1'
        )
    else:
        parts.append('Fix C (replace both with variables): no token pair passes.')
    return 'Variable-aware fix suggestions: ' + ' '.join(p if p.endswith('.') else p + '.' for p in parts)


def recommend_tokens_for_manual_review(tokens: dict[str, str] | None, limit: int = 5) -> str | None:
    entries = sorted((tokens or {}).items())[:limit]
    if not entries:
        return None
    preview = '; '.join(f'{token} ({normalize_hex(value)})' for token, value in entries)
    return f'Contrast data unavailable. Start review using design-system variable tokens: {preview}.'
