"""Screenshot pixel sampling, used when structural colour data runs out.

Node bounds are mapped into screenshot pixels: absolute bounds minus the
root's origin, scaled by image size over root size (a 2x export of a 24px
frame is 48px wide).

Background: eight ring points 2px outside the node rectangle. A point only
counts when it is opaque enough, is not close to the known foreground, and
has at least one similar orthogonal neighbour. Lone anti-alias pixels touch
their surroundings only diagonally, so they never qualify.

Foreground: pixels inside the rectangle, bucketed coarsely. Anti-aliased
edges tend to outnumber the true glyph colour, so among buckets with a
comparable count the one with the highest contrast wins.
"""

import math

import numpy as np

from aa_auditor.core.color import contrast_ratio, rgb_distance
from aa_auditor.core.png import DecodedImage, decode_png
from aa_auditor.core.query import absolute_bounds, node_map, root_node
from aa_auditor.core.types import Bounds, Color, Node, Target

RING_PADDING = 2
MIN_ALPHA = 0.1
FOREGROUND_DISTANCE = 12
SUPPORT_DISTANCE = 24
BACKGROUND_DISTANCE = 24
BUCKET_SIZE = 8
CLOSE_BUCKET_SHARE = 0.15


class ScreenshotSampler:
    def __init__(self, target: Target, image: DecodedImage, root: Bounds):
        self.target = target
        self.image = image
        self.root = root
        self.scale_x = image.width / root.width
        self.scale_y = image.height / root.height
        self._nodes = node_map(target)

    def pixel_bounds(self, node: Node) -> Bounds | None:
        absolute = absolute_bounds(self.target, node, self._nodes)
        if absolute is None:
            return None
        return Bounds(
            (absolute.x - self.root.x) * self.scale_x,
            (absolute.y - self.root.y) * self.scale_y,
            absolute.width * self.scale_x,
            absolute.height * self.scale_y,
        )

    def sample_background(self, node: Node, foreground: Color | None = None) -> Color | None:
        rect = self.pixel_bounds(node)
        if rect is None:
            return None

        left, top = math.floor(rect.x), math.floor(rect.y)
        right, bottom = math.ceil(rect.x + rect.width), math.ceil(rect.y + rect.height)
        mid_x, mid_y = (left + right) // 2, (top + bottom) // 2
        pad = RING_PADDING
        points = [
            (left - pad, mid_y),
            (right + pad, mid_y),
            (mid_x, top - pad),
            (mid_x, bottom + pad),
            (left - pad, top - pad),
            (right + pad, top - pad),
            (left - pad, bottom + pad),
            (right + pad, bottom + pad),
        ]

        buckets: dict[tuple[int, int, int], list[Color]] = {}
        for x, y in points:
            x = min(self.image.width - 1, max(0, x))
            y = min(self.image.height - 1, max(0, y))
            color = self.image.pixel(x, y)
            if color.a < MIN_ALPHA:
                continue
            if foreground is not None and rgb_distance(color, foreground) < FOREGROUND_DISTANCE:
                continue
            if not self._has_orthogonal_support(x, y, color):
                continue
            buckets.setdefault(_bucket_key(color), []).append(color)

        if not buckets:
            return None
        # max() keeps the first of equal counts
        best = max(buckets.values(), key=len)
        return best[0]

    def _has_orthogonal_support(self, x: int, y: int, color: Color) -> bool:
        for dx, dy in ((-1, 0), (1, 0), (0, -1), (0, 1)):
            nx, ny = x + dx, y + dy
            if not (0 <= nx < self.image.width and 0 <= ny < self.image.height):
                continue
            neighbour = self.image.pixel(nx, ny)
            if neighbour.a >= MIN_ALPHA and rgb_distance(neighbour, color) <= SUPPORT_DISTANCE:
                return True
        return False

    def sample_foreground(self, node: Node, background: Color | None = None) -> Color | None:
        rect = self.pixel_bounds(node)
        if rect is None:
            return None

        left = max(0, math.floor(rect.x))
        top = max(0, math.floor(rect.y))
        right = min(self.image.width, math.ceil(rect.x + rect.width))
        bottom = min(self.image.height, math.ceil(rect.y + rect.height))
        if left >= right or top >= bottom:
            return None

        pixels = self.image.rgba[top:bottom, left:right].reshape(-1, 4)
        keep = pixels[:, 3] / 255 >= MIN_ALPHA
        if background is not None:
            bg = np.array([background.r, background.g, background.b], dtype=np.float64)
            distance = np.sqrt(((pixels[:, :3].astype(np.float64) - bg) ** 2).sum(axis=1))
            keep &= distance >= BACKGROUND_DISTANCE
        pixels = pixels[keep]
        if len(pixels) == 0:
            return None

        keys = pixels[:, :3] // BUCKET_SIZE
        _, first_index, counts = np.unique(keys, axis=0, return_index=True, return_counts=True)
        buckets = [(int(count), int(index)) for count, index in zip(counts, first_index)]

        def representative(index: int) -> Color:
            r, g, b, a = (int(v) for v in pixels[index])
            return Color(r, g, b, a / 255)

        if background is None:
            count, index = min(buckets, key=lambda b: (-b[0], b[1]))
            return representative(index)

        top_count = max(count for count, _ in buckets)
        close = [(count, index) for count, index in buckets if count >= top_count * CLOSE_BUCKET_SHARE]
        ranked = sorted(
            close,
            key=lambda b: (-contrast_ratio(representative(b[1]), background), -b[0], b[1]),
        )
        return representative(ranked[0][1])


def _bucket_key(color: Color) -> tuple[int, int, int]:
    return (color.r // BUCKET_SIZE, color.g // BUCKET_SIZE, color.b // BUCKET_SIZE)


def create_sampler(target: Target, screenshot: bytes | None) -> ScreenshotSampler | None:
    """Sampler over a decoded screenshot, or None when it cannot be placed."""
    if not screenshot:
        return None
    image = decode_png(screenshot)
    if image is None:
        return None
    root = root_node(target)
    if root is None:
        return None
    root_bounds = absolute_bounds(target, root)
    if root_bounds is None or root_bounds.width <= 0 or root_bounds.height <= 0:
        return None
    return ScreenshotSampler(target, image, root_bounds)
