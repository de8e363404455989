"""Minimal PNG decoder: 8-bit RGB / RGBA, non-interlaced.

Scans chunks up to IEND, inflates the concatenated IDAT stream and undoes
the per-scanline filters (None, Sub, Up, Average, Paeth). Each filter reads
already-reconstructed neighbour bytes. CRCs are not verified.

Anything outside that subset decodes to None. Callers treat None as
"no screenshot available", never as an error.
"""

import struct
import zlib
from dataclasses import dataclass

import numpy as np

from aa_auditor.core.types import Color

PNG_SIGNATURE = b'\x89PNG\r\n\x1a\n'

COLOR_TYPE_RGB = 2
COLOR_TYPE_RGBA = 6
_BYTES_PER_PIXEL = {COLOR_TYPE_RGB: 3, COLOR_TYPE_RGBA: 4}


@dataclass
class DecodedImage:
    width: int
    height: int
    rgba: np.ndarray  # uint8, shape (height, width, 4)

    def pixel(self, x: int, y: int) -> Color:
        r, g, b, a = (int(v) for v in self.rgba[y, x])
        return Color(r, g, b, a / 255)


def is_supported_png(data: bytes) -> bool:
    """Cheap header check: 8-bit RGB or RGBA, not interlaced. Pixel data is not inspected."""
    if len(data) < 33 or data[:8] != PNG_SIGNATURE or data[12:16] != b'IHDR':
        return False
    _width, _height, bit_depth, color_type, _compression, _filter, interlace = struct.unpack('>IIBBBBB', data[16:29])
    return bit_depth == 8 and color_type in _BYTES_PER_PIXEL and interlace == 0


def decode_png(data: bytes) -> DecodedImage | None:
    if len(data) < 8 or data[:8] != PNG_SIGNATURE:
        return None

    header = None
    idat = []
    offset = 8
    while offset + 8 <= len(data):
        length, chunk_type = struct.unpack('>I4s', data[offset : offset + 8])
        start = offset + 8
        end = start + length
        if end + 4 > len(data):
            return None
        chunk = data[start:end]
        if chunk_type == b'IHDR':
            if length < 13:
                return None
            header = struct.unpack('>IIBBBBB', chunk[:13])
        elif chunk_type == b'IDAT':
            idat.append(chunk)
        elif chunk_type == b'IEND':
            break
        offset = end + 4

    if header is None or not idat:
        return None
    width, height, bit_depth, color_type, _compression, _filter, interlace = header
    if width <= 0 or height <= 0 or bit_depth != 8 or interlace != 0:
        return None
    bpp = _BYTES_PER_PIXEL.get(color_type)
    if bpp is None:
        return None

    try:
        raw = zlib.decompress(b''.join(idat))
    except zlib.error:
        return None

    stride = width * bpp
    expected = height * (stride + 1)
    if len(raw) < expected:
        return None

    rows = np.frombuffer(raw[:expected], dtype=np.uint8).reshape(height, stride + 1)
    pixels = np.zeros((height, stride), dtype=np.uint8)
    prev = np.zeros(stride, dtype=np.uint8)
    for y in range(height):
        line = _unfilter(int(rows[y, 0]), rows[y, 1:], prev, bpp)
        if line is None:
            return None
        pixels[y] = line
        prev = pixels[y]

    pixels = pixels.reshape(height, width, bpp)
    if color_type == COLOR_TYPE_RGB:
        alpha = np.full((height, width, 1), 255, dtype=np.uint8)
        pixels = np.concatenate([pixels, alpha], axis=2)
    return DecodedImage(width=width, height=height, rgba=pixels)


def _unfilter(filter_type: int, line: np.ndarray, prev: np.ndarray, bpp: int) -> np.ndarray | None:
    """Reconstruct one scanline. Returns None for an unknown filter type."""
    if filter_type == 0:
        return line.copy()
    if filter_type == 1:
        # Sub is a running sum per byte lane
        lanes = line.reshape(-1, bpp).astype(np.uint32)
        return (np.cumsum(lanes, axis=0) % 256).astype(np.uint8).reshape(-1)
    if filter_type == 2:
        return ((line.astype(np.uint16) + prev) % 256).astype(np.uint8)
    if filter_type not in (3, 4):
        return None

    raw = line.tolist()
    up = prev.tolist()
    out = [0] * len(raw)
    for x, value in enumerate(raw):
        left = out[x - bpp] if x >= bpp else 0
        if filter_type == 3:
            predictor = (left + up[x]) // 2
        else:
            predictor = _paeth(left, up[x], up[x - bpp] if x >= bpp else 0)
        out[x] = (value + predictor) & 0xFF
    return np.array(out, dtype=np.uint8)


def _paeth(a: int, b: int, c: int) -> int:
    p = a + b - c
    pa, pb, pc = abs(p - a), abs(p - b), abs(p - c)
    if pa <= pb and pa <= pc:
        return a
    if pb <= pc:
        return b
    return c
