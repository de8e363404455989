"""Fixture builders shared by the test modules: hand-assembled PNGs and small node trees."""

import struct
import zlib
from collections.abc import Callable

from aa_auditor.core.types import Bounds, Color, Finding, Node, Target, TargetRef

RGBA = tuple[int, int, int, int]


def png_chunk(chunk_type: bytes, data: bytes) -> bytes:
    crc = zlib.crc32(chunk_type + data) & 0xFFFFFFFF
    return struct.pack('>I', len(data)) + chunk_type + data + struct.pack('>I', crc)


def _paeth(a: int, b: int, c: int) -> int:
    p = a + b - c
    pa, pb, pc = abs(p - a), abs(p - b), abs(p - c)
    if pa <= pb and pa <= pc:
        return a
    if pb <= pc:
        return b
    return c


def filter_row(filter_type: int, row: bytes, prev: bytes, bpp: int) -> bytes:
    """Apply a PNG scanline filter to raw bytes (the encoder side)."""
    out = bytearray()
    for x, value in enumerate(row):
        left = row[x - bpp] if x >= bpp else 0
        up = prev[x]
        up_left = prev[x - bpp] if x >= bpp else 0
        predictor = {
            0: 0,
            1: left,
            2: up,
            3: (left + up) // 2,
            4: _paeth(left, up, up_left),
        }[filter_type]
        out.append((value - predictor) & 0xFF)
    return bytes(out)


def build_png(
    width: int,
    height: int,
    pixel: Callable[[int, int], RGBA],
    color_type: int = 6,
    filters: list[int] | None = None,
    ihdr_overrides: dict | None = None,
) -> bytes:
    """Encode an 8-bit PNG. filters gives one filter type per row (cycled), default None."""
    bpp = 4 if color_type == 6 else 3
    header = {'bit_depth': 8, 'color_type': color_type, 'interlace': 0}
    header.update(ihdr_overrides or {})
    ihdr = struct.pack(
        '>IIBBBBB', width, height, header['bit_depth'], header['color_type'], 0, 0, header['interlace']
    )

    filters = filters or [0]
    raw = bytearray()
    prev = bytes(width * bpp)
    for y in range(height):
        row = bytearray()
        for x in range(width):
            row.extend(pixel(x, y)[:bpp])
        filter_type = filters[y % len(filters)]
        raw.append(filter_type)
        raw.extend(filter_row(filter_type, bytes(row), prev, bpp))
        prev = bytes(row)

    return (
        b'\x89PNG\r\n\x1a\n'
        + png_chunk(b'IHDR', ihdr)
        + png_chunk(b'IDAT', zlib.compress(bytes(raw)))
        + png_chunk(b'IEND', b'')
    )


def solid_png(width: int, height: int, color: RGBA) -> bytes:
    return build_png(width, height, lambda x, y: color)


def node(
    node_id: str,
    parent: str | None = None,
    bounds: tuple[float, float, float, float] | None = None,
    fills: list[Color] | None = None,
    node_type: str = 'FRAME',
    name: str | None = None,
    **kwargs,
) -> Node:
    return Node(
        id=node_id,
        name=name or node_id,
        type=node_type,
        parent_id=parent,
        bounds=Bounds(*bounds) if bounds is not None else None,
        fills=list(fills or []),
        **kwargs,
    )


def text_node(node_id: str, parent: str, bounds: tuple[float, float, float, float], fills=None, **kwargs) -> Node:
    kwargs.setdefault('text', kwargs.get('name') or node_id)
    return node(node_id, parent, bounds, fills, node_type='TEXT', **kwargs)


def target(nodes: list[Node], target_id: str = '1:1', **kwargs) -> Target:
    kwargs.setdefault('name', 'Demo')
    return Target(id=target_id, nodes=nodes, **kwargs)


def finding(
    rule_id: str = 'WCAG-1.4.3-text-contrast-minimum',
    node_id: str = '2:1',
    severity: str = 'critical',
    status: str = 'failed',
    **kwargs,
) -> Finding:
    return Finding(
        id=f'{rule_id}:{node_id}',
        rule_id=rule_id,
        criterion=rule_id.split('-')[1],
        severity=severity,
        status=status,
        message=kwargs.pop('message', 'Low contrast'),
        target_ref=TargetRef(source_ref='checkout.json', target_id='1:1', node_id=node_id, target_name='Checkout'),
        **kwargs,
    )
