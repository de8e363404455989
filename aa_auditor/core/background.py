"""Effective background resolution through ancestor and sibling layers.

Walks from the subject node up through its ancestors. At every level two
kinds of layer can sit behind the subject:

  1. siblings of the current branch painted earlier (searched nearest first,
     each subtree depth-first with later children first)
  2. the parent itself

A layer only counts when it has a non-transparent fill and its rectangle
covers the subject's. Collected candidates are composited from the nearest
opaque one inward, so translucent overlays tint the base beneath them.

A resolution either carries a colour or a reason it could not find one.
"""

from aa_auditor.core.color import flatten_alpha, is_opaque
from aa_auditor.core.query import accumulated_bounds, children_by_parent, is_text_like, layer_path, node_map
from aa_auditor.core.types import BackgroundResolution, Bounds, Color, Node, Target

COVERAGE_TOLERANCE = 0.25
DOCUMENT_FALLBACK_SOURCE = '[document-fallback]'

REASON_NOT_COVERED = 'ancestor fills do not fully cover the node'
REASON_NO_FILL = 'no ancestor or sibling layer provides a fill'
REASON_NO_OPAQUE_BASE = 'only translucent overlays found, no opaque base'


def covers(outer: Bounds | None, inner: Bounds | None, tolerance: float = COVERAGE_TOLERANCE) -> bool:
    if outer is None or inner is None:
        return False
    return (
        outer.x <= inner.x + tolerance
        and outer.y <= inner.y + tolerance
        and outer.x + outer.width >= inner.x + inner.width - tolerance
        and outer.y + outer.height >= inner.y + inner.height - tolerance
    )


def _visible_fill(node: Node) -> Color | None:
    return next((fill for fill in node.fills if fill.a > 0), None)


class _Resolver:
    def __init__(self, target: Target, subject: Node):
        self.target = target
        self.subject = subject
        self.nodes = node_map(target)
        self.children = children_by_parent(target)
        self.use_accumulated = target.context_source == 'metadata-fallback'
        self.saw_fill = False

    def layer_covers(self, layer: Node) -> bool:
        if covers(layer.bounds, self.subject.bounds):
            return True
        if not self.use_accumulated:
            return False
        return covers(
            accumulated_bounds(self.target, layer, self.nodes),
            accumulated_bounds(self.target, self.subject, self.nodes),
        )

    def candidate(self, layer: Node) -> Color | None:
        """The layer's fill when it can act as background, else None."""
        fill = _visible_fill(layer)
        if fill is None:
            return None
        self.saw_fill = True
        return fill if self.layer_covers(layer) else None

    def search_subtree(self, root: Node, visited: set[str]) -> tuple[Node, Color] | None:
        if root.id in visited:
            return None
        visited.add(root.id)
        for child in reversed(self.children.get(root.id, [])):
            hit = self.search_subtree(child, visited)
            if hit is not None:
                return hit
        if is_text_like(root):
            return None
        fill = self.candidate(root)
        return (root, fill) if fill is not None else None

    def collect(self) -> list[tuple[Node, Color]]:
        """Overlay candidates, nearest to the subject first."""
        found: list[tuple[Node, Color]] = []
        visited = {self.subject.id}
        current = self.subject
        while current.parent_id and current.parent_id not in visited:
            parent = self.nodes.get(current.parent_id)
            if parent is None:
                break
            visited.add(parent.id)

            siblings = self.children.get(parent.id, [])
            index = next((i for i, s in enumerate(siblings) if s.id == current.id), 0)
            for sibling in reversed(siblings[:index]):
                hit = self.search_subtree(sibling, set(visited))
                if hit is not None:
                    found.append(hit)
                    # nothing below an opaque layer shows through
                    if is_opaque(hit[1]):
                        break

            if not is_text_like(parent):
                fill = self.candidate(parent)
                if fill is not None:
                    found.append((parent, fill))
            current = parent
        return found


def resolve_background(target: Target, node: Node) -> BackgroundResolution:
    resolver = _Resolver(target, node)
    candidates = resolver.collect()

    if not candidates:
        if target.fallback_background is not None:
            return BackgroundResolution(color=target.fallback_background, source=DOCUMENT_FALLBACK_SOURCE)
        return BackgroundResolution(reason=REASON_NOT_COVERED if resolver.saw_fill else REASON_NO_FILL)

    base_index = next((i for i, (_, fill) in enumerate(candidates) if is_opaque(fill)), None)
    if base_index is None:
        return BackgroundResolution(reason=REASON_NO_OPAQUE_BASE)

    base_node, result = candidates[base_index]
    for _, overlay in reversed(candidates[:base_index]):
        result = flatten_alpha(overlay, result)

    source = layer_path(target, base_node)
    if base_index:
        source += f' (+{base_index} overlay{"s" if base_index > 1 else ""})'
    return BackgroundResolution(color=result, source=source)


def is_document_fallback(resolution: BackgroundResolution) -> bool:
    return resolution.source == DOCUMENT_FALLBACK_SOURCE
