"""Text contrast minimum (WCAG 1.4.3): 4.5:1, or 3:1 for large text.

Applies to every text-bearing layer (type TEXT, or any layer with text).
Large text is >= 24px, or >= 18.5px at weight 700 and above.

Foreground is the layer's first fill. Background comes from the structural
resolver (ancestors and sibling layers painted behind, with coverage and
alpha compositing). When a screenshot is available:

  - a missing foreground is sampled from the pixels inside the layer
  - a background the resolver could not determine, or only got from the
    document-level fallback, is sampled from a ring around the layer

Missing colours after both steps give a manual-review finding with a
design-token preview instead of a verdict.

Example:
    aa-auditor audit bundle.json --config .aa-auditor.json
"""

from aa_auditor.core.background import is_document_fallback, resolve_background
from aa_auditor.core.color import color_to_string, contrast_ratio, is_large_text
from aa_auditor.core.findings import failed_finding, join_evidence, manual_review_finding, node_evidence
from aa_auditor.core.query import first_fill, likely_text_nodes
from aa_auditor.core.recommend import recommend_colors, recommend_tokens_for_manual_review
from aa_auditor.core.types import Finding, Node, Rule, RuleContext, Target

NORMAL_THRESHOLD = 4.5
LARGE_THRESHOLD = 3.0

SAMPLED_BACKGROUND_SOURCE = '[screenshot-ring]'
SAMPLED_FOREGROUND_SOURCE = '[screenshot-text-region]'

rule = Rule(
    id='WCAG-1.4.3-text-contrast-minimum',
    criterion='1.4.3',
    title='Text contrast minimum',
    default_severity='critical',
    help='Text must reach 4.5:1 contrast, or 3:1 for large text.',
)


@rule.select
def select(target: Target) -> list[Node]:
    return likely_text_nodes(target)


@rule.check
def check(ctx: RuleContext, node: Node) -> Finding | None:
    target = ctx.target
    direct_fg = first_fill(node)
    resolution = resolve_background(target, node)

    sampled_bg = None
    if ctx.sampler is not None and (resolution.color is None or is_document_fallback(resolution)):
        sampled_bg = ctx.sampler.sample_background(node, direct_fg)
    bg = sampled_bg or resolution.color

    sampled_fg = None
    if direct_fg is None and bg is not None and ctx.sampler is not None:
        sampled_fg = ctx.sampler.sample_foreground(node, bg)
    fg = direct_fg or sampled_fg

    background_source = SAMPLED_BACKGROUND_SOURCE if sampled_bg else resolution.source
    foreground_source = SAMPLED_FOREGROUND_SOURCE if sampled_fg else None

    if fg is None or bg is None:
        missing = 'text foreground color' if fg is None else resolution.reason or 'effective background color'
        return manual_review_finding(
            rule,
            target,
            node,
            f'Could not reliably determine text/background colors for contrast calculation ({missing}).',
            recommendation=recommend_tokens_for_manual_review(ctx.design_tokens),
            evidence=join_evidence(
                node_evidence(node),
                f'backgroundSource={background_source}' if background_source else None,
                f'foregroundSource={foreground_source}' if foreground_source else None,
                f'backgroundReason={resolution.reason}' if resolution.reason else None,
            ),
        )

    ratio = contrast_ratio(fg, bg)
    threshold = LARGE_THRESHOLD if is_large_text(node.font_size, node.font_weight) else NORMAL_THRESHOLD
    if ratio >= threshold:
        return None

    return failed_finding(
        rule,
        target,
        node,
        [f'{ratio:.3f}', f'{threshold:.1f}'],
        f'Text contrast ratio {ratio:.2f}:1 is below required {threshold:.1f}:1.',
        recommendation=recommend_colors(ctx.design_tokens, fg, bg, threshold),
        evidence=join_evidence(
            node_evidence(node),
            f'textColor={color_to_string(fg)}',
            f'backgroundColor={color_to_string(bg)}',
            f'foregroundSource={foreground_source}' if foreground_source else None,
            f'backgroundSource={background_source}' if background_source else None,
        ),
    )
