"""Non-text contrast (WCAG 1.4.11): UI components need 3:1 against their background.

Applies to non-text layers with a fill or stroke that are interactive, or
whose name looks like a control (icon, input, button, radio, checkbox,
toggle, tab).

Foreground is the first stroke (the visible edge of a control), else the
first fill. Background is resolved structurally; when that fails the
nearest painted ancestor is used, and with no fill anywhere the
node goes to manual review. Screenshots are never sampled here, since
the control itself would dominate the ring.
"""

from aa_auditor.core.background import resolve_background
from aa_auditor.core.color import color_to_string, contrast_ratio
from aa_auditor.core.findings import failed_finding, join_evidence, manual_review_finding, node_evidence
from aa_auditor.core.query import find_nearest_background, first_fill, first_stroke, likely_nontext_nodes
from aa_auditor.core.recommend import recommend_colors, recommend_tokens_for_manual_review
from aa_auditor.core.types import Finding, Node, Rule, RuleContext, Target

THRESHOLD = 3.0

rule = Rule(
    id='WCAG-1.4.11-nontext-contrast',
    criterion='1.4.11',
    title='Non-text contrast',
    default_severity='major',
    help='UI components and state indicators must reach 3:1 contrast.',
)


@rule.select
def select(target: Target) -> list[Node]:
    return likely_nontext_nodes(target)


@rule.check
def check(ctx: RuleContext, node: Node) -> Finding | None:
    target = ctx.target
    fg = first_stroke(node) or first_fill(node)
    resolution = resolve_background(target, node)
    bg = resolution.color or find_nearest_background(target, node)

    if fg is None or bg is None:
        return manual_review_finding(
            rule,
            target,
            node,
            'Could not reliably determine non-text foreground/background colors.',
            recommendation=recommend_tokens_for_manual_review(ctx.design_tokens),
            evidence=join_evidence(
                node_evidence(node),
                f'backgroundReason={resolution.reason}' if bg is None and resolution.reason else None,
            ),
        )

    ratio = contrast_ratio(fg, bg)
    if ratio >= THRESHOLD:
        return None

    return failed_finding(
        rule,
        target,
        node,
        [f'{ratio:.3f}'],
        f'Non-text contrast ratio {ratio:.2f}:1 is below required {THRESHOLD:.1f}:1.',
        recommendation=recommend_colors(ctx.design_tokens, fg, bg, THRESHOLD),
        evidence=join_evidence(
            node_evidence(node),
            f'foreground={color_to_string(fg)}',
            f'background={color_to_string(bg)}',
            f'backgroundSource={resolution.source}' if resolution.source else 'backgroundSource=[nearest-fill]',
        ),
    )
