"""Target size minimum (WCAG 2.5.8): interactive targets must be at least 24x24px.

Interactive layers are detected from type, name, reactions and role. A
layer without bounds cannot be measured and goes to manual review.
"""

from aa_auditor.core.findings import failed_finding, manual_review_finding, node_evidence
from aa_auditor.core.query import likely_interactive_nodes
from aa_auditor.core.types import Finding, Node, Rule, RuleContext, Target

MIN_SIZE = 24.0

rule = Rule(
    id='WCAG-2.5.8-target-size-minimum',
    criterion='2.5.8',
    title='Target size minimum',
    default_severity='blocker',
    help='Interactive targets must be at least 24x24px.',
)


@rule.select
def select(target: Target) -> list[Node]:
    return likely_interactive_nodes(target)


@rule.check
def check(ctx: RuleContext, node: Node) -> Finding | None:
    bounds = node.bounds
    if bounds is None:
        return manual_review_finding(
            rule,
            ctx.target,
            node,
            'Could not determine interactive node bounds for target-size check.',
            evidence=node_evidence(node),
        )

    if bounds.width >= MIN_SIZE and bounds.height >= MIN_SIZE:
        return None

    return failed_finding(
        rule,
        ctx.target,
        node,
        [f'{bounds.width:.2f}', f'{bounds.height:.2f}'],
        f'Interactive target is {bounds.width:.1f}x{bounds.height:.1f}px; minimum is 24x24px.',
        evidence=node_evidence(node),
    )
