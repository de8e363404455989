"""Finding constructors shared by the rule modules."""

from aa_auditor.core.ids import stable_id
from aa_auditor.core.query import layer_path
from aa_auditor.core.types import Finding, Node, Rule, Target, TargetRef

# Fixed for manual review; the rule's own severity only applies to failures
MANUAL_REVIEW_SEVERITY = 'major'


def target_ref_for(target: Target, node: Node) -> TargetRef:
    return TargetRef(
        source_ref=target.source_ref,
        target_id=target.id,
        node_id=node.id,
        target_name=target.name,
        layer_path=layer_path(target, node),
    )


def node_evidence(node: Node) -> str:
    return f'Node {node.id} ({node.name})'


def join_evidence(*parts: str | None) -> str:
    return ' | '.join(p for p in parts if p)


def failed_finding(
    rule: Rule,
    target: Target,
    node: Node,
    id_parts: list[str],
    message: str,
    recommendation: str | None = None,
    evidence: str | None = None,
) -> Finding:
    return Finding(
        id=stable_id([rule.id, target.id, node.id, *id_parts]),
        rule_id=rule.id,
        criterion=rule.criterion,
        severity=rule.default_severity,
        status='failed',
        message=message,
        target_ref=target_ref_for(target, node),
        recommendation=recommendation,
        evidence=evidence,
    )


def manual_review_finding(
    rule: Rule,
    target: Target,
    node: Node,
    message: str,
    recommendation: str | None = None,
    evidence: str | None = None,
) -> Finding:
    return Finding(
        id=stable_id([rule.id, target.id, node.id, 'manual']),
        rule_id=rule.id,
        criterion=rule.criterion,
        severity=MANUAL_REVIEW_SEVERITY,
        status='needs-manual-review',
        message=message,
        target_ref=target_ref_for(target, node),
        recommendation=recommendation,
        evidence=evidence,
    )


def evaluation_error_finding(rule: Rule, target: Target, node: Node, exc: Exception) -> Finding:
    """A check raised: report the node for manual review instead."""
    return Finding(
        id=stable_id([rule.id, target.id, node.id, 'error']),
        rule_id=rule.id,
        criterion=rule.criterion,
        severity=MANUAL_REVIEW_SEVERITY,
        status='needs-manual-review',
        message=f'Automated evaluation failed for this node ({type(exc).__name__}: {exc}).',
        target_ref=target_ref_for(target, node),
        evidence=node_evidence(node),
    )
