"""Audit run orchestration.

For every payload, in input order:

    normalize → sampler (if a screenshot decodes) → enabled rules
    → configured severity → manual checklist

then suppressions over the whole run, the severity gate, and a stable sort
so identical input always produces identical output. A target that raises
still gets its manual checklist and an "Audit fallback engaged" warning.
"""

from dataclasses import dataclass
from datetime import datetime

from aa_auditor import registry
from aa_auditor.core.checklist import build_manual_checklist
from aa_auditor.core.config import AuditConfig
from aa_auditor.core.normalize import collect_payload_tokens, normalize_target
from aa_auditor.core.sampler import create_sampler
from aa_auditor.core.severity import apply_severity_override, severity_rank, should_fail
from aa_auditor.core.suppressions import apply_suppressions
from aa_auditor.core.types import (
    SEVERITIES,
    AuditReport,
    AuditSummary,
    Finding,
    ManualCheck,
    Rule,
    RuleContext,
    Target,
    TargetPayload,
    TargetResult,
)


@dataclass
class AuditResult:
    report: AuditReport
    should_fail: bool


def finding_sort_key(f: Finding) -> tuple:
    return (severity_rank(f.severity), f'{f.rule_id}|{f.target_ref.node_id}|{f.id}')


def target_sort_key(t: TargetResult) -> str:
    return f'{t.source_ref}|{t.target_id}|{t.name}'


def manual_check_sort_key(m: ManualCheck) -> str:
    return f'{m.target_ref.node_id}|{m.criterion}|{m.id}'


def audit_target(payload: TargetPayload, config: AuditConfig, rules: list[Rule]) -> TargetResult:
    """Evaluate one target. Exceptions propagate; run_audit turns them into a fallback result."""
    target = normalize_target(payload)
    tokens = collect_payload_tokens(payload)
    tokens.update(config.design_tokens)
    ctx = RuleContext(target=target, design_tokens=tokens, sampler=create_sampler(target, payload.screenshot))

    findings: list[Finding] = []
    for rule in rules:
        settings = config.rule_config(rule)
        if not settings.enabled:
            continue
        findings.extend(apply_severity_override(f, settings.severity) for f in rule.evaluate(ctx))

    return TargetResult(
        source_ref=target.source_ref,
        target_id=target.id,
        name=target.name,
        findings=findings,
        manual_checks=build_manual_checklist(target),
        warnings=list(target.warnings),
    )


def _fallback_result(payload: TargetPayload, exc: Exception) -> TargetResult:
    target = Target(id=payload.target_id, name=payload.name or f'Node {payload.target_id}', source_ref=payload.source_ref)
    return TargetResult(
        source_ref=target.source_ref,
        target_id=target.id,
        name=target.name,
        manual_checks=build_manual_checklist(target),
        warnings=[*payload.warnings, f'Audit fallback engaged: {exc}'],
    )


def run_audit(
    payloads: list[TargetPayload],
    config: AuditConfig,
    now: datetime,
    run_id: str,
    rules: list[Rule] | None = None,
) -> AuditResult:
    if rules is None:
        rules = [registry.all_rules()[rule_id] for rule_id in sorted(registry.all_rules())]

    results = []
    for payload in payloads:
        try:
            results.append(audit_target(payload, config, rules))
        except Exception as e:
            results.append(_fallback_result(payload, e))

    # Once over the whole run: each invalid suppression warns once
    flat = [f for r in results for f in r.findings]
    suppressed = apply_suppressions(flat, config.suppressions, now)
    offset = 0
    for r in results:
        count = len(r.findings)
        r.findings = sorted(suppressed.findings[offset : offset + count], key=finding_sort_key)
        r.manual_checks = sorted(r.manual_checks, key=manual_check_sort_key)
        offset += count

    results.sort(key=target_sort_key)
    findings = sorted(suppressed.findings, key=finding_sort_key)
    manual_checks = sorted((m for r in results for m in r.manual_checks), key=manual_check_sort_key)

    summary = _summarize(results, findings)
    summary.warnings.extend(suppressed.warnings)

    timestamp = now.isoformat()
    report = AuditReport(
        run_id=run_id,
        started_at=timestamp,
        finished_at=timestamp,
        summary=summary,
        targets=results,
        findings=findings,
        manual_checks=manual_checks,
    )
    return AuditResult(report=report, should_fail=should_fail(findings, config.fail_on))


def _summarize(results: list[TargetResult], findings: list[Finding]) -> AuditSummary:
    by_severity = {s: 0 for s in SEVERITIES}
    for f in findings:
        if f.status == 'failed' and f.suppressed is None:
            by_severity[f.severity] = by_severity.get(f.severity, 0) + 1

    return AuditSummary(
        total_targets=len(results),
        total_findings=len(findings),
        suppressed_findings=sum(1 for f in findings if f.suppressed is not None),
        manual_review_findings=sum(1 for f in findings if f.status == 'needs-manual-review'),
        by_severity=by_severity,
        failed_targets=sum(
            1 for r in results if any(f.status == 'failed' and f.suppressed is None for f in r.findings)
        ),
        warnings=[f'{r.name}: {w}' for r in results for w in r.warnings],
    )
