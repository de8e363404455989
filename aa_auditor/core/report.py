"""Report builder — text and JSON output for aa-auditor results."""

import json
from typing import Any

from aa_auditor.core.types import SEVERITIES, AuditReport, Finding, ManualCheck, TargetRef


def format_text(report: AuditReport, show_manual: bool = True) -> str:
    """Format report as human-readable text."""
    s = report.summary
    lines = [f'aa-auditor: run {report.run_id} ({report.started_at})', '']

    for target in report.targets:
        ref = f' [{target.source_ref}]' if target.source_ref else ''
        lines.append(f'── {target.name} ({target.target_id}){ref}')
        if not target.findings:
            lines.append('  no findings')
        for f in target.findings:
            mark = '✗' if f.status == 'failed' else '?'
            lines.append(f'  {mark} {f.severity:<8} {f.rule_id}  {f.target_ref.layer_path or f.target_ref.node_id}')
            lines.append(f'      {f.message}')
            if f.suppressed is not None:
                lines.append(f'      suppressed until {f.suppressed.expires_on}: {f.suppressed.reason}')
            if f.recommendation:
                lines.append(f'      fix: {f.recommendation}')
        if show_manual and target.manual_checks:
            lines.append(f'  manual checks: {len(target.manual_checks)}')
            for m in target.manual_checks:
                lines.append(f'    [ ] {m.criterion:<7} {m.prompt}')
        lines.append('')

    counts = '  '.join(f'{sev}={s.by_severity.get(sev, 0)}' for sev in SEVERITIES)
    lines.append(
        f'{s.total_targets} target(s)  {s.total_findings} finding(s)  '
        f'{s.manual_review_findings} manual review  {s.suppressed_findings} suppressed'
    )
    lines.append(f'failed: {counts}  ({s.failed_targets} target(s) with failures)')
    return '\n'.join(lines)


def _target_ref(ref: TargetRef) -> dict[str, Any]:
    obj: dict[str, Any] = {
        'sourceRef': ref.source_ref,
        'targetId': ref.target_id,
        'nodeId': ref.node_id,
        'targetName': ref.target_name,
    }
    if ref.layer_path is not None:
        obj['layerPath'] = ref.layer_path
    return obj


def _finding(f: Finding) -> dict[str, Any]:
    obj: dict[str, Any] = {
        'id': f.id,
        'ruleId': f.rule_id,
        'criterion': f.criterion,
        'severity': f.severity,
        'status': f.status,
        'message': f.message,
        'targetRef': _target_ref(f.target_ref),
    }
    if f.recommendation is not None:
        obj['recommendation'] = f.recommendation
    if f.evidence is not None:
        obj['evidence'] = f.evidence
    if f.suppressed is not None:
        sup = f.suppressed
        obj['suppressed'] = {
            'ruleId': sup.rule_id,
            'targetId': sup.target_id,
            'reason': sup.reason,
            'expiresOn': sup.expires_on,
            'matchedAt': sup.matched_at,
        }
        if sup.owner is not None:
            obj['suppressed']['owner'] = sup.owner
    return obj


def _manual_check(m: ManualCheck) -> dict[str, Any]:
    return {'id': m.id, 'criterion': m.criterion, 'prompt': m.prompt, 'targetRef': _target_ref(m.target_ref)}


def to_dict(report: AuditReport) -> dict[str, Any]:
    s = report.summary
    return {
        'runId': report.run_id,
        'startedAt': report.started_at,
        'finishedAt': report.finished_at,
        'summary': {
            'totalTargets': s.total_targets,
            'totalFindings': s.total_findings,
            'suppressedFindings': s.suppressed_findings,
            'manualReviewFindings': s.manual_review_findings,
            'bySeverity': dict(s.by_severity),
            'failedTargets': s.failed_targets,
            'warnings': list(s.warnings),
        },
        'targets': [
            {
                'sourceRef': t.source_ref,
                'targetId': t.target_id,
                'name': t.name,
                'findings': [f.id for f in t.findings],
                'manualChecks': [m.id for m in t.manual_checks],
                'warnings': list(t.warnings),
            }
            for t in report.targets
        ],
        'findings': [_finding(f) for f in report.findings],
        'manualChecks': [_manual_check(m) for m in report.manual_checks],
    }


def format_json(report: AuditReport) -> str:
    """Format report as JSON."""
    return json.dumps(to_dict(report), indent=2)
