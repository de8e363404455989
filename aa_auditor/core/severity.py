"""Severity ordering, per-rule overrides and the fail gate."""

from dataclasses import replace

from aa_auditor.core.types import SEVERITIES, Finding

_RANK = {severity: rank for rank, severity in enumerate(SEVERITIES)}


def severity_rank(severity: str) -> int:
    return _RANK.get(severity, len(SEVERITIES))


def apply_severity_override(finding: Finding, severity: str | None) -> Finding:
    """Configured severity replaces the rule default on failed findings only."""
    if severity is None or finding.status != 'failed' or finding.severity == severity:
        return finding
    return replace(finding, severity=severity)


def should_fail(findings: list[Finding], fail_on: list[str] | set[str] | tuple[str, ...]) -> bool:
    """True when any live (unsuppressed) failed finding has a gated severity."""
    gate = set(fail_on)
    return any(f.status == 'failed' and f.suppressed is None and f.severity in gate for f in findings)
