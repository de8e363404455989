"""Time-boxed suppressions of known findings.

A suppression matches findings of one rule, either on one node id or on
every node ('*'). It needs a reason and an expiry date; an invalid or
expired suppression is skipped with one warning and the finding stays live.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone

from aa_auditor.core.types import ActiveSuppression, Finding, Suppression

WILDCARD = '*'


@dataclass
class SuppressionResult:
    findings: list[Finding]
    warnings: list[str] = field(default_factory=list)


def parse_timestamp(value: str) -> datetime | None:
    """ISO date or datetime. A trailing Z and naive values are read as UTC."""
    text = value.strip()
    if text.endswith('Z'):
        text = text[:-1] + '+00:00'
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    return _as_utc(parsed)


def _as_utc(value: datetime) -> datetime:
    return value.replace(tzinfo=timezone.utc) if value.tzinfo is None else value


def active_suppressions(suppressions: list[Suppression], now: datetime) -> tuple[list[Suppression], list[str]]:
    active = []
    warnings = []
    now = _as_utc(now)
    for idx, s in enumerate(suppressions):
        if not s.reason.strip():
            warnings.append(f'Suppression[{idx}] ignored because reason is empty.')
            continue
        expiry = parse_timestamp(s.expires_on)
        if expiry is None:
            warnings.append(f'Suppression {s.rule_id}/{s.target_id} ignored due to invalid expiresOn date.')
            continue
        if expiry < now:
            warnings.append(f'Suppression {s.rule_id}/{s.target_id} expired on {s.expires_on}.')
            continue
        active.append(s)
    return active, warnings


def apply_suppressions(findings: list[Finding], suppressions: list[Suppression], now: datetime) -> SuppressionResult:
    active, warnings = active_suppressions(suppressions, now)
    matched_at = _as_utc(now).isoformat()

    out = []
    for finding in findings:
        match = next(
            (
                s
                for s in active
                if s.rule_id == finding.rule_id and s.target_id in (WILDCARD, finding.target_ref.node_id)
            ),
            None,
        )
        if match is None:
            out.append(finding)
            continue
        out.append(
            replace(
                finding,
                suppressed=ActiveSuppression(
                    rule_id=match.rule_id,
                    target_id=match.target_id,
                    reason=match.reason,
                    expires_on=match.expires_on,
                    matched_at=matched_at,
                    owner=match.owner,
                ),
            )
        )
    return SuppressionResult(findings=out, warnings=warnings)
