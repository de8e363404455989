"""Tests for aa_auditor.runner — end-to-end runs over in-memory payloads."""

from datetime import datetime, timezone

from aa_auditor.core.config import AuditConfig, RuleConfig
from aa_auditor.core.report import format_json, format_text, to_dict
from aa_auditor.core.types import Rule, Suppression, TargetPayload
from aa_auditor.runner import run_audit

NOW = datetime(2026, 2, 9, tzinfo=timezone.utc)
TEXT_RULE = 'WCAG-1.4.3-text-contrast-minimum'
SIZE_RULE = 'WCAG-2.5.8-target-size-minimum'


def _solid(r, g, b):
    return {'type': 'SOLID', 'color': {'r': r, 'g': g, 'b': b}}


def _box(x, y, w, h):
    return {'x': x, 'y': y, 'width': w, 'height': h}


def _payload(target_id: str = '1:1', source_ref: str = 'checkout.json', name: str = 'Checkout') -> TargetPayload:
    tree = {
        'id': target_id,
        'type': 'FRAME',
        'name': 'Root',
        'absoluteBoundingBox': _box(0, 0, 200, 100),
        'fills': [_solid(1, 1, 1)],
        'children': [
            {
                'id': '2:1',
                'type': 'TEXT',
                'name': 'Price',
                'characters': '$10',
                'absoluteBoundingBox': _box(10, 10, 100, 20),
                'fills': [_solid(156, 163, 175)],
            },
            {
                'id': '2:2',
                'type': 'INSTANCE',
                'name': 'Submit button',
                'absoluteBoundingBox': _box(10, 40, 20, 20),
                'fills': [_solid(0, 0, 0)],
            },
        ],
    }
    return TargetPayload(target_id=target_id, name=name, source_ref=source_ref, design_context=tree)


def _run(payloads, config=None, rules=None):
    return run_audit(payloads, config or AuditConfig(), now=NOW, run_id='run-1', rules=rules)


class TestRunAudit:
    def test_findings_sorted_by_severity(self):
        result = _run([_payload()])
        report = result.report

        assert [f.rule_id for f in report.findings] == [SIZE_RULE, TEXT_RULE]
        assert [f.severity for f in report.findings] == ['blocker', 'critical']
        assert result.should_fail
        assert report.started_at == report.finished_at == NOW.isoformat()

    def test_summary(self):
        summary = _run([_payload()]).report.summary
        assert summary.total_targets == 1
        assert summary.total_findings == 2
        assert summary.failed_targets == 1
        assert summary.manual_review_findings == 0
        assert summary.by_severity == {'blocker': 1, 'critical': 1, 'major': 0, 'minor': 0}
        assert summary.warnings == []

    def test_manual_checklist_per_target(self):
        report = _run([_payload('1:1'), _payload('3:1', source_ref='other.json')]).report
        assert len(report.manual_checks) == 10
        assert all(len(t.manual_checks) == 5 for t in report.targets)

    def test_identical_input_identical_output(self):
        first = to_dict(_run([_payload(), _payload('3:1', 'other.json')]).report)
        second = to_dict(_run([_payload(), _payload('3:1', 'other.json')]).report)
        assert first == second

    def test_targets_sorted(self):
        report = _run([_payload('1:1', 'b.json'), _payload('3:1', 'a.json')]).report
        assert [t.source_ref for t in report.targets] == ['a.json', 'b.json']

    def test_severity_override_and_disabled_rule(self):
        config = AuditConfig(rules={SIZE_RULE: RuleConfig(True, 'minor'), TEXT_RULE: RuleConfig(False)})
        result = _run([_payload()], config)
        assert [(f.rule_id, f.severity) for f in result.report.findings] == [(SIZE_RULE, 'minor')]
        assert not result.should_fail

    def test_fail_on_gate(self):
        config = AuditConfig(fail_on=['major'])
        assert not _run([_payload()], config).should_fail


class TestSuppressionsInRun:
    def test_wildcard_across_targets(self):
        config = AuditConfig(
            suppressions=[Suppression(TEXT_RULE, '*', 'Known low-contrast price tag', '2027-01-01')],
            fail_on=['critical'],
        )
        result = _run([_payload('1:1'), _payload('3:1', 'other.json')], config)

        summary = result.report.summary
        assert summary.suppressed_findings == 2
        assert summary.by_severity['critical'] == 0
        assert not result.should_fail

    def test_expired_warns_once(self):
        config = AuditConfig(suppressions=[Suppression(TEXT_RULE, '2:1', 'Old', '2025-01-01')])
        result = _run([_payload('1:1'), _payload('3:1', 'other.json')], config)
        assert result.report.summary.warnings == [f'Suppression {TEXT_RULE}/2:1 expired on 2025-01-01.']
        assert result.report.summary.suppressed_findings == 0


class TestFallback:
    def test_broken_rule_engages_fallback(self):
        broken = Rule(id='BROKEN', criterion='0.0.0', title='Broken', default_severity='minor')
        result = _run([_payload()], rules=[broken])

        target = result.report.targets[0]
        assert target.findings == []
        assert len(target.manual_checks) == 5
        assert result.report.summary.warnings == [
            'Checkout: Audit fallback engaged: Rule BROKEN has no check or select function'
        ]
        assert not result.should_fail

    def test_target_warnings_prefixed(self):
        payload = TargetPayload(target_id='9:9')
        warnings = _run([payload]).report.summary.warnings
        assert warnings == ['Node 9:9: No traversable nodes were found in design context; checks may be incomplete.']


class TestReportOutput:
    def test_json_shape(self):
        data = to_dict(_run([_payload()]).report)
        assert data['runId'] == 'run-1'
        assert data['summary']['bySeverity']['blocker'] == 1
        assert data['targets'][0]['findings'] == [f['id'] for f in data['findings']]
        assert data['findings'][0]['targetRef']['layerPath'] == 'Root > Submit button'
        assert len(data['manualChecks']) == 5
        assert format_json(_run([_payload()]).report).startswith('{\n  "runId": "run-1"')

    def test_text_output(self):
        text = format_text(_run([_payload()]).report)
        assert '── Checkout (1:1) [checkout.json]' in text
        assert 'Interactive target is 20.0x20.0px; minimum is 24x24px.' in text
        assert 'manual checks: 5' in text
        assert text.endswith('failed: blocker=1  critical=1  major=0  minor=0  (1 target(s) with failures)')

    def test_text_without_manual(self):
        assert 'manual checks' not in format_text(_run([_payload()]).report, show_manual=False)
