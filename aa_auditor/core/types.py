"""Shared types for aa-auditor: Color, Node, Target, Finding, Rule, AuditReport."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Literal

if TYPE_CHECKING:
    from aa_auditor.core.sampler import ScreenshotSampler

Severity = Literal['blocker', 'critical', 'major', 'minor']
FindingStatus = Literal['failed', 'needs-manual-review']
ContextSource = Literal['design-context', 'metadata-fallback']

SEVERITIES: tuple[str, ...] = ('blocker', 'critical', 'major', 'minor')


@dataclass(frozen=True)
class Color:
    """sRGB colour. Channels are ints 0-255, alpha is a 0-1 blend fraction."""

    r: int
    g: int
    b: int
    a: float = 1.0


@dataclass(frozen=True)
class Bounds:
    x: float
    y: float
    width: float
    height: float


@dataclass
class Node:
    """A canonical design layer. parent_id is a key into the Target, never an owner."""

    id: str
    name: str
    type: str
    parent_id: str | None = None
    bounds: Bounds | None = None
    fills: list[Color] = field(default_factory=list)
    strokes: list[Color] = field(default_factory=list)
    text: str | None = None
    font_size: float | None = None
    font_weight: float | None = None
    line_height: float | None = None
    is_interactive: bool = False


@dataclass
class Target:
    """Root audit unit: every node reachable from one audited design node."""

    id: str
    name: str
    source_ref: str = ''
    nodes: list[Node] = field(default_factory=list)
    context_source: ContextSource = 'design-context'
    fallback_background: Color | None = None
    warnings: list[str] = field(default_factory=list)


@dataclass
class StyleHint:
    """Colours recovered from generated code for one node id."""

    fills: list[Color] = field(default_factory=list)
    text_fills: list[Color] = field(default_factory=list)
    strokes: list[Color] = field(default_factory=list)


@dataclass
class ExpandedContext:
    """A supplementary design-context payload fetched for one sub-layer."""

    node_id: str
    context: Any


@dataclass
class TargetPayload:
    """Everything a data-fetch collaborator hands over for one target. Any field may be empty."""

    target_id: str
    name: str = ''
    source_ref: str = ''
    design_context: Any = None
    expanded_contexts: list[ExpandedContext] = field(default_factory=list)
    metadata: str | None = None
    style_hints: dict[str, StyleHint] = field(default_factory=dict)
    fallback_background: Color | None = None
    context_source: ContextSource | None = None
    variable_defs: Any = None
    design_tokens: dict[str, str] = field(default_factory=dict)
    screenshot: bytes | None = None
    warnings: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class TargetRef:
    source_ref: str
    target_id: str
    node_id: str
    target_name: str
    layer_path: str | None = None


@dataclass(frozen=True)
class Suppression:
    rule_id: str
    target_id: str
    reason: str
    expires_on: str
    owner: str | None = None


@dataclass(frozen=True)
class ActiveSuppression:
    rule_id: str
    target_id: str
    reason: str
    expires_on: str
    matched_at: str
    owner: str | None = None


@dataclass(frozen=True)
class Finding:
    id: str
    rule_id: str
    criterion: str
    severity: Severity
    status: FindingStatus
    message: str
    target_ref: TargetRef
    recommendation: str | None = None
    evidence: str | None = None
    suppressed: ActiveSuppression | None = None


@dataclass(frozen=True)
class ManualCheck:
    id: str
    criterion: str
    prompt: str
    target_ref: TargetRef


@dataclass(frozen=True)
class BackgroundResolution:
    """Result of background resolution. color is None exactly when reason is set."""

    color: Color | None = None
    source: str | None = None
    reason: str | None = None


@dataclass
class RuleContext:
    """What a rule sees while evaluating one target."""

    target: Target
    design_tokens: dict[str, str] = field(default_factory=dict)
    sampler: ScreenshotSampler | None = None


CheckFn = Callable[[RuleContext, Node], 'Finding | None']
SelectFn = Callable[[Target], Iterable[Node]]


class Rule:
    """A self-registering audit rule.

    Usage in a rule module:

        rule = Rule(id='WCAG-x', criterion='x', title='...', default_severity='major')

        @rule.select
        def select(target):
            ...

        @rule.check
        def check(ctx, node):
            ...
    """

    def __init__(self, id: str, criterion: str, title: str, default_severity: Severity, help: str = ''):
        self.id = id
        self.criterion = criterion
        self.title = title
        self.default_severity = default_severity
        self.help = help
        self._check_fn: CheckFn | None = None
        self._select_fn: SelectFn | None = None

    def check(self, fn: CheckFn) -> CheckFn:
        """Decorator to register the per-node check function."""
        self._check_fn = fn
        return fn

    def select(self, fn: SelectFn) -> SelectFn:
        """Decorator to register the node selector."""
        self._select_fn = fn
        return fn

    def evaluate(self, ctx: RuleContext) -> list[Finding]:
        """Run the check over every selected node. A failing check never aborts the others."""
        if self._check_fn is None or self._select_fn is None:
            raise RuntimeError(f'Rule {self.id} has no check or select function')

        from aa_auditor.core.findings import evaluation_error_finding

        findings = []
        for node in self._select_fn(ctx.target):
            try:
                finding = self._check_fn(ctx, node)
            except Exception as e:
                finding = evaluation_error_finding(self, ctx.target, node, e)
            if finding is not None:
                findings.append(finding)
        return findings


@dataclass
class TargetResult:
    source_ref: str
    target_id: str
    name: str
    findings: list[Finding] = field(default_factory=list)
    manual_checks: list[ManualCheck] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


@dataclass
class AuditSummary:
    total_targets: int = 0
    total_findings: int = 0
    suppressed_findings: int = 0
    manual_review_findings: int = 0
    by_severity: dict[str, int] = field(default_factory=lambda: {s: 0 for s in SEVERITIES})
    failed_targets: int = 0
    warnings: list[str] = field(default_factory=list)


@dataclass
class AuditReport:
    """Accumulated results of one audit run, ready for text/JSON output."""

    run_id: str
    started_at: str
    finished_at: str = ''
    summary: AuditSummary = field(default_factory=AuditSummary)
    targets: list[TargetResult] = field(default_factory=list)
    findings: list[Finding] = field(default_factory=list)
    manual_checks: list[ManualCheck] = field(default_factory=list)
