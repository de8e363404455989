"""Static catalog of checks that cannot be automated from design data."""

from dataclasses import dataclass

from aa_auditor.core.ids import stable_id
from aa_auditor.core.types import ManualCheck, Target, TargetRef


@dataclass(frozen=True)
class CatalogEntry:
    id: str
    criterion: str
    prompt: str


MANUAL_CHECK_CATALOG: tuple[CatalogEntry, ...] = (
    CatalogEntry(
        'MANUAL-WCAG-1.3.1',
        '1.3.1',
        'Verify structure and relationships are programmatically determinable (headings, grouped controls, labels).',
    ),
    CatalogEntry('MANUAL-WCAG-1.4.1', '1.4.1', 'Verify color is not the only means used to convey state or meaning.'),
    CatalogEntry(
        'MANUAL-WCAG-2.4.7', '2.4.7', 'Verify focus indicators are clearly visible for all interactive components.'
    ),
    CatalogEntry('MANUAL-WCAG-2.4.11', '2.4.11', 'Verify focused elements are not fully obscured by fixed/sticky UI.'),
    CatalogEntry(
        'MANUAL-WCAG-3.3.2',
        '3.3.2',
        'Verify form controls include persistent labels/instructions and clear error guidance.',
    ),
)


def build_manual_checklist(target: Target) -> list[ManualCheck]:
    """One instance of every catalog entry, stamped with the target."""
    ref = TargetRef(
        source_ref=target.source_ref,
        target_id=target.id,
        node_id=target.id,
        target_name=target.name,
        layer_path=target.name,
    )
    return [
        ManualCheck(id=stable_id([entry.id, target.id]), criterion=entry.criterion, prompt=entry.prompt, target_ref=ref)
        for entry in MANUAL_CHECK_CATALOG
    ]
