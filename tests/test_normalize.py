"""Tests for aa_auditor.core.normalize — payload shapes, visibility, merging, style hints."""

import pytest
from aa_auditor.core.color import BLACK, WHITE
from aa_auditor.core.normalize import (
    NO_NODES_WARNING,
    CodePayload,
    EmptyPayload,
    MarkupPayload,
    TreePayload,
    classify_payload,
    collect_payload_tokens,
    normalize_target,
)
from aa_auditor.core.types import Bounds, Color, ExpandedContext, StyleHint, TargetPayload


def _solid(r, g, b, a=1):
    return {'type': 'SOLID', 'color': {'r': r, 'g': g, 'b': b, 'a': a}}


def _box(x, y, w, h):
    return {'x': x, 'y': y, 'width': w, 'height': h}


TREE = {
    'document': {
        'id': '1:1',
        'type': 'FRAME',
        'name': 'Card',
        'absoluteBoundingBox': _box(0, 0, 320, 200),
        'fills': [_solid(1, 1, 1)],
        'children': [
            {
                'id': '1:2',
                'type': 'TEXT',
                'name': 'Title',
                'characters': 'Hello',
                'absoluteBoundingBox': _box(8, 8, 120, 24),
                'fills': [_solid(0, 0, 0)],
                'style': {'fontSize': 16, 'fontWeight': 700, 'lineHeightPx': 24},
            },
            {
                'id': '1:3',
                'type': 'FRAME',
                'name': 'Hidden',
                'visible': False,
                'children': [{'id': '1:4', 'type': 'TEXT', 'name': 'Inside hidden', 'characters': 'x'}],
            },
            {'id': '1:5', 'type': 'FRAME', 'name': 'Faded', 'opacity': 0},
            {
                'name': 'wrapper without id',
                'children': [
                    {
                        'id': '1:6',
                        'type': 'INSTANCE',
                        'name': 'Chip',
                        'reactions': [{'trigger': {'type': 'ON_CLICK'}}],
                        'absoluteBoundingBox': _box(10, 40, 60, 20),
                    }
                ],
            },
        ],
    }
}

METADATA = """<frame id="1:1" name="Root" x="0" y="0" width="320" height="200">
  <rounded-rectangle id="1:2" name="Bg" x="0" y="0" width="320" height="200" />
  <text id="1:3" name="Title" x="8" y="8" width="120" height="24" />
  <frame id="1:4" name="Hidden" hidden="true" x="0" y="0" width="10" height="10">
    <text id="1:5" name="Inner" x="0" y="0" width="1" height="1" />
  </frame>
  <instance id="1:6" name="Chip" x="10" y="40" width="60" height="20" />
</frame>"""


def _by_id(target):
    return {node.id: node for node in target.nodes}


class TestClassifyPayload:
    def test_wrapped_tree(self):
        assert classify_payload({'document': {'id': '1:1'}}) == TreePayload({'id': '1:1'})
        assert classify_payload({'node': {'document': {'id': '1:1'}}}) == TreePayload({'id': '1:1'})

    def test_list_tree(self):
        assert isinstance(classify_payload([{'id': '1:1'}]), TreePayload)
        assert isinstance(classify_payload([]), EmptyPayload)

    def test_strings(self):
        assert isinstance(classify_payload('<div className="bg-[#fff]" data-node-id="1:1" />'), CodePayload)
        assert isinstance(classify_payload('<frame id="1:1" name="Root" />'), MarkupPayload)
        assert isinstance(classify_payload('   '), EmptyPayload)

    @pytest.mark.parametrize('raw', [None, 42, True])
    def test_anything_else_is_empty(self, raw):
        assert isinstance(classify_payload(raw), EmptyPayload)


class TestTreePayload:
    def test_visible_nodes_only(self):
        t = normalize_target(TargetPayload(target_id='1:1', name='Checkout', design_context=TREE))
        assert [n.id for n in t.nodes] == ['1:1', '1:2', '1:6']
        assert t.context_source == 'design-context'
        assert t.name == 'Checkout'
        assert t.warnings == []

    def test_node_fields(self):
        nodes = _by_id(normalize_target(TargetPayload(target_id='1:1', design_context=TREE)))
        title = nodes['1:2']
        assert title.parent_id == '1:1'
        assert title.text == 'Hello'
        assert title.bounds == Bounds(8, 8, 120, 24)
        assert title.fills == [BLACK]
        assert (title.font_size, title.font_weight, title.line_height) == (16, 700, 24)
        assert nodes['1:1'].fills == [WHITE]
        assert nodes['1:1'].parent_id is None

    def test_malformed_wrapper_passes_parent_through(self):
        chip = _by_id(normalize_target(TargetPayload(target_id='1:1', design_context=TREE)))['1:6']
        assert chip.parent_id == '1:1'
        assert chip.is_interactive

    def test_bounds_precedence(self):
        tree = {
            'id': '2:1',
            'type': 'FRAME',
            'absoluteRenderBounds': _box(5, 5, 5, 5),
            'absoluteBoundingBox': _box(1, 1, 1, 1),
            'children': [
                {
                    'id': '2:2',
                    'type': 'FRAME',
                    'absoluteBoundingBox': {'x': 1, 'y': 1},
                    'size': {'width': 30, 'height': 40},
                    'position': {'x': 3, 'y': 4},
                },
                {'id': '2:3', 'type': 'FRAME', 'bounds': {'x': 'a', 'y': 0, 'width': 1, 'height': 1}},
            ],
        }
        nodes = _by_id(normalize_target(TargetPayload(target_id='2:1', design_context=tree)))
        assert nodes['2:1'].bounds == Bounds(1, 1, 1, 1)
        assert nodes['2:2'].bounds == Bounds(3, 4, 30, 40)
        assert nodes['2:3'].bounds is None

    def test_paints(self):
        tree = {
            'id': '3:1',
            'type': 'RECTANGLE',
            'fills': [
                {'type': 'SOLID', 'visible': False, 'color': {'r': 1, 'g': 0, 'b': 0}},
                {'type': 'GRADIENT_LINEAR'},
                {'type': 'SOLID', 'opacity': 0.5, 'color': {'r': 0, 'g': 0, 'b': 0}},
            ],
            'strokes': [_solid(1, 1, 1)],
        }
        node = normalize_target(TargetPayload(target_id='3:1', design_context=tree)).nodes[0]
        assert node.fills == [Color(0, 0, 0, 0.5)]
        assert node.strokes == [WHITE]

    @pytest.mark.parametrize(
        'extra',
        [{'type': 'BUTTON'}, {'name': 'Submit'}, {'onClick': 'go()'}, {'role': 'menuitem'}],
    )
    def test_interactivity_signals(self, extra):
        tree = {'id': '4:1', 'type': 'FRAME', 'name': 'Plain', **extra}
        assert normalize_target(TargetPayload(target_id='4:1', design_context=tree)).nodes[0].is_interactive

    def test_plain_frame_is_not_interactive(self):
        tree = {'id': '4:1', 'type': 'FRAME', 'name': 'Plain', 'reactions': []}
        assert not normalize_target(TargetPayload(target_id='4:1', design_context=tree)).nodes[0].is_interactive

    def test_zero_opacity_in_style(self):
        tree = {'id': '5:1', 'type': 'FRAME', 'children': [{'id': '5:2', 'type': 'TEXT', 'style': {'opacity': 0}}]}
        t = normalize_target(TargetPayload(target_id='5:1', design_context=tree))
        assert [n.id for n in t.nodes] == ['5:1']


class TestMarkupPayload:
    def test_metadata_fallback(self):
        t = normalize_target(TargetPayload(target_id='1:1', metadata=METADATA))
        nodes = _by_id(t)
        assert list(nodes) == ['1:1', '1:2', '1:3', '1:6']
        assert t.context_source == 'metadata-fallback'
        assert nodes['1:2'].type == 'ROUNDED_RECTANGLE'
        assert nodes['1:3'].text == 'Title'
        assert nodes['1:3'].parent_id == '1:1'
        assert nodes['1:3'].bounds == Bounds(8, 8, 120, 24)
        assert nodes['1:6'].is_interactive
        assert not nodes['1:2'].is_interactive

    def test_markup_as_design_context(self):
        t = normalize_target(TargetPayload(target_id='1:1', design_context=METADATA))
        assert t.context_source == 'metadata-fallback'
        assert len(t.nodes) == 4

    def test_explicit_context_source_wins(self):
        t = normalize_target(TargetPayload(target_id='1:1', metadata=METADATA, context_source='design-context'))
        assert t.context_source == 'design-context'


class TestExpansions:
    def test_records_merge_by_id(self):
        primary = {
            'id': '1:1',
            'type': 'FRAME',
            'name': 'Root',
            'fills': [_solid(1, 1, 1)],
            'children': [{'id': '1:2', 'type': 'TEXT', 'name': 'T', 'absoluteBoundingBox': _box(0, 0, 10, 10)}],
        }
        expansion = {
            'id': '1:2',
            'type': 'TEXT',
            'name': 'Title label',
            'characters': 'Hello',
            'fills': [_solid(0, 0, 0)],
        }
        t = normalize_target(
            TargetPayload(
                target_id='1:1',
                design_context=primary,
                expanded_contexts=[ExpandedContext('1:2', expansion)],
            )
        )
        assert [n.id for n in t.nodes] == ['1:1', '1:2']
        title = _by_id(t)['1:2']
        assert title.parent_id == '1:1'
        assert title.name == 'Title label'
        assert title.text == 'Hello'
        assert title.bounds == Bounds(0, 0, 10, 10)
        assert len(title.fills) == 1

    def test_unknown_expansion_hangs_off_target(self):
        t = normalize_target(
            TargetPayload(
                target_id='1:1',
                design_context={'id': '1:1', 'type': 'FRAME'},
                expanded_contexts=[ExpandedContext('9:9', {'id': '9:9', 'type': 'TEXT', 'characters': 'x'})],
            )
        )
        assert _by_id(t)['9:9'].parent_id == '1:1'

    def test_expansion_of_target_does_not_parent_itself(self):
        t = normalize_target(
            TargetPayload(
                target_id='1:1',
                expanded_contexts=[ExpandedContext('1:1', {'id': '1:1', 'type': 'FRAME'})],
            )
        )
        assert t.nodes[0].parent_id is None


class TestStyleHints:
    CODE = (
        '<div data-node-id="1:1" className="bg-[#F8F9FA]">'
        '<p data-node-id="1:3" className="text-[color:var(--text/primary)]">Title</p>'
        '</div>'
    )

    def test_code_with_metadata(self):
        t = normalize_target(
            TargetPayload(
                target_id='1:1',
                design_context=self.CODE,
                metadata=METADATA,
                design_tokens={'text/primary': '#102B7C'},
            )
        )
        nodes = _by_id(t)
        assert t.context_source == 'metadata-fallback'
        assert t.fallback_background == Color(248, 249, 250, 1.0)
        assert nodes['1:1'].fills == [Color(248, 249, 250, 1.0)]
        assert nodes['1:3'].fills == [Color(16, 43, 124, 1.0)]

    def test_code_without_metadata(self):
        t = normalize_target(TargetPayload(target_id='1:1', design_context=self.CODE))
        assert t.nodes == []
        assert t.fallback_background == Color(248, 249, 250, 1.0)
        assert any('generated code without layer metadata' in w for w in t.warnings)
        assert NO_NODES_WARNING in t.warnings

    def test_structural_fills_win(self):
        hint = StyleHint(fills=[Color(1, 2, 3, 1.0)])
        t = normalize_target(
            TargetPayload(
                target_id='1:1',
                design_context=TREE,
                style_hints={'1:1': hint, '1:6': hint},
            )
        )
        nodes = _by_id(t)
        assert nodes['1:1'].fills == [WHITE]
        assert nodes['1:6'].fills == [Color(1, 2, 3, 1.0)]

    def test_explicit_fallback_background_kept(self):
        page = Color(0, 0, 0, 1.0)
        t = normalize_target(TargetPayload(target_id='1:1', design_context=self.CODE, fallback_background=page))
        assert t.fallback_background == page


class TestEmptyPayload:
    def test_warning_and_default_name(self):
        t = normalize_target(TargetPayload(target_id='9:9', warnings=['upstream timeout']))
        assert t.nodes == []
        assert t.name == 'Node 9:9'
        assert t.warnings == ['upstream timeout', NO_NODES_WARNING]


class TestPayloadTokens:
    def test_explicit_tokens_override_variables(self):
        payload = TargetPayload(
            target_id='1:1',
            variable_defs={'text.primary': '#1f2937', 'text.inverse': '#fff'},
            design_tokens={'text.primary': '#000000'},
        )
        assert collect_payload_tokens(payload) == {'text.inverse': '#FFFFFF', 'text.primary': '#000000'}
