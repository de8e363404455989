"""Tests for aa_auditor.core.style_hints — class-based colour extraction from generated code."""

from aa_auditor.core.style_hints import (
    extract_document_background,
    extract_node_style_hints,
    looks_like_code,
    normalize_token_key,
)


class TestNodeStyleHints:
    def test_maps_classes_to_fills_and_strokes(self):
        code = """
            <div className="bg-[color:var(--surface,#F5F5F5)] border-[color:var(--border,#D9D9D9)]" data-node-id="10:1"></div>
            <p className="text-[color:var(--text,#102b7c)]" data-node-id="10:2">Label</p>
            <span className="text-[#FF0000]" data-node-id="10:3">Hot</span>
        """
        hints = extract_node_style_hints(code)

        assert hints['10:1'].fills[0].r == 245
        assert hints['10:1'].strokes[0].r == 217
        assert hints['10:2'].text_fills[0].b == 124
        assert hints['10:3'].text_fills[0].r == 255

    def test_resolves_var_through_palette(self):
        code = '<p className="text-[color:var(--primary\\/forcelink\\/primary-7)]" data-node-id="11:1">Title</p>'
        hints = extract_node_style_hints(code, {'Primary/Forcelink/primary-7': '#102B7C'})

        color = hints['11:1'].text_fills[0]
        assert (color.r, color.g, color.b) == (16, 43, 124)

    def test_class_attribute_and_single_quotes(self):
        code = """
            <div class='bg-[#FAFAFA]' data-node-id="12:1"></div>
            <span class='text-[color:var(--neutral\\/900,#111111)]' data-node-id="12:2">Hi</span>
        """
        hints = extract_node_style_hints(code)

        fill = hints['12:1'].fills[0]
        assert (fill.r, fill.g, fill.b) == (250, 250, 250)
        text = hints['12:2'].text_fills[0]
        assert (text.r, text.g, text.b) == (17, 17, 17)

    def test_unresolvable_var_is_skipped(self):
        code = '<p className="text-[color:var(--nope)]" data-node-id="13:1">x</p>'
        assert extract_node_style_hints(code) == {}

    def test_duplicates_collapse(self):
        code = '<div className="bg-[#fff] bg-[#FFFFFF]" data-node-id="14:1"></div>'
        assert len(extract_node_style_hints(code)['14:1'].fills) == 1


class TestDocumentBackground:
    def test_first_solid_bg(self):
        code = """
            <div className="relative bg-[color:var(--surface,#F8F9FA)]">
              <div class="text-[#262626]" data-node-id="1:2">Title</div>
            </div>
        """
        bg = extract_document_background(code)
        assert bg is not None
        assert (bg.r, bg.g, bg.b, bg.a) == (248, 249, 250, 1.0)

    def test_translucent_bg_skipped(self):
        code = '<div className="bg-[#00000080]"><div className="bg-[#EEEEEE]"></div></div>'
        bg = extract_document_background(code)
        assert bg is not None
        assert bg.r == 238

    def test_none(self):
        assert extract_document_background('<div className="text-[#000]"></div>') is None


class TestHelpers:
    def test_looks_like_code(self):
        assert looks_like_code('<div data-node-id="1:1" />')
        assert looks_like_code('<div className="x" />')
        assert not looks_like_code('<frame id="1:1" />')

    def test_token_key(self):
        assert normalize_token_key(' Primary\\/Forcelink_primary-7 ') == 'primary/forcelink/primary-7'
