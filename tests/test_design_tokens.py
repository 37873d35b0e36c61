"""Tests for sitemigrate.services.design_tokens."""

import pytest

from sitemigrate.models.scraped import PageMetadata, ScrapedPage, ScrapedSection
from sitemigrate.models.tokens import DEFAULT_BREAKPOINTS
from sitemigrate.services.design_tokens import (
    COLOR_SCALE_STEPS,
    extract_design_tokens,
    generate_color_name,
    generate_color_scale,
)

STEPS = [step for step, _, _ in COLOR_SCALE_STEPS]


def _section(styles=None, markup="<p>x</p>", children=None) -> ScrapedSection:
    return ScrapedSection(
        id="s",
        inferred_type="section",
        inner_markup=markup,
        text="x",
        inline_styles=styles or {},
        children=children or [],
    )


def _page(*sections: ScrapedSection) -> ScrapedPage:
    return ScrapedPage(
        url="https://example.com/",
        title="",
        description="",
        raw_body_markup="",
        sections=list(sections),
        assets=[],
        metadata=PageMetadata(),
    )


# ---------------------------------------------------------------------------
# Colour scale
# ---------------------------------------------------------------------------

class TestGenerateColorScale:
    def test_tints_and_shades(self):
        scale = generate_color_scale("#3366cc")
        assert list(scale) == STEPS
        assert scale[500] == "#3366cc"
        assert scale[50] == "#f5f7fc"
        assert scale[600] == "#2952a3"

    @pytest.mark.parametrize("base", ["000000", "#000", "000"])
    def test_hex_forms(self, base):
        scale = generate_color_scale(base)
        assert scale[50] == "#f2f2f2"
        assert scale[900] == "#000000"
        assert scale[500] == base

    def test_short_white(self):
        assert generate_color_scale("#fff")[950] == "#1a1a1a"

    @pytest.mark.parametrize("base", ["red", "#12345", "rgb(0,0,0)", ""])
    def test_non_hex_input_is_repeated(self, base):
        assert generate_color_scale(base) == {step: base for step in STEPS}

    def test_deterministic(self):
        assert generate_color_scale("#abcdef") == generate_color_scale("#abcdef")


class TestGenerateColorName:
    @pytest.mark.parametrize(
        "value, expected",
        [
            ("#FFFFFF", "white"),
            ("#000000", "black"),
            ("#fff", "white"),
            ("#F00", "red"),
            ("#abc", "color-aabbcc"),
            ("#3366cc", "color-3366cc"),
            ("rgb(1, 2, 3)", "color-rgb123"),
        ],
    )
    def test_names(self, value, expected):
        assert generate_color_name(value) == expected


# ---------------------------------------------------------------------------
# Extraction
# ---------------------------------------------------------------------------

class TestExtractDesignTokens:
    def test_collects_from_nested_sections(self):
        child = _section({"color": "#ff0000", "padding-top": "2rem", "font-weight": "700"})
        parent = _section(
            {
                "background-color": "#ffffff",
                "font-family": "'Inter', sans-serif",
                "font-size": "16px",
                "padding": "10px",
                "margin": "0 auto",
            },
            children=[child],
        )
        tokens = extract_design_tokens([_page(parent)])

        assert tokens.colors == {"white": "#ffffff", "red": "#ff0000"}
        assert tokens.fonts.families == ["Inter, sans-serif"]
        assert tokens.fonts.sizes == ["16px"]
        assert tokens.fonts.weights == ["700"]
        # Compound values are not spacing tokens
        assert tokens.spacing == ["10px", "2rem"]
        assert tokens.breakpoints == DEFAULT_BREAKPOINTS

    def test_colours_in_markup(self):
        section = _section(markup='<span style="color: #00ff00">Hi</span>')
        assert extract_design_tokens([_page(section)]).colors == {"green": "#00ff00"}

    def test_values_are_unique_and_sorted(self):
        tokens = extract_design_tokens(
            [
                _page(_section({"font-size": "18px"}), _section({"font-size": "12px"})),
                _page(_section({"font-size": "18px"})),
            ]
        )
        assert tokens.fonts.sizes == ["12px", "18px"]

    def test_empty_input(self):
        tokens = extract_design_tokens([])
        assert tokens.colors == {}
        assert tokens.spacing == []
