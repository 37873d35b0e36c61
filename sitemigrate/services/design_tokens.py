"""Design token extraction from scraped section styles."""

import re
from typing import Dict, Iterable, List, Optional, Tuple

from sitemigrate.models.scraped import ScrapedPage, ScrapedSection
from sitemigrate.models.tokens import DesignTokens

NAMED_COLORS = {
    "ffffff": "white",
    "000000": "black",
    "ff0000": "red",
    "00ff00": "green",
    "0000ff": "blue",
    "ffff00": "yellow",
    "ff00ff": "magenta",
    "00ffff": "cyan",
}

# Scale step -> (mix target, amount); 500 is the base colour
COLOR_SCALE_STEPS: Tuple[Tuple[int, str, float], ...] = (
    (50, "white", 0.95),
    (100, "white", 0.9),
    (200, "white", 0.8),
    (300, "white", 0.6),
    (400, "white", 0.4),
    (500, "white", 0.0),
    (600, "black", 0.2),
    (700, "black", 0.4),
    (800, "black", 0.6),
    (900, "black", 0.8),
    (950, "black", 0.9),
)

COLOR_PROPERTIES = ("color", "background-color", "border-color", "background")
SPACING_PROPERTIES = (
    "padding",
    "padding-top",
    "padding-bottom",
    "padding-left",
    "padding-right",
    "margin",
    "margin-top",
    "margin-bottom",
    "margin-left",
    "margin-right",
)

_HEX_RE = re.compile(r"^#?([0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")
_COLOR_VALUE_RE = re.compile(r"^(#[0-9a-f]{3,8}|rgba?\(.*\)|hsla?\(.*\)|[a-z]+)$", re.IGNORECASE)
_SPACING_RE = re.compile(r"^\d+(\.\d+)?(px|rem|em|%|vh|vw)$")
_MARKUP_COLOR_RE = re.compile(r"(?:color|background-color|border-color):\s*([^;\"']+)", re.IGNORECASE)


def generate_color_name(value: str) -> str:
    """Name a colour: a basic colour name for its hex, else ``color-<hex>``.

    Shorthand hex is expanded first, so ``#fff`` and ``#ffffff`` share a name.
    """
    rgb = _parse_hex(value)
    if rgb is not None:
        cleaned = "".join(f"{channel:02x}" for channel in rgb)
    else:
        cleaned = re.sub(r"\W", "", value).lower()
    return NAMED_COLORS.get(cleaned, f"color-{cleaned[:6]}")


def _parse_hex(value: str) -> Optional[Tuple[int, int, int]]:
    match = _HEX_RE.match(value.strip())
    if not match:
        return None
    digits = match.group(1)
    if len(digits) == 3:
        digits = "".join(ch * 2 for ch in digits)
    return int(digits[0:2], 16), int(digits[2:4], 16), int(digits[4:6], 16)


def _mix(rgb: Tuple[int, int, int], target: int, amount: float) -> str:
    mixed = (round(channel + (target - channel) * amount) for channel in rgb)
    return "#" + "".join(f"{channel:02x}" for channel in mixed)


def generate_color_scale(base: str) -> Dict[int, str]:
    """Return the 50..950 tint/shade scale of *base*.

    500 is *base* itself.  Input that is not a 3- or 6-digit hex colour is
    returned unchanged at every step.
    """
    rgb = _parse_hex(base)
    if rgb is None:
        return {step: base for step, _, _ in COLOR_SCALE_STEPS}

    scale = {}
    for step, target, amount in COLOR_SCALE_STEPS:
        scale[step] = base if step == 500 else _mix(rgb, 255 if target == "white" else 0, amount)
    return scale


def _is_color(value: str) -> bool:
    return bool(_COLOR_VALUE_RE.match(value.strip()))


def _add_unique(values: List[str], value: str) -> None:
    if value not in values:
        values.append(value)


def _walk(sections: Iterable[ScrapedSection]) -> Iterable[ScrapedSection]:
    for section in sections:
        yield section
        yield from _walk(section.children)


def extract_design_tokens(pages: Iterable[ScrapedPage]) -> DesignTokens:
    tokens = DesignTokens()

    for page in pages:
        for section in _walk(page.sections):
            styles = section.inline_styles

            for prop in COLOR_PROPERTIES:
                value = styles.get(prop, "").strip()
                if value and _is_color(value):
                    tokens.colors[generate_color_name(value)] = value
            for match in _MARKUP_COLOR_RE.finditer(section.inner_markup):
                value = match.group(1).strip()
                if _is_color(value):
                    tokens.colors[generate_color_name(value)] = value

            if styles.get("font-family"):
                _add_unique(tokens.fonts.families, re.sub(r"[\"']", "", styles["font-family"]))
            if styles.get("font-size"):
                _add_unique(tokens.fonts.sizes, styles["font-size"])
            if styles.get("font-weight"):
                _add_unique(tokens.fonts.weights, styles["font-weight"])

            for prop in SPACING_PROPERTIES:
                value = styles.get(prop, "").strip()
                if _SPACING_RE.match(value):
                    _add_unique(tokens.spacing, value)

    tokens.fonts.families.sort()
    tokens.fonts.sizes.sort()
    tokens.fonts.weights.sort()
    tokens.spacing.sort()
    return tokens
