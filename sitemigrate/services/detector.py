"""Section-type detection for scraped page blocks.

Given the class list and text of a structural node, :func:`detect_section_type`
picks one of the labels below.  The rules are an ordered table of
``(matcher, label)`` pairs evaluated top to bottom; the first matcher that
accepts the node wins, so e.g. ``class="hero-form"`` is a ``hero``, not a
``contact`` block.

Section types
-------------
``hero``, ``navigation``, ``footer``, ``header``, ``contact``, ``gallery``,
``testimonial``, ``features``, ``about``
    Keyword matches against the node's joined, lowercased class names.

``content``
    No keyword matched, but the node carries at least
    :data:`CONTENT_MIN_CHARS` characters of text.

``section``
    Generic fallback.
"""

from typing import Callable, Literal, NamedTuple, Sequence, Tuple

SectionKind = Literal[
    "hero",
    "navigation",
    "footer",
    "header",
    "contact",
    "gallery",
    "testimonial",
    "features",
    "about",
    "content",
    "section",
]

# Text length at which an unclassified block counts as body content
CONTENT_MIN_CHARS = 500


class SectionCandidate(NamedTuple):
    class_string: str  # joined, lowercased class names
    text: str


Matcher = Callable[[SectionCandidate], bool]


def _classes_contain(*keywords: str) -> Matcher:
    def matcher(candidate: SectionCandidate) -> bool:
        return any(keyword in candidate.class_string for keyword in keywords)

    return matcher


def _text_at_least(length: int) -> Matcher:
    def matcher(candidate: SectionCandidate) -> bool:
        return len(candidate.text) >= length

    return matcher


SECTION_RULES: Tuple[Tuple[Matcher, SectionKind], ...] = (
    (_classes_contain("hero", "banner"), "hero"),
    (_classes_contain("nav", "menu"), "navigation"),
    (_classes_contain("footer"), "footer"),
    (_classes_contain("header"), "header"),
    (_classes_contain("contact", "form"), "contact"),
    (_classes_contain("gallery", "image"), "gallery"),
    (_classes_contain("testimonial", "review"), "testimonial"),
    (_classes_contain("feature", "service"), "features"),
    (_classes_contain("about", "intro"), "about"),
    (_text_at_least(CONTENT_MIN_CHARS), "content"),
)


def detect_section_type(classes: Sequence[str], text: str) -> SectionKind:
    """Classify a structural node by its CSS classes and text content.

    Args:
        classes: The node's class names, in document order.
        text: The node's stripped text content.

    Returns:
        A :data:`SectionKind` label; ``"section"`` when no rule matches.
    """
    candidate = SectionCandidate(" ".join(classes).lower(), text)
    for matcher, label in SECTION_RULES:
        if matcher(candidate):
            return label
    return "section"
