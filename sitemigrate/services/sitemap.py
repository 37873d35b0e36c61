"""Sitemap parsing and URL prioritisation.

A single sitemap document is fetched and every ``<url>`` entry is turned into
a :class:`SitemapUrlRecord` whose category is derived from its path.  Records
keep the order in which they appear in the document; the sitemap protocol
itself does not promise any order, so "first N" selections are only stable
for as long as the source document is.
"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Tuple
from urllib.parse import urlparse
from xml.etree import ElementTree

from sitemigrate.errors import FetchError, ParseError
from sitemigrate.models.sitemap import SitemapUrlRecord
from sitemigrate.services.fetcher import fetch_url

logger = logging.getLogger(__name__)

DEFAULT_MIN_PRIORITY = 0.5

# Bare top-level paths that count as primary marketing pages
_MAIN_PAGES = frozenset(
    {
        "about",
        "pricing",
        "careers",
        "demo",
        "get-started",
        "case-studies",
        "partner-program",
        "reviews",
    }
)

# (predicate over the lowercased path, category); first match wins
_CATEGORY_RULES: Tuple[Tuple[Callable[[str], bool], str], ...] = (
    (lambda path: path in ("", "/"), "homepage"),
    (lambda path: path.startswith("/blog/"), "blog"),
    (lambda path: path.startswith("/product/"), "product"),
    (lambda path: path.startswith("/customers/"), "customer-story"),
    (lambda path: path.startswith("/author/"), "author"),
    (lambda path: path.startswith("/vat/"), "vat-guide"),
    (lambda path: path.startswith("/alternative/"), "alternative"),
    (lambda path: path.startswith("/partners/"), "partner"),
    (lambda path: path.startswith("/solutions/"), "solution"),
    (lambda path: path.startswith("/ads/"), "landing-page"),
    (lambda path: path.startswith("/legal/"), "legal"),
    (lambda path: path.strip("/") in _MAIN_PAGES, "main-page"),
)

_ESSENTIAL_CATEGORIES = ("homepage", "main-page", "product", "solution")
_SAMPLE_BLOG_POSTS = 5
_SAMPLE_CUSTOMER_STORIES = 3


def categorize_url(url: str) -> str:
    """Return the category of *url* according to its path."""
    path = urlparse(url).path.lower()
    for matches, category in _CATEGORY_RULES:
        if matches(path):
            return category
    return "other"


def _parse_priority(value: Optional[str]) -> Optional[float]:
    if not value:
        return None
    try:
        return float(value)
    except ValueError:
        logger.warning("Ignoring non-numeric sitemap priority %r", value)
        return None


def _child_text(node: ElementTree.Element, tag: str) -> Optional[str]:
    child = node.find(tag)
    if child is None or not child.text:
        return None
    return child.text.strip() or None


def parse_sitemap_xml(xml_text: str) -> List[SitemapUrlRecord]:
    """Extract every ``<url>`` entry from a sitemap document.

    Raises:
        ParseError: if *xml_text* is not well-formed XML.
    """
    try:
        root = ElementTree.fromstring(xml_text)
    except ElementTree.ParseError as exc:
        raise ParseError(f"Malformed sitemap XML: {exc}") from exc

    ns = root.tag.split("}")[0] + "}" if root.tag.startswith("{") else ""
    records: List[SitemapUrlRecord] = []
    for node in root.iter(f"{ns}url"):
        loc = _child_text(node, f"{ns}loc")
        if not loc:
            continue
        records.append(
            SitemapUrlRecord(
                url=loc,
                last_modified=_child_text(node, f"{ns}lastmod"),
                change_frequency=_child_text(node, f"{ns}changefreq"),
                priority=_parse_priority(_child_text(node, f"{ns}priority")),
                category=categorize_url(loc),
            )
        )
    return records


async def parse_sitemap(sitemap_url: str) -> List[SitemapUrlRecord]:
    """Fetch and parse the sitemap at *sitemap_url*.

    Failures are not softened: a network or parse error is raised so the
    caller can decide whether to continue without sitemap guidance.
    """
    try:
        xml_text = await fetch_url(sitemap_url)
        records = parse_sitemap_xml(xml_text)
    except (FetchError, ParseError) as exc:
        logger.error("Failed to parse sitemap %s: %s", sitemap_url, exc)
        raise
    logger.info("Sitemap %s lists %d URLs", sitemap_url, len(records))
    return records


def filter_by_category(
    records: Iterable[SitemapUrlRecord], categories: Iterable[str]
) -> List[SitemapUrlRecord]:
    wanted = set(categories)
    return [record for record in records if record.category in wanted]


def filter_by_priority(
    records: Iterable[SitemapUrlRecord], min_priority: float = DEFAULT_MIN_PRIORITY
) -> List[SitemapUrlRecord]:
    """Keep records whose priority is at least *min_priority* (missing counts as 0.5)."""
    return [
        record
        for record in records
        if (DEFAULT_MIN_PRIORITY if record.priority is None else record.priority)
        >= min_priority
    ]


def group_by_category(records: Iterable[SitemapUrlRecord]) -> Dict[str, List[SitemapUrlRecord]]:
    grouped: Dict[str, List[SitemapUrlRecord]] = {}
    for record in records:
        grouped.setdefault(record.category, []).append(record)
    return grouped


def get_high_priority_urls(records: List[SitemapUrlRecord]) -> List[SitemapUrlRecord]:
    """Essential pages first, then a sample of blog posts and customer stories."""
    essential = [r for r in records if r.category in _ESSENTIAL_CATEGORIES]
    blog = filter_by_category(records, ["blog"])[:_SAMPLE_BLOG_POSTS]
    customers = filter_by_category(records, ["customer-story"])[:_SAMPLE_CUSTOMER_STORIES]
    return essential + blog + customers


def build_sitemap_analysis(records: List[SitemapUrlRecord]) -> dict:
    grouped = group_by_category(records)
    return {
        "totalUrls": len(records),
        "categories": {
            category: [r.model_dump() for r in items] for category, items in grouped.items()
        },
        "categoryCounts": {category: len(items) for category, items in grouped.items()},
        "highPriorityUrls": [r.model_dump() for r in get_high_priority_urls(records)],
        "analyzedAt": datetime.now(timezone.utc).isoformat(),
    }


def save_sitemap_analysis(records: List[SitemapUrlRecord], output_path: Path) -> None:
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(json.dumps(build_sitemap_analysis(records), indent=2))
    logger.info("Wrote sitemap analysis to %s", output_path)
