"""Page scraper: fetches marketing pages and infers their section structure."""

import asyncio
import logging
import time
from pathlib import Path
from typing import Iterable, List, Optional, Set
from urllib.parse import urlparse

from bs4 import BeautifulSoup, Tag

from sitemigrate.config import settings
from sitemigrate.errors import FetchError
from sitemigrate.models.scraped import (
    Dimensions,
    PageMetadata,
    ScrapedAsset,
    ScrapedPage,
    ScrapedSection,
)
from sitemigrate.models.sitemap import SitemapUrlRecord
from sitemigrate.services.detector import detect_section_type
from sitemigrate.services.fetcher import fetch_bytes, fetch_url
from sitemigrate.services.normalizer import parse_inline_styles, resolve_url, same_origin

logger = logging.getLogger(__name__)

# Structural selectors, tried in order; a node captured by an earlier
# selector (or sitting inside a captured node) is not captured again.
SECTION_SELECTORS = (
    "section",
    ".section",
    '[class*="section"]',
    ".hero",
    ".container",
    ".wrapper",
    "main > div",
    "body > div",
)

# Direct children of these tags become subsections
_SUBSECTION_TAGS = {"div", "section", "article", "header", "footer"}

NAVIGATION_LINK_SELECTOR = 'nav a, .nav a, [class*="nav"] a, header a'


def _meta_content(soup: BeautifulSoup, **attrs: str) -> Optional[str]:
    tag = soup.find("meta", attrs=attrs)
    if tag and tag.get("content") is not None:
        return str(tag["content"])
    return None


def _int_attr(tag: Tag, name: str) -> Optional[int]:
    value = tag.get(name)
    if value is None:
        return None
    try:
        return int(str(value).strip().rstrip("px"))
    except ValueError:
        return None


class PageScraper:
    """Scrapes pages of a single site rooted at *base_url*."""

    def __init__(
        self,
        base_url: str,
        timeout: Optional[float] = None,
        crawl_delay: Optional[float] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = settings.request_timeout if timeout is None else timeout
        self.crawl_delay = settings.crawl_delay if crawl_delay is None else crawl_delay
        self._visited: Set[str] = set()
        self._visited_lock = asyncio.Lock()

    @property
    def visited_urls(self) -> Set[str]:
        return set(self._visited)

    async def scrape_page(self, url: str, category: Optional[str] = None) -> ScrapedPage:
        """Fetch *url* and parse it into a :class:`ScrapedPage`.

        Raises:
            FetchError: on network failure, timeout, or a non-2xx response.
        """
        logger.info("Scraping: %s", url)
        try:
            html = await fetch_url(url, timeout=self.timeout)
        except FetchError as exc:
            logger.error("Error scraping %s: %s", url, exc)
            raise

        page = self.parse_page(html, url, category=category)

        async with self._visited_lock:
            self._visited.add(url)
        return page

    def parse_page(self, html: str, url: str, category: Optional[str] = None) -> ScrapedPage:
        """Build a :class:`ScrapedPage` from already-fetched *html*."""
        soup = BeautifulSoup(html, "lxml")

        metadata = self.extract_metadata(soup, category=category)
        sections = self.extract_sections(soup)
        assets = self.extract_assets(soup, url)
        body = soup.find("body")

        return ScrapedPage(
            url=url,
            title=metadata.title,
            description=metadata.description,
            raw_body_markup=body.decode_contents() if body else "",
            sections=sections,
            assets=assets,
            metadata=metadata,
        )

    # ------------------------------------------------------------------
    # Metadata
    # ------------------------------------------------------------------

    def extract_metadata(
        self, soup: BeautifulSoup, category: Optional[str] = None
    ) -> PageMetadata:
        title_tag = soup.find("title")
        canonical = soup.find("link", rel="canonical")
        return PageMetadata(
            title=title_tag.get_text() if title_tag else "",
            description=_meta_content(soup, name="description") or "",
            keywords=_meta_content(soup, name="keywords") or "",
            og_title=_meta_content(soup, property="og:title"),
            og_description=_meta_content(soup, property="og:description"),
            og_image=_meta_content(soup, property="og:image"),
            canonical_url=str(canonical.get("href", "")) if canonical else "",
            category=category,
        )

    # ------------------------------------------------------------------
    # Sections
    # ------------------------------------------------------------------

    def extract_sections(self, soup: BeautifulSoup) -> List[ScrapedSection]:
        sections: List[ScrapedSection] = []
        # Tag.__eq__ compares markup, so captured nodes are tracked by identity.
        captured: Set[int] = set()

        for selector in SECTION_SELECTORS:
            for index, node in enumerate(soup.select(selector)):
                if id(node) in captured or any(id(parent) in captured for parent in node.parents):
                    continue

                section = self._extract_section(node, index)
                if section.inner_markup.strip():
                    sections.append(section)
                    captured.add(id(node))

        return sections

    def _extract_section(self, node: Tag, index: int) -> ScrapedSection:
        classes = list(node.get("class") or [])
        text = node.get_text().strip()

        children: List[ScrapedSection] = []
        for child_index, child in enumerate(node.find_all(recursive=False)):
            if child.name in _SUBSECTION_TAGS:
                children.append(self._extract_section(child, child_index))

        return ScrapedSection(
            id=str(node.get("id") or f"section-{index}"),
            inferred_type=detect_section_type(classes, text),
            inner_markup=node.decode_contents(),
            text=text,
            css_classes=classes,
            inline_styles=parse_inline_styles(str(node.get("style", ""))),
            children=children,
        )

    # ------------------------------------------------------------------
    # Assets
    # ------------------------------------------------------------------

    def extract_assets(self, soup: BeautifulSoup, page_url: str) -> List[ScrapedAsset]:
        assets: List[ScrapedAsset] = []

        for img in soup.find_all("img"):
            src = img.get("src")
            if not src:
                continue
            width, height = _int_attr(img, "width"), _int_attr(img, "height")
            assets.append(
                ScrapedAsset(
                    kind="image",
                    url=resolve_url(str(src), page_url),
                    alt=img.get("alt"),
                    dimensions=Dimensions(width=width, height=height)
                    if width is not None and height is not None
                    else None,
                )
            )

        for link in soup.select('link[rel~="stylesheet"][href]'):
            assets.append(ScrapedAsset(kind="css", url=resolve_url(str(link["href"]), page_url)))

        for link in soup.select('link[href*="fonts"]'):
            assets.append(ScrapedAsset(kind="font", url=resolve_url(str(link["href"]), page_url)))

        for script in soup.select("script[src]"):
            assets.append(ScrapedAsset(kind="js", url=resolve_url(str(script["src"]), page_url)))

        return assets

    # ------------------------------------------------------------------
    # Crawling
    # ------------------------------------------------------------------

    def extract_navigation_links(self, markup: str) -> List[str]:
        """Return same-origin navigation URLs found in *markup*, in document order."""
        soup = BeautifulSoup(markup, "lxml")
        links: List[str] = []
        for anchor in soup.select(NAVIGATION_LINK_SELECTOR):
            href = anchor.get("href")
            if not href or not same_origin(str(href), self.base_url):
                continue
            absolute = resolve_url(str(href), self.base_url + "/")
            if absolute not in links:
                links.append(absolute)
        return links

    async def scrape_full_site(self) -> List[ScrapedPage]:
        """Scrape the homepage and every page linked from its navigation.

        Links are discovered on the homepage only.  Secondary pages are
        fetched one at a time with :attr:`crawl_delay` seconds between
        fetches; a page that fails is logged and skipped.
        """
        homepage = await self.scrape_page(self.base_url)
        pages = [homepage]

        queue: List[str] = []
        async with self._visited_lock:
            for url in self.extract_navigation_links(homepage.raw_body_markup):
                if url.rstrip("/") == self.base_url or url in self._visited or url in queue:
                    continue
                queue.append(url)

        for url in queue:
            await asyncio.sleep(self.crawl_delay)
            try:
                pages.append(await self.scrape_page(url))
            except FetchError as exc:
                logger.warning("Failed to scrape %s – %s", url, exc)

        return pages

    async def scrape_urls(self, records: Iterable[SitemapUrlRecord]) -> List[ScrapedPage]:
        """Scrape sitemap records in order, tagging each page with its category.

        Already-visited URLs are skipped without a fetch.  :attr:`crawl_delay`
        seconds separate consecutive fetches.
        """
        pages: List[ScrapedPage] = []
        fetched = False
        for record in records:
            async with self._visited_lock:
                seen = record.url in self._visited
            if seen:
                logger.debug("Skipping already scraped %s", record.url)
                continue

            if fetched:
                await asyncio.sleep(self.crawl_delay)
            fetched = True
            try:
                pages.append(await self.scrape_page(record.url, category=record.category))
            except FetchError as exc:
                logger.warning("Failed to scrape %s – %s", record.url, exc)
        return pages

    async def download_asset(self, asset: ScrapedAsset, output_dir: Path) -> str:
        """Download *asset* into *output_dir* and return the local path."""
        data = await fetch_bytes(asset.url, timeout=self.timeout)

        filename = Path(urlparse(asset.url).path).name or f"asset-{int(time.time() * 1000)}"
        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)
        local_path = output_dir / filename
        local_path.write_bytes(data)
        return str(local_path)
