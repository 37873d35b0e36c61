"""File-backed content tree.

Layout under the content directory::

    pages/ blog/ products/ customers/ solutions/   one {slug}.json per page
    {main|blog|product|customer|solution}-index.json
    sitemap.json
    transformation-summary.json
"""

import asyncio
import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from pydantic import ValidationError

from sitemigrate.config import settings
from sitemigrate.models.content import PageContent, StoredPage
from sitemigrate.models.scraped import ScrapedPage
from sitemigrate.services.cache import CachedContentLoader
from sitemigrate.services.sitemap import categorize_url
from sitemigrate.services.transformer import ContentTransformer

logger = logging.getLogger(__name__)

# Sitemap category -> (directory, index key); anything else is a main page
CATEGORY_LAYOUT: Dict[str, Tuple[str, str]] = {
    "blog": ("blog", "blog"),
    "product": ("products", "product"),
    "customer-story": ("customers", "customer"),
    "solution": ("solutions", "solution"),
}
MAIN_LAYOUT = ("pages", "main")

INDEX_KEYS = ("main", "blog", "product", "customer", "solution")
CONTENT_DIRS = ("pages", "blog", "products", "customers", "solutions")
_DIR_BY_KEY = {key: directory for directory, key in [MAIN_LAYOUT, *CATEGORY_LAYOUT.values()]}

SUMMARY_SAMPLE_PAGES = 3


def layout_for(category: str) -> Tuple[str, str]:
    return CATEGORY_LAYOUT.get(category, MAIN_LAYOUT)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _write_json(path: Path, payload: Any) -> None:
    path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")


class ContentStore:
    """Writes canonical pages into the content tree."""

    def __init__(
        self,
        content_dir: Optional[Union[str, Path]] = None,
        transformer: Optional[ContentTransformer] = None,
    ) -> None:
        self.content_dir = Path(content_dir or settings.content_dir)
        self.transformer = transformer or ContentTransformer()

    def write(
        self, scraped_pages: Sequence[ScrapedPage], pages: Sequence[PageContent]
    ) -> Dict[str, int]:
        """Persist *pages* (paired positionally with their scraped sources).

        Returns the number of pages written per index key.
        """
        for directory in CONTENT_DIRS:
            (self.content_dir / directory).mkdir(parents=True, exist_ok=True)

        by_key: Dict[str, List[StoredPage]] = {key: [] for key in INDEX_KEYS}
        for scraped, page in zip(scraped_pages, pages):
            category = scraped.metadata.category or categorize_url(scraped.url)
            directory, key = layout_for(category)
            stored = StoredPage(
                **{**page.model_dump(), "category": category, "original_url": scraped.url}
            )

            _write_json(self.content_dir / directory / f"{page.slug}.json", stored.model_dump())
            by_key[key].append(stored)
            logger.info("Wrote %s/%s.json (%d sections)", directory, page.slug, len(page.sections))

        for key, stored_pages in by_key.items():
            if stored_pages:
                self._write_index(key, stored_pages)

        counts = {key: len(stored_pages) for key, stored_pages in by_key.items()}
        site_map = self.transformer.generate_site_map(list(pages))
        site_map["categoryCounts"] = counts
        _write_json(self.content_dir / "sitemap.json", site_map)
        _write_json(
            self.content_dir / "transformation-summary.json",
            build_transformation_summary(pages, by_key),
        )
        return counts

    def _write_index(self, key: str, pages: List[StoredPage]) -> None:
        index = {
            "category": key,
            "totalPages": len(pages),
            "pages": [
                {
                    "slug": page.slug,
                    "title": page.title,
                    "description": page.description,
                    "sections": len(page.sections),
                    "originalUrl": page.original_url,
                }
                for page in pages
            ],
            "createdAt": _now(),
        }
        _write_json(self.content_dir / f"{key}-index.json", index)


def build_transformation_summary(
    pages: Sequence[PageContent], by_key: Dict[str, List[StoredPage]]
) -> Dict[str, Any]:
    section_types: List[str] = []
    for page in pages:
        for section in page.sections:
            if section.type not in section_types:
                section_types.append(section.type)

    total_sections = sum(len(page.sections) for page in pages)
    return {
        "transformedAt": _now(),
        "totalPages": len(pages),
        "categories": [
            {
                "category": key,
                "count": len(stored),
                "samplePages": [
                    {"slug": page.slug, "title": page.title}
                    for page in stored[:SUMMARY_SAMPLE_PAGES]
                ],
            }
            for key, stored in by_key.items()
        ],
        "sectionTypes": section_types,
        "totalSections": total_sections,
        "averageSectionsPerPage": round(total_sections / len(pages)) if pages else 0,
    }


class ContentLoader:
    """Reads pages back from the content tree through a read-through cache."""

    def __init__(
        self,
        content_dir: Optional[Union[str, Path]] = None,
        cached_loader: Optional[CachedContentLoader] = None,
    ) -> None:
        self.content_dir = Path(content_dir or settings.content_dir)
        self.cached_loader = cached_loader or CachedContentLoader()

    async def get_page(self, slug: str) -> Optional[StoredPage]:
        async def load() -> Optional[StoredPage]:
            for directory in CONTENT_DIRS:
                path = self.content_dir / directory / f"{slug}.json"
                if path.is_file():
                    return await asyncio.to_thread(self._read_page, path)
            return None

        return await self.cached_loader.get_page(slug, load)

    async def get_pages_by_category(self, key: str) -> List[StoredPage]:
        """Return the pages stored under index *key* (``main``, ``blog``, ...)."""
        directory = _DIR_BY_KEY.get(key)
        if directory is None:
            return []

        async def load() -> List[StoredPage]:
            return await asyncio.to_thread(self._read_directory, self.content_dir / directory)

        return await self.cached_loader.get_pages_by_category(key, load)

    async def get_all_pages(self) -> List[StoredPage]:
        async def load() -> List[StoredPage]:
            pages: List[StoredPage] = []
            for directory in CONTENT_DIRS:
                pages.extend(
                    await asyncio.to_thread(self._read_directory, self.content_dir / directory)
                )
            return pages

        return await self.cached_loader.get_all_pages(load)

    def invalidate(self, pattern: Optional[str] = None) -> None:
        self.cached_loader.invalidate_cache(pattern)

    def _read_directory(self, directory: Path) -> List[StoredPage]:
        if not directory.is_dir():
            return []
        pages = []
        for path in sorted(directory.glob("*.json")):
            page = self._read_page(path)
            if page is not None:
                pages.append(page)
        return pages

    @staticmethod
    def _read_page(path: Path) -> Optional[StoredPage]:
        try:
            return StoredPage.model_validate_json(path.read_text(encoding="utf-8"))
        except ValidationError as exc:
            logger.warning("Skipping unreadable content file %s: %s", path, exc)
            return None
