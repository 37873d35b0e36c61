"""End-to-end migration: sitemap -> scrape -> transform -> validate -> persist."""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union

from sitemigrate.config import settings
from sitemigrate.models.assets import ExtractedAsset
from sitemigrate.models.content import PageContent
from sitemigrate.models.scraped import ScrapedPage
from sitemigrate.models.validation import ValidationReport
from sitemigrate.services.asset_extractor import AssetExtractor, content_items_from_pages
from sitemigrate.services.content_store import ContentStore
from sitemigrate.services.design_tokens import DesignTokens, extract_design_tokens
from sitemigrate.services.scraper import PageScraper
from sitemigrate.services.sitemap import get_high_priority_urls, parse_sitemap, save_sitemap_analysis
from sitemigrate.services.transformer import ContentTransformer
from sitemigrate.services.validator import ContentValidator, count_blocking_errors, log_report

logger = logging.getLogger(__name__)


@dataclass
class MigrationResult:
    pages: List[PageContent]
    report: ValidationReport
    blocking_errors: int
    failed_urls: List[str] = field(default_factory=list)
    category_counts: Dict[str, int] = field(default_factory=dict)
    design_tokens: DesignTokens = field(default_factory=DesignTokens)

    @property
    def publishable(self) -> bool:
        return self.blocking_errors == 0


async def migrate_site(
    sitemap_url: Optional[str] = None,
    site_url: Optional[str] = None,
    content_dir: Optional[Union[str, Path]] = None,
    scraped_data_dir: Optional[Union[str, Path]] = None,
    scraper: Optional[PageScraper] = None,
) -> MigrationResult:
    """Run the migration for the high-priority URLs of a site's sitemap.

    Sitemap failures propagate; a page that fails to scrape is logged,
    listed in :attr:`MigrationResult.failed_urls` and left out.

    Raises:
        FetchError: if the sitemap cannot be fetched.
        ParseError: if the sitemap is not valid XML.
    """
    sitemap_url = sitemap_url or settings.sitemap_url
    scraper = scraper or PageScraper(site_url or settings.site_url)

    records = await parse_sitemap(sitemap_url)
    selected = get_high_priority_urls(records)
    logger.info("Sitemap lists %d URLs, migrating %d high-priority pages", len(records), len(selected))

    scraped = await scraper.scrape_urls(selected)
    scraped_urls = {page.url for page in scraped}
    failed = [record.url for record in selected if record.url not in scraped_urls]

    tokens = extract_design_tokens(scraped)

    if scraped_data_dir is not None:
        _save_scraped(scraped, Path(scraped_data_dir))
        save_sitemap_analysis(records, Path(scraped_data_dir) / "sitemap-analysis.json")
        _write_json(Path(scraped_data_dir) / "design-tokens.json", tokens.model_dump())

    transformer = ContentTransformer()
    pages = transformer.transform_all(scraped)

    report = ContentValidator().generate_report(pages)
    log_report(report)

    counts = ContentStore(content_dir, transformer=transformer).write(scraped, pages)

    return MigrationResult(
        pages=pages,
        report=report,
        blocking_errors=count_blocking_errors(report),
        failed_urls=failed,
        category_counts=counts,
        design_tokens=tokens,
    )


async def optimize_site_assets(
    pages: Sequence[PageContent], extractor: Optional[AssetExtractor] = None
) -> List[ExtractedAsset]:
    """Download and optimize every allowlisted image referenced by *pages*."""
    extractor = extractor or AssetExtractor()
    assets = await extractor.extract_from_content(content_items_from_pages(pages))
    stats = extractor.get_asset_stats(assets)
    logger.info(
        "Asset optimization: %d assets, %d optimized, %d bytes",
        stats.total,
        stats.optimized_count,
        stats.total_size,
    )
    return assets


def _write_json(path: Path, payload) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")


def _save_scraped(pages: List[ScrapedPage], output_dir: Path) -> None:
    path = output_dir / "pages.json"
    _write_json(path, [page.model_dump() for page in pages])
    logger.info("Saved %d scraped pages to %s", len(pages), path)
