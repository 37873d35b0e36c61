from typing import Dict, List

from pydantic import BaseModel

from sitemigrate.models.assets import AssetStats, ExtractedAsset
from sitemigrate.models.content import PageContent
from sitemigrate.models.scraped import ScrapedAsset
from sitemigrate.models.sitemap import SitemapUrlRecord
from sitemigrate.models.tokens import DesignTokens
from sitemigrate.models.validation import ValidationReport, ValidationResult
from sitemigrate.models.webflow import WebflowCollection, WebflowCollectionItem


class ScrapeResponse(BaseModel):
    url: str
    category: str
    page: PageContent
    validation: ValidationResult
    assets: List[ScrapedAsset]


class SitemapResponse(BaseModel):
    url: str
    total_urls: int
    category_counts: Dict[str, int]
    high_priority_urls: List[SitemapUrlRecord]
    filtered_urls: List[SitemapUrlRecord]
    """URLs at or above the requested ``min_priority``."""


class ValidateResponse(BaseModel):
    report: ValidationReport
    blocking_errors: int
    """Pages with errors plus duplicate slugs; nonzero blocks publication."""


class MigrateResponse(BaseModel):
    total_pages: int
    slugs: List[str]
    failed_urls: List[str]
    category_counts: Dict[str, int]
    report: ValidationReport
    blocking_errors: int
    publishable: bool
    design_tokens: DesignTokens


class AssetsResponse(BaseModel):
    assets: List[ExtractedAsset]
    stats: AssetStats
    report: str
    """Markdown rendering of ``stats`` and the first assets."""


class CollectionsResponse(BaseModel):
    collections: List[WebflowCollection]


class CollectionItemsResponse(BaseModel):
    collection_id: str
    total: int
    items: List[WebflowCollectionItem]
