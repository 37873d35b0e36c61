from typing import List, Optional

from pydantic import BaseModel, Field, HttpUrl

from sitemigrate.models.content import PageContent


class ScrapeRequest(BaseModel):
    url: HttpUrl
    include_assets: bool = True


class SitemapRequest(BaseModel):
    url: HttpUrl
    min_priority: float = Field(
        default=0.5,
        ge=0.0,
        le=1.0,
        description="Minimum priority for the filtered URL list (0.0–1.0).",
    )


class ValidateRequest(BaseModel):
    pages: List[PageContent] = Field(..., min_length=1, max_length=500)


class MigrateRequest(BaseModel):
    sitemap_url: HttpUrl
    site_url: Optional[HttpUrl] = None
    """Origin the scraper resolves links against; defaults to the sitemap's origin."""


class AssetsRequest(BaseModel):
    pages: List[PageContent] = Field(..., min_length=1, max_length=500)
    download_images: bool = True
    """When false, images are catalogued from the manifest and content only."""
