from typing import Optional

from pydantic import BaseModel, ConfigDict


class SitemapUrlRecord(BaseModel):
    """One ``<url>`` entry of a sitemap, classified by path."""

    model_config = ConfigDict(frozen=True)

    url: str
    last_modified: Optional[str] = None
    change_frequency: Optional[str] = None
    priority: Optional[float] = None
    category: str = "other"
