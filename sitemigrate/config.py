"""Centralised settings for sitemigrate.

Values can be overridden via environment variables or a ``.env`` file in the
project root (loaded automatically when this module is imported).  Services
read their defaults from :data:`settings` but always accept explicit
arguments, so nothing below is required at runtime.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

_env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_env_path, override=False)


@dataclass
class Settings:
    # ------------------------------------------------------------------
    # Source site
    # ------------------------------------------------------------------
    site_url: str = field(
        default_factory=lambda: os.environ.get("SITE_URL", "https://numeralhq.com")
    )
    sitemap_url: str = field(default_factory=lambda: os.environ.get("SITEMAP_URL", ""))

    # ------------------------------------------------------------------
    # Output locations
    # ------------------------------------------------------------------
    content_dir: Path = field(
        default_factory=lambda: Path(os.environ.get("CONTENT_DIR", "src/content"))
    )
    scraped_data_dir: Path = field(
        default_factory=lambda: Path(os.environ.get("SCRAPED_DATA_DIR", "scraped-data"))
    )
    image_output_dir: Path = field(
        default_factory=lambda: Path(
            os.environ.get("IMAGE_OUTPUT_DIR", "public/optimized-images")
        )
    )
    asset_manifest_path: Path = field(
        default_factory=lambda: Path(
            os.environ.get("ASSET_MANIFEST_PATH", "public/asset-manifest.json")
        )
    )

    # ------------------------------------------------------------------
    # Fetching
    # ------------------------------------------------------------------
    request_timeout: float = field(
        default_factory=lambda: float(os.environ.get("REQUEST_TIMEOUT", "10.0"))
    )
    crawl_delay: float = field(
        default_factory=lambda: float(os.environ.get("CRAWL_DELAY", "1.0"))
    )

    # ------------------------------------------------------------------
    # Caching
    # ------------------------------------------------------------------
    cache_ttl: float = field(
        default_factory=lambda: float(os.environ.get("CACHE_TTL", "300"))
    )
    cache_sweep_interval: float = field(
        default_factory=lambda: float(os.environ.get("CACHE_SWEEP_INTERVAL", "600"))
    )

    # ------------------------------------------------------------------
    # Webflow CMS
    # ------------------------------------------------------------------
    webflow_api_key: str = field(
        default_factory=lambda: os.environ.get("WEBFLOW_API_KEY")
        or os.environ.get("WEBFLOW_API_TOKEN", "")
    )
    webflow_site_id: str = field(
        default_factory=lambda: os.environ.get("WEBFLOW_SITE_ID", "")
    )
    webflow_api_base: str = field(
        default_factory=lambda: os.environ.get(
            "WEBFLOW_API_BASE", "https://api.webflow.com/v2"
        )
    )

    def __post_init__(self) -> None:
        if not self.sitemap_url:
            self.sitemap_url = self.site_url.rstrip("/") + "/sitemap.xml"


# Module-level singleton; import this everywhere:
#   from sitemigrate.config import settings
settings = Settings()
