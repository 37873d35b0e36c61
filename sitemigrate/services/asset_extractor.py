"""Discovers image references in content and drives the image optimizer.

References are collected from each item's HTML (``<img src>``, inline
``background-image: url(...)`` and ``srcset`` candidates) and from string
values anywhere inside its metadata.  Each item reports a URL once; across
items every URL is downloaded once, and URLs already in the asset manifest
are not downloaded again.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence, Set
from urllib.parse import urlparse

from bs4 import BeautifulSoup

from sitemigrate.models.assets import (
    AssetStats,
    ContentItem,
    ExtractedAsset,
    ImageAsset,
    SourceType,
    SrcsetCandidate,
)
from sitemigrate.models.content import PageContent
from sitemigrate.models.webflow import WebflowCollectionItem
from sitemigrate.services.image_optimizer import ImageOptimizer, fingerprint
from sitemigrate.services.manifest import AssetManifestManager

logger = logging.getLogger(__name__)

DEFAULT_ALLOWED_DOMAINS = (
    "uploads-ssl.webflow.com",
    "assets.website-files.com",
    "images.unsplash.com",
)
DEFAULT_SUPPORTED_FORMATS = ("jpg", "jpeg", "png", "webp", "gif", "svg")

# CMS asset hosts serve images without a file extension
CMS_ASSET_DOMAINS = ("webflow.com", "website-files.com")

BACKGROUND_IMAGE_RE = re.compile(
    r"background-image:\s*url\(\s*[\"']?([^\"')]+)[\"']?\s*\)", re.IGNORECASE
)

REPORT_DETAIL_LIMIT = 10

# Keys of CMS field data that hold rich-text HTML
_CMS_BODY_FIELDS = ("post-body", "content", "body", "rich-text")


def _host_matches(hostname: str, domain: str) -> bool:
    return hostname == domain or hostname.endswith("." + domain)


def parse_srcset(srcset: str) -> List[SrcsetCandidate]:
    """Split a ``srcset`` value into URL candidates with optional ``w`` widths."""
    candidates: List[SrcsetCandidate] = []
    for entry in srcset.split(","):
        parts = entry.split()
        if not parts:
            continue
        width = None
        if len(parts) > 1 and parts[1].endswith("w") and parts[1][:-1].isdigit():
            width = int(parts[1][:-1])
        candidates.append(SrcsetCandidate(url=parts[0], width=width))
    return candidates


@dataclass
class ImageReference:
    url: str
    content_id: str
    source_type: SourceType
    field_name: str
    alt: str = ""


class AssetExtractor:
    def __init__(
        self,
        optimizer: Optional[ImageOptimizer] = None,
        manifest: Optional[AssetManifestManager] = None,
        download_images: bool = True,
        extract_from_content: bool = True,
        extract_from_metadata: bool = True,
        allowed_domains: Sequence[str] = DEFAULT_ALLOWED_DOMAINS,
        supported_formats: Sequence[str] = DEFAULT_SUPPORTED_FORMATS,
    ) -> None:
        self.optimizer = optimizer or ImageOptimizer()
        self.manifest = manifest or AssetManifestManager()
        self.download_images = download_images
        self.extract_from_content_html = extract_from_content
        self.extract_from_metadata_fields = extract_from_metadata
        self.allowed_domains = tuple(allowed_domains)
        self.supported_formats = tuple(fmt.lower() for fmt in supported_formats)

    # ------------------------------------------------------------------
    # URL filtering
    # ------------------------------------------------------------------

    def is_valid_image_url(self, url: str) -> bool:
        try:
            parsed = urlparse(url.strip())
        except ValueError:
            return False
        hostname = (parsed.hostname or "").lower()

        if self.allowed_domains and not any(
            _host_matches(hostname, domain) for domain in self.allowed_domains
        ):
            return False

        path = parsed.path.lower()
        if any(path.endswith("." + fmt) for fmt in self.supported_formats):
            return True
        return any(_host_matches(hostname, domain) for domain in CMS_ASSET_DOMAINS)

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------

    def find_references(self, item: ContentItem) -> List[ImageReference]:
        """Return the valid image references of *item*, one per URL."""
        references: List[ImageReference] = []
        if self.extract_from_content_html and item.content:
            references.extend(self._references_from_html(item.content, item.id))
        if self.extract_from_metadata_fields and item.metadata:
            references.extend(self._references_from_metadata(item.metadata, item.id))

        unique: List[ImageReference] = []
        seen: Set[str] = set()
        for reference in references:
            if reference.url not in seen:
                seen.add(reference.url)
                unique.append(reference)
        return unique

    def _references_from_html(self, html: str, content_id: str) -> Iterable[ImageReference]:
        soup = BeautifulSoup(html, "lxml")

        for img in soup.find_all("img", src=True):
            url = str(img["src"]).strip()
            if self.is_valid_image_url(url):
                yield ImageReference(url, content_id, "content", "img-src", str(img.get("alt") or ""))

        for match in BACKGROUND_IMAGE_RE.finditer(html):
            url = match.group(1).strip()
            if self.is_valid_image_url(url):
                yield ImageReference(url, content_id, "content", "background")

        for node in soup.find_all(srcset=True):
            for candidate in parse_srcset(str(node["srcset"])):
                if self.is_valid_image_url(candidate.url):
                    yield ImageReference(candidate.url, content_id, "content", "srcset")

    def _references_from_metadata(
        self, metadata: Dict[str, Any], content_id: str
    ) -> List[ImageReference]:
        references: List[ImageReference] = []

        def walk(value: Any, field_name: str) -> None:
            if isinstance(value, str):
                if self.is_valid_image_url(value):
                    references.append(
                        ImageReference(value.strip(), content_id, "metadata", field_name)
                    )
            elif isinstance(value, (list, tuple)):
                for element in value:
                    walk(element, field_name)
            elif isinstance(value, dict):
                for key, element in value.items():
                    walk(element, f"{field_name}.{key}")

        for field_name, value in metadata.items():
            walk(value, field_name)
        return references

    # ------------------------------------------------------------------
    # Extraction
    # ------------------------------------------------------------------

    async def extract_from_content(self, items: Sequence[ContentItem]) -> List[ExtractedAsset]:
        """Discover, download and optimize every image referenced by *items*."""
        self.manifest.load()

        references = [ref for item in items for ref in self.find_references(item)]

        first_alt: Dict[str, str] = {}
        for reference in references:
            first_alt.setdefault(reference.url, reference.alt)

        assets = await self._resolve_assets(first_alt)

        if self.download_images:
            self.manifest.save()

        extracted: List[ExtractedAsset] = []
        for reference in references:
            asset = assets.get(reference.url)
            if asset is None:
                continue
            extracted.append(
                ExtractedAsset(
                    **asset.model_dump(),
                    source_type=reference.source_type,
                    content_id=reference.content_id,
                    field_name=reference.field_name,
                    context=reference.alt,
                )
            )

        logger.info(
            "Extracted %d image references (%d unique URLs) from %d content items",
            len(extracted),
            len(assets),
            len(items),
        )
        return extracted

    async def _resolve_assets(self, alts: Dict[str, str]) -> Dict[str, ImageAsset]:
        assets: Dict[str, ImageAsset] = {}
        pending: List[str] = []

        for url, alt in alts.items():
            existing = self.manifest.get_asset(url)
            if existing is not None:
                assets[url] = existing
            elif self.download_images:
                pending.append(url)
            else:
                assets[url] = ImageAsset(url=url, alt=alt or None, hash=fingerprint(url))

        if pending:
            for asset in await self.optimizer.batch_optimize(pending, alts=alts):
                self.manifest.add_asset(asset)
                assets[asset.url] = asset

        return assets

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    def get_asset_stats(self, assets: Sequence[ExtractedAsset]) -> AssetStats:
        stats = AssetStats(total=len(assets))
        for asset in assets:
            stats.by_source_type[asset.source_type] = stats.by_source_type.get(asset.source_type, 0) + 1
            if asset.format:
                stats.by_format[asset.format] = stats.by_format.get(asset.format, 0) + 1
            if asset.size:
                stats.total_size += asset.size
            if asset.optimized_path:
                stats.optimized_count += 1
        return stats

    def generate_asset_report(self, assets: Sequence[ExtractedAsset]) -> str:
        stats = self.get_asset_stats(assets)
        lines = [
            "# Asset Extraction Report",
            "",
            f"**Total Assets:** {stats.total}",
            f"**Optimized Assets:** {stats.optimized_count}",
            f"**Total Size:** {stats.total_size / 1024 / 1024:.2f} MB",
            "",
            "## By Source Type",
            *(f"- {source}: {count}" for source, count in stats.by_source_type.items()),
            "",
            "## By Format",
            *(f"- {fmt}: {count}" for fmt, count in stats.by_format.items()),
            "",
            "## Asset Details",
            *(
                f"- **{asset.url}** ({asset.source_type}) - "
                f"{asset.width}x{asset.height} - {asset.format}"
                for asset in assets[:REPORT_DETAIL_LIMIT]
            ),
        ]
        if len(assets) > REPORT_DETAIL_LIMIT:
            lines.append(f"... and {len(assets) - REPORT_DETAIL_LIMIT} more assets")
        return "\n".join(lines)


def content_items_from_pages(pages: Iterable[PageContent]) -> List[ContentItem]:
    """Wrap canonical pages as content items: section markup plus SEO fields."""
    items = []
    for page in pages:
        html = "\n".join(str(section.data.get("html", "")) for section in page.sections)
        metadata: Dict[str, Any] = {"title": page.title}
        if page.open_graph_image:
            metadata["open_graph_image"] = page.open_graph_image
        items.append(ContentItem(id=page.slug, content=html, metadata=metadata))
    return items


def content_items_from_cms(items: Iterable[WebflowCollectionItem]) -> List[ContentItem]:
    """Wrap CMS collection items; the first rich-text field becomes the HTML body."""
    content_items = []
    for item in items:
        body = next(
            (str(item.field_data[key]) for key in _CMS_BODY_FIELDS if item.field_data.get(key)),
            "",
        )
        content_items.append(ContentItem(id=item.id, content=body, metadata=dict(item.field_data)))
    return content_items
