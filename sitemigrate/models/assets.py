from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, Field

SourceType = Literal["content", "metadata"]

MANIFEST_VERSION = "1.0.0"


class ImageAsset(BaseModel):
    """An image keyed by ``hash``, the MD5 fingerprint of its source URL."""

    url: str
    alt: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None
    format: Optional[str] = None
    size: Optional[int] = None
    local_path: Optional[str] = None
    optimized_path: Optional[str] = None
    hash: str


class ExtractedAsset(ImageAsset):
    source_type: SourceType
    content_id: Optional[str] = None
    field_name: Optional[str] = None
    context: Optional[str] = None


class AssetManifest(BaseModel):
    version: str = MANIFEST_VERSION
    timestamp: int = 0  # milliseconds since the epoch
    assets: Dict[str, ImageAsset] = Field(default_factory=dict)


class ResponsiveFormats(BaseModel):
    webp: Optional[str] = None
    avif: Optional[str] = None
    original: str


class ResponsiveImageSet(BaseModel):
    src: str
    src_set: str
    sizes: str
    width: int
    height: int
    alt: str
    formats: ResponsiveFormats


class ContentItem(BaseModel):
    """A unit of content scanned for images: rendered HTML plus loose metadata."""

    id: str
    content: str = ""
    metadata: Dict[str, Any] = Field(default_factory=dict)


class AssetStats(BaseModel):
    total: int = 0
    by_source_type: Dict[str, int] = Field(default_factory=dict)
    by_format: Dict[str, int] = Field(default_factory=dict)
    total_size: int = 0
    optimized_count: int = 0


class SrcsetCandidate(BaseModel):
    url: str
    width: Optional[int] = None


