from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field

AssetKind = Literal["image", "font", "css", "js"]


class Dimensions(BaseModel):
    width: int
    height: int


class ScrapedAsset(BaseModel):
    kind: AssetKind
    url: str
    local_path: Optional[str] = None
    alt: Optional[str] = None
    dimensions: Optional[Dimensions] = None


class ScrapedSection(BaseModel):
    """A structural block of a scraped page; children come from its own markup."""

    id: str
    inferred_type: str
    inner_markup: str
    text: str
    css_classes: List[str] = Field(default_factory=list)
    inline_styles: Dict[str, str] = Field(default_factory=dict)
    children: List["ScrapedSection"] = Field(default_factory=list)


class PageMetadata(BaseModel):
    title: str = ""
    description: str = ""
    keywords: str = ""
    og_title: Optional[str] = None
    og_description: Optional[str] = None
    og_image: Optional[str] = None
    canonical_url: str = ""
    category: Optional[str] = None


class ScrapedPage(BaseModel):
    url: str
    title: str
    description: str
    raw_body_markup: str  # inner HTML of <body>
    sections: List[ScrapedSection]
    assets: List[ScrapedAsset]
    metadata: PageMetadata
