from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

SectionType = Literal["hero", "content", "gallery", "contact", "custom"]

SECTION_TYPES = ("hero", "content", "gallery", "contact", "custom")


class SectionStyling(BaseModel):
    background_color: Optional[str] = None
    text_color: Optional[str] = None
    padding: Optional[str] = None
    margin: Optional[str] = None
    custom_classes: List[str] = Field(default_factory=list)


class ContentSection(BaseModel):
    id: str
    # Kept as a plain string so that content loaded from disk can carry an
    # unknown type and still reach the validator.
    type: str
    data: Dict[str, Any] = Field(default_factory=dict)
    styling: Optional[SectionStyling] = None


class PageContent(BaseModel):
    """Canonical content model for one page; *slug* is the primary key."""

    slug: str
    title: str
    description: str = ""
    seo_title: Optional[str] = None
    seo_description: Optional[str] = None
    open_graph_image: Optional[str] = None
    sections: List[ContentSection] = Field(default_factory=list)


class StoredPage(PageContent):
    """A page as persisted in the content tree, tagged with its origin."""

    category: str = "other"
    original_url: Optional[str] = None
