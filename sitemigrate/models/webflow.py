from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class WebflowSite(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str
    name: str = ""
    short_name: str = Field(default="", alias="shortName")
    domains: List[str] = Field(default_factory=list)


class WebflowField(BaseModel):
    id: str
    name: str
    slug: str
    type: str
    required: bool = False


class WebflowCollection(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    name: str
    slug: str
    fields: List[WebflowField] = Field(default_factory=list)


class WebflowCollectionItem(BaseModel):
    """A CMS item; unknown top-level keys are kept in ``model_extra``."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str
    name: str = ""
    slug: str = ""
    created_on: Optional[str] = Field(default=None, alias="createdOn")
    last_updated: Optional[str] = Field(default=None, alias="lastUpdated")
    published_on: Optional[str] = Field(default=None, alias="publishedOn")
    is_draft: bool = Field(default=False, alias="isDraft")
    field_data: Dict[str, Any] = Field(default_factory=dict, alias="fieldData")


class WebflowPage(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str
    name: str = ""
    slug: str = ""
    title: Optional[str] = None
    seo_title: Optional[str] = Field(default=None, alias="seoTitle")
    seo_description: Optional[str] = Field(default=None, alias="seoDescription")
    open_graph_title: Optional[str] = Field(default=None, alias="openGraphTitle")
    open_graph_description: Optional[str] = Field(
        default=None, alias="openGraphDescription"
    )
    created_on: Optional[str] = Field(default=None, alias="createdOn")
    last_updated: Optional[str] = Field(default=None, alias="lastUpdated")
    published_on: Optional[str] = Field(default=None, alias="publishedOn")
