"""Cached client for the Webflow CMS REST API.

The client never raises on misconfiguration or API failure.  Every request
yields an :data:`ApiResult`: :class:`Ok` with the decoded response, or
:class:`Fallback` with deterministic mock data and the reason the real call
was skipped or failed.  Only ``Ok`` results are cached.
"""

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Union

import httpx
from pydantic import ValidationError

from sitemigrate.config import settings
from sitemigrate.errors import ExternalAPIError
from sitemigrate.models.webflow import (
    WebflowCollection,
    WebflowCollectionItem,
    WebflowPage,
    WebflowSite,
)
from sitemigrate.services.cache import ContentCache

logger = logging.getLogger(__name__)

CACHE_TTL = 5 * 60  # seconds
DEFAULT_ITEM_LIMIT = 100

# Mock records carry a fixed timestamp so fallback output is reproducible
MOCK_TIMESTAMP = "2024-01-01T00:00:00.000Z"


@dataclass(frozen=True)
class Ok:
    data: Dict[str, Any]


@dataclass(frozen=True)
class Fallback:
    data: Dict[str, Any]
    reason: str


ApiResult = Union[Ok, Fallback]


# ----------------------------------------------------------------------
# Mock data
# ----------------------------------------------------------------------

def _mock_item() -> Dict[str, Any]:
    return {
        "id": "mock-item-1",
        "name": "Sample Blog Post",
        "slug": "sample-blog-post",
        "fieldData": {
            "post-body": "<p>This is a sample blog post content.</p>",
            "featured-image": {"url": "/images/sample-blog.jpg"},
            "summary": "A sample blog post for testing.",
            "author-name": "John Doe",
            "category": "Technology",
        },
        "createdOn": MOCK_TIMESTAMP,
        "lastUpdated": MOCK_TIMESTAMP,
        "publishedOn": MOCK_TIMESTAMP,
        "isDraft": False,
    }


def _mock_collection() -> Dict[str, Any]:
    return {
        "id": "blog-posts",
        "name": "Blog Posts",
        "slug": "blog-posts",
        "fields": [
            {"id": "name", "name": "Name", "slug": "name", "type": "PlainText", "required": True},
            {"id": "slug", "name": "Slug", "slug": "slug", "type": "PlainText", "required": True},
            {"id": "post-body", "name": "Post Body", "slug": "post-body", "type": "RichText", "required": True},
            {"id": "featured-image", "name": "Featured Image", "slug": "featured-image", "type": "ImageRef", "required": False},
        ],
    }


def _mock_page() -> Dict[str, Any]:
    return {
        "id": "mock-page-1",
        "name": "Sample Page",
        "slug": "sample-page",
        "title": "Sample Page Title",
        "seoTitle": "Sample Page - SEO Title",
        "seoDescription": "This is a sample page for testing.",
        "createdOn": MOCK_TIMESTAMP,
        "lastUpdated": MOCK_TIMESTAMP,
        "publishedOn": MOCK_TIMESTAMP,
    }


def _mock_site() -> Dict[str, Any]:
    return {"id": "mock-site-1", "name": "Mock Site", "shortName": "mock", "domains": ["mock.com"]}


# Endpoint path pattern -> mock payload; first match wins
MOCK_RESPONSES: Tuple[Tuple["re.Pattern[str]", Callable[[], Dict[str, Any]]], ...] = (
    (re.compile(r"^/collections/[^/]+/items/[^/]+$"), _mock_item),
    (re.compile(r"^/collections/[^/]+/items$"), lambda: {"items": [_mock_item()]}),
    (re.compile(r"^/sites/[^/]*/collections$"), lambda: {"collections": [_mock_collection()]}),
    (re.compile(r"^/collections/[^/]+$"), _mock_collection),
    (re.compile(r"^/sites/[^/]*/pages$"), lambda: {"pages": [_mock_page()]}),
    (re.compile(r"^/pages/[^/]+$"), _mock_page),
    (re.compile(r"^/sites/[^/]*$"), _mock_site),
)


def get_mock_data(endpoint: str) -> Dict[str, Any]:
    path = endpoint.split("?", 1)[0]
    for pattern, factory in MOCK_RESPONSES:
        if pattern.match(path):
            return factory()
    return {}


def _unwrap(data: Dict[str, Any], key: str) -> Dict[str, Any]:
    """Single-object endpoints may or may not wrap the record under *key*."""
    inner = data.get(key)
    return inner if isinstance(inner, dict) else data


def _field_value(item: WebflowCollectionItem, field: str) -> Any:
    if field in item.field_data:
        return item.field_data[field]
    return getattr(item, field, None)


class WebflowClient:
    def __init__(
        self,
        api_key: Optional[str] = None,
        site_id: Optional[str] = None,
        base_url: Optional[str] = None,
        cache: Optional[ContentCache] = None,
        timeout: Optional[float] = None,
    ) -> None:
        self.api_key = settings.webflow_api_key if api_key is None else api_key
        self.site_id = settings.webflow_site_id if site_id is None else site_id
        self.base_url = (base_url or settings.webflow_api_base).rstrip("/")
        self.cache = cache if cache is not None else ContentCache(default_ttl=CACHE_TTL)
        self.timeout = settings.request_timeout if timeout is None else timeout

        if not self.is_configured:
            logger.warning("Webflow API key or site ID not configured. Using mock data.")

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key and self.site_id)

    async def make_request(
        self, endpoint: str, options: Optional[Dict[str, Any]] = None
    ) -> ApiResult:
        """GET *endpoint* with *options* as query parameters.

        Never raises: a missing credential, network error, non-2xx status or
        undecodable body produces a :class:`Fallback` carrying mock data.
        """
        options = options or {}
        cache_key = f"{endpoint}-{json.dumps(options, sort_keys=True)}"

        cached = self.cache.get(cache_key)
        if cached is not None:
            return Ok(cached)

        if not self.is_configured:
            return Fallback(get_mock_data(endpoint), "Webflow API key or site ID not configured")

        try:
            data = await self._get(endpoint, options)
        except ExternalAPIError as exc:
            logger.warning("Webflow API request failed, using mock data: %s", exc)
            return Fallback(get_mock_data(endpoint), str(exc))

        self.cache.set(cache_key, data, CACHE_TTL)
        return Ok(data)

    async def _get(self, endpoint: str, params: Dict[str, Any]) -> Dict[str, Any]:
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Accept": "application/json",
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout, headers=headers) as client:
                response = await client.get(f"{self.base_url}{endpoint}", params=params)
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            raise ExternalAPIError(f"Webflow API error: {status} {exc.response.reason_phrase}") from exc
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise ExternalAPIError(f"Webflow API request failed: {exc}") from exc
        except ValueError as exc:
            raise ExternalAPIError(f"Webflow API returned invalid JSON: {exc}") from exc

        if not isinstance(data, dict):
            raise ExternalAPIError("Webflow API returned an unexpected payload")
        return data

    # ------------------------------------------------------------------
    # Site
    # ------------------------------------------------------------------

    async def get_site(self) -> Optional[WebflowSite]:
        result = await self.make_request(f"/sites/{self.site_id}")
        return self._parse(WebflowSite, _unwrap(result.data, "site"))

    # ------------------------------------------------------------------
    # Collections
    # ------------------------------------------------------------------

    async def get_collections(self) -> List[WebflowCollection]:
        result = await self.make_request(f"/sites/{self.site_id}/collections")
        return self._parse_list(WebflowCollection, result.data.get("collections"))

    async def get_collection(self, collection_id: str) -> Optional[WebflowCollection]:
        result = await self.make_request(f"/collections/{collection_id}")
        return self._parse(WebflowCollection, _unwrap(result.data, "collection"))

    async def get_collection_by_slug(self, slug: str) -> Optional[WebflowCollection]:
        collections = await self.get_collections()
        return next((collection for collection in collections if collection.slug == slug), None)

    # ------------------------------------------------------------------
    # Collection items
    # ------------------------------------------------------------------

    async def get_collection_items(
        self,
        collection_id: str,
        limit: int = DEFAULT_ITEM_LIMIT,
        offset: int = 0,
        sort: Optional[str] = None,
        filter: Optional[Dict[str, Any]] = None,
    ) -> List[WebflowCollectionItem]:
        options: Dict[str, Any] = {"limit": limit, "offset": offset}
        if sort:
            options["sort"] = sort
        for key, value in (filter or {}).items():
            options[f"filter[{key}]"] = str(value)

        result = await self.make_request(f"/collections/{collection_id}/items", options)
        return self._parse_list(WebflowCollectionItem, result.data.get("items"))

    async def get_collection_item(
        self, collection_id: str, item_id: str
    ) -> Optional[WebflowCollectionItem]:
        result = await self.make_request(f"/collections/{collection_id}/items/{item_id}")
        return self._parse(WebflowCollectionItem, _unwrap(result.data, "item"))

    async def get_collection_item_by_slug(
        self, collection_id: str, slug: str
    ) -> Optional[WebflowCollectionItem]:
        items = await self.get_collection_items(collection_id, filter={"slug": slug})
        # v2 items carry the slug in fieldData; v1 and mock items at the top level
        return next((item for item in items if _field_value(item, "slug") == slug), None)

    async def get_published_collection_items(
        self,
        collection_id: str,
        limit: int = DEFAULT_ITEM_LIMIT,
        offset: int = 0,
        sort: Optional[str] = None,
    ) -> List[WebflowCollectionItem]:
        items = await self.get_collection_items(collection_id, limit=limit, offset=offset, sort=sort)
        return [item for item in items if not item.is_draft and item.published_on]

    async def search_collection_items(
        self, collection_id: str, query: str, fields: Sequence[str] = ("name",)
    ) -> List[WebflowCollectionItem]:
        """Case-insensitive substring search over *fields* of every item."""
        needle = query.lower()
        items = await self.get_collection_items(collection_id)
        return [
            item
            for item in items
            if any(
                isinstance(value, str) and needle in value.lower()
                for value in (_field_value(item, field) for field in fields)
            )
        ]

    async def get_collection_items_by_category(
        self, collection_id: str, category_field: str, category_value: str
    ) -> List[WebflowCollectionItem]:
        items = await self.get_collection_items(
            collection_id, filter={category_field: category_value}
        )
        return [item for item in items if _field_value(item, category_field) == category_value]

    async def get_related_collection_items(
        self, collection_id: str, current_item_id: str, relation_field: str, limit: int = 5
    ) -> List[WebflowCollectionItem]:
        """Items sharing *relation_field* with the current item, excluding it."""
        items = await self.get_collection_items(collection_id)
        current = next((item for item in items if item.id == current_item_id), None)
        if current is None:
            return []

        relation_value = _field_value(current, relation_field)
        if not relation_value:
            return []

        return [
            item
            for item in items
            if item.id != current_item_id and _field_value(item, relation_field) == relation_value
        ][:limit]

    # ------------------------------------------------------------------
    # Pages
    # ------------------------------------------------------------------

    async def get_pages(self) -> List[WebflowPage]:
        result = await self.make_request(f"/sites/{self.site_id}/pages")
        raw = result.data.get("pages")
        if raw is None:
            raw = result.data.get("items")
        return self._parse_list(WebflowPage, raw)

    async def get_page(self, page_id: str) -> Optional[WebflowPage]:
        result = await self.make_request(f"/pages/{page_id}")
        return self._parse(WebflowPage, _unwrap(result.data, "page"))

    async def get_page_by_slug(self, slug: str) -> Optional[WebflowPage]:
        pages = await self.get_pages()
        return next((page for page in pages if page.slug == slug), None)

    # ------------------------------------------------------------------
    # Cache
    # ------------------------------------------------------------------

    def clear_cache(self) -> None:
        self.cache.clear()

    def get_cache_stats(self) -> Dict[str, Any]:
        keys = self.cache.keys()
        return {"size": len(keys), "keys": keys}

    # ------------------------------------------------------------------
    # Parsing
    # ------------------------------------------------------------------

    @staticmethod
    def _parse(model, data: Any):
        if not isinstance(data, dict) or not data:
            return None
        try:
            return model.model_validate(data)
        except ValidationError as exc:
            logger.warning("Unexpected Webflow %s payload: %s", model.__name__, exc)
            return None

    @staticmethod
    def _parse_list(model, raw: Any) -> list:
        records = []
        for entry in raw or []:
            parsed = WebflowClient._parse(model, entry)
            if parsed is not None:
                records.append(parsed)
        return records
