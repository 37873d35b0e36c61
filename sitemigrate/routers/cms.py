import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Query, Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from sitemigrate.models.response import CollectionItemsResponse, CollectionsResponse
from sitemigrate.models.webflow import WebflowCollectionItem
from sitemigrate.services.cache import content_cache
from sitemigrate.services.webflow import WebflowClient

logger = logging.getLogger(__name__)

limiter = Limiter(key_func=get_remote_address)
router = APIRouter(prefix="/cms", tags=["CMS"])


def get_client() -> WebflowClient:
    # Responses are shared through the app-wide cache, swept by the lifespan task
    return WebflowClient(cache=content_cache)


@router.get("/collections", response_model=CollectionsResponse, summary="List CMS collections")
@limiter.limit("30/minute")
async def collections(request: Request) -> CollectionsResponse:
    return CollectionsResponse(collections=await get_client().get_collections())


@router.get(
    "/collections/{collection_id}/items",
    response_model=CollectionItemsResponse,
    summary="List CMS collection items",
    description=(
        "Returns the items of a collection.  `q` searches item names; without it, "
        "`published_only` drops drafts and never-published items.  Without "
        "CMS credentials, or when the CMS is unreachable, mock items are returned."
    ),
)
@limiter.limit("30/minute")
async def collection_items(
    request: Request,
    collection_id: str,
    q: Optional[str] = Query(default=None, min_length=1),
    published_only: bool = False,
) -> CollectionItemsResponse:
    client = get_client()
    if q:
        items = await client.search_collection_items(collection_id, q)
    elif published_only:
        items = await client.get_published_collection_items(collection_id)
    else:
        items = await client.get_collection_items(collection_id)

    return CollectionItemsResponse(collection_id=collection_id, total=len(items), items=items)


@router.get(
    "/collections/{collection_id}/items/by-slug/{slug}",
    response_model=WebflowCollectionItem,
    summary="Fetch one CMS item by slug",
)
@limiter.limit("30/minute")
async def collection_item_by_slug(
    request: Request, collection_id: str, slug: str
) -> WebflowCollectionItem:
    item = await get_client().get_collection_item_by_slug(collection_id, slug)
    if item is None:
        raise HTTPException(status_code=404, detail=f"No item with slug '{slug}'.")
    return item
