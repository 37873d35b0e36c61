import logging

from fastapi import APIRouter, HTTPException, Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from sitemigrate.errors import FetchError, FetchTimeoutError, ParseError
from sitemigrate.models.request import SitemapRequest
from sitemigrate.models.response import SitemapResponse
from sitemigrate.services.sitemap import (
    filter_by_priority,
    get_high_priority_urls,
    group_by_category,
    parse_sitemap,
)

logger = logging.getLogger(__name__)

limiter = Limiter(key_func=get_remote_address)
router = APIRouter()


@router.post(
    "/sitemap",
    response_model=SitemapResponse,
    summary="Analyse a sitemap",
    description=(
        "Fetches the sitemap at *url*, categorises every listed URL by its path, "
        "and returns per-category counts, the high-priority migration set, and "
        "the URLs at or above `min_priority`."
    ),
)
@limiter.limit("10/minute")
async def sitemap_endpoint(request: Request, body: SitemapRequest) -> SitemapResponse:
    url = str(body.url)
    logger.info("Sitemap request received", extra={"url": url, "min_priority": body.min_priority})

    try:
        records = await parse_sitemap(url)
    except ValueError as exc:
        logger.warning("Invalid URL: %s – %s", url, exc)
        raise HTTPException(status_code=400, detail=str(exc))
    except FetchTimeoutError:
        raise HTTPException(status_code=504, detail="The sitemap URL timed out.")
    except (FetchError, ParseError) as exc:
        raise HTTPException(status_code=502, detail=str(exc))

    grouped = group_by_category(records)
    return SitemapResponse(
        url=url,
        total_urls=len(records),
        category_counts={category: len(items) for category, items in grouped.items()},
        high_priority_urls=get_high_priority_urls(records),
        filtered_urls=filter_by_priority(records, body.min_priority),
    )
