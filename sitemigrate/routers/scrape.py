import logging

from fastapi import APIRouter, HTTPException, Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from sitemigrate.errors import FetchError, FetchTimeoutError
from sitemigrate.models.request import ScrapeRequest
from sitemigrate.models.response import ScrapeResponse
from sitemigrate.services.scraper import PageScraper
from sitemigrate.services.sitemap import categorize_url
from sitemigrate.services.transformer import ContentTransformer
from sitemigrate.services.validator import ContentValidator

logger = logging.getLogger(__name__)

limiter = Limiter(key_func=get_remote_address)
router = APIRouter()


@router.post("/scrape", response_model=ScrapeResponse, summary="Scrape one page into content")
@limiter.limit("10/minute")
async def scrape(request: Request, body: ScrapeRequest) -> ScrapeResponse:
    """Fetch *url*, detect its sections, and return the canonical page.

    The page is validated on its own; slug uniqueness is only checked by
    ``POST /validate`` across a full page set.
    """
    url = str(body.url)
    category = categorize_url(url)
    logger.info("Scrape request received", extra={"url": url, "category": category})

    scraper = PageScraper(url)
    try:
        scraped = await scraper.scrape_page(url, category=category)
    except ValueError as exc:
        logger.warning("Invalid URL: %s – %s", url, exc)
        raise HTTPException(status_code=400, detail=str(exc))
    except FetchTimeoutError:
        logger.error("Timeout fetching URL: %s", url)
        raise HTTPException(status_code=504, detail="The target URL timed out.")
    except FetchError as exc:
        logger.error("Error fetching URL %s: %s", url, exc)
        raise HTTPException(status_code=502, detail=str(exc))

    page = ContentTransformer().transform_page(scraped)
    validation = ContentValidator().validate_page(page)

    return ScrapeResponse(
        url=url,
        category=category,
        page=page,
        validation=validation,
        assets=scraped.assets if body.include_assets else [],
    )
