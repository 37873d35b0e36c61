import logging
from urllib.parse import urlparse

from fastapi import APIRouter, HTTPException, Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from sitemigrate.config import settings
from sitemigrate.errors import FetchError, FetchTimeoutError, ParseError
from sitemigrate.models.request import MigrateRequest
from sitemigrate.models.response import MigrateResponse
from sitemigrate.services.pipeline import migrate_site

logger = logging.getLogger(__name__)

limiter = Limiter(key_func=get_remote_address)
router = APIRouter()


@router.post(
    "/migrate",
    response_model=MigrateResponse,
    summary="Migrate a site",
    description=(
        "Parses the sitemap at `sitemap_url`, scrapes its high-priority pages, "
        "transforms and validates them, and writes the content tree under the "
        "configured content directory.  Pages that fail to scrape are listed in "
        "`failed_urls`; a nonzero `blocking_errors` means the set is not publishable."
    ),
)
@limiter.limit("2/minute")
async def migrate(request: Request, body: MigrateRequest) -> MigrateResponse:
    sitemap_url = str(body.sitemap_url)
    if body.site_url is not None:
        site_url = str(body.site_url)
    else:
        parsed = urlparse(sitemap_url)
        site_url = f"{parsed.scheme}://{parsed.netloc}"
    logger.info("Migration request received", extra={"sitemap_url": sitemap_url, "site_url": site_url})

    try:
        result = await migrate_site(
            sitemap_url=sitemap_url,
            site_url=site_url,
            content_dir=settings.content_dir,
            scraped_data_dir=settings.scraped_data_dir,
        )
    except ValueError as exc:
        logger.warning("Invalid URL: %s – %s", sitemap_url, exc)
        raise HTTPException(status_code=400, detail=str(exc))
    except FetchTimeoutError:
        logger.error("Timeout fetching sitemap: %s", sitemap_url)
        raise HTTPException(status_code=504, detail="The sitemap URL timed out.")
    except (FetchError, ParseError) as exc:
        logger.error("Error reading sitemap %s: %s", sitemap_url, exc)
        raise HTTPException(status_code=502, detail=str(exc))

    return MigrateResponse(
        total_pages=len(result.pages),
        slugs=[page.slug for page in result.pages],
        failed_urls=result.failed_urls,
        category_counts=result.category_counts,
        report=result.report,
        blocking_errors=result.blocking_errors,
        publishable=result.publishable,
        design_tokens=result.design_tokens,
    )
