import logging

from fastapi import APIRouter, Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from sitemigrate.models.request import AssetsRequest
from sitemigrate.models.response import AssetsResponse
from sitemigrate.services.asset_extractor import AssetExtractor
from sitemigrate.services.pipeline import optimize_site_assets

logger = logging.getLogger(__name__)

limiter = Limiter(key_func=get_remote_address)
router = APIRouter()


@router.post("/assets", response_model=AssetsResponse, summary="Optimize the images of a page set")
@limiter.limit("5/minute")
async def assets(request: Request, body: AssetsRequest) -> AssetsResponse:
    """Find every allowlisted image in *pages* and optimize each unique URL once.

    Images that fail to download are left out of the result rather than
    failing the request.
    """
    logger.info(
        "Asset request received",
        extra={"pages": len(body.pages), "download_images": body.download_images},
    )
    extractor = AssetExtractor(download_images=body.download_images)
    extracted = await optimize_site_assets(body.pages, extractor)

    return AssetsResponse(
        assets=extracted,
        stats=extractor.get_asset_stats(extracted),
        report=extractor.generate_asset_report(extracted),
    )
