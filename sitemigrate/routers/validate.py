import logging

from fastapi import APIRouter, Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from sitemigrate.models.request import ValidateRequest
from sitemigrate.models.response import ValidateResponse
from sitemigrate.services.validator import ContentValidator, count_blocking_errors, log_report

logger = logging.getLogger(__name__)

limiter = Limiter(key_func=get_remote_address)
router = APIRouter()


@router.post("/validate", response_model=ValidateResponse, summary="Validate a set of pages")
@limiter.limit("20/minute")
async def validate(request: Request, body: ValidateRequest) -> ValidateResponse:
    """Validate every page and check slugs are unique across the set."""
    report = ContentValidator().generate_report(body.pages)
    log_report(report)
    return ValidateResponse(report=report, blocking_errors=count_blocking_errors(report))
