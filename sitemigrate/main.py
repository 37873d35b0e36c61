import logging
import logging.config
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from sitemigrate.config import settings
from sitemigrate.routers.assets import router as assets_router
from sitemigrate.routers.cms import router as cms_router
from sitemigrate.routers.migrate import router as migrate_router
from sitemigrate.routers.scrape import limiter, router as scrape_router
from sitemigrate.routers.sitemap import router as sitemap_router
from sitemigrate.routers.validate import router as validate_router
from sitemigrate.services.cache import content_cache

logging.config.dictConfig(
    {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "json": {
                "format": '{"time": "%(asctime)s", "level": "%(levelname)s", "logger": "%(name)s", "message": "%(message)s"}',
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "json",
            },
        },
        "root": {"level": "INFO", "handlers": ["console"]},
    }
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    content_cache.start_sweeper(settings.cache_sweep_interval)
    yield
    await content_cache.stop_sweeper()


app = FastAPI(
    title="sitemigrate – Site Migration API",
    description="Scrapes marketing pages into structured, validated content.",
    version="1.0.0",
    lifespan=lifespan,
)

# Rate-limiting state
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception for %s", request.url)
    return JSONResponse(status_code=500, content={"detail": "An unexpected error occurred."})


app.include_router(scrape_router)
app.include_router(sitemap_router)
app.include_router(validate_router)
app.include_router(migrate_router)
app.include_router(assets_router)
app.include_router(cms_router)


@app.get("/", summary="Health check")
async def root() -> dict:
    return {"message": "Hello from sitemigrate"}
