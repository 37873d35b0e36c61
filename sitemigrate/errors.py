"""Exception types raised by the migration services.

Scrape and sitemap failures propagate to the caller.  Asset and CMS failures
are absorbed where they occur: :class:`AssetProcessingError` is logged per
item by batch callers, and :class:`ExternalAPIError` only ever appears as the
reason of a fallback result from the Webflow client.
"""

from typing import Optional


class MigrationError(Exception):
    """Base class for all migration errors."""


class FetchError(MigrationError):
    """Network failure, timeout, or non-2xx response while fetching *url*."""

    def __init__(self, url: str, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class FetchTimeoutError(FetchError):
    """The fetch of *url* exceeded its deadline."""


class ParseError(MigrationError):
    """A fetched document could not be parsed (e.g. malformed sitemap XML)."""


class AssetProcessingError(MigrationError):
    """Download or decode of a single asset failed."""

    def __init__(self, url: str, message: str) -> None:
        super().__init__(message)
        self.url = url


class ExternalAPIError(MigrationError):
    """The headless CMS API was unreachable or answered with an error."""
