from typing import Optional
from urllib.parse import urlparse

import httpx

from sitemigrate.config import settings
from sitemigrate.errors import FetchError, FetchTimeoutError

MAX_CONTENT_SIZE = 10 * 1024 * 1024  # 10 MB
MAX_REDIRECTS = 10
ALLOWED_SCHEMES = {"http", "https"}

# Present as a desktop browser; some marketing CDNs serve bots a stripped page.
USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
)


def _validate_url(url: str) -> None:
    """Raise ValueError if *url* is not an absolute http(s) URL."""
    parsed = urlparse(url)

    if parsed.scheme not in ALLOWED_SCHEMES:
        raise ValueError(f"Scheme '{parsed.scheme}' is not allowed. Use http or https.")

    if not parsed.hostname:
        raise ValueError("URL must have a valid hostname.")


async def fetch_bytes(url: str, timeout: Optional[float] = None) -> bytes:
    """Fetch *url* and return the raw response body.

    Raises:
        ValueError: if the URL is not an absolute http(s) URL.
        FetchTimeoutError: if the request exceeds *timeout* seconds.
        FetchError: on network errors, malformed URLs, non-2xx responses, or an
            oversized body.
    """
    _validate_url(url)
    timeout = settings.request_timeout if timeout is None else timeout

    try:
        async with httpx.AsyncClient(
            follow_redirects=True,
            max_redirects=MAX_REDIRECTS,
            timeout=timeout,
            headers={"User-Agent": USER_AGENT},
        ) as client:
            async with client.stream("GET", url) as response:
                response.raise_for_status()

                content_length = response.headers.get("content-length")
                if content_length and int(content_length) > MAX_CONTENT_SIZE:
                    raise FetchError(url, "Response body exceeds the maximum allowed size.")

                chunks = []
                total = 0
                async for chunk in response.aiter_bytes():
                    total += len(chunk)
                    if total > MAX_CONTENT_SIZE:
                        raise FetchError(url, "Response body exceeds the maximum allowed size.")
                    chunks.append(chunk)

                return b"".join(chunks)
    except httpx.TimeoutException as exc:
        raise FetchTimeoutError(url, f"Timed out after {timeout}s fetching {url}") from exc
    except httpx.HTTPStatusError as exc:
        status = exc.response.status_code
        raise FetchError(url, f"{url} returned HTTP {status}", status_code=status) from exc
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        raise FetchError(url, f"Error fetching {url}: {exc}") from exc


async def fetch_url(url: str, timeout: Optional[float] = None) -> str:
    """Fetch *url* and return the response body decoded as text."""
    body = await fetch_bytes(url, timeout=timeout)
    return body.decode(errors="replace")
