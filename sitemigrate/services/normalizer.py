"""Data normalisation utilities: slugs, URL resolution, inline style parsing."""

from typing import Dict
from urllib.parse import urljoin, urlparse


def slug_from_url(url: str) -> str:
    """Derive a content slug from the path of *url*.

    The root path maps to ``home``; any other path has its leading and
    trailing slashes stripped and inner slashes replaced with hyphens, so
    ``/blog/my-post/`` becomes ``blog-my-post``.  Unparsable URLs map to
    ``page``.
    """
    try:
        path = urlparse(url).path
    except ValueError:
        return "page"

    if path in ("", "/"):
        return "home"

    return path.strip("/").replace("/", "-") or "page"


def resolve_url(href: str, page_url: str) -> str:
    """Return an absolute URL, resolving *href* against *page_url*."""
    return urljoin(page_url, href.strip())


def same_origin(url: str, base_url: str) -> bool:
    """Return True when *url* is relative or points at the host of *base_url*."""
    if url.startswith(("#", "mailto:", "tel:", "javascript:")):
        return False
    if url.startswith("/") and not url.startswith("//"):
        return True
    try:
        return urlparse(url).hostname == urlparse(base_url).hostname
    except ValueError:
        return False


def parse_inline_styles(style: str) -> Dict[str, str]:
    """Parse a ``style`` attribute into a ``{property: value}`` map.

    Only the first colon of each declaration separates property from value,
    so ``background: url(https://x/y.png)`` survives intact.
    """
    styles: Dict[str, str] = {}
    if not style:
        return styles
    for declaration in style.split(";"):
        prop, sep, value = declaration.partition(":")
        prop, value = prop.strip(), value.strip()
        if sep and prop and value:
            styles[prop] = value
    return styles
