"""Image download, fingerprinting and variant generation.

Every image is keyed by the MD5 hex digest of its source URL.  Variants are
written as byte copies of the original under hash-derived names, so a later
real encoder only has to replace the file contents:

    {hash}.{source format}        original bytes
    {hash}.{format}               one per configured format
    {hash}-{width}w.{format}      one per configured format and size <= source width
"""

import asyncio
import hashlib
import logging
import re
import time
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence, Union

from sitemigrate.config import settings
from sitemigrate.errors import AssetProcessingError, FetchError
from sitemigrate.models.assets import ImageAsset, ResponsiveFormats, ResponsiveImageSet
from sitemigrate.services.fetcher import fetch_bytes
from sitemigrate.services.image_metadata import read_image_metadata

logger = logging.getLogger(__name__)

DEFAULT_FORMATS = ("webp", "avif")
DEFAULT_SIZES = (640, 768, 1024, 1280, 1920)
BATCH_SIZE = 5
BATCH_DELAY = 1.0
CLEANUP_MAX_AGE = 7 * 24 * 60 * 60  # seconds

# Viewport breakpoints, widest first; each renders the image at that width
SIZE_BREAKPOINTS = (1280, 1024, 768, 640)

_EXTENSION_RE = re.compile(r"\.[^/.]+$")


def fingerprint(url: str) -> str:
    return hashlib.md5(url.encode("utf-8")).hexdigest()


def _strip_extension(path: str) -> str:
    return _EXTENSION_RE.sub("", path)


def generate_sizes_attribute(available_sizes: Sequence[int]) -> str:
    """Build an HTML ``sizes`` value covering only widths that were generated."""
    entries = [
        f"(min-width: {breakpoint}px) {breakpoint}px"
        for breakpoint in SIZE_BREAKPOINTS
        if any(size >= breakpoint for size in available_sizes)
    ]
    entries.append("100vw")
    return ", ".join(entries)


class ImageOptimizer:
    def __init__(
        self,
        output_dir: Optional[Union[str, Path]] = None,
        formats: Sequence[str] = DEFAULT_FORMATS,
        sizes: Sequence[int] = DEFAULT_SIZES,
        batch_size: int = BATCH_SIZE,
        batch_delay: float = BATCH_DELAY,
        timeout: Optional[float] = None,
    ) -> None:
        self.output_dir = Path(output_dir or settings.image_output_dir)
        self.formats = tuple(formats)
        self.sizes = tuple(sorted(sizes))
        self.batch_size = batch_size
        self.batch_delay = batch_delay
        self.timeout = timeout
        self._cache: Dict[str, ImageAsset] = {}
        self._in_flight: Dict[str, "asyncio.Task[ImageAsset]"] = {}

    async def download_and_optimize(self, url: str, alt: Optional[str] = None) -> ImageAsset:
        """Return the optimized asset for *url*, downloading it at most once.

        Concurrent calls for the same URL share a single download.

        Raises:
            AssetProcessingError: if the download or file output fails.
        """
        key = fingerprint(url)
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        task = self._in_flight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._process(url, alt, key))
            self._in_flight[key] = task
            task.add_done_callback(lambda _: self._in_flight.pop(key, None))

        return await asyncio.shield(task)

    async def _process(self, url: str, alt: Optional[str], key: str) -> ImageAsset:
        try:
            data = await fetch_bytes(url, timeout=self.timeout)
        except (FetchError, ValueError) as exc:
            raise AssetProcessingError(url, f"Failed to download image {url}: {exc}") from exc

        metadata = read_image_metadata(data)
        try:
            self.output_dir.mkdir(parents=True, exist_ok=True)
            local_path = self.output_dir / f"{key}.{metadata.format}"
            local_path.write_bytes(data)
            optimized_path = self._write_variants(data, key, metadata.width)
        except OSError as exc:
            raise AssetProcessingError(url, f"Failed to write image {url}: {exc}") from exc

        asset = ImageAsset(
            url=url,
            alt=alt,
            width=metadata.width,
            height=metadata.height,
            format=metadata.format,
            size=len(data),
            local_path=str(local_path),
            optimized_path=optimized_path,
            hash=key,
        )
        self._cache[key] = asset
        logger.info("Optimized image %s -> %s", url, optimized_path)
        return asset

    def _write_variants(self, data: bytes, key: str, source_width: int) -> Optional[str]:
        if not self.formats:
            return None
        sizes = [size for size in self.sizes if size <= source_width]
        for fmt in self.formats:
            (self.output_dir / f"{key}.{fmt}").write_bytes(data)
            for size in sizes:
                (self.output_dir / f"{key}-{size}w.{fmt}").write_bytes(data)
        return str(self.output_dir / f"{key}.{self.formats[0]}")

    def generate_responsive_image_set(self, asset: ImageAsset) -> ResponsiveImageSet:
        if not asset.width or not asset.height or not asset.optimized_path:
            raise ValueError("Asset must have dimensions and optimized path")

        base = _strip_extension(asset.optimized_path)
        available = [size for size in self.sizes if size <= asset.width]

        return ResponsiveImageSet(
            src=f"{base}-{available[0] if available else asset.width}w.webp",
            src_set=", ".join(f"{base}-{size}w.webp {size}w" for size in available),
            sizes=generate_sizes_attribute(available),
            width=asset.width,
            height=asset.height,
            alt=asset.alt or "",
            formats=ResponsiveFormats(
                webp=f"{base}.webp",
                avif=f"{base}.avif",
                original=asset.local_path or asset.url,
            ),
        )

    def get_optimized_image_url(
        self, asset: ImageAsset, width: Optional[int] = None, fmt: str = "webp"
    ) -> str:
        """Return the variant URL for *asset*, or its source URL if it has none."""
        if not asset.optimized_path:
            return asset.url

        base = _strip_extension(asset.optimized_path)
        extension = asset.format if fmt == "original" else fmt
        if width:
            return f"{base}-{width}w.{extension}"
        return f"{base}.{extension}"

    async def batch_optimize(
        self, urls: Sequence[str], alts: Optional[Mapping[str, str]] = None
    ) -> List[ImageAsset]:
        """Optimize *urls* in bounded chunks; failed items are logged and dropped.

        *alts* optionally maps a URL to the alt text recorded on its asset.
        """
        alts = alts or {}
        results: List[ImageAsset] = []
        for start in range(0, len(urls), self.batch_size):
            chunk = urls[start:start + self.batch_size]
            outcomes = await asyncio.gather(
                *(self.download_and_optimize(url, alts.get(url) or None) for url in chunk),
                return_exceptions=True,
            )
            for url, outcome in zip(chunk, outcomes):
                if isinstance(outcome, AssetProcessingError):
                    logger.warning("Failed to process image %s: %s", url, outcome)
                elif isinstance(outcome, Exception):
                    logger.exception("Unexpected error processing image %s", url, exc_info=outcome)
                elif isinstance(outcome, BaseException):
                    raise outcome
                else:
                    results.append(outcome)

            if start + self.batch_size < len(urls):
                await asyncio.sleep(self.batch_delay)
        return results

    def cleanup(self, max_age: float = CLEANUP_MAX_AGE) -> int:
        """Delete generated files older than *max_age* seconds; return the count."""
        if not self.output_dir.is_dir():
            return 0

        removed = 0
        now = time.time()
        for path in self.output_dir.iterdir():
            if path.is_file() and now - path.stat().st_mtime > max_age:
                path.unlink()
                removed += 1
                logger.info("Cleaned up old image: %s", path.name)
        return removed
