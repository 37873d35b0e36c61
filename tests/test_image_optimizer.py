"""Tests for image metadata parsing, the image optimizer and the asset manifest."""

import asyncio
import json
import os
import struct
import time
from unittest.mock import patch

import httpx
import pytest
import respx

from sitemigrate.errors import AssetProcessingError
from sitemigrate.models.assets import ImageAsset
from sitemigrate.services.image_metadata import DEFAULT_METADATA, read_image_metadata
from sitemigrate.services.image_optimizer import (
    BATCH_DELAY,
    BATCH_SIZE,
    ImageOptimizer,
    fingerprint,
    generate_sizes_attribute,
)
from sitemigrate.services.manifest import AssetManifestManager

IMAGE_URL = "https://images.example.com/hero.png"
BAD_URL = "https://images.example.com/bad\x01.png"

_real_sleep = asyncio.sleep


def _png(width: int, height: int) -> bytes:
    ihdr = struct.pack(">II", width, height) + b"\x08\x06\x00\x00\x00"
    return b"\x89PNG\r\n\x1a\n" + struct.pack(">I", 13) + b"IHDR" + ihdr + b"\x00" * 4


def _jpeg(width: int, height: int) -> bytes:
    app0 = b"\xff\xe0" + struct.pack(">H", 16) + b"JFIF\x00" + b"\x00" * 9
    sof0 = b"\xff\xc0" + struct.pack(">HBHH", 17, 8, height, width) + b"\x00" * 10
    return b"\xff\xd8" + app0 + sof0 + b"\xff\xd9"


def _webp(width: int, height: int) -> bytes:
    header = b"RIFF" + struct.pack("<I", 0) + b"WEBP" + b"VP8 " + b"\x00" * 10
    return header + struct.pack("<HH", width - 1, height - 1)


# ---------------------------------------------------------------------------
# Header parsing
# ---------------------------------------------------------------------------

class TestReadImageMetadata:
    def test_png(self):
        assert read_image_metadata(_png(1200, 630)) == (1200, 630, "png")

    def test_jpeg(self):
        assert read_image_metadata(_jpeg(1024, 768)) == (1024, 768, "jpg")

    def test_webp(self):
        assert read_image_metadata(_webp(320, 200)) == (320, 200, "webp")

    def test_unknown_format_uses_defaults(self):
        assert read_image_metadata(b"GIF89a....") == DEFAULT_METADATA

    def test_truncated_headers_use_defaults(self):
        assert read_image_metadata(_png(10, 10)[:20]) == DEFAULT_METADATA
        assert read_image_metadata(b"\xff\xd8\xff") == DEFAULT_METADATA
        assert read_image_metadata(_webp(10, 10)[:28]) == DEFAULT_METADATA


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------

class TestHelpers:
    def test_fingerprint_is_md5_of_url(self):
        assert fingerprint("https://x.com/a.png") == fingerprint("https://x.com/a.png")
        assert len(fingerprint("https://x.com/a.png")) == 32
        assert fingerprint("https://x.com/a.png") != fingerprint("https://x.com/b.png")

    def test_sizes_attribute_covers_generated_widths(self):
        assert generate_sizes_attribute([640, 768]) == (
            "(min-width: 768px) 768px, (min-width: 640px) 640px, 100vw"
        )

    def test_sizes_attribute_without_variants(self):
        assert generate_sizes_attribute([]) == "100vw"


# ---------------------------------------------------------------------------
# Download and variants
# ---------------------------------------------------------------------------

@pytest.fixture
def optimizer(tmp_path):
    return ImageOptimizer(output_dir=tmp_path / "out", batch_delay=0)


class TestDownloadAndOptimize:
    @respx.mock
    async def test_writes_original_and_variants(self, optimizer):
        respx.get(IMAGE_URL).mock(return_value=httpx.Response(200, content=_png(1100, 500)))

        asset = await optimizer.download_and_optimize(IMAGE_URL, alt="Hero")

        key = fingerprint(IMAGE_URL)
        assert asset.hash == key
        assert (asset.width, asset.height, asset.format) == (1100, 500, "png")
        assert asset.alt == "Hero"
        assert asset.optimized_path == str(optimizer.output_dir / f"{key}.webp")

        names = {path.name for path in optimizer.output_dir.iterdir()}
        assert names == {
            f"{key}.png",
            f"{key}.webp",
            f"{key}.avif",
            f"{key}-640w.webp",
            f"{key}-768w.webp",
            f"{key}-1024w.webp",
            f"{key}-640w.avif",
            f"{key}-768w.avif",
            f"{key}-1024w.avif",
        }

    @respx.mock
    async def test_concurrent_calls_share_one_download(self, optimizer):
        route = respx.get(IMAGE_URL).mock(return_value=httpx.Response(200, content=_png(10, 10)))

        first, second = await asyncio.gather(
            optimizer.download_and_optimize(IMAGE_URL),
            optimizer.download_and_optimize(IMAGE_URL),
        )

        assert route.call_count == 1
        assert first.hash == second.hash

    @respx.mock
    async def test_processed_url_is_served_from_memory(self, optimizer):
        route = respx.get(IMAGE_URL).mock(return_value=httpx.Response(200, content=_png(10, 10)))
        await optimizer.download_and_optimize(IMAGE_URL)
        await optimizer.download_and_optimize(IMAGE_URL)
        assert route.call_count == 1

    @respx.mock
    async def test_download_failure(self, optimizer):
        respx.get(IMAGE_URL).mock(return_value=httpx.Response(404))
        with pytest.raises(AssetProcessingError) as exc_info:
            await optimizer.download_and_optimize(IMAGE_URL)
        assert exc_info.value.url == IMAGE_URL

    async def test_invalid_url(self, optimizer):
        with pytest.raises(AssetProcessingError):
            await optimizer.download_and_optimize("ftp://example.com/a.png")

    async def test_malformed_url(self, optimizer):
        with pytest.raises(AssetProcessingError) as exc_info:
            await optimizer.download_and_optimize(BAD_URL)
        assert exc_info.value.url == BAD_URL


class TestBatchOptimize:
    @respx.mock
    async def test_failures_are_isolated(self, tmp_path):
        optimizer = ImageOptimizer(output_dir=tmp_path, batch_size=2, batch_delay=0)
        urls = [f"https://images.example.com/{i}.png" for i in range(4)]
        for url in urls:
            status = 500 if url == urls[1] else 200
            respx.get(url).mock(return_value=httpx.Response(status, content=_png(10, 10)))

        assets = await optimizer.batch_optimize(urls, alts={urls[0]: "First"})

        assert [asset.url for asset in assets] == [urls[0], urls[2], urls[3]]
        assert assets[0].alt == "First"
        assert assets[1].alt is None

    @respx.mock
    async def test_malformed_url_does_not_abort_batch(self, tmp_path):
        optimizer = ImageOptimizer(output_dir=tmp_path, batch_delay=0)
        respx.get(IMAGE_URL).mock(return_value=httpx.Response(200, content=_png(10, 10)))

        assets = await optimizer.batch_optimize([BAD_URL, IMAGE_URL])

        assert [asset.url for asset in assets] == [IMAGE_URL]

    async def test_unexpected_errors_are_isolated(self, tmp_path):
        optimizer = ImageOptimizer(output_dir=tmp_path, batch_delay=0)
        urls = [f"https://images.example.com/{i}.png" for i in range(3)]

        async def fetch(url, timeout=None):
            if url == urls[0]:
                raise RuntimeError("decoder crashed")
            return _png(10, 10)

        with patch("sitemigrate.services.image_optimizer.fetch_bytes", new=fetch):
            assets = await optimizer.batch_optimize(urls)

        assert [asset.url for asset in assets] == urls[1:]


class TestBatchPacing:
    """Chunk width, peak concurrency and the pause between chunks."""

    @pytest.mark.parametrize("count, pauses", [(12, 2), (10, 1), (5, 0), (1, 0)])
    async def test_chunks_of_five_with_pauses_between(self, tmp_path, count, pauses):
        events = []
        in_flight = 0
        peak = 0

        async def fetch(url, timeout=None):
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            events.append("fetch")
            await _real_sleep(0.01)
            in_flight -= 1
            return _png(10, 10)

        async def pause(delay):
            events.append(delay)

        optimizer = ImageOptimizer(output_dir=tmp_path)
        urls = [f"https://images.example.com/{i}.png" for i in range(count)]
        with patch("sitemigrate.services.image_optimizer.fetch_bytes", new=fetch), patch(
            "sitemigrate.services.image_optimizer.asyncio.sleep", new=pause
        ):
            assets = await optimizer.batch_optimize(urls)

        assert len(assets) == count
        assert peak == min(count, BATCH_SIZE)
        assert BATCH_SIZE == 5
        assert BATCH_DELAY == 1.0

        expected = []
        for start in range(0, count, BATCH_SIZE):
            if start:
                expected.append(BATCH_DELAY)
            expected.extend(["fetch"] * len(urls[start:start + BATCH_SIZE]))
        assert events == expected
        assert events.count(BATCH_DELAY) == pauses


# ---------------------------------------------------------------------------
# Derived URLs
# ---------------------------------------------------------------------------

def _asset(**overrides) -> ImageAsset:
    fields = dict(
        url=IMAGE_URL,
        alt="Hero",
        width=1100,
        height=500,
        format="png",
        local_path="/out/abc.png",
        optimized_path="/opt/abc.webp",
        hash="abc",
    )
    fields.update(overrides)
    return ImageAsset(**fields)


class TestOptimizedImageUrl:
    def test_width_variant(self, optimizer):
        assert optimizer.get_optimized_image_url(_asset(), width=640) == "/opt/abc-640w.webp"

    def test_format_variant(self, optimizer):
        assert optimizer.get_optimized_image_url(_asset(), fmt="avif") == "/opt/abc.avif"

    def test_original_format(self, optimizer):
        assert optimizer.get_optimized_image_url(_asset(), fmt="original") == "/opt/abc.png"

    def test_without_optimized_path_returns_source(self, optimizer):
        assert optimizer.get_optimized_image_url(_asset(optimized_path=None)) == IMAGE_URL


class TestResponsiveImageSet:
    def test_generated(self, optimizer):
        image_set = optimizer.generate_responsive_image_set(_asset())

        assert image_set.src == "/opt/abc-640w.webp"
        assert image_set.src_set == (
            "/opt/abc-640w.webp 640w, /opt/abc-768w.webp 768w, /opt/abc-1024w.webp 1024w"
        )
        assert image_set.sizes.endswith("100vw")
        assert "(min-width: 1280px)" not in image_set.sizes
        assert image_set.formats.avif == "/opt/abc.avif"
        assert image_set.formats.original == "/out/abc.png"

    def test_small_image_uses_own_width(self, optimizer):
        image_set = optimizer.generate_responsive_image_set(_asset(width=300))
        assert image_set.src == "/opt/abc-300w.webp"
        assert image_set.src_set == ""
        assert image_set.sizes == "100vw"

    def test_requires_dimensions(self, optimizer):
        with pytest.raises(ValueError):
            optimizer.generate_responsive_image_set(_asset(width=None))


class TestCleanup:
    def test_removes_only_old_files(self, optimizer):
        optimizer.output_dir.mkdir(parents=True)
        old = optimizer.output_dir / "old.webp"
        new = optimizer.output_dir / "new.webp"
        old.write_bytes(b"x")
        new.write_bytes(b"x")
        stale = time.time() - 3600
        os.utime(old, (stale, stale))

        assert optimizer.cleanup(max_age=60) == 1
        assert not old.exists()
        assert new.exists()

    def test_missing_directory(self, tmp_path):
        assert ImageOptimizer(output_dir=tmp_path / "none").cleanup() == 0


# ---------------------------------------------------------------------------
# Manifest
# ---------------------------------------------------------------------------

class TestAssetManifest:
    def test_missing_file_starts_empty(self, tmp_path):
        manager = AssetManifestManager(tmp_path / "manifest.json")
        assert manager.load().assets == {}

    def test_round_trip_through_disk(self, tmp_path):
        path = tmp_path / "public" / "asset-manifest.json"
        manager = AssetManifestManager(path)
        manager.add_asset(_asset())
        manager.save()

        saved = json.loads(path.read_text())
        assert saved["version"] == "1.0.0"
        assert saved["timestamp"] > 0

        reloaded = AssetManifestManager(path)
        reloaded.load()
        assert reloaded.get_asset(IMAGE_URL).hash == "abc"

    def test_unreadable_file_starts_empty(self, tmp_path):
        path = tmp_path / "manifest.json"
        path.write_text("{not json")
        assert AssetManifestManager(path).load().assets == {}

    def test_remove_and_clear(self, tmp_path):
        manager = AssetManifestManager(tmp_path / "m.json")
        manager.add_asset(_asset())
        manager.add_asset(_asset(url="https://x.com/b.png", hash="b"))

        assert manager.remove_asset(IMAGE_URL) is True
        assert manager.remove_asset(IMAGE_URL) is False
        assert list(manager.get_all_assets()) == ["https://x.com/b.png"]

        manager.clear()
        assert manager.get_all_assets() == {}
