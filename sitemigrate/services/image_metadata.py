"""Reads width, height and format from the leading bytes of an image.

Only JPEG, PNG and WebP (lossy ``VP8`` layout) signatures are recognised.
Anything else, or a header too short to hold the fields, yields
:data:`DEFAULT_METADATA`.
"""

import struct
from typing import NamedTuple


class ImageMetadata(NamedTuple):
    width: int
    height: int
    format: str


DEFAULT_METADATA = ImageMetadata(width=800, height=600, format="jpg")

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"
JPEG_SOI = b"\xff\xd8"
# Start-of-frame markers carrying the frame dimensions (baseline, progressive)
JPEG_SOF_MARKERS = {0xC0, 0xC2}


def _jpeg_metadata(data: bytes) -> ImageMetadata:
    offset = 2
    while offset + 1 < len(data):
        if data[offset] != 0xFF:
            offset += 1
            continue

        marker = data[offset + 1]
        if marker in JPEG_SOF_MARKERS:
            if offset + 9 > len(data):
                break
            height, width = struct.unpack_from(">HH", data, offset + 5)
            return ImageMetadata(width=width, height=height, format="jpg")

        if offset + 4 > len(data):
            break
        (length,) = struct.unpack_from(">H", data, offset + 2)
        offset += length + 2

    return DEFAULT_METADATA


def _png_metadata(data: bytes) -> ImageMetadata:
    if len(data) < 24:
        return DEFAULT_METADATA
    width, height = struct.unpack_from(">II", data, 16)
    return ImageMetadata(width=width, height=height, format="png")


def _webp_metadata(data: bytes) -> ImageMetadata:
    if len(data) < 30:
        return DEFAULT_METADATA
    # Stored as dimension minus one
    width, height = struct.unpack_from("<HH", data, 26)
    return ImageMetadata(width=width + 1, height=height + 1, format="webp")


def read_image_metadata(data: bytes) -> ImageMetadata:
    if data[:2] == JPEG_SOI:
        return _jpeg_metadata(data)
    if data[:8] == PNG_SIGNATURE:
        return _png_metadata(data)
    if data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return _webp_metadata(data)
    return DEFAULT_METADATA
