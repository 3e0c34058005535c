#!/usr/bin/env python3
"""
Image Processing Service Tests
Format detection, JPEG transcoding and card thumbnails
"""

import io

import pytest
from PIL import Image

from app.core.exceptions import ImageDecodeError
from app.services.image_service import image_service, ImageProcessingService
from conftest import make_photo


@pytest.mark.parametrize("format,expected", [
    ("JPEG", "JPEG"),
    ("JPEG2000", "JPEG2000"),
    ("PNG", "PNG"),
    ("TIFF", "TIFF"),
])
def test_detect_format(format, expected):
    assert image_service.detect_format(make_photo(format, size=(16, 16))) == expected


def test_detect_format_unknown():
    assert image_service.detect_format(b"GIF") == "UNKNOWN"
    assert image_service.detect_format(b"not an image at all") == "UNKNOWN"


def test_jpeg_passes_through_untouched(jpeg_photo):
    assert image_service.transcode_to_jpeg(jpeg_photo) is jpeg_photo


def test_jpeg2000_transcodes_to_decodable_jpeg(jp2_photo):
    jpeg = image_service.transcode_to_jpeg(jp2_photo)

    image = Image.open(io.BytesIO(jpeg))
    image.load()
    assert image.format == "JPEG"
    assert image.mode == "RGB"
    assert image.size == (300, 400)


def test_transparent_png_is_flattened():
    jpeg = image_service.transcode_to_jpeg(make_photo("PNG", size=(40, 40), mode="RGBA"))
    image = Image.open(io.BytesIO(jpeg))
    assert image.format == "JPEG"
    assert image.mode == "RGB"


def test_undecodable_photo_raises():
    with pytest.raises(ImageDecodeError):
        image_service.transcode_to_jpeg(b"\x00\x00\x00\x0cjP  \r\n\x87\ncorrupt")


def test_card_thumbnail_is_small_grayscale_jpeg(jpeg_photo):
    thumbnail = image_service.create_card_thumbnail(jpeg_photo)

    image = Image.open(io.BytesIO(thumbnail))
    assert image.format == "JPEG"
    assert image.mode == "L"
    assert image.height == ImageProcessingService.CARD_READY_TARGET_HEIGHT
    assert image.width == 72
    assert len(thumbnail) <= ImageProcessingService.CARD_READY_TARGET_SIZE
