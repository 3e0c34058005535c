"""
Image Processing Service for ID PASS Lite Card Issuance

Handles face photo preparation for the card:
- Format detection (JPEG, JPEG 2000, PNG, TIFF)
- JPEG 2000 to JPEG transcoding through Pillow's OpenJPEG codec
- Card-ready thumbnails small enough to travel inside the QR code
"""

import io
from typing import Optional
from PIL import Image, ImageFilter
import logging

from app.core.exceptions import ImageDecodeError

logger = logging.getLogger(__name__)

JP2_SIGNATURE = b'\x00\x00\x00\x0cjP  \r\n\x87\n'
J2K_CODESTREAM_SIGNATURE = b'\xff\x4f\xff\x51'


class ImageProcessingService:
    """Service for converting and shrinking face photos"""

    JPEG_QUALITY = 90

    # Card-ready dimensions (embedded in the card's private section)
    CARD_READY_MIN_HEIGHT = 64   # pixels
    CARD_READY_MAX_HEIGHT = 128  # pixels
    CARD_READY_TARGET_HEIGHT = 96
    CARD_READY_TARGET_SIZE = 1200  # bytes
    CARD_READY_QUALITY_START = 85
    CARD_READY_QUALITY_MIN = 20

    @classmethod
    def detect_format(cls, data: bytes) -> str:
        """Identify the image format from its magic number"""
        if not data or len(data) < 4:
            return "UNKNOWN"
        if data[:2] == b'\xff\xd8':
            return "JPEG"
        if data.startswith(JP2_SIGNATURE) or data.startswith(J2K_CODESTREAM_SIGNATURE):
            return "JPEG2000"
        if data.startswith(b'\x89PNG'):
            return "PNG"
        if data[:4] in (b'II*\x00', b'MM\x00*'):
            return "TIFF"
        return "UNKNOWN"

    @classmethod
    def transcode_to_jpeg(cls, data: bytes, quality: Optional[int] = None) -> bytes:
        """
        Convert a photo to baseline JPEG

        JPEG input is returned untouched. Anything else Pillow can decode
        (JPEG 2000 included) is flattened to RGB and re-encoded.

        Raises:
            ImageDecodeError: the bytes are not a decodable image
        """
        image_format = cls.detect_format(data)
        if image_format == "JPEG":
            logger.debug("Photo is already JPEG, skipping transcode")
            return data

        try:
            image = Image.open(io.BytesIO(data))
            image.load()
        except Exception as e:
            logger.warning(f"Could not decode {image_format} photo ({len(data) if data else 0} bytes): {e}")
            raise ImageDecodeError(f"Cannot decode {image_format} photo: {e}") from e

        image = cls._to_rgb(image)

        buffer = io.BytesIO()
        image.save(buffer, format='JPEG', quality=quality or cls.JPEG_QUALITY)
        jpeg_data = buffer.getvalue()

        logger.info(
            f"Photo transcoded {image_format} -> JPEG: {len(data)}B -> {len(jpeg_data)}B, size {image.size}"
        )
        return jpeg_data

    @classmethod
    def _to_rgb(cls, image: Image.Image) -> Image.Image:
        """Flatten transparency onto white and convert to RGB"""
        if image.mode == 'P':
            image = image.convert('RGBA')
        if image.mode in ('RGBA', 'LA'):
            background = Image.new('RGB', image.size, (255, 255, 255))
            background.paste(image, mask=image.split()[-1])
            return background
        if image.mode != 'RGB':
            return image.convert('RGB')
        return image

    @classmethod
    def create_card_thumbnail(cls, jpeg_data: bytes) -> bytes:
        """
        Create card-ready photo for the QR payload
        - Convert to 8-bit grayscale
        - Resize to 96px height (maintaining aspect ratio)
        - Lower JPEG quality until the byte budget is met
        """
        try:
            image = Image.open(io.BytesIO(jpeg_data))
            image.load()
        except Exception as e:
            raise ImageDecodeError(f"Cannot decode photo for thumbnail: {e}") from e

        grayscale_image = image.convert('L')
        original_width, original_height = grayscale_image.size
        aspect_ratio = original_width / original_height

        target_height = min(
            max(cls.CARD_READY_TARGET_HEIGHT, cls.CARD_READY_MIN_HEIGHT),
            cls.CARD_READY_MAX_HEIGHT
        )
        target_width = max(1, int(target_height * aspect_ratio))

        thumbnail = grayscale_image.resize(
            (target_width, target_height),
            Image.Resampling.LANCZOS
        )
        thumbnail = thumbnail.filter(ImageFilter.UnsharpMask(
            radius=0.3,
            percent=150,
            threshold=2
        ))

        quality = cls.CARD_READY_QUALITY_START
        while True:
            buffer = io.BytesIO()
            thumbnail.save(buffer, 'JPEG', quality=quality, optimize=True, progressive=False)
            size = len(buffer.getvalue())
            if size <= cls.CARD_READY_TARGET_SIZE or quality <= cls.CARD_READY_QUALITY_MIN:
                break
            quality -= 5

        if size > cls.CARD_READY_TARGET_SIZE:
            logger.warning(f"Card thumbnail {size}B exceeds target {cls.CARD_READY_TARGET_SIZE}B at quality {quality}")
        else:
            logger.debug(f"Card thumbnail {target_width}x{target_height}, {size}B, quality {quality}")

        return buffer.getvalue()


image_service = ImageProcessingService()
