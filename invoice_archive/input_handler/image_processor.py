"""
Image Processor Module.

This module prepares photographed or scanned invoices for upload to the
OCR provider:
    - Orientation correction from EXIF data
    - RGB conversion
    - Downscaling to the provider's maximum side length
    - JPEG re-encoding until the base64 payload fits the size limit

Supports: JPG, JPEG, PNG, BMP, TIFF
"""

import base64
import io

from PIL import Image, ImageOps, UnidentifiedImageError

from config import ConfigurationManager
from invoice_archive.utils.exceptions import (
    CorruptedFileError,
    EmptyInputError,
    InvalidFormatError,
)
from invoice_archive.utils.logger import get_logger

logger = get_logger(__name__)

MIN_JPEG_QUALITY = 30
QUALITY_STEP = 10


class ImageProcessor:
    """
    Processor for image invoices.

    Attributes:
        max_side: Longest side allowed by the provider, in pixels
        min_side: Shortest side accepted by the provider, in pixels
        max_base64_bytes: Size limit of the base64 encoded image
        jpeg_quality: Starting JPEG quality

    Example:
        >>> processor = ImageProcessor(config)
        >>> jpeg_bytes = processor.prepare_for_ocr(open("scan.jpg", "rb").read())
    """

    def __init__(self, config: ConfigurationManager = None) -> None:
        config = config or ConfigurationManager(autoload=False)
        self.max_side = config.get("input.image.max_side", 4096)
        self.min_side = config.get("input.image.min_side", 15)
        self.max_base64_bytes = config.get("input.image.max_base64_bytes", 4 * 1024 * 1024)
        self.jpeg_quality = config.get("input.image.jpeg_quality", 90)

        logger.debug(
            f"ImageProcessor initialized (max_side={self.max_side}, "
            f"min_side={self.min_side})"
        )

    def prepare_for_ocr(self, image_bytes: bytes, source: str = None) -> bytes:
        """
        Bring an image within the provider's limits.

        Args:
            image_bytes: Raw image file content.
            source: File name used in error messages.

        Returns:
            JPEG encoded image whose base64 form fits ``max_base64_bytes``.

        Raises:
            EmptyInputError: If the input has zero length.
            CorruptedFileError: If Pillow cannot decode the image.
            InvalidFormatError: If the image is too small, or still too
                large at the lowest quality.
        """
        if not image_bytes:
            raise EmptyInputError(source)

        try:
            image = Image.open(io.BytesIO(image_bytes))
            image.load()
        except (UnidentifiedImageError, OSError) as e:
            raise CorruptedFileError(source or "<memory>", str(e))

        image = ImageOps.exif_transpose(image)
        image = self._convert_to_rgb(image)
        image = self._resize_if_needed(image)
        self._validate_size(image, source)

        return self._encode_within_limit(image, source)

    def _convert_to_rgb(self, image: Image.Image) -> Image.Image:
        if image.mode == 'RGB':
            return image

        if image.mode == 'RGBA':
            # Flatten onto a white background
            background = Image.new('RGB', image.size, (255, 255, 255))
            background.paste(image, mask=image.split()[3])
            return background

        return image.convert('RGB')

    def _resize_if_needed(self, image: Image.Image) -> Image.Image:
        width, height = image.size
        longest = max(width, height)

        if longest <= self.max_side:
            return image

        ratio = self.max_side / longest
        new_size = (max(1, int(width * ratio)), max(1, int(height * ratio)))
        image = image.resize(new_size, Image.LANCZOS)

        logger.debug(f"Resized image from {width}x{height} to {new_size[0]}x{new_size[1]}")
        return image

    def _validate_size(self, image: Image.Image, source: str = None) -> None:
        width, height = image.size
        if min(width, height) < self.min_side:
            raise InvalidFormatError(
                "image",
                f"{width}x{height} is below the minimum side of {self.min_side}px",
                source
            )

    def _encode_within_limit(self, image: Image.Image, source: str = None) -> bytes:
        quality = self.jpeg_quality

        while True:
            buffer = io.BytesIO()
            image.save(buffer, format="JPEG", quality=quality)
            data = buffer.getvalue()

            encoded_size = len(base64.b64encode(data))
            if encoded_size <= self.max_base64_bytes:
                logger.debug(f"Encoded image at quality {quality} ({encoded_size} bytes base64)")
                return data

            if quality <= MIN_JPEG_QUALITY:
                raise InvalidFormatError(
                    "image",
                    f"{encoded_size} bytes base64 exceeds {self.max_base64_bytes} at quality {quality}",
                    source
                )

            quality = max(MIN_JPEG_QUALITY, quality - QUALITY_STEP)
