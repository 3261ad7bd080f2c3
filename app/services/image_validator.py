"""
Image validation service.

Validates uploaded food photos before they are sent to the vision model:
- Base64 decoding (raw or data URL)
- Format and file size checks
- Quality assessment (brightness)
- Downscaling and JPEG re-encoding to keep the request small
"""

import base64
import binascii
import io

import cv2
import numpy as np
from loguru import logger
from PIL import Image, UnidentifiedImageError

from app.config import ImageValidationSettings
from app.models.schemas import ImageValidationResult


class ImageValidator:
    """
    Validates and prepares images for the food identification pipeline.

    Performs the following checks:
    1. Base64 decoding
    2. File size validation
    3. Format validation (JPEG, MPO, PNG, WebP)
    4. Dimension limits
    5. Quality checks (brightness, warnings only)

    Valid images are flattened onto white, downscaled so the longest side is
    at most `max_side` and returned as a JPEG data URL.
    """

    def __init__(self, settings: ImageValidationSettings):
        self.settings = settings

    def validate_base64(self, image_base64: str) -> ImageValidationResult:
        """
        Validate a base64-encoded image.

        Args:
            image_base64: Base64-encoded image data (may include data URL prefix)

        Returns:
            ImageValidationResult with validation status, any errors/warnings
            and, when valid, the prepared JPEG data URL
        """
        result = ImageValidationResult(is_valid=True)

        # Decode base64
        try:
            image_data = self._decode_base64(image_base64)
        except ValueError as e:
            result.is_valid = False
            result.errors.append(str(e))
            return result

        if not image_data:
            result.is_valid = False
            result.errors.append("Image data is empty")
            return result

        # Check file size
        file_size_mb = len(image_data) / (1024 * 1024)
        if file_size_mb > self.settings.max_file_size_mb:
            result.is_valid = False
            result.errors.append(
                f"File size ({file_size_mb:.1f}MB) exceeds maximum ({self.settings.max_file_size_mb}MB)"
            )
            return result

        # Open image (reads the header only)
        try:
            pil_image = Image.open(io.BytesIO(image_data))
        except (UnidentifiedImageError, OSError, Image.DecompressionBombError) as e:
            result.is_valid = False
            result.errors.append(f"Failed to load image: {str(e)}")
            return result

        # Check format
        image_format = pil_image.format.lower() if pil_image.format else "unknown"
        if image_format not in self.settings.allowed_formats:
            result.is_valid = False
            result.errors.append(
                f"Image format '{image_format}' not allowed. "
                f"Allowed formats: {self.settings.allowed_formats}"
            )
            return result

        # Check dimensions before decoding pixel data
        if pil_image.width > self.settings.max_width:
            result.is_valid = False
            result.errors.append(
                f"Image width ({pil_image.width}px) exceeds maximum ({self.settings.max_width}px)"
            )

        if pil_image.height > self.settings.max_height:
            result.is_valid = False
            result.errors.append(
                f"Image height ({pil_image.height}px) exceeds maximum ({self.settings.max_height}px)"
            )

        if not result.is_valid:
            return result

        try:
            pil_image.load()
        except (OSError, Image.DecompressionBombError) as e:
            result.is_valid = False
            result.errors.append(f"Failed to load image: {str(e)}")
            return result

        result.image_width = pil_image.width
        result.image_height = pil_image.height

        prepared = self._prepare(pil_image)

        # Check brightness
        brightness = self._calculate_brightness(prepared)
        if brightness < self.settings.min_brightness:
            result.warnings.append(
                f"Image may be too dark (brightness: {brightness:.0f}). "
                "Consider using a better-lit photo."
            )
        elif brightness > self.settings.max_brightness:
            result.warnings.append(
                f"Image may be overexposed (brightness: {brightness:.0f}). "
                "Consider using a less bright photo."
            )

        result.data_url = self._to_data_url(prepared)
        return result

    def _decode_base64(self, image_base64: str) -> bytes:
        """
        Decode base64 image data.

        Handles both raw base64 and data URL format (data:image/jpeg;base64,...).
        """
        # Strip data URL prefix if present
        if "," in image_base64:
            # Format: data:image/jpeg;base64,/9j/4AAQ...
            header, image_base64 = image_base64.split(",", 1)
            logger.debug(f"Stripped data URL header: {header}")

        # Remove whitespace
        image_base64 = image_base64.strip()

        try:
            return base64.b64decode(image_base64, validate=True)
        except (binascii.Error, ValueError) as e:
            raise ValueError(f"Invalid base64 encoding: {str(e)}")

    def _prepare(self, pil_image: Image.Image) -> Image.Image:
        """Flatten transparency onto white and shrink to fit `max_side`."""
        if pil_image.mode in ("RGBA", "LA", "P"):
            rgba = pil_image.convert("RGBA")
            background = Image.new("RGB", rgba.size, (255, 255, 255))
            background.paste(rgba, mask=rgba.split()[-1])
            pil_image = background
        elif pil_image.mode != "RGB":
            pil_image = pil_image.convert("RGB")

        longest = max(pil_image.size)
        if longest > self.settings.max_side:
            scale = self.settings.max_side / longest
            size = (max(1, round(pil_image.width * scale)), max(1, round(pil_image.height * scale)))
            pil_image = pil_image.resize(size, Image.LANCZOS)

        return pil_image

    def _calculate_brightness(self, pil_image: Image.Image) -> float:
        """
        Calculate average brightness of an image.

        Returns value between 0 (black) and 255 (white).
        """
        gray = cv2.cvtColor(np.array(pil_image), cv2.COLOR_RGB2GRAY)
        return float(np.mean(gray))

    def _to_data_url(self, pil_image: Image.Image) -> str:
        buffer = io.BytesIO()
        pil_image.save(buffer, format="JPEG", quality=self.settings.jpeg_quality)
        encoded = base64.b64encode(buffer.getvalue()).decode("ascii")
        return f"data:image/jpeg;base64,{encoded}"
