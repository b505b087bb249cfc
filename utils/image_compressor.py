"""
Image Compressor
Downscales screenshots and re-encodes them as base64 JPEG for vision models.
"""

import asyncio
import base64
import os
from io import BytesIO

from PIL import Image

from core.config import SCREENSHOT_MAX_SIDE, SCREENSHOT_JPEG_QUALITY
from core.errors import ScreenshotError


class ImageCompressor:
    """
    Resizes screenshots so the longest side is at most ``max_size`` pixels
    (reduces token usage) and encodes them as JPEG.
    """

    def __init__(self, max_size: int = SCREENSHOT_MAX_SIDE, quality: int = SCREENSHOT_JPEG_QUALITY):
        self.max_size = max_size
        self.quality = quality

    def compress_sync(self, image_path: str) -> str:
        """
        Compress one screenshot.

        Raises:
            ScreenshotError: if the file is missing or cannot be decoded
        """
        if not os.path.exists(image_path):
            raise ScreenshotError(f"Screenshot not found: {image_path}", path=image_path)

        try:
            with Image.open(image_path) as img:
                img = img.convert("RGB")

                # Resize if too large
                if max(img.size) > self.max_size:
                    ratio = self.max_size / max(img.size)
                    new_size = tuple(int(dim * ratio) for dim in img.size)
                    img = img.resize(new_size, Image.Resampling.LANCZOS)

                buffer = BytesIO()
                img.save(buffer, format="JPEG", quality=self.quality, optimize=True)
        except OSError as e:
            raise ScreenshotError(f"Could not read screenshot {image_path}: {e}", path=image_path)

        return base64.b64encode(buffer.getvalue()).decode("ascii")

    async def compress(self, image_path: str) -> str:
        return await asyncio.to_thread(self.compress_sync, image_path)
