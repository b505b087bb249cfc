import asyncio
import base64
from io import BytesIO

import pytest
from PIL import Image

from core.errors import ScreenshotError
from utils.image_compressor import ImageCompressor


def test_large_screenshot_is_downscaled_to_jpeg(tmp_path):
    path = tmp_path / "wide.png"
    Image.new("RGBA", (2048, 1024), (255, 0, 0, 255)).save(path)

    encoded = asyncio.run(ImageCompressor(max_size=1024).compress(str(path)))

    with Image.open(BytesIO(base64.b64decode(encoded))) as img:
        assert img.format == "JPEG"
        assert img.size == (1024, 512)


def test_small_screenshot_keeps_its_size(tmp_path):
    path = tmp_path / "small.png"
    Image.new("RGB", (300, 200), "white").save(path)

    encoded = ImageCompressor().compress_sync(str(path))

    with Image.open(BytesIO(base64.b64decode(encoded))) as img:
        assert img.size == (300, 200)


def test_missing_screenshot(tmp_path):
    with pytest.raises(ScreenshotError) as info:
        ImageCompressor().compress_sync(str(tmp_path / "gone.png"))
    assert info.value.path.endswith("gone.png")


def test_corrupt_screenshot(tmp_path):
    path = tmp_path / "broken.png"
    path.write_bytes(b"not an image")

    with pytest.raises(ScreenshotError):
        ImageCompressor().compress_sync(str(path))
