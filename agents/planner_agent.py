"""
Planner Agent
Builds the execution plan for a request: compressed images for vision
models, or OCR text for text-only models and the fallback path.
"""

import asyncio
from typing import Sequence

from core.cancellation import CancellationToken
from core.errors import (
    NoScreenshotsError,
    OcrExtractionError,
    ProcessingError,
    RequestCancelled,
    ScreenshotError,
)
from core.types import ExecutionPlan, ModelSelection


class PlannerAgent:
    """
    Chooses between the vision path and the OCR+text path.

    Exactly one path runs per plan and screenshots keep their queue order on
    both.
    """

    def __init__(self, ocr, compressor):
        """
        Args:
            ocr: Object with ``async extract_text_from_multiple(paths) -> str``
            compressor: Object with ``async compress(path) -> str`` (base64)
        """
        self.ocr = ocr
        self.compressor = compressor

    async def build(self, paths: Sequence[str], selection: ModelSelection,
                    token: CancellationToken) -> ExecutionPlan:
        if not paths:
            raise NoScreenshotsError()

        if selection.is_text_only:
            print(f"✓ {selection.model_id} is text-only, using OCR path")
            return await self.build_text_plan(paths, token)

        return await self.build_vision_plan(paths, token)

    async def build_text_plan(self, paths: Sequence[str], token: CancellationToken) -> ExecutionPlan:
        """
        Run OCR over every screenshot.

        Raises:
            OcrExtractionError: if no text could be extracted
        """
        paths = tuple(paths)
        try:
            text = await token.run(self.ocr.extract_text_from_multiple(list(paths)))
        except (RequestCancelled, ProcessingError):
            raise
        except Exception as e:
            raise OcrExtractionError(f"OCR extraction failed: {e}")

        if not text or not text.strip():
            raise OcrExtractionError(
                "Failed to extract text from screenshots. Please ensure the screenshots contain readable text."
            )

        print(f"✓ Extracted {len(text)} characters from {len(paths)} screenshot(s)")
        return ExecutionPlan.text(text, screenshot_paths=paths)

    async def build_vision_plan(self, paths: Sequence[str], token: CancellationToken) -> ExecutionPlan:
        """
        Compress every screenshot; any failure fails the request.

        Raises:
            ScreenshotError: if a screenshot cannot be read or compressed
        """
        paths = tuple(paths)
        try:
            images = await token.run(
                asyncio.gather(*(self.compressor.compress(path) for path in paths))
            )
        except (RequestCancelled, ProcessingError):
            raise
        except Exception as e:
            raise ScreenshotError(f"Failed to process screenshots: {e}")

        return ExecutionPlan.vision(images, screenshot_paths=paths)
