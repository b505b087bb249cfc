"""
Contracts of the collaborators the pipeline consumes.

The desktop shell supplies real implementations; ``ScreenshotQueue`` and
``ConsoleSink`` are ready-made ones for scripts and tests.
"""

from typing import Any, List, Protocol, Sequence

from .config import AppConfig, SCREENSHOTS_MAX_QUEUE_SIZE
from .errors import ErrorResult

# Progress milestones reported to the sink
MILESTONE_ANALYZING = "analyzing"
MILESTONE_OCR = "ocr-extracting"
MILESTONE_GENERATING = "generating"
MILESTONE_COMPLETE = "complete"
MILESTONE_CANCELLED = "cancelled"


class ScreenshotSource(Protocol):
    def get_main_queue(self) -> List[str]: ...
    def get_extra_queue(self) -> List[str]: ...
    def clear_main_queue(self) -> None: ...
    def clear_extra_queue(self) -> None: ...


class OcrExtractor(Protocol):
    async def extract_text_from_multiple(self, paths: Sequence[str]) -> str: ...


class ImageCompressor(Protocol):
    async def compress(self, path: str) -> str: ...


class ConfigStore(Protocol):
    def get(self) -> AppConfig: ...


class ResultSink(Protocol):
    def on_progress(self, milestone: str, progress: int, message: str) -> None: ...
    def on_solution(self, kind: str, solution: Any) -> None: ...
    def on_error(self, error: ErrorResult) -> None: ...


class ScreenshotQueue:
    """
    In-memory main/extra screenshot queues.

    Insertion order is preserved; when a queue is full the oldest path is
    evicted.
    """

    def __init__(self, max_size: int = SCREENSHOTS_MAX_QUEUE_SIZE):
        self.max_size = max_size
        self._main: List[str] = []
        self._extra: List[str] = []

    def _push(self, queue: List[str], path: str):
        queue.append(path)
        while len(queue) > self.max_size:
            queue.pop(0)

    def add_main(self, path: str):
        self._push(self._main, path)

    def add_extra(self, path: str):
        self._push(self._extra, path)

    def get_main_queue(self) -> List[str]:
        return list(self._main)

    def get_extra_queue(self) -> List[str]:
        return list(self._extra)

    def clear_main_queue(self):
        self._main.clear()

    def clear_extra_queue(self):
        self._extra.clear()


class ConsoleSink:
    """Result sink that prints status lines to stdout."""

    def on_progress(self, milestone: str, progress: int, message: str):
        print(f"[{progress:3d}%] {milestone}: {message}")

    def on_solution(self, kind: str, solution: Any):
        print(f"✓ {kind}: {solution.question_type}")
        print(solution.to_markdown())

    def on_error(self, error: ErrorResult):
        print(f"❌ {error.title}: {error.error}")
