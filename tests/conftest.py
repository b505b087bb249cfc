"""Fake collaborators shared by the test suite. No network, no OCR models."""

import asyncio
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import pytest

from core.config import (
    AppConfig,
    DEFAULT_GEMINI_MODEL,
    DEFAULT_GROQ_MODEL,
    OCR_SEPARATOR,
    StaticConfigStore,
)
from core.interfaces import ScreenshotQueue
from core.types import FallbackState, ProcessingMode
from agents.orchestrator import SolverOrchestrator
from agents.planner_agent import PlannerAgent
from llm.provider_client import ProviderClient
from llm.retry_controller import RetryController


HANG = object()


@dataclass
class Call:
    model: str
    system_prompt: str
    user_prompt: str
    plan: object
    history: list


class ScriptedBackend:
    """
    Stand-in for GroqClient/GeminiClient.

    Each model consumes its own list of outcomes; the last outcome repeats.
    An outcome is a response string, an exception to raise, or HANG.
    """

    def __init__(self, outcomes=None, by_model: Optional[Dict[str, list]] = None):
        self.default = list(outcomes or ["FINAL ANSWER: option 1) 42"])
        self.by_model = {model: list(items) for model, items in (by_model or {}).items()}
        self.calls: List[Call] = []

    def models_called(self) -> List[str]:
        return [call.model for call in self.calls]

    async def generate(self, model, system_prompt, user_prompt, plan, history):
        self.calls.append(Call(model, system_prompt, user_prompt, plan, list(history)))
        queue = self.by_model.get(model, self.default)
        outcome = queue.pop(0) if len(queue) > 1 else queue[0]

        if outcome is HANG:
            await asyncio.Event().wait()
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


class FakeOcr:
    def __init__(self, texts: Optional[Dict[str, str]] = None, error: Optional[Exception] = None):
        self.texts = texts
        self.error = error
        self.calls: List[List[str]] = []

    async def extract_text_from_multiple(self, paths):
        self.calls.append(list(paths))
        await asyncio.sleep(0)
        if self.error is not None:
            raise self.error
        if self.texts is None:
            parts = [f"text of {path}" for path in paths]
        else:
            parts = [self.texts.get(path, "") for path in paths]
        return OCR_SEPARATOR.join(part for part in parts if part)


class FakeCompressor:
    """Returns ``b64:<path>``. ``delays`` maps path -> number of event-loop yields."""

    def __init__(self, delays: Optional[Dict[str, int]] = None, failing: Optional[set] = None):
        self.delays = delays or {}
        self.failing = failing or set()
        self.calls: List[str] = []

    async def compress(self, path):
        self.calls.append(path)
        for _ in range(self.delays.get(path, 0)):
            await asyncio.sleep(0)
        if path in self.failing:
            from core.errors import ScreenshotError
            raise ScreenshotError(f"Could not read screenshot {path}", path=path)
        return f"b64:{path}"


@dataclass
class RecordingSink:
    progress: list = field(default_factory=list)
    solutions: list = field(default_factory=list)
    errors: list = field(default_factory=list)

    def on_progress(self, milestone, progress, message):
        self.progress.append((milestone, progress, message))

    def on_solution(self, kind, solution):
        self.solutions.append((kind, solution))

    def on_error(self, error):
        self.errors.append(error)

    def messages(self) -> List[str]:
        return [message for _, _, message in self.progress]


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


def make_config(**overrides) -> AppConfig:
    values = dict(
        mode=ProcessingMode.MCQ,
        model_id=DEFAULT_GROQ_MODEL,
        language="python",
        api_key="groq-test-key",
        gemini_api_key="gemini-test-key",
        gemini_model=DEFAULT_GEMINI_MODEL,
        allow_fallback=True,
    )
    values.update(overrides)
    return AppConfig(**values)


@dataclass
class Harness:
    orchestrator: SolverOrchestrator
    screenshots: ScreenshotQueue
    sink: RecordingSink
    groq: ScriptedBackend
    gemini: ScriptedBackend
    ocr: FakeOcr
    compressor: FakeCompressor
    provider: ProviderClient
    controller: RetryController
    clock: FakeClock


def build_harness(config: Optional[AppConfig] = None, groq: Optional[ScriptedBackend] = None,
                  gemini: Optional[ScriptedBackend] = None, ocr: Optional[FakeOcr] = None,
                  compressor: Optional[FakeCompressor] = None, main=(), extra=()) -> Harness:
    config_store = StaticConfigStore(config or make_config())
    groq = groq or ScriptedBackend()
    gemini = gemini or ScriptedBackend()
    ocr = ocr or FakeOcr()
    compressor = compressor or FakeCompressor()
    clock = FakeClock()

    provider = ProviderClient(
        config_store,
        fallback_state=FallbackState(),
        clock=clock,
        client_factories={"Groq": lambda key: groq, "Gemini": lambda key: gemini},
    )
    planner = PlannerAgent(ocr, compressor)
    controller = RetryController(provider, planner, base_delay=0, max_delay=0, request_timeout=5)

    screenshots = ScreenshotQueue()
    for path in main:
        screenshots.add_main(path)
    for path in extra:
        screenshots.add_extra(path)

    sink = RecordingSink()
    orchestrator = SolverOrchestrator(
        screenshots, config_store, sink, ocr, compressor,
        provider=provider, planner=planner, controller=controller,
    )
    return Harness(orchestrator, screenshots, sink, groq, gemini, ocr, compressor,
                   provider, controller, clock)


@pytest.fixture
def harness_factory():
    return build_harness
