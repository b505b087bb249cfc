"""
Data model for the screenshot solving pipeline.

Requests and plans are immutable once built. Solutions are a tagged union on
``question_type``; every field has a non-null default so consumers never need
to check for missing values.
"""

from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

from .errors import ErrorResult


class ProcessingMode(str, Enum):
    """User-facing toggle that selects the system prompt and primary provider."""
    MCQ = "mcq"
    CODING = "coding"

    @classmethod
    def parse(cls, value: str) -> "ProcessingMode":
        value = (value or "").strip().lower()
        # "general" is the older name for coding mode
        if value in ("coding", "general"):
            return cls.CODING
        return cls.MCQ


@dataclass(frozen=True)
class ProcessingRequest:
    screenshot_paths: Tuple[str, ...]
    mode: ProcessingMode = ProcessingMode.MCQ
    preferred_language: str = "python"

    def __post_init__(self):
        # Accept any ordered sequence but store a tuple
        object.__setattr__(self, "screenshot_paths", tuple(self.screenshot_paths))


@dataclass(frozen=True)
class ModelSelection:
    """Which model serves the next call. Never persisted."""
    is_text_only: bool
    model_id: str
    provider: str = "Groq"
    is_fallback: bool = False


@dataclass(frozen=True)
class ExecutionPlan:
    """
    Payload for one dispatch.

    Exactly one of ``image_data`` / ``extracted_text`` is non-empty.
    ``screenshot_paths`` is kept so a later fallback can still run OCR.
    """
    use_vision: bool
    image_data: Tuple[str, ...] = ()
    extracted_text: str = ""
    screenshot_paths: Tuple[str, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "image_data", tuple(self.image_data))
        object.__setattr__(self, "screenshot_paths", tuple(self.screenshot_paths))

        has_images = len(self.image_data) > 0
        has_text = bool(self.extracted_text)
        if has_images == has_text:
            raise ValueError(
                "ExecutionPlan needs exactly one of image_data or extracted_text"
            )
        if self.use_vision != has_images:
            raise ValueError("use_vision must match the populated payload")

    @classmethod
    def vision(cls, image_data, screenshot_paths=()) -> "ExecutionPlan":
        return cls(use_vision=True, image_data=tuple(image_data),
                   screenshot_paths=tuple(screenshot_paths))

    @classmethod
    def text(cls, extracted_text: str, screenshot_paths=()) -> "ExecutionPlan":
        return cls(use_vision=False, extracted_text=extracted_text,
                   screenshot_paths=tuple(screenshot_paths))


@dataclass(frozen=True)
class ConversationTurn:
    role: str  # "user" or "assistant"
    content: str

    def __post_init__(self):
        if self.role not in ("user", "assistant"):
            raise ValueError(f"Unknown conversation role: {self.role}")


@dataclass(frozen=True)
class RawResponse:
    text: str
    used_fallback_model: bool = False
    model_id: str = ""


@dataclass
class RetryState:
    attempt: int = 1
    last_error: Optional[Exception] = None


@dataclass
class FallbackState:
    """
    Degraded-mode marker owned by the provider client.

    ``since`` is a monotonic timestamp (seconds) of the last escalation.
    """
    active: bool = False
    since: float = 0.0

    def activate(self, now: float):
        self.active = True
        self.since = now

    def reset(self):
        self.active = False
        self.since = 0.0

    def is_degraded(self, now: float, cooldown: float) -> bool:
        """True while inside the cool-down window; expires the state otherwise."""
        if not self.active:
            return False
        if now - self.since >= cooldown:
            self.reset()
            return False
        return True


# ============================================================================
# PARSED SOLUTIONS
# ============================================================================

@dataclass
class MultipleChoiceSolution:
    answer: str = ""
    reasoning: str = ""
    code: str = ""
    thoughts: List[str] = field(default_factory=list)
    final_answer_highlight: str = ""
    question_type: str = field(default="multiple_choice", init=False)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def to_markdown(self) -> str:
        return f"{self.code}\n\n{self.final_answer_highlight}".strip()


@dataclass
class WebDevSolution:
    code: str = ""
    html: str = ""
    css: str = ""
    thoughts: List[str] = field(default_factory=list)
    explanation: str = ""
    question_type: str = field(default="web_dev", init=False)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def to_markdown(self) -> str:
        return f"{self.code}\n\n{self.explanation}".strip()


@dataclass
class PythonSolution:
    code: str = ""
    concept: str = ""
    thoughts: List[str] = field(default_factory=list)
    explanation: str = ""
    question_type: str = field(default="python", init=False)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def to_markdown(self) -> str:
        return f"{self.explanation}\n\n```python\n{self.code}\n```".strip()


@dataclass
class TextSolution:
    code: str = ""
    thoughts: List[str] = field(default_factory=list)
    explanation: str = ""
    question_type: str = field(default="text", init=False)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def to_markdown(self) -> str:
        return f"```text\n{self.code}\n```"


ParsedSolution = Union[MultipleChoiceSolution, WebDevSolution, PythonSolution, TextSolution]


@dataclass
class ProcessingResult:
    """Outcome of one orchestrator call: a solution, a categorized error, or a cancellation."""
    success: bool
    data: Optional[ParsedSolution] = None
    error: Optional[ErrorResult] = None
    cancelled: bool = False

    @classmethod
    def ok(cls, solution: ParsedSolution) -> "ProcessingResult":
        return cls(success=True, data=solution)

    @classmethod
    def failed(cls, error: ErrorResult) -> "ProcessingResult":
        return cls(success=False, error=error)

    @classmethod
    def aborted(cls) -> "ProcessingResult":
        return cls(success=False, cancelled=True)
