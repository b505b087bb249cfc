"""Core package: shared types, errors, configuration and collaborator contracts."""

from .types import (
    ProcessingMode,
    ProcessingRequest,
    ModelSelection,
    ExecutionPlan,
    ConversationTurn,
    RawResponse,
    RetryState,
    FallbackState,
    MultipleChoiceSolution,
    WebDevSolution,
    PythonSolution,
    TextSolution,
    ProcessingResult,
)
from .errors import (
    ProcessingError,
    NoScreenshotsError,
    ApiError,
    OcrExtractionError,
    ConfigError,
    ScreenshotError,
    ValidationError,
    RequestCancelled,
    ErrorResult,
    handle_error,
)
from .cancellation import CancellationToken

__all__ = [
    'ProcessingMode',
    'ProcessingRequest',
    'ModelSelection',
    'ExecutionPlan',
    'ConversationTurn',
    'RawResponse',
    'RetryState',
    'FallbackState',
    'MultipleChoiceSolution',
    'WebDevSolution',
    'PythonSolution',
    'TextSolution',
    'ProcessingResult',
    'ProcessingError',
    'NoScreenshotsError',
    'ApiError',
    'OcrExtractionError',
    'ConfigError',
    'ScreenshotError',
    'ValidationError',
    'RequestCancelled',
    'ErrorResult',
    'handle_error',
    'CancellationToken',
]
