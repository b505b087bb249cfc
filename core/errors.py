"""
Error taxonomy for the solving pipeline.

Every surfaced failure is converted by ``handle_error`` into an ``ErrorResult``
carrying a machine-readable code and a human message, so the shell can show a
toast and still reset its processing indicator.
"""

from dataclasses import dataclass
from typing import Optional


RETRYABLE_STATUS_CODES = (429, 503)


class ProcessingError(Exception):
    """Base class for categorized pipeline failures."""
    code = "UNKNOWN_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NoScreenshotsError(ProcessingError):
    code = "NO_SCREENSHOTS"

    def __init__(self, message: str = "No screenshots to process"):
        super().__init__(message)


class ApiError(ProcessingError):
    """Upstream model failure. ``status_code`` is None for network-level errors."""
    code = "API_ERROR"

    def __init__(self, message: str, provider: str, status_code: Optional[int] = None,
                 retryable: Optional[bool] = None, original_error: Optional[Exception] = None):
        super().__init__(message)
        self.provider = provider
        self.status_code = status_code
        if retryable is None:
            retryable = status_code in RETRYABLE_STATUS_CODES
        self.retryable = retryable
        self.original_error = original_error

    @property
    def is_rate_limited(self) -> bool:
        return self.status_code == 429

    def __str__(self):
        status = f" [{self.status_code}]" if self.status_code is not None else ""
        return f"{self.provider}{status}: {self.message}"


class OcrExtractionError(ProcessingError):
    code = "OCR_ERROR"


class ConfigError(ProcessingError):
    code = "CONFIG_ERROR"

    def __init__(self, message: str, key: Optional[str] = None):
        super().__init__(message)
        self.key = key


class ScreenshotError(ProcessingError):
    code = "SCREENSHOT_ERROR"

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


class ValidationError(ProcessingError):
    code = "VALIDATION_ERROR"


class RequestCancelled(Exception):
    """User-initiated cancellation. Not a failure, so not a ProcessingError."""


@dataclass(frozen=True)
class ErrorResult:
    error: str
    code: str = "UNKNOWN_ERROR"
    retryable: bool = False
    success: bool = False

    @property
    def title(self) -> str:
        return self.code.replace("_", " ")


def handle_error(error: Exception, context: str) -> ErrorResult:
    """
    Convert an exception into a categorized ErrorResult.

    Args:
        error: The exception raised while processing
        context: Name of the operation, used for the console diagnostic

    Returns:
        ErrorResult with code, human message and retryable flag
    """
    print(f"❌ Error in {context}: {error}")

    if isinstance(error, ApiError):
        return ErrorResult(
            error=f"API Error ({error.provider}): {error.message}",
            code=error.code,
            retryable=error.retryable,
        )
    if isinstance(error, ProcessingError):
        return ErrorResult(error=error.message, code=error.code)

    message = str(error) or "An unexpected error occurred"
    return ErrorResult(error=message, code="UNKNOWN_ERROR")
