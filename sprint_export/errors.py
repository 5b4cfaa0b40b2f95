"""
Export Error Hierarchy

Defines the failure taxonomy of the export pipeline and the exceptions
raised across it.

Error Hierarchy:
    ExportPipelineError (base)
    ├── InputValidationError     - empty deck, unknown format/quality (never retried)
    ├── RendererNotFoundError    - no renderer registered for a format (never retried)
    ├── RendererError            - a renderer failed to produce output
    │   └── RenderTimeoutError   - an attempt exceeded its wall-clock budget
    ├── AssetEmbedError          - an image or asset could not be embedded
    ├── ExportCancelledError     - caller cancelled between attempts
    └── ExportFailedError        - terminal failure surfaced to the caller

Exceptions carrying an explicit ``code`` are classified by that code;
anything else goes through the keyword rules of the ErrorClassifier.
"""

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional


class ExportErrorCode(str, Enum):
    """Taxonomy of classified export failures."""
    NETWORK_TIMEOUT = "NETWORK_TIMEOUT"
    MEMORY_ERROR = "MEMORY_ERROR"
    PERMISSION_ERROR = "PERMISSION_ERROR"
    FORMAT_ERROR = "FORMAT_ERROR"
    RENDERER_ERROR = "RENDERER_ERROR"
    ASSET_ERROR = "ASSET_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


RECOVERABLE_CODES = frozenset({
    ExportErrorCode.NETWORK_TIMEOUT,
    ExportErrorCode.MEMORY_ERROR,
    ExportErrorCode.RENDERER_ERROR,
    ExportErrorCode.ASSET_ERROR,
})


def is_recoverable(code: ExportErrorCode) -> bool:
    """Check whether a classified failure is eligible for retry."""
    return code in RECOVERABLE_CODES


@dataclass(frozen=True)
class ErrorContext:
    """Snapshot of the export an error occurred in."""
    format: str = ""
    quality: str = ""
    slide_count: int = 0
    export_id: Optional[str] = None


@dataclass(frozen=True)
class ExportError:
    """A classified export failure.

    Created by the ErrorClassifier from a raw exception and never mutated
    afterwards. ``retry_count`` is the attempt number (1-based) the failure
    occurred on.

    Attributes:
        code: Taxonomy code
        message: Raw failure message
        details: Exception type name or extra diagnostic text
        recoverable: Whether the failure may be retried
        retry_count: Attempt number at the time of capture
        timestamp: UTC capture time
        context: Export snapshot (format, quality, slide count)
    """
    code: ExportErrorCode
    message: str
    details: str = ""
    recoverable: bool = False
    retry_count: int = 0
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    context: ErrorContext = field(default_factory=ErrorContext)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["code"] = self.code.value
        data["timestamp"] = self.timestamp.isoformat()
        return data


class ExportPipelineError(Exception):
    """Base exception for all export pipeline errors.

    Attributes:
        code: Taxonomy code the classifier should use, if known
    """

    code: Optional[ExportErrorCode] = None


class InputValidationError(ExportPipelineError):
    """Export request rejected before any work began.

    Raised when:
    - The presentation has no slides
    - The requested format is not one of the known formats
    - The quality tier is invalid
    - Pre-flight size or slide-count limits are exceeded

    Attributes:
        field_name: Option or field that failed validation
        expected: Expected value or range
        actual: Value received
    """

    def __init__(
        self,
        message: str,
        field_name: Optional[str] = None,
        expected: Optional[str] = None,
        actual: Optional[str] = None,
        code: ExportErrorCode = ExportErrorCode.VALIDATION_ERROR,
    ):
        super().__init__(message)
        self.field_name = field_name
        self.expected = expected
        self.actual = actual
        self.code = code


class RendererNotFoundError(ExportPipelineError):
    """No renderer is registered for the requested format.

    Attributes:
        format_name: The format that was requested
        available: Formats registered at lookup time
    """

    code = ExportErrorCode.FORMAT_ERROR

    def __init__(self, format_name: str, available: Optional[List[str]] = None):
        self.format_name = format_name
        self.available = available or []
        super().__init__(
            f"No renderer registered for format: {format_name}. "
            f"Available formats: {self.available}"
        )


class RendererError(ExportPipelineError):
    """A renderer failed to produce output.

    Attributes:
        format_name: Format being rendered
        original_error: Underlying exception, if any
    """

    code = ExportErrorCode.RENDERER_ERROR

    def __init__(
        self,
        message: str,
        format_name: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ):
        super().__init__(message)
        self.format_name = format_name
        self.original_error = original_error


class RenderTimeoutError(RendererError):
    """A render attempt exceeded its wall-clock budget.

    Classified as a renderer failure so it stays retryable.

    Attributes:
        timeout: Budget in seconds
        attempt: Attempt number that timed out
    """

    def __init__(self, format_name: str, timeout: float, attempt: int):
        super().__init__(
            f"Renderer for {format_name} exceeded {timeout:g}s on attempt {attempt}",
            format_name=format_name,
        )
        self.timeout = timeout
        self.attempt = attempt


class AssetEmbedError(ExportPipelineError):
    """An image or other asset could not be embedded.

    Attributes:
        url: Asset location
        original_error: Underlying exception
    """

    code = ExportErrorCode.ASSET_ERROR

    def __init__(
        self,
        message: str,
        url: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ):
        super().__init__(message)
        self.url = url
        self.original_error = original_error


class ExportCancelledError(ExportPipelineError):
    """The caller cancelled an export between attempts.

    Attributes:
        export_id: Identifier of the cancelled export
        attempts: Attempts made before cancellation
    """

    def __init__(self, export_id: str, attempts: int = 0):
        super().__init__(f"Export {export_id} was cancelled after {attempts} attempt(s)")
        self.export_id = export_id
        self.attempts = attempts


class ExportFailedError(ExportPipelineError):
    """Terminal export failure surfaced to the caller.

    ``str(error)`` is the user-facing message; the classified record and
    the original exception are kept for diagnostics.

    Attributes:
        error: The classified ExportError of the last attempt
        user_message: Human-readable message derived from the taxonomy code
        suggestions: Recovery actions for the user
        attempts: Number of render attempts made
        original_error: Exception raised by the last attempt
    """

    def __init__(
        self,
        error: ExportError,
        user_message: str,
        suggestions: Optional[List[str]] = None,
        attempts: int = 0,
        original_error: Optional[BaseException] = None,
    ):
        super().__init__(user_message)
        self.error = error
        self.code = error.code
        self.user_message = user_message
        self.suggestions = suggestions or []
        self.attempts = attempts
        self.original_error = original_error

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.user_message,
            "code": self.error.code.value,
            "recoverable": self.error.recoverable,
            "attempts": self.attempts,
            "suggestions": list(self.suggestions),
        }
