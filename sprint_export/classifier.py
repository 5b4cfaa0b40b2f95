"""
Error Classifier

Maps raw exceptions raised during an export onto the ExportErrorCode
taxonomy, keeps a bounded history of classified failures, and turns a
classified failure into a user-facing message plus recovery suggestions.

Classification is an ordered table of (predicate, code) rules; the first
matching rule wins. Typed rules come first, then keyword rules over the
lowercased exception message.
"""

import logging
import threading
from collections import Counter, deque
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Deque, Dict, List, Optional

from sprint_export.errors import (
    ErrorContext,
    ExportError,
    ExportErrorCode,
    ExportPipelineError,
    is_recoverable,
)


logger = logging.getLogger(__name__)


Predicate = Callable[[BaseException, str], bool]


@dataclass(frozen=True)
class ClassificationRule:
    """One row of the classification table."""
    name: str
    predicate: Predicate
    code: ExportErrorCode


def _has_explicit_code(error: BaseException, message: str) -> bool:
    return isinstance(error, ExportPipelineError) and error.code is not None


def _is_instance(*types: type) -> Predicate:
    return lambda error, message: isinstance(error, types)


def _mentions(*keywords: str) -> Predicate:
    return lambda error, message: any(keyword in message for keyword in keywords)


DEFAULT_RULES: List[ClassificationRule] = [
    ClassificationRule("memory-exhausted", _is_instance(MemoryError), ExportErrorCode.MEMORY_ERROR),
    ClassificationRule("os-permission", _is_instance(PermissionError), ExportErrorCode.PERMISSION_ERROR),
    ClassificationRule(
        "connection-or-timeout",
        _is_instance(TimeoutError, ConnectionError),
        ExportErrorCode.NETWORK_TIMEOUT,
    ),
    ClassificationRule("timeout-keyword", _mentions("timeout", "network"), ExportErrorCode.NETWORK_TIMEOUT),
    ClassificationRule("memory-keyword", _mentions("memory"), ExportErrorCode.MEMORY_ERROR),
    ClassificationRule(
        "permission-keyword",
        _mentions("permission", "access denied"),
        ExportErrorCode.PERMISSION_ERROR,
    ),
    ClassificationRule("format-keyword", _mentions("format", "unsupported"), ExportErrorCode.FORMAT_ERROR),
    ClassificationRule("renderer-keyword", _mentions("renderer", "render"), ExportErrorCode.RENDERER_ERROR),
    ClassificationRule("asset-keyword", _mentions("asset", "image"), ExportErrorCode.ASSET_ERROR),
    ClassificationRule(
        "validation-keyword",
        _mentions("validation", "invalid"),
        ExportErrorCode.VALIDATION_ERROR,
    ),
]


USER_MESSAGES: Dict[ExportErrorCode, str] = {
    ExportErrorCode.NETWORK_TIMEOUT: "The export is taking longer than expected. Please try again.",
    ExportErrorCode.MEMORY_ERROR: (
        "The export requires more memory than available. "
        "Try reducing the quality or number of slides."
    ),
    ExportErrorCode.PERMISSION_ERROR: "Permission denied. Please check your file system permissions.",
    ExportErrorCode.FORMAT_ERROR: "The selected export format is not supported or has an error.",
    ExportErrorCode.RENDERER_ERROR: "There was an issue generating the export. Please try again.",
    ExportErrorCode.ASSET_ERROR: (
        "Some images or assets could not be processed. The export may be incomplete."
    ),
    ExportErrorCode.VALIDATION_ERROR: (
        "The presentation data is invalid. Please regenerate the presentation."
    ),
    ExportErrorCode.UNKNOWN_ERROR: "An unexpected error occurred during export. Please try again.",
}


RECOVERY_SUGGESTIONS: Dict[ExportErrorCode, List[str]] = {
    ExportErrorCode.NETWORK_TIMEOUT: [
        "Check your internet connection",
        "Try again in a few minutes",
        "Use a lower quality setting",
    ],
    ExportErrorCode.MEMORY_ERROR: [
        "Close other applications to free up memory",
        "Reduce the number of slides",
        "Use a lower quality setting",
        "Try exporting in smaller batches",
    ],
    ExportErrorCode.PERMISSION_ERROR: [
        "Check file system permissions",
        "Try saving to a different location",
        "Run the command with a user that can write the output directory",
    ],
    ExportErrorCode.FORMAT_ERROR: [
        "Try a different export format",
        "Update to the latest release",
        "Contact support if the issue persists",
    ],
    ExportErrorCode.RENDERER_ERROR: [
        "Retry the export",
        "Clear the export cache",
        "Try a different export format",
    ],
    ExportErrorCode.ASSET_ERROR: [
        "Check that all images are accessible",
        "Try removing problematic images",
        "Use a different export format",
    ],
    ExportErrorCode.VALIDATION_ERROR: [
        "Regenerate the presentation",
        "Check that all required data is present",
        "Try with a simpler presentation",
    ],
}

DEFAULT_SUGGESTIONS = ["Try again", "Contact support if the issue persists"]


class ErrorClassifier:
    """Classifies export failures and keeps an append-only error history.

    The history is bounded by ``max_history``; once full, the oldest
    entries are pruned first. Appends and reads are serialized with a lock
    so concurrent exports never lose entries.

    Example:
        >>> classifier = ErrorClassifier()
        >>> error = classifier.classify(RuntimeError("renderer crashed"),
        ...                             ErrorContext(format="pdf"), attempt=1)
        >>> error.code
        <ExportErrorCode.RENDERER_ERROR: 'RENDERER_ERROR'>
    """

    def __init__(
        self,
        rules: Optional[List[ClassificationRule]] = None,
        max_history: int = 1000,
    ):
        if max_history < 1:
            raise ValueError("max_history must be at least 1")
        self._rules: List[ClassificationRule] = list(rules if rules is not None else DEFAULT_RULES)
        self._history: Deque[ExportError] = deque(maxlen=max_history)
        self._lock = threading.Lock()
        self._outcomes = Counter()
        self.max_history = max_history

    @property
    def rules(self) -> List[ClassificationRule]:
        return list(self._rules)

    def add_rule(self, rule: ClassificationRule, position: Optional[int] = None) -> None:
        """Add a classification rule.

        Args:
            rule: Rule to add
            position: Index to insert at (appended if None)
        """
        with self._lock:
            if position is None:
                self._rules.append(rule)
            else:
                self._rules.insert(position, rule)

    def categorize(self, error: BaseException) -> ExportErrorCode:
        """Return the taxonomy code for a raw exception."""
        message = str(error).lower()
        if _has_explicit_code(error, message):
            return error.code
        for rule in self._rules:
            if rule.predicate(error, message):
                return rule.code
        return ExportErrorCode.UNKNOWN_ERROR

    def classify(
        self,
        error: BaseException,
        context: Optional[ErrorContext] = None,
        attempt: int = 1,
        record: bool = True,
    ) -> ExportError:
        """Classify a raw exception and append it to the history.

        Args:
            error: The exception raised during the export
            context: Export snapshot (format, quality, slide count)
            attempt: 1-based attempt number the failure occurred on
            record: Whether to append the result to the history

        Returns:
            Immutable ExportError
        """
        context = context or ErrorContext()
        code = self.categorize(error)
        export_error = ExportError(
            code=code,
            message=str(error) or type(error).__name__,
            details=(
                f"{type(error).__name__} | Format: {context.format}, "
                f"Quality: {context.quality}, Slides: {context.slide_count}, "
                f"Attempt: {attempt}"
            ),
            recoverable=is_recoverable(code),
            retry_count=attempt,
            timestamp=datetime.now(timezone.utc),
            context=context,
        )

        if record:
            self.record(export_error)

        logger.debug(
            f"Classified {type(error).__name__} as {code.value} "
            f"(recoverable={export_error.recoverable}, attempt={attempt})"
        )
        return export_error

    def record(self, error: ExportError) -> None:
        """Append an already classified error to the history."""
        with self._lock:
            self._history.append(error)

    def record_outcome(self, succeeded: bool) -> None:
        """Count a finished export for the success rate."""
        with self._lock:
            self._outcomes["succeeded" if succeeded else "failed"] += 1

    def history(self) -> List[ExportError]:
        with self._lock:
            return list(self._history)

    def errors_for(self, export_id: str) -> List[ExportError]:
        """Return the recorded errors of one export call."""
        return [error for error in self.history() if error.context.export_id == export_id]

    def clear_history(self) -> None:
        with self._lock:
            self._history.clear()
            self._outcomes.clear()

    def user_message(self, error: ExportError) -> str:
        return USER_MESSAGES.get(error.code, USER_MESSAGES[ExportErrorCode.UNKNOWN_ERROR])

    def suggest_recovery_actions(self, error: ExportError) -> List[str]:
        """Return remediation hints keyed by the error's taxonomy code."""
        return list(RECOVERY_SUGGESTIONS.get(error.code, DEFAULT_SUGGESTIONS))

    def get_error_report(self) -> Dict[str, Any]:
        """Summarize the error history.

        Returns:
            Dict with the errors, totals, last error and success rate
        """
        with self._lock:
            errors = list(self._history)
            succeeded = self._outcomes["succeeded"]
            failed = self._outcomes["failed"]

        total = len(errors)
        recoverable = sum(1 for error in errors if error.recoverable)
        finished = succeeded + failed
        success_rate = 100.0 if finished == 0 else round(succeeded / finished * 100, 2)

        return {
            "errors": [error.to_dict() for error in errors],
            "total_errors": total,
            "recoverable_errors": recoverable,
            "unrecoverable_errors": total - recoverable,
            "last_error": errors[-1].to_dict() if errors else None,
            "success_rate": success_rate,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    def get_error_statistics(self) -> Dict[str, Any]:
        """Aggregate the history by code and format."""
        errors = self.history()
        total = len(errors)
        by_code = Counter(error.code.value for error in errors)
        by_format = Counter(error.context.format or "unknown" for error in errors)
        total_retries = sum(error.retry_count for error in errors)
        recoverable = sum(1 for error in errors if error.recoverable)

        return {
            "total_errors": total,
            "errors_by_code": dict(by_code),
            "errors_by_format": dict(by_format),
            "average_retry_count": total_retries / total if total else 0.0,
            "recovery_rate": recoverable / total * 100 if total else 0.0,
        }
