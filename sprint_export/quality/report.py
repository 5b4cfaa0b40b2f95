"""
Quality Report Data Models

Defines ValidationResult and QualityReport, the structured output of one
quality gate run, plus the status state machine the gate walks through.
"""

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Tuple


class Severity(str, Enum):
    """Rule severity levels."""
    CRITICAL = "critical"
    WARNING = "warning"
    INFO = "info"


class QualityStatus(str, Enum):
    """Per-export quality gate status."""
    PENDING = "pending"
    RULES_RUNNING = "rules-running"
    PASSED = "passed"
    PASSED_WITH_WARNINGS = "passed-with-warnings"
    FAILED_CRITICAL = "failed-critical"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset({
    QualityStatus.PASSED,
    QualityStatus.PASSED_WITH_WARNINGS,
    QualityStatus.FAILED_CRITICAL,
})

ALLOWED_TRANSITIONS = {
    QualityStatus.PENDING: frozenset({QualityStatus.RULES_RUNNING}),
    QualityStatus.RULES_RUNNING: TERMINAL_STATUSES,
}


class InvalidTransitionError(RuntimeError):
    """Raised when a quality run moves to a status it cannot reach."""


class StatusTracker:
    """Walks one quality gate run through its states."""

    def __init__(self):
        self.status = QualityStatus.PENDING
        self.history: List[QualityStatus] = [QualityStatus.PENDING]

    def advance(self, status: QualityStatus) -> None:
        allowed = ALLOWED_TRANSITIONS.get(self.status, frozenset())
        if status not in allowed:
            raise InvalidTransitionError(
                f"Cannot move quality run from {self.status.value} to {status.value}"
            )
        self.status = status
        self.history.append(status)


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of a single rule.

    Attributes:
        rule_id: Identifier of the rule that produced this result
        passed: Whether the rule passed
        message: Human-readable outcome
        severity: Effective severity of the result
        details: Rule-specific diagnostic data
        timestamp: When the rule ran (UTC ISO string)
    """
    rule_id: str
    passed: bool
    message: str
    severity: Severity
    details: Dict[str, Any] = field(default_factory=dict)
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "rule_id": self.rule_id,
            "passed": self.passed,
            "message": self.message,
            "severity": self.severity.value,
            "details": self.details,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class QualityReport:
    """Aggregated result of one quality gate run.

    Attributes:
        format: Format of the validated artifact
        status: Terminal status of the run
        passed: True when no critical rule failed
        score: Severity-weighted score in [0, 100]
        results: Per-rule results in rule order
        recommendations: Remediation hints for failing rules
        status_history: States the run went through
        timestamp: When the run finished (UTC)
        duration_ms: How long the run took in milliseconds
    """
    format: str
    status: QualityStatus
    passed: bool
    score: int
    results: Tuple[ValidationResult, ...] = ()
    recommendations: Tuple[str, ...] = ()
    status_history: Tuple[QualityStatus, ...] = ()
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    duration_ms: int = 0

    @property
    def failures(self) -> List[ValidationResult]:
        return [r for r in self.results if not r.passed]

    @property
    def critical_failures(self) -> List[ValidationResult]:
        return [r for r in self.failures if r.severity == Severity.CRITICAL]

    @property
    def warnings(self) -> List[ValidationResult]:
        return [r for r in self.failures if r.severity == Severity.WARNING]

    @property
    def infos(self) -> List[ValidationResult]:
        return [r for r in self.failures if r.severity == Severity.INFO]

    def result_for(self, rule_id: str) -> ValidationResult:
        for result in self.results:
            if result.rule_id == rule_id:
                return result
        raise KeyError(rule_id)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "format": self.format,
            "status": self.status.value,
            "passed": self.passed,
            "score": self.score,
            "results": [r.to_dict() for r in self.results],
            "recommendations": list(self.recommendations),
            "status_history": [s.value for s in self.status_history],
            "timestamp": self.timestamp,
            "duration_ms": self.duration_ms,
            "summary": {
                "total_rules": len(self.results),
                "passed_rules": len(self.results) - len(self.failures),
                "critical_failures": len(self.critical_failures),
                "warnings": len(self.warnings),
                "infos": len(self.infos),
            },
        }

    def to_json(self, indent: int = 2) -> str:
        """Serialize report to JSON string."""
        return json.dumps(self.to_dict(), indent=indent, default=str)

    def format_human(self) -> str:
        """Format report for human-readable console output."""
        if self.status == QualityStatus.PASSED:
            icon, label = "✅", "Passed"
        elif self.status == QualityStatus.PASSED_WITH_WARNINGS:
            icon, label = "✅", "Passed (with warnings)"
        else:
            icon, label = "❌", "Failed"

        lines = [f"{icon} {self.format}: {label} (score {self.score}/100)"]

        for result in self.failures:
            if result.severity == Severity.CRITICAL:
                prefix = "  ❌"
            elif result.severity == Severity.WARNING:
                prefix = "  ⚠"
            else:
                prefix = "  ℹ"
            lines.append(f"{prefix} [{result.rule_id}] {result.message}")

        for recommendation in self.recommendations:
            lines.append(f"      → {recommendation}")

        return "\n".join(lines)
