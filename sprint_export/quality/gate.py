"""
Quality Gate

Runs the ordered rule list against a produced export and folds the
per-rule outcomes into a QualityReport: a severity-weighted score, a pass
verdict (no critical failures) and table-driven recommendations.
"""

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from sprint_export.models import ExportOptions, ExportResult, Presentation
from sprint_export.quality.report import (
    QualityReport,
    QualityStatus,
    Severity,
    StatusTracker,
    ValidationResult,
)
from sprint_export.quality.rules import QualityThresholds, ValidationRule, build_default_rules


logger = logging.getLogger(__name__)


RECOMMENDATIONS: Dict[str, str] = {
    "file-integrity": "Check file generation process for corruption issues",
    "content-completeness": "Ensure all presentation content is properly included",
    "format-compliance": "Verify export format implementation meets standards",
    "quality-standards": "Consider adjusting quality settings for better performance",
    "accessibility": "Implement accessibility features for better user experience",
    "performance": "Optimize export process for better performance",
    "security": "Review export content for security vulnerabilities",
    "metadata": "Ensure all required metadata is properly set",
}

NO_IMPROVEMENTS_NEEDED = "Export validation passed successfully - no improvements needed"


@dataclass
class QualityGateConfig:
    """Scoring configuration.

    The weights and pass threshold are product defaults, not invariants.

    Attributes:
        severity_weights: Weight of each severity in the score average
        pass_threshold: Minimum score for a plain "passed" status
        thresholds: Numeric limits used by the default rules
    """
    severity_weights: Dict[Severity, float] = field(default_factory=lambda: {
        Severity.CRITICAL: 0.5,
        Severity.WARNING: 0.3,
        Severity.INFO: 0.2,
    })
    pass_threshold: float = 80
    thresholds: QualityThresholds = field(default_factory=QualityThresholds)

    def validate(self) -> List[str]:
        errors = []
        for severity in Severity:
            if self.severity_weights.get(severity, 0) <= 0:
                errors.append(f"quality.severity_weights.{severity.value} must be positive")
        if not 0 <= self.pass_threshold <= 100:
            errors.append("quality.pass_threshold must be between 0 and 100")
        return errors


class QualityGate:
    """Post-render rule-based validator.

    Example:
        >>> gate = QualityGate()
        >>> report = gate.validate(result, presentation, options)
        >>> report.passed, report.score
        (True, 100)
    """

    def __init__(
        self,
        config: Optional[QualityGateConfig] = None,
        rules: Optional[List[ValidationRule]] = None,
    ):
        self.config = config or QualityGateConfig()
        self._rules: List[ValidationRule] = (
            list(rules) if rules is not None else build_default_rules(self.config.thresholds)
        )
        self._lock = threading.Lock()

    @property
    def rules(self) -> List[ValidationRule]:
        with self._lock:
            return list(self._rules)

    def add_rule(self, rule: ValidationRule) -> None:
        """Append a rule; an existing rule with the same id is replaced in place."""
        with self._lock:
            for index, existing in enumerate(self._rules):
                if existing.id == rule.id:
                    self._rules[index] = rule
                    return
            self._rules.append(rule)

    def remove_rule(self, rule_id: str) -> bool:
        with self._lock:
            before = len(self._rules)
            self._rules = [rule for rule in self._rules if rule.id != rule_id]
            return len(self._rules) != before

    def clear_rules(self) -> None:
        with self._lock:
            self._rules = []

    def validate(
        self,
        result: ExportResult,
        presentation: Presentation,
        options: ExportOptions,
    ) -> QualityReport:
        """Run every rule against a produced result.

        Never raises: a rule that raises becomes a failed result with that
        rule's severity.
        """
        start = time.time()
        tracker = StatusTracker()
        tracker.advance(QualityStatus.RULES_RUNNING)

        results = [self._run_rule(rule, result, presentation, options) for rule in self.rules]

        score = self.calculate_score(results)
        critical = [r for r in results if not r.passed and r.severity == Severity.CRITICAL]
        other_failures = [r for r in results if not r.passed and r.severity != Severity.CRITICAL]

        if critical:
            status = QualityStatus.FAILED_CRITICAL
        elif other_failures or score < self.config.pass_threshold:
            status = QualityStatus.PASSED_WITH_WARNINGS
        else:
            status = QualityStatus.PASSED
        tracker.advance(status)

        report = QualityReport(
            format=result.format,
            status=status,
            passed=not critical,
            score=score,
            results=tuple(results),
            recommendations=tuple(self.generate_recommendations(results)),
            status_history=tuple(tracker.history),
            duration_ms=int((time.time() - start) * 1000),
        )

        logger.info(
            f"Export validation completed: {len(results) - len(critical) - len(other_failures)}"
            f"/{len(results)} rules passed, Quality: {score}%"
        )
        return report

    def _run_rule(
        self,
        rule: ValidationRule,
        result: ExportResult,
        presentation: Presentation,
        options: ExportOptions,
    ) -> ValidationResult:
        try:
            outcome = rule.check(result, presentation, options)
        except Exception as e:
            logger.warning(f"Quality rule {rule.id} raised {type(e).__name__}: {e}")
            return ValidationResult(
                rule_id=rule.id,
                passed=False,
                message=f"Validation failed: {e}",
                severity=rule.severity,
                details={"error": str(e), "error_type": type(e).__name__},
            )

        return ValidationResult(
            rule_id=rule.id,
            passed=outcome.passed,
            message=outcome.message,
            severity=outcome.severity or rule.severity,
            details=outcome.details,
        )

    def calculate_score(self, results: List[ValidationResult]) -> int:
        """Severity-weighted average of 100 (pass) / 0 (fail)."""
        if not results:
            return 0
        total_score = 0.0
        total_weight = 0.0
        for result in results:
            weight = self.config.severity_weights.get(result.severity, 0.0)
            total_score += (100 if result.passed else 0) * weight
            total_weight += weight
        return round(total_score / total_weight) if total_weight > 0 else 0

    def generate_recommendations(self, results: List[ValidationResult]) -> List[str]:
        recommendations = []
        for result in results:
            if result.passed:
                continue
            recommendation = RECOMMENDATIONS.get(result.rule_id)
            if recommendation and recommendation not in recommendations:
                recommendations.append(recommendation)
        return recommendations or [NO_IMPROVEMENTS_NEEDED]
