"""
Quality gate for produced exports.

Runs an ordered, pluggable rule list against an export result and reports
a weighted score, a pass verdict and recommendations.
"""

from sprint_export.quality.gate import (
    NO_IMPROVEMENTS_NEEDED,
    RECOMMENDATIONS,
    QualityGate,
    QualityGateConfig,
)
from sprint_export.quality.report import (
    InvalidTransitionError,
    QualityReport,
    QualityStatus,
    Severity,
    StatusTracker,
    ValidationResult,
)
from sprint_export.quality.rules import (
    QualityThresholds,
    RuleOutcome,
    ValidationRule,
    build_default_rules,
)

__all__ = [
    "NO_IMPROVEMENTS_NEEDED",
    "RECOMMENDATIONS",
    "QualityGate",
    "QualityGateConfig",
    "InvalidTransitionError",
    "QualityReport",
    "QualityStatus",
    "Severity",
    "StatusTracker",
    "ValidationResult",
    "QualityThresholds",
    "RuleOutcome",
    "ValidationRule",
    "build_default_rules",
]
