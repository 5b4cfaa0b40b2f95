"""
Quality gate rule set.

Each rule inspects a produced ExportResult (its real bytes, not just its
declared size) together with the presentation and options it came from.
Rules are independent of one another; the gate runs them in list order.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from markupsafe import escape

from sprint_export.models import ExportFormat, ExportOptions, ExportResult, Presentation
from sprint_export.quality.report import Severity


MB = 1024 * 1024

PDF_FORMATS = {ExportFormat.PDF.value, ExportFormat.DIGEST.value, ExportFormat.ADVANCED_DIGEST.value}
HTML_FORMATS = {ExportFormat.HTML.value, ExportFormat.METRICS.value, ExportFormat.EXECUTIVE.value}
TEXT_FORMATS = HTML_FORMATS | {ExportFormat.MARKDOWN.value}

SCRIPT_TAG = re.compile(rb"<script\b", re.IGNORECASE)
JS_URL = re.compile(rb"javascript\s*:", re.IGNORECASE)
INLINE_HANDLER = re.compile(rb"<[^>]+\son[a-z]+\s*=", re.IGNORECASE)
PDF_JAVASCRIPT = re.compile(rb"/(JavaScript|JS)\b")
IMG_TAG = re.compile(rb"<img\b[^>]*>", re.IGNORECASE)
ALT_ATTR = re.compile(rb"\salt\s*=", re.IGNORECASE)


@dataclass
class QualityThresholds:
    """Numeric limits used by the default rules."""
    min_file_size: int = 1024
    max_file_size: int = 100 * MB
    max_size_by_quality: Dict[str, int] = field(default_factory=lambda: {
        "low": 5 * MB,
        "medium": 10 * MB,
        "high": 20 * MB,
    })
    max_processing_time_ms: float = 30_000
    performance_max_file_size: int = 10 * MB


@dataclass
class RuleOutcome:
    """What a rule check returns.

    ``severity`` overrides the rule's own severity for this outcome only.
    """
    passed: bool
    message: str
    details: Dict[str, Any] = field(default_factory=dict)
    severity: Optional[Severity] = None


RuleCheck = Callable[[ExportResult, Presentation, ExportOptions], RuleOutcome]


@dataclass
class ValidationRule:
    """A named, independent quality check."""
    id: str
    name: str
    description: str
    severity: Severity
    check: RuleCheck


def _is_pdf(content: bytes) -> bool:
    return content.startswith(b"%PDF-") and b"%%EOF" in content[-1024:]


def _is_html_document(content: bytes) -> Dict[str, bool]:
    head = content[:512].lower()
    return {
        "has_doctype": b"<!doctype html" in head,
        "has_html_structure": b"<html" in content.lower() and b"</html>" in content.lower(),
    }


def _is_markdown(content: bytes) -> Dict[str, bool]:
    text = content.decode("utf-8", errors="replace")
    return {
        "has_markdown_content": bool(re.search(r"^#{1,6} \S", text, re.MULTILINE)),
        "has_metadata": text.startswith("---\n"),
    }


def check_file_integrity(thresholds: QualityThresholds) -> RuleCheck:
    def check(result: ExportResult, presentation: Presentation, options: ExportOptions) -> RuleOutcome:
        actual_size = len(result.content)
        details = {"file_size": result.file_size, "actual_size": actual_size}

        if actual_size == 0:
            return RuleOutcome(False, "File appears to be empty", details)
        if actual_size != result.file_size:
            return RuleOutcome(False, "Declared file size does not match content", details)
        if actual_size < thresholds.min_file_size:
            details["min_size"] = thresholds.min_file_size
            return RuleOutcome(False, "File size is too small, may be corrupted", details)
        if actual_size > thresholds.max_file_size:
            details["max_size"] = thresholds.max_file_size
            return RuleOutcome(False, "File size is too large", details, severity=Severity.WARNING)
        return RuleOutcome(True, "File integrity check passed", details)
    return check


def check_content_completeness(result: ExportResult, presentation: Presentation, options: ExportOptions) -> RuleOutcome:
    has_slides = len(presentation.slides) > 0
    has_title = bool(presentation.title)
    has_content = any(slide.text for slide in presentation.slides)
    details: Dict[str, Any] = {
        "expected_slides": len(presentation.slides),
        "has_title": has_title,
        "has_content": has_content,
        "presentation_title": presentation.title,
    }

    missing: List[str] = []
    # Slide-by-slide formats must mention every slide title.
    if result.format in (ExportFormat.HTML.value, ExportFormat.MARKDOWN.value):
        text = result.text()
        for slide in presentation.slides:
            if result.format == ExportFormat.HTML.value:
                needle = str(escape(slide.title))
            else:
                needle = slide.title.replace("<", "&lt;").replace(">", "&gt;")
            if needle and needle not in text:
                missing.append(slide.id)
        details["missing_slides"] = missing

    passed = has_slides and has_title and has_content and not missing
    message = "All content is included in export" if passed else "Some content may be missing"
    return RuleOutcome(passed, message, details)


def check_format_compliance(result: ExportResult, presentation: Presentation, options: ExportOptions) -> RuleOutcome:
    fmt = result.format
    details: Dict[str, Any] = {"format": fmt, "requested_format": options.format}

    if fmt != options.format:
        return RuleOutcome(False, f"Result format {fmt} does not match requested {options.format}", details)

    if fmt in PDF_FORMATS:
        details["has_pdf_header"] = _is_pdf(result.content)
        passed = details["has_pdf_header"]
        label = "PDF"
    elif fmt in HTML_FORMATS:
        details.update(_is_html_document(result.content))
        passed = details["has_doctype"] and details["has_html_structure"]
        label = "HTML"
        if fmt == ExportFormat.EXECUTIVE.value:
            details["has_metrics"] = presentation.metadata.has_metrics
            passed = passed and presentation.metadata.has_metrics
            label = "Executive"
    elif fmt == ExportFormat.MARKDOWN.value:
        details.update(_is_markdown(result.content))
        passed = details["has_markdown_content"] and details["has_metadata"]
        label = "Markdown"
    else:
        return RuleOutcome(False, f"Unknown format: {fmt}", details)

    message = f"{label} format is valid" if passed else f"{label} format appears invalid"
    return RuleOutcome(passed, message, details)


def check_quality_standards(thresholds: QualityThresholds) -> RuleCheck:
    def check(result: ExportResult, presentation: Presentation, options: ExportOptions) -> RuleOutcome:
        quality = options.quality or "medium"
        max_size = thresholds.max_size_by_quality.get(quality, thresholds.max_size_by_quality["medium"])
        size_ok = result.file_size <= max_size
        time_ok = result.metadata.processing_time <= thresholds.max_processing_time_ms
        passed = size_ok and time_ok
        return RuleOutcome(
            passed,
            "Quality standards met" if passed else "Quality standards not met",
            {
                "quality": quality,
                "size_within_limit": size_ok,
                "processing_time_within_limit": time_ok,
                "file_size": result.file_size,
                "processing_time": result.metadata.processing_time,
            },
        )
    return check


def check_accessibility(result: ExportResult, presentation: Presentation, options: ExportOptions) -> RuleOutcome:
    details: Dict[str, Any] = {}

    if result.format in HTML_FORMATS:
        images = IMG_TAG.findall(result.content)
        lowered = result.content.lower()
        details["has_alt_text"] = all(ALT_ATTR.search(tag) for tag in images)
        details["has_language"] = b"<html lang=" in lowered
        details["has_semantic_structure"] = b"<main" in lowered or b"<section" in lowered
        passed = all(details.values())
        label = "HTML"
    elif result.format in PDF_FORMATS:
        # Extractable text needs embedded font resources.
        details["has_text_extraction"] = b"/Font" in result.content
        passed = details["has_text_extraction"]
        label = "PDF"
    else:
        headings = re.findall(rb"^#{1,6} ", result.content, re.MULTILINE)
        details["heading_count"] = len(headings)
        passed = len(headings) > 0
        label = "Markdown"

    message = (
        f"{label} accessibility requirements met" if passed
        else f"{label} accessibility requirements not met"
    )
    return RuleOutcome(passed, message, details)


def check_performance(thresholds: QualityThresholds) -> RuleCheck:
    def check(result: ExportResult, presentation: Presentation, options: ExportOptions) -> RuleOutcome:
        time_ok = result.metadata.processing_time <= thresholds.max_processing_time_ms
        size_ok = result.file_size <= thresholds.performance_max_file_size
        passed = time_ok and size_ok
        return RuleOutcome(
            passed,
            "Performance requirements met" if passed else "Performance requirements not met",
            {
                "processing_time": result.metadata.processing_time,
                "file_size": result.file_size,
                "max_processing_time": thresholds.max_processing_time_ms,
                "max_file_size": thresholds.performance_max_file_size,
            },
        )
    return check


def check_security(result: ExportResult, presentation: Presentation, options: ExportOptions) -> RuleOutcome:
    content = result.content
    details: Dict[str, Any] = {}

    if result.format in PDF_FORMATS:
        details["has_embedded_javascript"] = bool(PDF_JAVASCRIPT.search(content))
    else:
        scripts_allowed = options.interactive and result.format in HTML_FORMATS
        details["has_script_injection"] = bool(SCRIPT_TAG.search(content)) and not scripts_allowed
        details["has_javascript_urls"] = bool(JS_URL.search(content))
        details["has_inline_handlers"] = bool(INLINE_HANDLER.search(content))

    passed = not any(details.values())
    message = "Security validation passed" if passed else "Security issues detected"
    return RuleOutcome(passed, message, details)


def check_metadata(result: ExportResult, presentation: Presentation, options: ExportOptions) -> RuleOutcome:
    details = {
        "has_title": bool(presentation.title),
        "has_creation_date": presentation.created_at is not None,
        "has_slide_count": presentation.metadata.total_slides > 0,
        "has_sprint_name": bool(presentation.metadata.sprint_name),
        "has_file_name": bool(result.file_name),
    }
    passed = all(details.values())
    details.update({
        "title": presentation.title,
        "total_slides": presentation.metadata.total_slides,
        "sprint_name": presentation.metadata.sprint_name,
    })
    message = "All required metadata is present" if passed else "Some metadata is missing"
    return RuleOutcome(passed, message, details)


def build_default_rules(thresholds: Optional[QualityThresholds] = None) -> List[ValidationRule]:
    """Create the default ordered rule list."""
    thresholds = thresholds or QualityThresholds()
    return [
        ValidationRule(
            "file-integrity", "File Integrity Check",
            "Verify that the exported file is not corrupted",
            Severity.CRITICAL, check_file_integrity(thresholds),
        ),
        ValidationRule(
            "content-completeness", "Content Completeness",
            "Ensure all presentation content is included in the export",
            Severity.CRITICAL, check_content_completeness,
        ),
        ValidationRule(
            "format-compliance", "Format Compliance",
            "Verify the export follows the specified format standards",
            Severity.CRITICAL, check_format_compliance,
        ),
        ValidationRule(
            "quality-standards", "Quality Standards",
            "Check if the export meets quality requirements",
            Severity.WARNING, check_quality_standards(thresholds),
        ),
        ValidationRule(
            "accessibility", "Accessibility Compliance",
            "Verify accessibility features are properly implemented",
            Severity.WARNING, check_accessibility,
        ),
        ValidationRule(
            "performance", "Performance Standards",
            "Check if the export meets performance requirements",
            Severity.INFO, check_performance(thresholds),
        ),
        ValidationRule(
            "security", "Security Validation",
            "Verify the export does not contain script injection or embedded code",
            Severity.CRITICAL, check_security,
        ),
        ValidationRule(
            "metadata", "Metadata Completeness",
            "Ensure all required metadata is included",
            Severity.WARNING, check_metadata,
        ),
    ]
