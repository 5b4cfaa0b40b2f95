"""
Pre-flight validation of export requests.

Everything here runs before the cache or any renderer is touched, so a
failure is always immediate and never retried.
"""

import logging
from typing import List, Tuple

from sprint_export.errors import ExportErrorCode, InputValidationError
from sprint_export.models import ExportFormat, ExportOptions, Presentation, QualityTier


logger = logging.getLogger(__name__)


MAX_SLIDES = 100
LARGE_DECK_SLIDES = 50
MAX_ESTIMATED_SIZE = 50 * 1024 * 1024

BYTES_PER_SLIDE = 1024
BYTES_PER_IMAGE = 2 * 1024 * 1024

QUALITY_SIZE_FACTORS = {
    QualityTier.HIGH.value: 1.5,
    QualityTier.LOW.value: 0.7,
}

FORMAT_SIZE_FACTORS = {
    ExportFormat.PDF.value: 1.2,
    ExportFormat.HTML.value: 1.1,
    ExportFormat.MARKDOWN.value: 0.3,
    ExportFormat.EXECUTIVE.value: 0.8,
    ExportFormat.DIGEST.value: 0.9,
    ExportFormat.ADVANCED_DIGEST.value: 0.9,
}


def estimate_file_size(presentation: Presentation, options: ExportOptions) -> int:
    """Rough output size estimate in bytes.

    1KB per slide plus 2MB per image slide, scaled by quality tier and
    format.
    """
    size = len(presentation.slides) * BYTES_PER_SLIDE
    if options.include_images:
        image_slides = [slide for slide in presentation.slides if slide.corporate_slide_url]
        size += len(image_slides) * BYTES_PER_IMAGE

    size *= QUALITY_SIZE_FACTORS.get(options.quality, 1.0)
    size *= FORMAT_SIZE_FACTORS.get(options.format, 1.0)
    return round(size)


def check_export_request(presentation: Presentation, options: ExportOptions) -> List[InputValidationError]:
    """Collect every problem with an export request.

    Returns:
        List of InputValidationError (empty when the request is valid)
    """
    problems: List[InputValidationError] = []

    if not presentation.slides:
        problems.append(InputValidationError(
            "Presentation is empty or invalid",
            field_name="slides",
            expected=">= 1 slide",
            actual="0",
        ))

    if not options.is_known_format:
        problems.append(InputValidationError(
            f"Unsupported export format: {options.format}",
            field_name="format",
            expected=", ".join(ExportFormat.values()),
            actual=options.format,
            code=ExportErrorCode.FORMAT_ERROR,
        ))

    if not options.is_known_quality:
        problems.append(InputValidationError(
            f"Invalid quality setting: {options.quality}",
            field_name="quality",
            expected=", ".join(QualityTier.values()),
            actual=options.quality,
        ))

    if options.executive_format not in (None, "html"):
        problems.append(InputValidationError(
            f"Unsupported executive format: {options.executive_format}",
            field_name="executive_format",
            expected="html",
            actual=options.executive_format,
        ))

    slide_count = len(presentation.slides)
    if slide_count > MAX_SLIDES:
        problems.append(InputValidationError(
            f"Presentation has too many slides (max {MAX_SLIDES})",
            field_name="slides",
            expected=f"<= {MAX_SLIDES}",
            actual=str(slide_count),
        ))
    elif slide_count > LARGE_DECK_SLIDES:
        logger.warning(
            f"Large presentation detected ({slide_count} slides). "
            f"Export may take longer than usual."
        )

    estimated = estimate_file_size(presentation, options)
    if estimated > MAX_ESTIMATED_SIZE:
        problems.append(InputValidationError(
            "Estimated file size exceeds 50MB limit",
            field_name="estimated_size",
            expected=f"<= {MAX_ESTIMATED_SIZE}",
            actual=str(estimated),
        ))

    return problems


def validate_export_request(presentation: Presentation, options: ExportOptions) -> Tuple[bool, List[str]]:
    """Validate an export request.

    Returns:
        Tuple of (valid, error messages)
    """
    problems = check_export_request(presentation, options)
    return not problems, [str(problem) for problem in problems]


def ensure_valid_request(presentation: Presentation, options: ExportOptions) -> None:
    """Raise the first problem with an export request.

    Format problems are raised ahead of others so an unknown format is
    always reported as a format error.

    Raises:
        InputValidationError: If the request is invalid
    """
    problems = check_export_request(presentation, options)
    if not problems:
        return
    problems.sort(key=lambda problem: problem.code != ExportErrorCode.FORMAT_ERROR)
    raise problems[0]
