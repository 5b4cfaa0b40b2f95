"""
Tests for sprint_export.validation

Covers pre-flight checks on export requests and size estimation.
"""

import pytest

from sprint_export.errors import ExportErrorCode, InputValidationError
from sprint_export.models import ExportOptions, Presentation, Slide, SlideType
from sprint_export.validation import (
    MAX_SLIDES,
    check_export_request,
    ensure_valid_request,
    estimate_file_size,
    validate_export_request,
)


def deck(count, image_url=None):
    return Presentation(
        id="deck",
        title="Deck",
        slides=[
            Slide(id=f"s{index}", title=f"Slide {index}", type=SlideType.CUSTOM, order=index,
                  corporate_slide_url=image_url)
            for index in range(count)
        ],
    )


class TestCheckExportRequest:
    def test_valid_request(self, presentation):
        assert check_export_request(presentation, ExportOptions(format="pdf")) == []
        assert validate_export_request(presentation, ExportOptions(format="pdf")) == (True, [])

    def test_empty_presentation(self):
        problems = check_export_request(deck(0), ExportOptions(format="pdf"))
        assert [problem.field_name for problem in problems] == ["slides"]

    def test_unknown_format_and_quality(self, presentation):
        problems = check_export_request(presentation, ExportOptions(format="xyz", quality="ultra"))
        assert {problem.field_name for problem in problems} == {"format", "quality"}

    def test_executive_pdf_is_rejected(self, presentation):
        options = ExportOptions(format="executive", executive_format="pdf")
        valid, errors = validate_export_request(presentation, options)
        assert not valid
        assert "Unsupported executive format: pdf" in errors[0]

    def test_executive_format_description_matches_validation(self, presentation):
        description = ExportOptions.model_fields["executive_format"].description
        assert "pdf" not in description
        assert "html only" in description
        valid, _ = validate_export_request(presentation, ExportOptions(format="executive", executive_format="html"))
        assert valid

    def test_too_many_slides(self):
        problems = check_export_request(deck(MAX_SLIDES + 1), ExportOptions(format="markdown"))
        assert problems[0].actual == str(MAX_SLIDES + 1)

    def test_estimated_size_limit(self):
        problems = check_export_request(deck(30, image_url="https://example.com/a.png"),
                                        ExportOptions(format="pdf", quality="high"))
        assert any(problem.field_name == "estimated_size" for problem in problems)


class TestEnsureValidRequest:
    def test_format_error_wins(self):
        with pytest.raises(InputValidationError) as exc_info:
            ensure_valid_request(deck(0), ExportOptions(format="xyz"))
        assert exc_info.value.code == ExportErrorCode.FORMAT_ERROR

    def test_passes_silently(self, presentation):
        ensure_valid_request(presentation, ExportOptions(format="html"))


class TestEstimateFileSize:
    def test_images_dominate(self):
        with_images = estimate_file_size(deck(2, "https://example.com/a.png"), ExportOptions(format="html"))
        without = estimate_file_size(deck(2, "https://example.com/a.png"),
                                     ExportOptions(format="html", include_images=False))
        assert with_images > without
        assert without == round(2 * 1024 * 1.1)

    def test_quality_scales_estimate(self):
        low = estimate_file_size(deck(10), ExportOptions(format="markdown", quality="low"))
        high = estimate_file_size(deck(10), ExportOptions(format="markdown", quality="high"))
        assert low < high
