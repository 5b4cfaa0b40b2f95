"""
Validate Result Subcommand Module

Runs the quality gate against an artifact produced earlier, for example
one exported by another tool or edited by hand.
"""

import json
import logging
import sys
from pathlib import Path
from typing import Optional

import click

from sprint_export.errors import InputValidationError
from sprint_export.models import ExportBundle, ExportMetadata, ExportOptions, ExportResult
from sprint_export.quality import QualityGate
from sprint_export.renderers.base import FILE_EXTENSIONS, MIME_TYPES
from sprint_export.utils.logging_config import configure_logging

from .help_texts import VALIDATE_RESULT_HELP, ExitCodes
from .shared_options import format_choice, input_option, log_level_option, quality_option, report_option


logger = logging.getLogger(__name__)


@click.command("validate-result", help=VALIDATE_RESULT_HELP)
@click.argument("artifact", type=click.Path(exists=True, dir_okay=False))
@input_option(help="Export bundle the artifact was produced from")
@format_choice(help="Format of the artifact")
@quality_option()
@click.option("--strict", is_flag=True, help="Fail on warnings in addition to critical failures")
@report_option(help="Write the quality report as JSON to this path")
@log_level_option()
def validate_result(
    artifact: str,
    input_path: str,
    format_name: str,
    quality: str,
    strict: bool,
    report_path: Optional[str],
    log_level: Optional[str],
):
    """Validate an export artifact.

    Examples:
        sprint-export validate-result out/Sprint_Review_42.md -i sprint-42.json -f markdown

        sprint-export validate-result deck.pdf -i sprint-42.json -f pdf --strict
    """
    configure_logging((log_level or "warning").lower(), force=True)

    try:
        bundle = ExportBundle.load(input_path)
        options = ExportOptions.parse({"format": format_name, "quality": quality})
    except InputValidationError as e:
        click.echo(f"\n❌ Input Validation Error: {e}", err=True)
        sys.exit(ExitCodes.INVALID_INPUT)

    content = Path(artifact).read_bytes()
    result = ExportResult(
        content=content,
        file_name=Path(artifact).name,
        file_size=len(content),
        format=options.format,
        mime_type=MIME_TYPES.get(FILE_EXTENSIONS.get(options.format, ""), "application/octet-stream"),
        metadata=ExportMetadata(
            slide_count=len(bundle.presentation.slides),
            quality=options.quality,
        ),
    )

    report = QualityGate().validate(result, bundle.presentation, options)
    click.echo(report.format_human())

    if report_path:
        Path(report_path).parent.mkdir(parents=True, exist_ok=True)
        with open(report_path, "w", encoding="utf-8") as f:
            json.dump(report.to_dict(), f, indent=2)
        click.echo(f"\nReport saved: {report_path}")

    if not report.passed or (strict and report.failures):
        sys.exit(ExitCodes.QUALITY_GATE_FAILED)
