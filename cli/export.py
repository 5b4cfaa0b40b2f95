"""
Export Subcommand Module

Renders a presentation bundle through the export pipeline and writes the
artifacts to the output directory. Several formats can be exported in one
run; they share one pipeline so repeated requests hit the result cache.
"""

import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import click

from sprint_export.config import ConfigurationManager, PipelineConfig, build_orchestrator
from sprint_export.errors import ExportCancelledError, ExportFailedError, InputValidationError
from sprint_export.models import ExportBundle, ExportOptions, ExportResult
from sprint_export.orchestrator import ExportOrchestrator
from sprint_export.utils.logging_config import ProgressIndicator, configure_logging

from .help_texts import EXPORT_HELP, FORMAT_OPTION_HELP, ExitCodes
from .shared_options import (
    config_option,
    format_choice,
    input_option,
    log_level_option,
    output_dir_option,
    quality_option,
    report_option,
)


logger = logging.getLogger(__name__)


@click.command(help=EXPORT_HELP)
@input_option()
@format_choice(multiple=True, help=FORMAT_OPTION_HELP)
@quality_option()
@click.option("--no-images", is_flag=True, help="Do not embed slide images")
@click.option("--compression", is_flag=True, help="Compress output where the format supports it")
@click.option("--interactive", is_flag=True, help="Add keyboard navigation to HTML output")
@click.option("--file-name", default=None, help="Override the output file name (single format only)")
@output_dir_option()
@config_option()
@log_level_option()
@report_option()
@click.option("--stats", is_flag=True, help="Print cache and error statistics after exporting")
@click.option("--quiet", is_flag=True, help="Do not show progress")
def export(
    input_path: str,
    formats: Tuple[str, ...],
    quality: str,
    no_images: bool,
    compression: bool,
    interactive: bool,
    file_name: Optional[str],
    output_dir: Optional[str],
    config: Optional[str],
    log_level: Optional[str],
    report_path: Optional[str],
    stats: bool,
    quiet: bool,
):
    """Export a presentation bundle.

    Examples:
        # Markdown export with the default quality
        sprint-export export --input sprint-42.json --format markdown

        # PDF and digest in one run
        sprint-export export -i sprint-42.json -f pdf -f digest --quality high

        # Save the quality reports
        sprint-export export -i sprint-42.json -f html --report quality.json
    """
    if file_name and len(formats) > 1:
        click.echo("Error: --file-name can only be used with a single --format", err=True)
        sys.exit(ExitCodes.MISSING_REQUIRED_OPTION)

    try:
        pipeline_config = ConfigurationManager().load_configuration(
            config_file=config,
            cli_overrides={
                "output_dir": output_dir,
                "log_level": log_level.lower() if log_level else None,
            },
        )
        if pipeline_config.assets.local_root is None:
            pipeline_config.assets.local_root = str(Path(input_path).resolve().parent)
        orchestrator = build_orchestrator(pipeline_config)
    except ValueError as e:
        click.echo(f"\n❌ Configuration Error: {e}", err=True)
        sys.exit(ExitCodes.INVALID_CONFIGURATION)

    configure_logging(pipeline_config.log_level, pipeline_config.log_file, force=True)

    try:
        bundle = ExportBundle.load(input_path)
        requests = [
            ExportOptions.parse({
                "format": format_name,
                "quality": quality,
                "include_images": not no_images,
                "compression": compression,
                "interactive": interactive,
                "file_name": file_name,
            })
            for format_name in dict.fromkeys(format_name.lower() for format_name in formats)
        ]
    except InputValidationError as e:
        click.echo(f"\n❌ Input Validation Error: {e}", err=True)
        sys.exit(ExitCodes.INVALID_INPUT)

    results = asyncio.run(_run_exports(orchestrator, bundle, requests, quiet))
    failed = [format_name for format_name, result in results.items() if result is None]

    written = _write_results(pipeline_config, results)
    for path, result in written:
        click.echo(f"✅ {result.format}: {path} ({result.file_size} bytes){_quality_summary(result)}")

    if report_path:
        reports = {
            format_name: result.quality_report
            for format_name, result in results.items()
            if result is not None and result.quality_report is not None
        }
        _write_report(report_path, reports)
        click.echo(f"\nReport saved: {report_path}")

    if stats:
        _print_stats(orchestrator)

    if failed:
        sys.exit(ExitCodes.GENERAL_ERROR)


async def _run_exports(
    orchestrator: ExportOrchestrator,
    bundle: ExportBundle,
    requests: List[ExportOptions],
    quiet: bool,
) -> Dict[str, Optional[ExportResult]]:
    results: Dict[str, Optional[ExportResult]] = {}
    for options in requests:
        progress = None if quiet else ProgressIndicator(f"Exporting {options.format}")
        try:
            result = await orchestrator.export(
                bundle.presentation,
                bundle.issues,
                bundle.upcoming_issues,
                bundle.metrics,
                options,
                on_progress=progress,
            )
        except ExportFailedError as e:
            if progress is not None:
                click.echo("", err=True)
            click.echo(f"\n❌ Export failed ({options.format}): {e.user_message}", err=True)
            for suggestion in e.suggestions:
                click.echo(f"   • {suggestion}", err=True)
            results[options.format] = None
            continue
        except ExportCancelledError as e:
            click.echo(f"\n❌ {e}", err=True)
            results[options.format] = None
            continue

        if progress is not None:
            progress.finish(f"Exported {options.format}")
        for warning in result.metadata.warnings:
            click.echo(f"  ⚠ {warning}", err=True)
        results[options.format] = result
    return results


def _write_results(
    config: PipelineConfig,
    results: Dict[str, Optional[ExportResult]],
) -> List[Tuple[Path, ExportResult]]:
    output_dir = Path(config.output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    written = []
    for result in results.values():
        if result is None:
            continue
        path = output_dir / result.file_name
        path.write_bytes(result.content)
        logger.debug(f"Wrote {result.file_size} bytes to {path}")
        written.append((path, result))
    return written


def _quality_summary(result: ExportResult) -> str:
    report = result.quality_report
    if not report:
        return " [cached]"
    return f" | quality {report['score']}% ({report['status']})"


def _print_stats(orchestrator: ExportOrchestrator) -> None:
    click.echo("\nCache statistics:")
    click.echo(json.dumps(orchestrator.cache.get_stats(), indent=2, default=str))
    error_stats = orchestrator.classifier.get_error_statistics()
    click.echo("\nError statistics:")
    click.echo(json.dumps(error_stats, indent=2, default=str))


def _write_report(path: str, data: dict):
    """Write a JSON report to disk."""
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)
