"""
End-to-end exports through a fully configured pipeline.
"""

import asyncio

import pytest
from click.testing import CliRunner

from cli import main
from sprint_export.config import PipelineConfig, build_orchestrator
from sprint_export.errors import ExportCancelledError
from sprint_export.models import ExportFormat, ExportOptions
from sprint_export.retry import CancellationToken


PDF_FORMATS = {"pdf", "digest", "advanced-digest"}


@pytest.fixture
def pipeline(recording_sleep):
    return build_orchestrator(PipelineConfig(), sleep=recording_sleep)


@pytest.mark.asyncio
@pytest.mark.parametrize("format_name", ExportFormat.values())
async def test_every_format_passes_the_quality_gate(format_name, pipeline, bundle):
    result = await pipeline.export(
        bundle.presentation,
        bundle.issues,
        bundle.upcoming_issues,
        bundle.metrics,
        ExportOptions(format=format_name),
    )

    assert result.format == format_name
    assert result.file_size == len(result.content) > 1024
    if format_name in PDF_FORMATS:
        assert result.content.startswith(b"%PDF")
    elif format_name == "markdown":
        assert result.content.startswith(b"---\n")
    else:
        assert result.content.startswith(b"<!DOCTYPE html>")

    report = result.quality_report
    assert report["passed"] is True, report
    assert report["score"] >= 80
    assert report["status_history"][-1] in ("passed", "passed-with-warnings")


@pytest.mark.asyncio
async def test_concurrent_exports_share_one_pipeline(pipeline, bundle):
    async def run(format_name):
        return await pipeline.export(
            bundle.presentation, bundle.issues, bundle.upcoming_issues, bundle.metrics,
            ExportOptions(format=format_name),
        )

    results = await asyncio.gather(run("html"), run("markdown"), run("pdf"), run("html"))

    assert [result.format for result in results] == ["html", "markdown", "pdf", "html"]
    assert len(pipeline.cache) == 3
    assert pipeline.analytics.get_metrics()["successful_exports"] == 4


@pytest.mark.asyncio
async def test_inputs_are_left_untouched(pipeline, bundle):
    before = bundle.model_dump()
    await pipeline.export(
        bundle.presentation, bundle.issues, bundle.upcoming_issues, bundle.metrics,
        ExportOptions(format="advanced-digest"),
    )
    assert bundle.model_dump() == before


@pytest.mark.asyncio
async def test_cancelled_before_start(pipeline, bundle):
    token = CancellationToken()
    token.cancel()
    with pytest.raises(ExportCancelledError):
        await pipeline.export(
            bundle.presentation, bundle.issues, [], bundle.metrics,
            ExportOptions(format="pdf"), cancel_token=token,
        )
    assert len(pipeline.cache) == 0


def test_cli_exports_every_format(bundle_file, tmp_path):
    out = tmp_path / "out"
    args = ["export", "-i", str(bundle_file), "--output-dir", str(out), "--quiet"]
    for format_name in ExportFormat.values():
        args += ["-f", format_name]

    result = CliRunner().invoke(main, args)

    assert result.exit_code == 0, result.output
    names = sorted(path.name for path in out.iterdir())
    assert len(names) == 7
    assert sum(name.endswith(".pdf") for name in names) == 3
    assert sum(name.endswith(".html") for name in names) == 3
    assert sum(name.endswith(".md") for name in names) == 1
