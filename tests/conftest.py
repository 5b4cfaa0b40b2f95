"""
Pytest configuration and shared fixtures.
"""
import asyncio
import logging
import os
from datetime import datetime, timezone
from typing import List, Optional

import pytest

from sprint_export.cache import CacheConfig, ResultCache
from sprint_export.classifier import ErrorClassifier
from sprint_export.models import (
    ExportBundle,
    ExportOptions,
    Issue,
    Presentation,
    PresentationMetadata,
    Slide,
    SlideType,
    SprintMetrics,
)
from sprint_export.orchestrator import ExportOrchestrator
from sprint_export.quality import QualityGate
from sprint_export.renderers import BaseRenderer, RenderContext, RendererRegistry
from sprint_export.retry import RecoveryStrategy


@pytest.fixture(autouse=True)
def isolate_tests(tmp_path, monkeypatch):
    """
    Automatically isolate each test:
    1. Run from a temporary working directory (no project config)
    2. Drop SPRINT_EXPORT_* variables from the environment
    3. Point the user config lookup at the temporary directory
    4. Restore root logger handlers replaced by configure_logging
    """
    for name in list(os.environ):
        if name.startswith("SPRINT_EXPORT_"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    monkeypatch.chdir(tmp_path)
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


class FakeRenderer(BaseRenderer):
    """Renderer double that fails with queued exceptions before succeeding."""

    def __init__(self, format_name: str = "markdown", failures: Optional[List[BaseException]] = None,
                 content: bytes = b"# Fake export\n", delay: float = 0.0):
        super().__init__()
        self.format_name = format_name
        self.failures = list(failures or [])
        self.content = content
        self.delay = delay
        self.calls = 0

    async def _render_content(self, ctx: RenderContext) -> bytes:
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.failures:
            raise self.failures.pop(0)
        self.report_progress(ctx, 1, 2, "Half way")
        return self.content


class RecordingSleep:
    """Async sleep replacement that records requested delays."""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def presentation():
    return Presentation(
        id="pres-42",
        title="Sprint 42 Review",
        created_at=datetime(2026, 3, 2, 10, 0, tzinfo=timezone.utc),
        slides=[
            Slide(id="s1", title="Sprint 42 Review", content="Welcome", type=SlideType.TITLE, order=0),
            Slide(id="s2", title="Sprint Summary", content="We shipped the export pipeline.",
                  type=SlideType.SUMMARY, order=1),
            Slide(id="s3", title="Export retries", content="Retries with backoff",
                  type=SlideType.DEMO_STORY, order=2, story_id="PROJ-1"),
        ],
        metadata=PresentationMetadata(
            sprint_name="Sprint 42",
            total_slides=3,
            has_metrics=True,
            demo_stories_count=1,
        ),
    )


@pytest.fixture
def issues():
    return [
        Issue(id="1", key="PROJ-1", summary="Retry failed exports", status="Done", assignee="Dana",
              story_points=8, epic_key="PROJ-100", epic_name="Exports"),
        Issue(id="2", key="PROJ-2", summary="Fix cache eviction", status="In Progress", assignee="Lee",
              story_points=3, issue_type="Bug", epic_key="PROJ-100", epic_name="Exports"),
        Issue(id="3", key="PROJ-3", summary="Write docs", status="Closed", story_points=2),
    ]


@pytest.fixture
def upcoming_issues():
    return [Issue(id="4", key="PROJ-4", summary="Executive dashboard", status="To Do", story_points=5)]


@pytest.fixture
def metrics():
    return SprintMetrics(
        planned_items=3,
        estimated_points=13,
        completed_total_points=10,
        test_coverage=85,
        sprint_number="42",
        quality_checklist={"code_review": "yes", "docs": "partial", "security_scan": "na"},
    )


@pytest.fixture
def markdown_options():
    return ExportOptions(format="markdown")


@pytest.fixture
def recording_sleep():
    return RecordingSleep()


@pytest.fixture
def make_orchestrator(recording_sleep):
    """Factory for orchestrators around the given renderers."""
    def factory(*renderers: BaseRenderer, strategy: Optional[RecoveryStrategy] = None,
                cache: Optional[ResultCache] = None, analytics=None) -> ExportOrchestrator:
        registry = RendererRegistry()
        for renderer in renderers:
            registry.register(renderer.format, renderer)
        return ExportOrchestrator(
            registry=registry,
            cache=cache or ResultCache(CacheConfig()),
            classifier=ErrorClassifier(),
            quality_gate=QualityGate(),
            analytics=analytics,
            strategy=strategy or RecoveryStrategy(max_retries=3, base_delay=1.0, timeout=5.0),
            sleep=recording_sleep,
        )
    return factory


@pytest.fixture
def fake_renderer():
    """The FakeRenderer class, for tests that build their own doubles."""
    return FakeRenderer


@pytest.fixture
def bundle(presentation, issues, upcoming_issues, metrics):
    return ExportBundle(presentation=presentation, issues=issues, upcoming_issues=upcoming_issues, metrics=metrics)


@pytest.fixture
def bundle_file(tmp_path, bundle):
    """The sample bundle written as JSON, the way the CLI reads it."""
    path = tmp_path / "sprint-42.json"
    path.write_text(bundle.model_dump_json(indent=2), encoding="utf-8")
    return path
