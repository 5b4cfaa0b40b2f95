"""
Tests for the renderer registry.
"""

import pytest

from sprint_export.errors import ExportErrorCode, RendererNotFoundError
from sprint_export.models import ExportFormat
from sprint_export.renderers import RendererRegistry, create_registry, register_default_renderers
from sprint_export.renderers.html import HTMLRenderer
from sprint_export.renderers.markdown import MarkdownRenderer


def test_create_registry_has_every_builtin_format():
    registry = create_registry()
    assert registry.formats() == sorted(ExportFormat.values())
    assert len(registry) == 7


def test_every_renderer_reports_its_key():
    registry = create_registry()
    for format_name in registry.formats():
        assert registry.get(format_name).format == format_name


def test_lookup_is_case_insensitive():
    registry = RendererRegistry()
    registry.register("markdown", MarkdownRenderer())
    assert isinstance(registry.get("MARKDOWN"), MarkdownRenderer)
    assert registry.is_registered("Markdown")


def test_unregistered_format_fails_immediately():
    registry = RendererRegistry()
    registry.register("markdown", MarkdownRenderer())

    with pytest.raises(RendererNotFoundError) as exc_info:
        registry.get("pdf")

    assert exc_info.value.code == ExportErrorCode.FORMAT_ERROR
    assert exc_info.value.available == ["markdown"]


def test_mismatched_renderer_is_rejected():
    registry = RendererRegistry()
    with pytest.raises(ValueError, match="cannot be registered for 'pdf'"):
        registry.register("pdf", HTMLRenderer())
    assert len(registry) == 0


def test_register_replaces_existing_renderer():
    registry = RendererRegistry()
    first, second = MarkdownRenderer(), MarkdownRenderer()
    registry.register("markdown", first)
    registry.register("markdown", second)
    assert registry.get("markdown") is second


def test_unregister():
    registry = create_registry()
    assert registry.unregister("pdf") is True
    assert registry.unregister("pdf") is False
    assert "pdf" not in registry.formats()


def test_register_subset_of_defaults():
    registry = register_default_renderers(RendererRegistry(), formats=["html", "markdown"])
    assert registry.formats() == ["html", "markdown"]
