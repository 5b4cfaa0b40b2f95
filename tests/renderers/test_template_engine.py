"""
Tests for the template engine and its filters.
"""

from datetime import datetime

import pytest

from sprint_export.renderers.template_engine import (
    TemplateEngine,
    TemplateEngineError,
    format_date,
    md_safe,
    percent,
    points,
    slugify,
    status_class,
    truncate_words,
)


class TestFilters:
    def test_points(self):
        assert points(8.0) == "8"
        assert points(2.5) == "2.5"
        assert points(None) == "-"

    def test_md_safe(self):
        assert md_safe("<script>") == "&lt;script&gt;"
        assert md_safe(None) == ""
        assert md_safe(3) == "3"

    def test_truncate_words(self):
        assert truncate_words("one two three", 2) == "one two..."
        assert truncate_words("one two", 5) == "one two"
        assert truncate_words("", 2) == ""

    def test_percent(self):
        assert percent(84.6) == "85%"
        assert percent(None) == "n/a"

    def test_format_date(self):
        assert format_date(datetime(2026, 3, 2)) == "March 02, 2026"
        assert format_date(datetime(2026, 3, 2), "%Y-%m-%d") == "2026-03-02"
        assert format_date(None) == ""

    def test_slugify_and_status_class(self):
        assert slugify("Sprint 42: Review!") == "sprint-42-review"
        assert status_class("Good") == "status-good"
        assert status_class("") == "status-poor"


class TestTemplateEngine:
    def test_builtin_templates_exist(self):
        engine = TemplateEngine()
        for name in ("html.html.j2", "markdown.md.j2", "metrics.html.j2", "executive.html.j2"):
            assert engine.template_exists(name)

    def test_missing_template(self):
        engine = TemplateEngine()
        assert engine.template_exists("nope.html.j2") is False
        with pytest.raises(TemplateEngineError, match="nope.html.j2"):
            engine.render("nope.html.j2", {})

    def test_custom_templates_take_precedence(self, tmp_path):
        (tmp_path / "markdown.md.j2").write_text("custom {{ name }}", encoding="utf-8")
        engine = TemplateEngine(custom_templates_dir=tmp_path)
        assert engine.render("markdown.md.j2", {"name": "deck"}) == "custom deck"

    def test_html_templates_are_autoescaped(self, tmp_path):
        (tmp_path / "page.html.j2").write_text("<p>{{ value }}</p>", encoding="utf-8")
        (tmp_path / "page.md.j2").write_text("{{ value }}", encoding="utf-8")
        engine = TemplateEngine(custom_templates_dir=tmp_path)

        assert engine.render("page.html.j2", {"value": "<b>"}) == "<p>&lt;b&gt;</p>"
        assert engine.render("page.md.j2", {"value": "<b>"}) == "<b>"

    def test_render_error_is_wrapped(self, tmp_path):
        (tmp_path / "broken.md.j2").write_text("{{ value.missing() }}", encoding="utf-8")
        engine = TemplateEngine(custom_templates_dir=tmp_path)
        with pytest.raises(TemplateEngineError, match="Failed to render template"):
            engine.render("broken.md.j2", {"value": None})

    def test_validate_template(self, tmp_path):
        good = tmp_path / "good.md.j2"
        good.write_text("{{ ok }}", encoding="utf-8")
        bad = tmp_path / "bad.md.j2"
        bad.write_text("{% if %}", encoding="utf-8")
        engine = TemplateEngine()

        assert engine.validate_template(str(good)) == (True, [])
        valid, errors = engine.validate_template(str(bad))
        assert valid is False
        assert errors[0].startswith("Template syntax error at line 1")
        assert engine.validate_template(str(tmp_path / "missing.j2"))[0] is False
