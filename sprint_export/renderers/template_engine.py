"""
Template engine for the text-based renderers.

Manages Jinja2 template loading and rendering for the HTML, metrics,
executive and Markdown exports. Templates named ``*.html.j2`` are
autoescaped; Markdown templates are not and use the ``md_safe`` filter for
untrusted text instead.
"""

import re
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from jinja2 import (
    Environment,
    FileSystemLoader,
    TemplateNotFound,
    TemplateSyntaxError,
    select_autoescape,
)


BUILTIN_TEMPLATES_DIR = Path(__file__).parent / "templates"


class TemplateEngineError(Exception):
    """Exception raised for template engine errors."""

    def __init__(self, message: str, template_name: Optional[str] = None):
        self.template_name = template_name
        super().__init__(
            f"{message}" + (f" (template: {template_name})" if template_name else "")
        )


# ============================================================================
# Custom Jinja2 Filters
# ============================================================================


def truncate_words(text: str, max_words: int, suffix: str = "...") -> str:
    """Truncate text to a maximum number of words."""
    if not text:
        return ""
    words = text.split()
    if len(words) <= max_words:
        return text
    return " ".join(words[:max_words]) + suffix


def md_safe(text: Any) -> str:
    """Neutralize inline HTML in text written into Markdown."""
    if text is None:
        return ""
    return str(text).replace("<", "&lt;").replace(">", "&gt;")


def percent(value: Any) -> str:
    if value is None:
        return "n/a"
    return f"{round(float(value))}%"


def points(value: Any) -> str:
    """Format story points without a trailing .0."""
    if value is None:
        return "-"
    number = float(value)
    return str(int(number)) if number.is_integer() else f"{number:.1f}"


def format_date(value: Any, fmt: str = "%B %d, %Y") -> str:
    if isinstance(value, datetime):
        return value.strftime(fmt)
    return str(value or "")


def slugify(text: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", (text or "").lower()).strip("-")


def status_class(status: str) -> str:
    """Map a KPI rating to a CSS class."""
    return f"status-{(status or 'poor').lower()}"


# ============================================================================
# Template Engine
# ============================================================================


class TemplateEngine:
    """Manages Jinja2 template loading and rendering.

    The engine loads templates from the built-in directory and optionally
    from a custom directory. Custom templates take precedence.
    """

    def __init__(
        self,
        templates_dir: Optional[Path] = None,
        custom_templates_dir: Optional[Path] = None,
    ):
        """Initialize the template engine.

        Args:
            templates_dir: Path to built-in templates directory.
                          Defaults to sprint_export/renderers/templates/
            custom_templates_dir: Optional path to custom templates directory.
        """
        self.templates_dir = templates_dir or BUILTIN_TEMPLATES_DIR
        self.custom_templates_dir = custom_templates_dir

        loader_paths = []
        if custom_templates_dir and custom_templates_dir.exists():
            loader_paths.append(str(custom_templates_dir))
        if self.templates_dir.exists():
            loader_paths.append(str(self.templates_dir))

        self.env = Environment(
            loader=FileSystemLoader(loader_paths) if loader_paths else None,
            autoescape=select_autoescape(["html", "xml", "html.j2"]),
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
        )

        self._register_filters()

    def _register_filters(self) -> None:
        """Register custom Jinja2 filters."""
        self.env.filters["truncate_words"] = truncate_words
        self.env.filters["md_safe"] = md_safe
        self.env.filters["percent"] = percent
        self.env.filters["points"] = points
        self.env.filters["format_date"] = format_date
        self.env.filters["slugify"] = slugify
        self.env.filters["status_class"] = status_class

    def render(self, template_name: str, context: dict) -> str:
        """Render a template.

        Args:
            template_name: Template file name (e.g. "html.html.j2")
            context: Template variables

        Returns:
            Rendered template string

        Raises:
            TemplateEngineError: If template not found or rendering fails
        """
        template = self.get_template(template_name)

        try:
            return template.render(**context)
        except Exception as e:
            raise TemplateEngineError(
                f"Failed to render template: {e}",
                template_name=template_name,
            )

    def get_template(self, template_name: str):
        try:
            return self.env.get_template(template_name)
        except TemplateNotFound:
            raise TemplateEngineError("Template not found", template_name=template_name)

    def template_exists(self, template_name: str) -> bool:
        try:
            self.env.get_template(template_name)
            return True
        except TemplateNotFound:
            return False

    def validate_template(self, template_path: str) -> tuple[bool, list[str]]:
        """Validate template syntax.

        Returns:
            Tuple of (is_valid, list of error messages)
        """
        path = Path(template_path)
        if not path.is_file():
            return False, [f"Template file not found: {template_path}"]

        try:
            self.env.parse(path.read_text(encoding="utf-8"))
        except TemplateSyntaxError as e:
            return False, [f"Template syntax error at line {e.lineno}: {e.message}"]

        return True, []
