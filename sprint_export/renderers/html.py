"""
HTML renderer.

Produces a single self-contained HTML document: styles are inlined and
slide images are embedded as data URLs when ``include_images`` is set.
Keyboard navigation script is only emitted for interactive exports.
"""

import logging
from typing import Any, Dict, List

from sprint_export.models import Slide, SlideType
from sprint_export.renderers.base import BaseRenderer, RenderContext


logger = logging.getLogger(__name__)


def paragraphs(text: str) -> List[str]:
    """Split free text into non-empty paragraphs."""
    return [part.strip() for part in (text or "").split("\n\n") if part.strip()]


class HTMLRenderer(BaseRenderer):
    """Renders a slide-per-section HTML presentation via ``html.html.j2``."""

    format_name = "html"
    template_name = "html.html.j2"

    async def _render_content(self, ctx: RenderContext) -> bytes:
        self.report_progress(ctx, 0, 1, "Preparing HTML export...")

        async def render_one(slide: Slide, number: int) -> Dict[str, Any]:
            return await self._slide_view(ctx, slide, number)

        slides = await self.render_slides(ctx, render_one)

        context = self.base_context(ctx)
        context["slides"] = slides
        text = self._template_engine.render(self.template_name, context)
        return text.encode("utf-8")

    async def _slide_view(self, ctx: RenderContext, slide: Slide, number: int) -> Dict[str, Any]:
        view: Dict[str, Any] = {
            "number": number,
            "title": slide.title,
            "type": slide.type.value,
            "paragraphs": paragraphs(slide.text),
            "issue": ctx.issue_for(slide) if slide.type == SlideType.DEMO_STORY else None,
            "image_src": None,
            "image_url": slide.corporate_slide_url,
        }

        if slide.corporate_slide_url and ctx.options.include_images:
            data_url = await self._assets.embed_image(slide.corporate_slide_url)
            if not data_url:
                ctx.warn(f"Image for slide {slide.id} could not be embedded, linking original URL")
            view["image_src"] = data_url or slide.corporate_slide_url

        return view

    def slide_placeholder(self, slide: Slide, error: Exception) -> Dict[str, Any]:
        return {
            "number": slide.order,
            "title": slide.title,
            "type": "placeholder",
            "paragraphs": [super().slide_placeholder(slide, error)],
            "issue": None,
            "image_src": None,
            "image_url": None,
        }
