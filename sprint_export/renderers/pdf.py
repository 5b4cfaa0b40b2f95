"""
PDF renderer.

Lays the deck out one slide per landscape page behind a title page and a
table of contents, with page numbers in the footer. Corporate slide
images are embedded when ``include_images`` is set.
"""

import asyncio
import io
import logging
from typing import List

from reportlab.lib.units import inch
from reportlab.platypus import Flowable, KeepInFrame, PageBreak, Paragraph, Spacer

from sprint_export.models import Slide, SlideType
from sprint_export.renderers.base import BaseRenderer, RenderContext
from sprint_export.renderers.pdf_common import (
    SLIDE_TITLE_STYLE,
    build_styles,
    escape_markup,
    footer_label,
    image_flowable,
    metric_rows,
    new_document,
    new_table_of_contents,
    page_decorator,
    styled_table,
    text_paragraphs,
)
from sprint_export.sprint_stats import checklist_quality_score, velocity_percent


logger = logging.getLogger(__name__)


class PDFRenderer(BaseRenderer):
    """Renders the deck into a paginated PDF with reportlab."""

    format_name = "pdf"

    def __init__(self, config=None):
        super().__init__(config)
        self.styles = build_styles()

    async def _render_content(self, ctx: RenderContext) -> bytes:
        self.report_progress(ctx, 0, 1, "Preparing PDF export...")
        buffer = io.BytesIO()
        doc = new_document(
            buffer,
            title=ctx.presentation.title,
            compression=ctx.options.compression,
            slides=True,
        )
        self._frame_width = doc.width
        self._frame_height = doc.height

        async def render_one(slide: Slide, number: int) -> List[Flowable]:
            return await self._slide_flowables(ctx, slide)

        slide_parts = await self.render_slides(ctx, render_one)

        story: List[Flowable] = self._title_page(ctx)
        story.append(PageBreak())
        story.append(Paragraph("Table of Contents", self.styles["Heading1"]))
        story.append(new_table_of_contents(self.styles))
        for part in slide_parts:
            story.append(PageBreak())
            story.extend(part)

        self.check_cancelled(ctx)
        decorate = page_decorator(footer_label(ctx.presentation.sprint_name))
        await asyncio.to_thread(doc.multiBuild, story, onFirstPage=decorate, onLaterPages=decorate)
        return buffer.getvalue()

    def _title_page(self, ctx: RenderContext) -> List[Flowable]:
        presentation = ctx.presentation
        return [
            Spacer(1, 1.5 * inch),
            Paragraph(escape_markup(presentation.title), self.styles["DeckTitle"]),
            Paragraph(f"Sprint: {escape_markup(presentation.sprint_name)}", self.styles["Heading2"]),
            Paragraph(f"Generated: {presentation.created_at.strftime('%B %d, %Y')}", self.styles["Normal"]),
            Paragraph(f"Slides: {len(presentation.slides)}", self.styles["Normal"]),
        ]

    async def _slide_flowables(self, ctx: RenderContext, slide: Slide) -> List[Flowable]:
        body = await self._slide_body(ctx, slide)
        # Title stays a top-level flowable so it reaches the table of contents.
        title = Paragraph(escape_markup(slide.title), self.styles[SLIDE_TITLE_STYLE])
        return [title, KeepInFrame(self._frame_width, self._frame_height - 60, body, mode="shrink")]

    async def _slide_body(self, ctx: RenderContext, slide: Slide) -> List[Flowable]:
        normal = self.styles["Normal"]

        if slide.type == SlideType.TITLE:
            return [Spacer(1, 0.5 * inch), Paragraph("Welcome to the Sprint Review Presentation", self.styles["Heading2"])]

        if slide.type == SlideType.METRICS:
            metrics = ctx.metrics
            if metrics is None:
                return [Paragraph("No metrics available", normal)]
            rows = metric_rows({
                "Completed Points": f"{metrics.completed_total_points:g}/{metrics.estimated_points:g}",
                "Velocity": f"{velocity_percent(metrics)}%",
                "Test Coverage": f"{metrics.test_coverage:g}%",
                "Planned Items": str(metrics.planned_items),
                "Quality Score": f"{checklist_quality_score(metrics.quality_checklist)}%",
            })
            return [styled_table(rows, col_widths=[3 * inch, 2.5 * inch])]

        if slide.type == SlideType.DEMO_STORY:
            issue = ctx.issue_for(slide)
            if issue is None:
                return [Paragraph("Story not found", normal)] + text_paragraphs(slide.text, normal)
            details = styled_table([
                ["Issue", "Assignee", "Story Points", "Status"],
                [issue.key, issue.assignee or "Unassigned", f"{issue.story_points:g}" if issue.story_points else "Not estimated", issue.status],
            ])
            parts: List[Flowable] = [
                Paragraph(escape_markup(f"{issue.key}: {issue.summary}"), self.styles["Heading2"]),
                details,
                Spacer(1, 12),
            ]
            return parts + text_paragraphs(slide.text or "No content available", normal)

        if slide.type == SlideType.CORPORATE:
            return await self._corporate_body(ctx, slide)

        return text_paragraphs(slide.text, normal) or [Paragraph("", normal)]

    async def _corporate_body(self, ctx: RenderContext, slide: Slide) -> List[Flowable]:
        normal = self.styles["Normal"]
        if not slide.corporate_slide_url:
            return [Paragraph("No corporate slide image available", normal)]
        if not ctx.options.include_images:
            return [Paragraph(escape_markup(f"Corporate slide image: {slide.corporate_slide_url}"), normal)]

        asset = await self._assets.try_fetch(slide.corporate_slide_url)
        if asset is not None:
            try:
                return [image_flowable(
                    asset.content,
                    self._frame_width,
                    self._frame_height - 80,
                    ctx.options.quality,
                )]
            except (OSError, ValueError) as e:
                ctx.warn(f"Image for slide {slide.id} could not be decoded: {e}")
        else:
            ctx.warn(f"Image for slide {slide.id} could not be embedded")
        return [Paragraph(escape_markup(f"Corporate slide image: {slide.corporate_slide_url}"), normal)]

    def slide_placeholder(self, slide: Slide, error: Exception) -> List[Flowable]:
        return [
            Paragraph(escape_markup(slide.title), self.styles[SLIDE_TITLE_STYLE]),
            Paragraph(escape_markup(super().slide_placeholder(slide, error)), self.styles["Normal"]),
        ]
