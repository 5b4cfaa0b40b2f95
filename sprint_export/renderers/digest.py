"""
Sprint review digest renderer.

A compact portrait PDF meant for distribution by email: overview table,
sprint summary, demo story summaries, next sprint preview and metrics
tables that copy cleanly into other documents.
"""

import asyncio
import io
import logging
from typing import List, Optional

from reportlab.lib.units import inch
from reportlab.platypus import Flowable, PageBreak, Paragraph, Spacer

from sprint_export.models import Slide, SlideType
from sprint_export.renderers.base import BaseRenderer, RenderContext
from sprint_export.renderers.pdf_common import (
    BRAND_ORANGE,
    SECTION_STYLE,
    build_styles,
    escape_markup,
    footer_label,
    metric_rows,
    new_document,
    new_table_of_contents,
    page_decorator,
    styled_table,
    text_paragraphs,
)
from sprint_export.sprint_stats import (
    checklist_quality_score,
    completed_issues,
    epic_breakdown,
    total_points,
)


logger = logging.getLogger(__name__)


CHECKLIST_LABELS = {"yes": "Yes", "partial": "Partial", "no": "No", "na": "N/A"}


def health_label(ratio: float) -> str:
    if ratio >= 0.9:
        return "Excellent"
    if ratio >= 0.75:
        return "Good"
    if ratio >= 0.6:
        return "Fair"
    return "Needs Improvement"


def sprint_health(ctx: RenderContext) -> int:
    """Completed over estimated points, falling back to issue points."""
    metrics = ctx.metrics
    if metrics is not None and metrics.estimated_points > 0:
        return round(metrics.completed_total_points / metrics.estimated_points * 100)
    all_points = total_points(ctx.issues)
    if all_points > 0:
        return round(total_points(completed_issues(ctx.issues)) / all_points * 100)
    return 0


class DigestRenderer(BaseRenderer):
    """Renders the one-document sprint digest with reportlab."""

    format_name = "digest"
    file_prefix = "Sprint_Review_Digest"
    heading = "Sprint Review Digest"

    def __init__(self, config=None):
        super().__init__(config)
        self.styles = build_styles()

    async def _render_content(self, ctx: RenderContext) -> bytes:
        self.report_progress(ctx, 0, 1, f"Preparing {self.heading.lower()}...")

        story_parts = await self.render_slides(ctx, lambda slide, number: self._demo_story(ctx, slide))

        story: List[Flowable] = []
        story.extend(self._header(ctx))
        story.extend(self._overview_table(ctx))
        story.append(Paragraph("Contents", self.styles["Heading2"]))
        story.append(new_table_of_contents(self.styles))
        story.append(PageBreak())
        story.extend(self.leading_sections(ctx))
        story.extend(self._sprint_summary(ctx))
        story.append(self._section("Demo Stories"))
        demo_flowables = [flowable for part in story_parts for flowable in part]
        story.extend(demo_flowables or [Paragraph("No demo stories available", self.styles["Normal"])])
        story.extend(self._next_sprint(ctx))
        story.extend(self._metrics(ctx))
        story.extend(self.trailing_sections(ctx))

        self.check_cancelled(ctx)
        buffer = io.BytesIO()
        doc = new_document(
            buffer,
            title=f"{self.heading} - {ctx.presentation.sprint_name}",
            compression=ctx.options.compression,
            toc_style=SECTION_STYLE,
        )
        decorate = page_decorator(footer_label(self.heading))
        await asyncio.to_thread(doc.multiBuild, story, onFirstPage=decorate, onLaterPages=decorate)
        return buffer.getvalue()

    def leading_sections(self, ctx: RenderContext) -> List[Flowable]:
        """Sections placed right after the contents page."""
        return []

    def trailing_sections(self, ctx: RenderContext) -> List[Flowable]:
        """Sections appended after the metrics."""
        return []

    def _section(self, title: str) -> Paragraph:
        return Paragraph(escape_markup(title), self.styles[SECTION_STYLE])

    def _header(self, ctx: RenderContext) -> List[Flowable]:
        presentation = ctx.presentation
        return [
            Paragraph(self.heading, self.styles["DeckTitle"]),
            Paragraph(escape_markup(presentation.title), self.styles["Heading2"]),
            Paragraph(
                f"Sprint: {escape_markup(presentation.sprint_name)} | "
                f"{presentation.created_at.strftime('%B %d, %Y')}",
                self.styles["Normal"],
            ),
            Spacer(1, 12),
        ]

    def _overview_table(self, ctx: RenderContext) -> List[Flowable]:
        table = styled_table(
            [
                ["Story Count", "Story Points", "Sprint Health"],
                [str(len(ctx.issues)), f"{total_points(ctx.issues):g}", f"{sprint_health(ctx)}%"],
            ],
            col_widths=[2 * inch] * 3,
            header_color=BRAND_ORANGE,
        )
        return [table, Spacer(1, 18)]

    def _sprint_summary(self, ctx: RenderContext) -> List[Flowable]:
        summary = self._find_summary_slide(ctx)
        text = summary.text if summary else "No sprint summary available"
        return [self._section("Sprint Summary")] + text_paragraphs(text, self.styles["Normal"])

    def _find_summary_slide(self, ctx: RenderContext) -> Optional[Slide]:
        summaries = [slide for slide in ctx.presentation.ordered_slides() if slide.type == SlideType.SUMMARY]
        for slide in summaries:
            if "overview" in slide.title.lower():
                return slide
        return summaries[0] if summaries else None

    def _demo_story(self, ctx: RenderContext, slide: Slide) -> List[Flowable]:
        if slide.type != SlideType.DEMO_STORY:
            return []
        normal = self.styles["Normal"]
        issue = ctx.issue_for(slide)
        parts: List[Flowable] = [Paragraph(escape_markup(slide.title), self.styles["Heading3"])]
        if issue is not None:
            points = f"{issue.story_points:g} points" if issue.story_points else "Not estimated"
            parts.append(Paragraph(
                escape_markup(f"{issue.key} | {issue.assignee or 'Unassigned'} | {points} | {issue.status}"),
                self.styles["Small"],
            ))
        parts.extend(text_paragraphs(slide.text, normal))
        parts.append(Spacer(1, 8))
        return parts

    def _next_sprint(self, ctx: RenderContext) -> List[Flowable]:
        parts: List[Flowable] = [self._section("Next Sprint Preview")]
        if not ctx.upcoming_issues:
            parts.append(Paragraph("No upcoming sprint information available", self.styles["Normal"]))
            return parts
        rows = [["Key", "Summary", "Points"]]
        for issue in ctx.upcoming_issues:
            rows.append([
                issue.key,
                Paragraph(escape_markup(issue.summary), self.styles["Normal"]),
                f"{issue.story_points:g}" if issue.story_points else "-",
            ])
        parts.append(styled_table(rows, col_widths=[1.1 * inch, 4.4 * inch, 0.8 * inch]))
        return parts

    def _metrics(self, ctx: RenderContext) -> List[Flowable]:
        parts: List[Flowable] = [self._section("Sprint Metrics")]
        metrics = ctx.metrics
        if metrics is None:
            parts.append(Paragraph("No metrics available for this sprint", self.styles["Normal"]))
            return parts

        ratio = metrics.completed_total_points / metrics.estimated_points if metrics.estimated_points else 0
        parts.append(styled_table(metric_rows({
            "Planned Items": str(metrics.planned_items),
            "Estimated Points": f"{metrics.estimated_points:g}",
            "Completed Points": f"{metrics.completed_total_points:g}",
            "Carry Forward Points": f"{metrics.carry_forward_points:g}",
            "Buffer Points (completed/committed)": (
                f"{metrics.completed_buffer_points:g}/{metrics.committed_buffer_points:g}"
            ),
            "Test Coverage": f"{metrics.test_coverage:g}%",
            "Status": health_label(ratio),
        }), col_widths=[3.2 * inch, 2.5 * inch]))
        parts.append(Spacer(1, 12))

        epics = epic_breakdown(ctx.issues)
        if epics:
            rows = [["Epic", "Issues", "Points", "Done"]]
            for epic in epics:
                rows.append([
                    Paragraph(escape_markup(epic.name), self.styles["Normal"]),
                    f"{epic.completed}/{epic.total}",
                    f"{epic.completed_points:g}/{epic.total_points:g}",
                    f"{epic.percent}%",
                ])
            parts.append(styled_table(rows, col_widths=[3 * inch, 1 * inch, 1.2 * inch, 0.8 * inch]))
            parts.append(Spacer(1, 12))

        if metrics.quality_checklist:
            rows = [["Quality Item", "Status"]]
            rows.extend(
                [Paragraph(escape_markup(item), self.styles["Normal"]), CHECKLIST_LABELS.get(value, value)]
                for item, value in metrics.quality_checklist.items()
            )
            rows.append(["Quality Score", f"{checklist_quality_score(metrics.quality_checklist)}%"])
            parts.append(styled_table(rows, col_widths=[4.2 * inch, 1.5 * inch]))
        return parts

    def slide_placeholder(self, slide: Slide, error: Exception) -> List[Flowable]:
        if slide.type != SlideType.DEMO_STORY:
            return []
        return [Paragraph(escape_markup(super().slide_placeholder(slide, error)), self.styles["Normal"])]
