"""
Advanced sprint review digest renderer.

Extends the digest with a key-metrics box, an executive summary, an epic
progress chart, strategic insights and action items for the next sprint.
"""

from typing import List, Sequence

from reportlab.graphics.shapes import Drawing, Rect, String
from reportlab.lib import colors
from reportlab.lib.units import inch
from reportlab.platypus import Flowable, Paragraph, Spacer, Table, TableStyle

from sprint_export.renderers.base import RenderContext
from sprint_export.renderers.digest import DigestRenderer
from sprint_export.renderers.pdf_common import (
    BRAND_BLUE,
    GRID_GREY,
    LIGHT_GREY,
    escape_markup,
    status_color,
    styled_table,
)
from sprint_export.sprint_stats import (
    EpicBreakdown,
    completed_issues,
    epic_breakdown,
    executive_metrics,
    executive_recommendations,
    rating,
    total_points,
)


CHART_WIDTH = 6.5 * inch
BAR_HEIGHT = 14
BAR_GAP = 8
LABEL_WIDTH = 2 * inch

ACTION_ITEMS = [
    ("Review and approve resource allocation for upcoming sprint", "Product Manager", "End of current week"),
    ("Implement enhanced sprint retrospective process", "Scrum Master", "Next sprint planning"),
    ("Allocate development resources for critical features", "Engineering Manager", "Immediate"),
]


def epic_chart(epics: Sequence[EpicBreakdown]) -> Drawing:
    """Horizontal completion bars, one per epic."""
    height = len(epics) * (BAR_HEIGHT + BAR_GAP) + BAR_GAP
    drawing = Drawing(CHART_WIDTH, height)
    bar_span = CHART_WIDTH - LABEL_WIDTH - 40

    for index, epic in enumerate(epics):
        y = height - (index + 1) * (BAR_HEIGHT + BAR_GAP)
        name = epic.name if len(epic.name) <= 28 else epic.name[:27] + "..."
        drawing.add(String(0, y + 3, name, fontName="Helvetica", fontSize=8))
        drawing.add(Rect(LABEL_WIDTH, y, bar_span, BAR_HEIGHT, fillColor=LIGHT_GREY, strokeColor=GRID_GREY))
        fill = colors.HexColor(epic.color) if _is_hex_color(epic.color) else BRAND_BLUE
        if epic.percent:
            drawing.add(Rect(LABEL_WIDTH, y, bar_span * epic.percent / 100, BAR_HEIGHT, fillColor=fill, strokeColor=None))
        drawing.add(String(LABEL_WIDTH + bar_span + 6, y + 3, f"{epic.percent}%", fontName="Helvetica", fontSize=8))

    return drawing


def _is_hex_color(value) -> bool:
    if not value or not value.startswith("#") or len(value) not in (4, 7):
        return False
    return all(char in "0123456789abcdefABCDEF" for char in value[1:])


class AdvancedDigestRenderer(DigestRenderer):
    """Digest with analysis sections on top of the standard content."""

    format_name = "advanced-digest"
    file_prefix = "Advanced_Sprint_Review_Digest"
    heading = "Advanced Sprint Review Digest"

    def leading_sections(self, ctx: RenderContext) -> List[Flowable]:
        return self._key_metrics_box(ctx) + self._executive_summary(ctx)

    def trailing_sections(self, ctx: RenderContext) -> List[Flowable]:
        return self._epic_chart(ctx) + self._strategic_insights(ctx) + self._action_items(ctx)

    def _key_metrics_box(self, ctx: RenderContext) -> List[Flowable]:
        kpis = executive_metrics(ctx.metrics, ctx.issues)
        coverage = round(ctx.metrics.test_coverage) if ctx.metrics else 0
        values = [
            ("Velocity", kpis.velocity, kpis.velocity_status),
            ("Completion", kpis.completion_rate, kpis.completion_status),
            ("Quality", kpis.quality_score, kpis.quality_status),
            ("Test Coverage", coverage, rating(coverage, 90, 80, 60)),
        ]
        table = Table(
            [[f"{value}%" for _, value, _ in values], [label for label, _, _ in values]],
            colWidths=[1.6 * inch] * len(values),
        )
        style = [
            ("BOX", (0, 0), (-1, -1), 1, BRAND_BLUE),
            ("BACKGROUND", (0, 0), (-1, -1), LIGHT_GREY),
            ("ALIGN", (0, 0), (-1, -1), "CENTER"),
            ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
            ("FONTSIZE", (0, 0), (-1, 0), 16),
            ("FONTSIZE", (0, 1), (-1, 1), 8),
            ("TEXTCOLOR", (0, 1), (-1, 1), colors.grey),
            ("TOPPADDING", (0, 0), (-1, 0), 10),
            ("BOTTOMPADDING", (0, 1), (-1, 1), 10),
        ]
        for column, (_, _, status) in enumerate(values):
            style.append(("TEXTCOLOR", (column, 0), (column, 0), status_color(status)))
        table.setStyle(TableStyle(style))
        return [self._section("Key Metrics"), table, Spacer(1, 12)]

    def _executive_summary(self, ctx: RenderContext) -> List[Flowable]:
        issues = ctx.issues
        done = completed_issues(issues)
        completion = round(len(done) / len(issues) * 100) if issues else 0
        metrics = ctx.metrics
        if metrics is not None:
            velocity = round(metrics.completed_total_points / metrics.estimated_points * 100) if metrics.estimated_points else 0
            key_metrics = (
                f"{metrics.completed_total_points:g} story points completed ({velocity}% of target), "
                f"{metrics.test_coverage:g}% test coverage"
            )
        else:
            key_metrics = "metrics not available"

        text = (
            f"The {ctx.presentation.sprint_name} sprint closed with a {completion}% completion rate, "
            f"{len(done)} of {len(issues)} issues completed. Sprint health indicators show {key_metrics}."
        )
        return [self._section("Executive Summary"), Paragraph(escape_markup(text), self.styles["Normal"])]

    def _epic_chart(self, ctx: RenderContext) -> List[Flowable]:
        epics = epic_breakdown(ctx.issues)
        if not epics:
            return []
        return [self._section("Epic Progress"), epic_chart(epics), Spacer(1, 12)]

    def _strategic_insights(self, ctx: RenderContext) -> List[Flowable]:
        capacity = total_points(ctx.upcoming_issues)
        text = (
            f"Building on {ctx.presentation.sprint_name}, the next sprint has "
            f"{len(ctx.upcoming_issues)} issues planned totalling {capacity:g} story points."
        )
        parts: List[Flowable] = [self._section("Strategic Insights"), Paragraph(escape_markup(text), self.styles["Normal"])]
        for recommendation in executive_recommendations(ctx.metrics, ctx.issues):
            parts.append(Paragraph(f"&bull; {escape_markup(recommendation)}", self.styles["Normal"]))
        return parts

    def _action_items(self, ctx: RenderContext) -> List[Flowable]:
        rows = [["Action", "Owner", "Timeline"]]
        for action, owner, timeline in ACTION_ITEMS:
            rows.append([Paragraph(escape_markup(action), self.styles["Normal"]), owner, timeline])
        return [
            self._section("Action Items & Recommendations"),
            styled_table(rows, col_widths=[3.4 * inch, 1.6 * inch, 1.5 * inch]),
        ]
