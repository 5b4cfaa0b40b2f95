"""
Metrics dashboard renderer.

A single-page HTML dashboard of the sprint metrics: point totals, buffer
usage, quality checklist and per-epic progress.
"""

from sprint_export.renderers.base import BaseRenderer, RenderContext
from sprint_export.sprint_stats import (
    checklist_quality_score,
    epic_breakdown,
    executive_metrics,
    sprint_summary,
    velocity_percent,
)


CHECKLIST_LABELS = {"yes": "Yes", "partial": "Partial", "no": "No", "na": "N/A"}


class MetricsRenderer(BaseRenderer):
    """Renders the metrics dashboard via ``metrics.html.j2``."""

    format_name = "metrics"
    file_prefix = "Sprint_Metrics"
    template_name = "metrics.html.j2"

    async def _render_content(self, ctx: RenderContext) -> bytes:
        self.report_progress(ctx, 0, 2, "Calculating sprint metrics...")
        self.check_cancelled(ctx)

        metrics = ctx.metrics
        context = self.base_context(ctx)
        context.update({
            "summary": sprint_summary(metrics, ctx.issues),
            "velocity": velocity_percent(metrics),
            "kpis": executive_metrics(metrics, ctx.issues),
            "epics": epic_breakdown(ctx.issues),
            "quality_score": checklist_quality_score(metrics.quality_checklist) if metrics else None,
            "checklist_labels": CHECKLIST_LABELS,
        })
        self.report_progress(ctx, 1, 2, "Rendering metrics dashboard...")

        return self._template_engine.render(self.template_name, context).encode("utf-8")
