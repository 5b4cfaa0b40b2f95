"""
Executive summary renderer.

A one-page HTML brief: headline KPIs with ratings, business impact of the
completed work and strategic recommendations for the next sprint.
"""

from sprint_export.models import Presentation
from sprint_export.renderers.base import BaseRenderer, RenderContext
from sprint_export.sprint_stats import business_impact, executive_metrics, executive_recommendations


class ExecutiveRenderer(BaseRenderer):
    """Renders the executive summary via ``executive.html.j2``."""

    format_name = "executive"
    file_prefix = "Executive_Summary"
    template_name = "executive.html.j2"

    async def _render_content(self, ctx: RenderContext) -> bytes:
        self.report_progress(ctx, 0, 3, "Preparing executive summary...")
        kpis = executive_metrics(ctx.metrics, ctx.issues)
        impact = business_impact(ctx.issues)
        self.report_progress(ctx, 1, 3, "Analyzing business impact...")
        self.check_cancelled(ctx)

        context = self.base_context(ctx)
        context.update({
            "kpis": kpis,
            "impact": impact,
            "recommendations": executive_recommendations(ctx.metrics, ctx.issues),
        })
        self.report_progress(ctx, 2, 3, "Rendering executive summary...")
        return self._template_engine.render(self.template_name, context).encode("utf-8")

    def slide_count(self, presentation: Presentation) -> int:
        return 1
