"""
Markdown renderer.

Produces a structured Markdown document with a YAML front matter block so
the export can be indexed by retrieval systems as well as read by people.
"""

import logging
from typing import Any, Dict

from sprint_export.models import Slide, SlideType
from sprint_export.renderers.base import BaseRenderer, RenderContext
from sprint_export.sprint_stats import (
    business_impact,
    checklist_quality_score,
    completed_issues,
    epic_breakdown,
    executive_metrics,
    group_counts,
    is_issue_completed,
    sprint_summary,
    total_points,
    velocity_percent,
)


logger = logging.getLogger(__name__)


SLIDE_TYPE_LABELS = {
    SlideType.TITLE: "Title Slide",
    SlideType.SUMMARY: "Summary Slide",
    SlideType.METRICS: "Metrics Slide",
    SlideType.DEMO_STORY: "Demo Story Slide",
    SlideType.CORPORATE: "Corporate Slide",
    SlideType.CUSTOM: "Custom Slide",
}

CHECKLIST_ICONS = {"yes": "✅", "partial": "⚠️", "no": "❌", "na": "➖"}


class MarkdownRenderer(BaseRenderer):
    """Renders a presentation into Markdown via ``markdown.md.j2``."""

    format_name = "markdown"
    template_name = "markdown.md.j2"

    async def _render_content(self, ctx: RenderContext) -> bytes:
        self.report_progress(ctx, 0, 1, "Preparing markdown export...")
        slides = await self.render_slides(ctx, lambda slide, number: self._slide_view(ctx, slide, number))

        context = self.base_context(ctx)
        context.update({
            "slides": slides,
            "summary": sprint_summary(ctx.metrics, ctx.issues),
            "velocity": velocity_percent(ctx.metrics),
            "kpis": executive_metrics(ctx.metrics, ctx.issues),
            "impact": business_impact(ctx.issues),
            "epics": epic_breakdown(ctx.issues),
            "issue_types": group_counts(ctx.issues, "issue_type", "Other"),
            "assignees": group_counts(ctx.issues, "assignee", "Unassigned"),
            "completed": completed_issues(ctx.issues),
            "in_progress": [i for i in ctx.issues if not is_issue_completed(i.status)],
            "checklist_icons": CHECKLIST_ICONS,
            "quality_score": checklist_quality_score(ctx.metrics.quality_checklist) if ctx.metrics else None,
            "total_points": total_points(ctx.issues),
        })

        text = self._template_engine.render(self.template_name, context)
        return text.encode("utf-8")

    def _slide_view(self, ctx: RenderContext, slide: Slide, number: int) -> Dict[str, Any]:
        view: Dict[str, Any] = {
            "number": number,
            "title": slide.title,
            "type": slide.type.value,
            "label": SLIDE_TYPE_LABELS.get(slide.type, "Custom Slide"),
            "text": slide.text,
            "issue": None,
            "image_url": slide.corporate_slide_url,
        }
        if slide.type == SlideType.DEMO_STORY:
            view["issue"] = ctx.issue_for(slide)
        return view

    def slide_placeholder(self, slide: Slide, error: Exception) -> Dict[str, Any]:
        return {
            "number": slide.order,
            "title": slide.title,
            "type": "placeholder",
            "label": "Unavailable",
            "text": super().slide_placeholder(slide, error),
            "issue": None,
            "image_url": None,
        }
