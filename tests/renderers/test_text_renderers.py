"""
Tests for the Markdown, HTML, metrics and executive renderers.

Renderers are called directly, without the orchestrator.
"""

import httpx
import pytest

from sprint_export.errors import ExportCancelledError
from sprint_export.models import ExportOptions, Slide, SlideType
from sprint_export.renderers import AssetEmbedder, RendererConfig
from sprint_export.renderers.executive import ExecutiveRenderer
from sprint_export.renderers.html import HTMLRenderer, paragraphs
from sprint_export.renderers.markdown import MarkdownRenderer
from sprint_export.renderers.metrics import MetricsRenderer
from sprint_export.retry import CancellationToken

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 16


def image_config(status_code=200):
    def handler(request):
        return httpx.Response(status_code, content=PNG_BYTES, headers={"content-type": "image/png"})

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return RendererConfig(asset_embedder=AssetEmbedder(client=client))


def with_corporate_slide(presentation):
    corporate = Slide(id="s4", title="Company update", type=SlideType.CORPORATE, order=3,
                      corporate_slide_url="https://cdn.example.com/slide.png")
    return presentation.model_copy(update={"slides": [*presentation.slides, corporate]})


class TestMarkdownRenderer:
    @pytest.mark.asyncio
    async def test_document_structure(self, presentation, issues, upcoming_issues, metrics):
        result = await MarkdownRenderer().render(
            presentation, issues, upcoming_issues, metrics, ExportOptions(format="markdown")
        )
        text = result.text()

        assert text.startswith("---\n")
        assert 'title: "Sprint 42 Review"' in text
        assert "# Sprint 42 Review" in text
        assert "### Slide 3: Export retries" in text
        assert "- **Issue Key:** PROJ-1" in text
        assert "**PROJ-4:** Executive dashboard" in text
        assert "- **Exports:** 1/2 issues (11 points)" in text
        assert result.metadata.warnings == []

    @pytest.mark.asyncio
    async def test_inline_html_is_neutralized(self, presentation, issues, metrics):
        slides = [presentation.slides[0].model_copy(update={"title": "<img src=x>"})]
        hostile = presentation.model_copy(update={"slides": slides})

        result = await MarkdownRenderer().render(hostile, issues, [], metrics, ExportOptions(format="markdown"))

        assert b"<img" not in result.content
        assert b"&lt;img src=x&gt;" in result.content

    @pytest.mark.asyncio
    async def test_without_metrics(self, presentation, issues):
        result = await MarkdownRenderer().render(presentation, issues, [], None, ExportOptions(format="markdown"))
        assert "No metrics available for this sprint." in result.text()

    @pytest.mark.asyncio
    async def test_progress_is_reported_per_slide(self, presentation, issues, metrics):
        events = []
        await MarkdownRenderer().render(
            presentation, issues, [], metrics, ExportOptions(format="markdown"), on_progress=events.append
        )
        rendered = [event for event in events if event.message.startswith("Rendered slide")]
        assert [event.current for event in rendered] == [1, 2, 3]
        assert events[-1].percentage == 100

    @pytest.mark.asyncio
    async def test_cancellation_between_slides(self, presentation, issues, metrics):
        token = CancellationToken()
        token.cancel()
        with pytest.raises(ExportCancelledError):
            await MarkdownRenderer().render(
                presentation, issues, [], metrics, ExportOptions(format="markdown"), cancel_token=token
            )

    @pytest.mark.asyncio
    async def test_custom_file_name(self, presentation, issues, metrics):
        result = await MarkdownRenderer().render(
            presentation, issues, [], metrics, ExportOptions(format="markdown", file_name="review.md")
        )
        assert result.file_name == "review.md"


class TestHTMLRenderer:
    @pytest.mark.asyncio
    async def test_static_document_has_no_script(self, presentation, issues, metrics):
        result = await HTMLRenderer().render(presentation, issues, [], metrics, ExportOptions(format="html"))
        text = result.text()

        assert text.startswith("<!DOCTYPE html>")
        assert '<html lang="en">' in text
        assert "<script" not in text
        for slide in presentation.slides:
            assert slide.title in text

    @pytest.mark.asyncio
    async def test_interactive_adds_navigation(self, presentation, issues, metrics):
        result = await HTMLRenderer().render(
            presentation, issues, [], metrics, ExportOptions(format="html", interactive=True)
        )
        assert "<script>" in result.text()
        assert "onclick" not in result.text()

    @pytest.mark.asyncio
    async def test_titles_are_escaped(self, presentation, issues, metrics):
        slides = [presentation.slides[0].model_copy(update={"title": "<b>Bold</b>"})]
        hostile = presentation.model_copy(update={"slides": slides})

        result = await HTMLRenderer().render(hostile, issues, [], metrics, ExportOptions(format="html"))

        assert "&lt;b&gt;Bold&lt;/b&gt;" in result.text()
        assert "<b>Bold</b>" not in result.text()

    @pytest.mark.asyncio
    async def test_corporate_image_is_embedded(self, presentation, issues, metrics):
        renderer = HTMLRenderer(image_config())
        result = await renderer.render(
            with_corporate_slide(presentation), issues, [], metrics, ExportOptions(format="html")
        )
        assert 'src="data:image/png;base64,' in result.text()
        assert 'alt="Company update"' in result.text()

    @pytest.mark.asyncio
    async def test_failed_image_links_original_url(self, presentation, issues, metrics):
        renderer = HTMLRenderer(image_config(status_code=404))
        result = await renderer.render(
            with_corporate_slide(presentation), issues, [], metrics, ExportOptions(format="html")
        )
        assert 'src="https://cdn.example.com/slide.png"' in result.text()
        assert len(result.metadata.warnings) == 1

    @pytest.mark.asyncio
    async def test_images_can_be_skipped(self, presentation, issues, metrics):
        renderer = HTMLRenderer(image_config())
        result = await renderer.render(
            with_corporate_slide(presentation), issues, [], metrics,
            ExportOptions(format="html", include_images=False),
        )
        assert "data:image/png" not in result.text()
        assert "Corporate slide image: https://cdn.example.com/slide.png" in result.text()

    def test_paragraphs(self):
        assert paragraphs("one\n\n two \n\n\n") == ["one", "two"]
        assert paragraphs("") == []


class TestDashboards:
    @pytest.mark.asyncio
    async def test_metrics_dashboard(self, presentation, issues, metrics):
        result = await MetricsRenderer().render(presentation, issues, [], metrics, ExportOptions(format="metrics"))

        assert result.file_name.startswith("Sprint_Metrics_Sprint_42_")
        assert result.file_name.endswith(".html")
        assert result.text().startswith("<!DOCTYPE html>")
        assert "Exports" in result.text()

    @pytest.mark.asyncio
    async def test_executive_summary(self, presentation, issues, metrics):
        result = await ExecutiveRenderer().render(
            presentation, issues, [], metrics, ExportOptions(format="executive")
        )

        assert result.metadata.slide_count == 1
        assert result.text().startswith("<!DOCTYPE html>")
        assert "<script" not in result.text()

    @pytest.mark.asyncio
    async def test_executive_without_metrics_recommends_tracking(self, presentation, issues):
        result = await ExecutiveRenderer().render(presentation, issues, [], None, ExportOptions(format="executive"))
        assert "Implement sprint metrics tracking" in result.text()


class FlakySlideRenderer(MarkdownRenderer):
    """Markdown renderer whose summary slide always fails."""

    def _slide_view(self, ctx, slide, number):
        if slide.id == "s2":
            raise RuntimeError("chart service down")
        return super()._slide_view(ctx, slide, number)


@pytest.mark.asyncio
async def test_failed_slide_becomes_placeholder(presentation, issues, metrics):
    result = await FlakySlideRenderer().render(
        presentation, issues, [], metrics, ExportOptions(format="markdown")
    )
    text = result.text()

    assert "[Slide 'Sprint Summary' could not be rendered]" in text
    assert "Export retries" in text
    assert result.metadata.warnings == [
        "Slide s2 (Sprint Summary) could not be rendered: chart service down"
    ]
