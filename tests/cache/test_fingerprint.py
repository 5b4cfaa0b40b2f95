"""
Tests for sprint_export.cache.fingerprint

Cache keys must change with anything that changes the output bytes and
stay stable otherwise.
"""

from sprint_export.cache import generate_cache_key, hash_options, hash_presentation
from sprint_export.models import ExportOptions, Slide, SlideContent, SlideType


def with_slides(presentation, slides):
    return presentation.model_copy(update={"slides": slides})


class TestCacheKey:
    def test_deterministic(self, presentation):
        options = ExportOptions(format="pdf")
        assert generate_cache_key(presentation, options) == generate_cache_key(presentation, options)

    def test_key_shape(self, presentation):
        presentation_hash, options_hash = generate_cache_key(presentation, ExportOptions(format="pdf")).split("_")
        assert len(presentation_hash) == 32
        assert len(options_hash) == 16

    def test_bookkeeping_options_are_ignored(self, presentation):
        base = generate_cache_key(presentation, ExportOptions(format="pdf"))
        assert generate_cache_key(presentation, ExportOptions(format="pdf", track_analytics=False)) == base
        assert generate_cache_key(presentation, ExportOptions(format="pdf", file_name="x.pdf")) == base
        assert generate_cache_key(presentation, ExportOptions(format="pdf", batch_size=2)) == base
        assert generate_cache_key(presentation, ExportOptions(format="pdf", progressive=True)) == base

    def test_output_options_change_key(self, presentation):
        base = hash_options(ExportOptions(format="pdf"))
        assert hash_options(ExportOptions(format="html")) != base
        assert hash_options(ExportOptions(format="pdf", quality="high")) != base
        assert hash_options(ExportOptions(format="pdf", include_images=False)) != base
        assert hash_options(ExportOptions(format="pdf", compression=True)) != base
        assert hash_options(ExportOptions(format="pdf", interactive=True)) != base

    def test_format_case_is_normalized(self):
        assert hash_options(ExportOptions(format="PDF")) == hash_options(ExportOptions(format="pdf"))


class TestPresentationHash:
    def test_slide_text_change(self, presentation):
        slides = list(presentation.slides)
        slides[1] = slides[1].model_copy(update={"content": "Different summary"})
        assert hash_presentation(with_slides(presentation, slides)) != hash_presentation(presentation)

    def test_slide_order_change(self, presentation):
        slides = list(presentation.slides)
        slides[0] = slides[0].model_copy(update={"order": 10})
        assert hash_presentation(with_slides(presentation, slides)) != hash_presentation(presentation)

    def test_structured_content_change(self, presentation):
        first = Slide(id="d", title="Demo", type=SlideType.DEMO_STORY,
                      content=SlideContent(type="demo-story", data={"accomplishments": "A"}))
        second = first.model_copy(update={"content": SlideContent(type="demo-story", data={"accomplishments": "B"})})
        assert (hash_presentation(with_slides(presentation, [first]))
                != hash_presentation(with_slides(presentation, [second])))

    def test_title_change(self, presentation):
        renamed = presentation.model_copy(update={"title": "Renamed"})
        assert hash_presentation(renamed) != hash_presentation(presentation)

    def test_creation_time_is_ignored(self, presentation):
        later = presentation.model_copy(update={"created_at": presentation.created_at.replace(year=2030)})
        assert hash_presentation(later) == hash_presentation(presentation)
