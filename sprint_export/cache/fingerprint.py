"""
Cache key generation.

A fingerprint combines a hash of the presentation's identity and slide
contents with a hash of the output-affecting export options. Options that
only steer bookkeeping (batch size, file name, analytics) never change the
key.
"""

import hashlib
import json
from typing import Any, Dict

from sprint_export.models import ExportOptions, Presentation, SlideContent


def _hash_string(value: str) -> str:
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


def _canonical_json(data: Any) -> str:
    return json.dumps(data, sort_keys=True, separators=(",", ":"), default=str)


def hash_content(content: Any) -> str:
    """Hash a slide's free-text or structured content."""
    if isinstance(content, SlideContent):
        return _hash_string(_canonical_json(content.model_dump(mode="json")))
    if isinstance(content, str):
        return _hash_string(content)
    return _hash_string(_canonical_json(content))


def presentation_fingerprint_data(presentation: Presentation) -> Dict[str, Any]:
    """Identity data of a presentation that feeds its hash."""
    return {
        "id": presentation.id,
        "title": presentation.title,
        "slide_count": len(presentation.slides),
        "metadata": presentation.metadata.model_dump(mode="json"),
        "slides": [
            {
                "id": slide.id,
                "title": slide.title,
                "type": slide.type.value,
                "order": slide.order,
                "corporate_slide_url": slide.corporate_slide_url,
                "content_hash": hash_content(slide.content),
            }
            for slide in presentation.slides
        ],
    }


def hash_presentation(presentation: Presentation) -> str:
    return _hash_string(_canonical_json(presentation_fingerprint_data(presentation)))


def hash_options(options: ExportOptions) -> str:
    return _hash_string(_canonical_json(options.output_affecting()))


def generate_cache_key(presentation: Presentation, options: ExportOptions) -> str:
    """Generate a deterministic cache key for an export request.

    Args:
        presentation: Presentation being exported
        options: Export options (only the output-affecting subset is used)

    Returns:
        Hex digest key of the form ``<presentation hash>_<options hash>``
    """
    return f"{hash_presentation(presentation)[:32]}_{hash_options(options)[:16]}"
