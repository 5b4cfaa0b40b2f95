"""
Export renderers.

One renderer per output format, looked up through a RendererRegistry.
"""

from sprint_export.renderers.assets import AssetEmbedder, EmbeddedAsset
from sprint_export.renderers.base import BaseRenderer, RenderContext, RendererConfig
from sprint_export.renderers.registry import (
    RendererRegistry,
    create_registry,
    register_default_renderers,
)
from sprint_export.renderers.template_engine import TemplateEngine, TemplateEngineError

__all__ = [
    "AssetEmbedder",
    "EmbeddedAsset",
    "BaseRenderer",
    "RenderContext",
    "RendererConfig",
    "RendererRegistry",
    "create_registry",
    "register_default_renderers",
    "TemplateEngine",
    "TemplateEngineError",
]
