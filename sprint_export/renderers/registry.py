"""
Renderer registry.

A format-keyed table of renderer instances. It is populated explicitly at
startup via ``register_default_renderers`` (or ``register`` for custom
formats) and read by the orchestrator for every export. Lookups of an
unregistered format fail immediately.
"""

import logging
import threading
from typing import Dict, List, Optional, Type

from sprint_export.errors import RendererNotFoundError
from sprint_export.renderers.base import BaseRenderer, RendererConfig


logger = logging.getLogger(__name__)


class RendererRegistry:
    """Registry of renderer instances keyed by format name.

    Usage:
        registry = RendererRegistry()
        register_default_renderers(registry)
        renderer = registry.get("pdf")
    """

    def __init__(self):
        self._renderers: Dict[str, BaseRenderer] = {}
        self._lock = threading.Lock()

    def register(self, format_name: str, renderer: BaseRenderer) -> None:
        """Register a renderer for a format.

        Raises:
            ValueError: If the renderer declares a different format
        """
        key = format_name.lower()
        if renderer.format != key:
            raise ValueError(
                f"Renderer {type(renderer).__name__} produces '{renderer.format}' "
                f"and cannot be registered for '{key}'"
            )
        with self._lock:
            replaced = key in self._renderers
            self._renderers[key] = renderer
        logger.debug(f"{'Replaced' if replaced else 'Registered'} renderer for {key}")

    def unregister(self, format_name: str) -> bool:
        with self._lock:
            return self._renderers.pop(format_name.lower(), None) is not None

    def get(self, format_name: str) -> BaseRenderer:
        """Look up the renderer for a format.

        Raises:
            RendererNotFoundError: If no renderer is registered for the format
        """
        key = format_name.lower()
        with self._lock:
            renderer = self._renderers.get(key)
            available = sorted(self._renderers)
        if renderer is None:
            raise RendererNotFoundError(format_name, available)
        return renderer

    def is_registered(self, format_name: str) -> bool:
        with self._lock:
            return format_name.lower() in self._renderers

    def formats(self) -> List[str]:
        with self._lock:
            return sorted(self._renderers)

    def __len__(self) -> int:
        with self._lock:
            return len(self._renderers)


def default_renderer_classes() -> Dict[str, Type[BaseRenderer]]:
    """Map each built-in format to its renderer class."""
    from sprint_export.renderers.advanced_digest import AdvancedDigestRenderer
    from sprint_export.renderers.digest import DigestRenderer
    from sprint_export.renderers.executive import ExecutiveRenderer
    from sprint_export.renderers.html import HTMLRenderer
    from sprint_export.renderers.markdown import MarkdownRenderer
    from sprint_export.renderers.metrics import MetricsRenderer
    from sprint_export.renderers.pdf import PDFRenderer

    classes: List[Type[BaseRenderer]] = [
        PDFRenderer,
        HTMLRenderer,
        MarkdownRenderer,
        MetricsRenderer,
        ExecutiveRenderer,
        DigestRenderer,
        AdvancedDigestRenderer,
    ]
    return {renderer_class.format_name: renderer_class for renderer_class in classes}


def register_default_renderers(
    registry: RendererRegistry,
    config: Optional[RendererConfig] = None,
    formats: Optional[List[str]] = None,
) -> RendererRegistry:
    """Register the built-in renderers.

    Args:
        registry: Registry to populate
        config: Shared renderer collaborators (created if not provided)
        formats: Optional subset of formats to register

    Returns:
        The populated registry
    """
    config = config or RendererConfig()
    for format_name, renderer_class in default_renderer_classes().items():
        if formats is not None and format_name not in formats:
            continue
        registry.register(format_name, renderer_class(config))
    logger.info(f"Registered renderers: {', '.join(registry.formats())}")
    return registry


def create_registry(config: Optional[RendererConfig] = None) -> RendererRegistry:
    return register_default_renderers(RendererRegistry(), config)
