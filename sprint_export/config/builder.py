"""
Pipeline assembly.

Turns a PipelineConfig into a fully wired ExportOrchestrator with its
own cache, classifier, quality gate and renderer registry.
"""

import logging
from pathlib import Path
from typing import Optional

from sprint_export.analytics import InMemoryAnalyticsRecorder
from sprint_export.cache import ResultCache, get_strategy
from sprint_export.classifier import ErrorClassifier
from sprint_export.orchestrator import ExportOrchestrator
from sprint_export.quality import QualityGate
from sprint_export.renderers import (
    AssetEmbedder,
    RendererConfig,
    RendererRegistry,
    TemplateEngine,
    register_default_renderers,
)
from sprint_export.retry import SleepFunc

from .schema import MB, PipelineConfig


logger = logging.getLogger(__name__)


def build_renderer_config(config: PipelineConfig) -> RendererConfig:
    templates_dir = Path(config.templates_dir) if config.templates_dir else None
    return RendererConfig(
        template_engine=TemplateEngine(custom_templates_dir=templates_dir),
        asset_embedder=AssetEmbedder(
            timeout=config.assets.timeout,
            max_asset_bytes=int(config.assets.max_asset_mb * MB),
            local_root=config.assets.local_root,
            allowed_hosts=config.assets.allowed_hosts,
            max_cache_entries=config.assets.max_cache_entries,
            max_cache_bytes=int(config.assets.max_cache_mb * MB),
        ),
    )


def build_orchestrator(
    config: Optional[PipelineConfig] = None,
    registry: Optional[RendererRegistry] = None,
    sleep: Optional[SleepFunc] = None,
) -> ExportOrchestrator:
    """Wire every pipeline component from configuration.

    Args:
        config: Pipeline configuration (defaults when omitted)
        registry: Pre-populated registry; the built-in renderers are
            registered into a fresh one when omitted
        sleep: Optional backoff sleep override

    Raises:
        ValueError: If the configuration is invalid
    """
    config = config or PipelineConfig()
    errors = config.validate()
    if errors:
        raise ValueError("Invalid configuration:\n" + "\n".join(f"  - {error}" for error in errors))

    if registry is None:
        registry = RendererRegistry()
        register_default_renderers(registry, build_renderer_config(config))

    cache = ResultCache(config.cache.to_cache_config(), strategy=get_strategy(config.cache.strategy))
    analytics = InMemoryAnalyticsRecorder(max_events=config.analytics.max_events) if config.analytics.enabled else None

    orchestrator = ExportOrchestrator(
        registry=registry,
        cache=cache,
        classifier=ErrorClassifier(),
        quality_gate=QualityGate(config.quality.to_gate_config()),
        analytics=analytics,
        strategy=config.retry.to_strategy(),
        sleep=sleep,
    )
    logger.debug(f"Pipeline built with formats: {', '.join(registry.formats())}")
    return orchestrator
