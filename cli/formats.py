"""
Formats Subcommand Module

Lists the formats the default renderer registry provides.
"""

import click

from sprint_export.models import QualityTier
from sprint_export.renderers import create_registry

from .help_texts import FORMATS_HELP


@click.command(help=FORMATS_HELP)
def formats():
    """List export formats with their file type."""
    registry = create_registry()
    click.echo("Available formats:")
    for format_name in registry.formats():
        renderer = registry.get(format_name)
        click.echo(f"  {format_name:<16} .{renderer.extension:<5} {renderer.mime_type}")
    click.echo(f"\nQuality tiers: {', '.join(QualityTier.values())}")
