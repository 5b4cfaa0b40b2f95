"""
Shared CLI Option Decorators

Reusable Click decorators for the options several subcommands take.
"""

import click

from sprint_export.models import ExportFormat, QualityTier

from .help_texts import (
    CONFIG_HELP,
    INPUT_HELP,
    LOG_LEVEL_HELP,
    OUTPUT_DIR_HELP,
    QUALITY_HELP,
    REPORT_HELP,
)


def input_option(help=None):
    """Decorator for the export bundle option."""
    def decorator(f):
        return click.option(
            '--input', '-i',
            'input_path',
            required=True,
            type=click.Path(exists=True, dir_okay=False),
            help=help or INPUT_HELP
        )(f)
    return decorator


def quality_option(help=None):
    """Decorator for the quality tier option."""
    def decorator(f):
        return click.option(
            '--quality', '-q',
            default=QualityTier.MEDIUM.value,
            show_default=True,
            type=click.Choice(QualityTier.values(), case_sensitive=False),
            help=help or QUALITY_HELP
        )(f)
    return decorator


def format_choice(multiple: bool = False, help=None):
    """Decorator for the export format option."""
    def decorator(f):
        return click.option(
            '--format', '-f',
            'formats' if multiple else 'format_name',
            required=True,
            multiple=multiple,
            type=click.Choice(ExportFormat.values(), case_sensitive=False),
            help=help or 'Export format'
        )(f)
    return decorator


def output_dir_option(help=None):
    """Decorator for output directory options."""
    def decorator(f):
        return click.option(
            '--output-dir',
            default=None,
            type=click.Path(file_okay=False),
            help=help or OUTPUT_DIR_HELP
        )(f)
    return decorator


def config_option(help=None):
    """Decorator for configuration file options."""
    def decorator(f):
        return click.option(
            '--config',
            default=None,
            type=click.Path(exists=True, dir_okay=False),
            help=help or CONFIG_HELP
        )(f)
    return decorator


def log_level_option(help=None):
    """Decorator for logging level options."""
    def decorator(f):
        return click.option(
            '--log-level',
            default=None,
            type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR'], case_sensitive=False),
            help=help or LOG_LEVEL_HELP
        )(f)
    return decorator


def report_option(help=None):
    """Decorator for JSON report output."""
    def decorator(f):
        return click.option(
            '--report', '-r',
            'report_path',
            default=None,
            type=click.Path(dir_okay=False),
            help=help or REPORT_HELP
        )(f)
    return decorator
