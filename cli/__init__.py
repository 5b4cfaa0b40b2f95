"""
CLI Package for Sprint Export

Click group with one module per subcommand. The cli() function serves as
the console script entry point for setup.py.
"""

import os

import click
from dotenv import load_dotenv

from sprint_export import __version__
from sprint_export.utils.logging_config import configure_logging

# Load environment variables from .env files
# Priority: .env.dev (if exists) overrides .env
if os.path.exists('.env.dev'):
    load_dotenv('.env.dev')
elif os.path.exists('.env'):
    load_dotenv('.env')

from .export import export
from .formats import formats
from .serve import serve
from .validate import validate_result

# Configure logging when CLI package is imported
configure_logging(os.environ.get("SPRINT_EXPORT_LOG_LEVEL", "info"))


@click.group()
@click.version_option(version=__version__, prog_name='sprint-export')
def main():
    """Sprint Export CLI - Render sprint review presentations.

    Exports a generated sprint review deck to PDF, HTML, Markdown, metrics
    dashboards, executive summaries and PDF digests, with caching, retries
    and a quality gate on every artifact.
    """
    pass


# Register subcommands
main.add_command(export)
main.add_command(formats)
main.add_command(validate_result)
main.add_command(serve)


# Entry point for setup.py console script
def cli():
    """Console script entry point."""
    main()
