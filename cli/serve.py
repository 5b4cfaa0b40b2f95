"""
Serve Subcommand Module

Runs the REST API in-process with uvicorn. Host, port and the other API
settings default to the SPRINT_EXPORT_API_* environment variables.
"""

import logging
import sys
from typing import Optional

import click
import uvicorn

from api.config import APIConfig

from .help_texts import SERVE_HELP, ExitCodes
from .shared_options import config_option, log_level_option


logger = logging.getLogger(__name__)


@click.command(help=SERVE_HELP)
@click.option("--host", default=None, help="Interface to bind (default: SPRINT_EXPORT_API_HOST or 127.0.0.1)")
@click.option("--port", default=None, type=int, help="Port to bind (default: SPRINT_EXPORT_API_PORT or 8000)")
@click.option("--image-host", "image_hosts", multiple=True,
              help="Host slide images may be fetched from. Repeat for several hosts")
@config_option()
@log_level_option()
def serve(
    host: Optional[str],
    port: Optional[int],
    image_hosts: tuple,
    config: Optional[str],
    log_level: Optional[str],
):
    """Run the export API.

    Examples:
        # Local development server
        sprint-export serve --port 8080

        # Allow slide images from the corporate CDN
        sprint-export serve --image-host cdn.example.com
    """
    api_config = APIConfig.load()
    if host:
        api_config.host = host
    if port:
        api_config.port = port
    if image_hosts:
        api_config.image_hosts = list(image_hosts)
    if config:
        api_config.config_file = config

    try:
        from api.app import create_app

        application = create_app(config=api_config)
    except ValueError as e:
        click.echo(f"\n❌ Configuration Error: {e}", err=True)
        sys.exit(ExitCodes.INVALID_CONFIGURATION)

    logger.info(f"Serving Sprint Export API on http://{api_config.host}:{api_config.port}")
    uvicorn.run(
        application,
        host=api_config.host,
        port=api_config.port,
        log_level=(log_level or "info").lower(),
    )
