"""X-API-Key check for the export and statistics routes."""

import logging
import secrets
from typing import Optional

from fastapi import Header, HTTPException, Request

from api.config import APIConfig


logger = logging.getLogger(__name__)


async def verify_api_key(
    request: Request,
    x_api_key: Optional[str] = Header(None),
) -> Optional[str]:
    """Reject the request unless it carries the application's API key.

    The key comes from the APIConfig the application was built with; when
    it has none, every request is let through.
    """
    config: APIConfig = request.app.state.api_config
    if not config.api_key:
        return None
    if not x_api_key or not secrets.compare_digest(x_api_key, config.api_key):
        logger.warning(f"Rejected {request.method} {request.url.path}: invalid or missing API key")
        raise HTTPException(status_code=401, detail="Invalid or missing API key")
    return x_api_key
