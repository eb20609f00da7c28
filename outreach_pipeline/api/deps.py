"""
API dependencies - shared across all routes.
"""
import secrets
from typing import Optional

from fastapi import Security
from fastapi.security import APIKeyHeader

from outreach_pipeline.config import settings
from outreach_pipeline.core.exceptions import raise_unauthorized


api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)


async def require_api_key(api_key: Optional[str] = Security(api_key_header)) -> str:
    """Reject requests without the configured X-API-Key."""
    if not api_key or not settings.API_KEY or not secrets.compare_digest(api_key, settings.API_KEY):
        raise_unauthorized()
    return api_key
