"""
API key check for internal endpoints (manual refresh, cache clear).

When INTERNAL_API_KEY is configured, callers must send it in the X-API-Key
header (or api_key query parameter). When it is not configured the internal
endpoints are open, which is the local-development default.
"""
from __future__ import annotations
import hmac
from typing import Optional
from fastapi import HTTPException, Security
from fastapi.security import APIKeyHeader, APIKeyQuery

from linewatch.config import settings
from linewatch.utils.logging import get_logger

logger = get_logger(__name__)

API_KEY_HEADER_NAME = "X-API-Key"
API_KEY_QUERY_NAME = "api_key"

api_key_header = APIKeyHeader(name=API_KEY_HEADER_NAME, auto_error=False)
api_key_query = APIKeyQuery(name=API_KEY_QUERY_NAME, auto_error=False)


def verify_api_key(api_key: Optional[str], expected: Optional[str]) -> bool:
    """
    Compare a presented key with the configured one.

    Args:
        api_key: Key sent by the caller
        expected: Configured key; None disables the check

    Returns:
        True if the request may proceed
    """
    if not expected:
        return True
    if not api_key:
        return False
    return hmac.compare_digest(api_key, expected)


async def require_internal_api_key(
    header_key: Optional[str] = Security(api_key_header),
    query_key: Optional[str] = Security(api_key_query),
) -> Optional[str]:
    """
    FastAPI dependency guarding internal endpoints.

    Raises:
        HTTPException: 401 if the key is missing, 403 if it does not match
    """
    expected = settings.internal_api_key
    api_key = header_key or query_key

    if expected and not api_key:
        raise HTTPException(
            status_code=401,
            detail="API key required. Provide via X-API-Key header or api_key query parameter.",
        )
    if not verify_api_key(api_key, expected):
        logger.warning("Rejected internal request with invalid API key")
        raise HTTPException(status_code=403, detail="Invalid API key")

    return api_key
