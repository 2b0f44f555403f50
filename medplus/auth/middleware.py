"""Service-role bearer authentication for admin endpoints."""

import hashlib
import hmac
from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import APIKeyHeader

from medplus.config import Settings
from medplus.api.deps import get_settings

API_KEY_HEADER = APIKeyHeader(name="Authorization", auto_error=False)


def _digest(key: str) -> bytes:
    return hashlib.sha256(key.encode()).digest()


async def require_service_key(
    cfg: Annotated[Settings, Depends(get_settings)],
    auth_header: str | None = Depends(API_KEY_HEADER),
) -> None:
    """Only callers holding the service-role key may use admin endpoints."""
    expected = cfg.get_credentials().require().service_role_key
    if not auth_header or not auth_header.startswith("Bearer "):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing or invalid Authorization header",
        )
    api_key = auth_header[7:].strip()
    if not api_key:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing API key",
        )
    if not hmac.compare_digest(_digest(api_key), _digest(expected)):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid API key",
        )


ServiceKeyDep = Depends(require_service_key)
