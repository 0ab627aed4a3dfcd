"""
Tenant resolution at the API boundary.

Authentication lives in an external service; requests arrive with a
bearer token it issued. We only verify the signature and read the
tenant_id claim. Everything downstream is scoped to that tenant.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
import structlog
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from tablebook.core.config import get_settings
from tablebook.core.errors import AuthInvalidError, AuthRequiredError, TenantNotFoundError

settings = get_settings()
bearer_scheme = HTTPBearer(auto_error=False)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Issue a token the way the auth service does. Used by tests and load scripts."""
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode["exp"] = expire
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> dict:
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except jwt.PyJWTError as exc:
        raise AuthInvalidError() from exc


async def get_current_tenant_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> str:
    if credentials is None or not credentials.credentials:
        raise AuthRequiredError()

    payload = decode_access_token(credentials.credentials)
    tenant_id = payload.get("tenant_id")
    if not tenant_id:
        raise TenantNotFoundError()

    structlog.contextvars.bind_contextvars(tenant_id=str(tenant_id))
    return str(tenant_id)
