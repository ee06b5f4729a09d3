"""
Authentication — resolves who is calling and with which LinkedIn credential.

- Multi-tenant (DATABASE_URL + JWT_SECRET): session JWT from the auth cookie or
  Authorization: Bearer <jwt>. Unknown or invalid tokens resolve to an
  anonymous session.
- Single-tenant: a fixed tenant ID and LINKEDIN_ACCESS_TOKEN from settings.
"""

import logging
from typing import Optional
from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from bidder.config import get_settings
from bidder.errors import AuthError
from bidder.services.session_service import ANONYMOUS, TenantSession
from bidder.stores import get_session_directory

logger = logging.getLogger(__name__)

_bearer_scheme = HTTPBearer(auto_error=False)


def _session_token(request: Request, credentials: Optional[HTTPAuthorizationCredentials]) -> Optional[str]:
    settings = get_settings()
    token = request.cookies.get(settings.auth_cookie_name)
    if token:
        return token
    if credentials:
        return credentials.credentials
    return None


async def get_tenant_session(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
) -> TenantSession:
    settings = get_settings()
    if not settings.multi_tenant:
        return TenantSession(
            tenant_id=settings.default_tenant_id,
            access_token=settings.linkedin_access_token or None,
        )

    directory = get_session_directory()
    token = _session_token(request, credentials)
    if not token or directory is None:
        return ANONYMOUS
    return await directory.resolve(token)


async def require_tenant(session: TenantSession = Depends(get_tenant_session)) -> TenantSession:
    """Require a resolved tenant. Raises AuthError (401) for anonymous callers."""
    if not session.tenant_id:
        raise AuthError("Not authenticated. Sign in again.")
    return session
