"""
Session Service — resolves the caller's tenant and LinkedIn credential.

The login flow (outside this service) stores each member in the users table
with an encrypted access token and issues a JWT whose subject is the user ID.
This module only verifies that JWT and loads the credential.
"""

import logging
import uuid
from dataclasses import dataclass
from typing import Optional

from jose import JWTError, jwt
from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from bidder.crypto import decrypt_value
from bidder.errors import StorageError
from bidder.models import User

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"


@dataclass(frozen=True)
class TenantSession:
    tenant_id: Optional[str]
    access_token: Optional[str]

    @property
    def authenticated(self) -> bool:
        return bool(self.tenant_id and self.access_token)


ANONYMOUS = TenantSession(tenant_id=None, access_token=None)


def decode_session_token(token: str, secret: str) -> Optional[str]:
    """User ID from a session JWT, or None if the token is invalid or expired."""
    try:
        payload = jwt.decode(token, secret, algorithms=[ALGORITHM])
    except JWTError:
        return None
    user_id = payload.get("sub") or payload.get("userId")
    return str(user_id) if user_id else None


class SessionDirectory:
    """Multi-tenant lookup of users by session token."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession], secret: str):
        self.session_factory = session_factory
        self.secret = secret

    async def resolve(self, token: str) -> TenantSession:
        user_id = decode_session_token(token, self.secret)
        if not user_id:
            return ANONYMOUS
        try:
            key = uuid.UUID(user_id)
        except ValueError:
            return ANONYMOUS
        try:
            async with self.session_factory() as db:
                result = await db.execute(select(User).where(User.id == key))
                user = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error(f"Error loading session user: {e}")
            return ANONYMOUS
        if not user:
            return ANONYMOUS
        return TenantSession(tenant_id=str(user.id), access_token=decrypt_value(user.access_token))

    async def forget(self, tenant_id: str) -> None:
        """Delete the user row behind a tenant."""
        try:
            key = uuid.UUID(tenant_id)
        except ValueError:
            return
        try:
            async with self.session_factory() as db:
                await db.execute(delete(User).where(User.id == key))
                await db.commit()
        except SQLAlchemyError as e:
            logger.error(f"Error deleting user {tenant_id}: {e}")
            raise StorageError("Failed to delete user") from e
