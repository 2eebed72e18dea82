"""API key authentication for users."""

import secrets
from dataclasses import dataclass
from datetime import datetime, UTC

import bcrypt
import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from agentchat.models import UserAPIKey

logger = structlog.get_logger()

KEY_PREFIX = "ak"
# "ak_" plus the first characters of the random part, stored for lookup
LOOKUP_LENGTH = 11


@dataclass(frozen=True)
class SessionUser:
    """The signed-in user of a request."""

    id: str
    email: str
    is_admin: bool = False


class AuthService:
    """Issues and verifies user API keys."""

    @staticmethod
    def generate_api_key() -> tuple[str, str, str]:
        """
        Generate a new API key.

        Returns:
            Tuple of (full_key, key_prefix, key_hash)
        """
        full_key = f"{KEY_PREFIX}_{secrets.token_urlsafe(32)}"
        key_hash = bcrypt.hashpw(full_key.encode(), bcrypt.gensalt()).decode()
        return full_key, full_key[:LOOKUP_LENGTH], key_hash

    async def verify_api_key(self, session: AsyncSession, api_key: str) -> SessionUser | None:
        """
        Verify an API key.

        Args:
            session: Database session
            api_key: Key as presented by the client

        Returns:
            SessionUser if valid, None otherwise
        """
        if not api_key.startswith(f"{KEY_PREFIX}_") or len(api_key) <= LOOKUP_LENGTH:
            return None

        prefix = api_key[:LOOKUP_LENGTH]
        result = await session.execute(
            select(UserAPIKey)
            .options(selectinload(UserAPIKey.user))
            .where(UserAPIKey.key_prefix == prefix, UserAPIKey.is_active)
        )

        for key_record in result.scalars().all():
            if bcrypt.checkpw(api_key.encode(), key_record.key_hash.encode()):
                key_record.last_used_at = datetime.now(UTC)
                await session.flush()
                user = key_record.user
                logger.info("api_key_verified", user_id=user.id, key_name=key_record.name)
                return SessionUser(id=user.id, email=user.email, is_admin=bool(user.is_admin))

        logger.warning("api_key_invalid", prefix=prefix)
        return None

    async def create_api_key(
        self,
        session: AsyncSession,
        user_id: str,
        name: str,
    ) -> tuple[str, UserAPIKey]:
        """
        Create a new API key for a user.

        Returns:
            Tuple of (api_key, UserAPIKey record). The full key is only
            available here.
        """
        api_key, prefix, key_hash = self.generate_api_key()
        record = UserAPIKey(
            user_id=user_id,
            name=name,
            key_prefix=prefix,
            key_hash=key_hash,
            is_active=True,
        )
        session.add(record)
        await session.flush()

        logger.info("api_key_created", user_id=user_id, key_name=name)
        return api_key, record

    async def revoke_api_key(self, session: AsyncSession, key_id: str, user_id: str) -> bool:
        """
        Revoke one of the user's API keys.

        Returns:
            True if revoked, False if not found
        """
        result = await session.execute(
            select(UserAPIKey).where(UserAPIKey.id == key_id, UserAPIKey.user_id == user_id)
        )
        record = result.scalar_one_or_none()
        if not record:
            return False

        record.is_active = False
        await session.flush()
        logger.info("api_key_revoked", key_id=key_id, user_id=user_id)
        return True


_auth_service = AuthService()


def get_auth_service() -> AuthService:
    return _auth_service
