"""
Session token lifecycle and role checks.

A session token is a signed JWT that is only honoured while its exact string
is still listed in the owner's `tokens`. Removing it from the list logs that
session out; clearing the list logs out everywhere. Tokens issued before the
user's last password change are rejected even if still listed.

All verification failures raise the same Unauthenticated error so callers
cannot tell a malformed token from a revoked one.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional, Tuple

from pydantic import BaseModel

from bootcamp_api.auth.utils import (
    create_access_token,
    decode_access_token,
    generate_reset_token,
    hash_password,
    hash_reset_token,
    verify_password,
)
from bootcamp_api.config import get_settings
from bootcamp_api.errors import Forbidden, InvalidOrExpiredToken, Unauthenticated
from bootcamp_api.models.user import Role, TokenData, UserInDB
from bootcamp_api.services.firestore import FirestoreService

settings = get_settings()
logger = logging.getLogger(__name__)


class AuthenticatedSession(BaseModel):
    """A verified user together with the raw token that proved it."""
    user: UserInDB
    token: str


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def changed_password_after(user: UserInDB, issued_at: datetime) -> bool:
    if user.password_changed_at is None:
        return False
    return _as_utc(issued_at) < _as_utc(user.password_changed_at)


class SessionAuthenticator:
    """Issues, verifies and revokes session tokens for users."""

    def __init__(self, firestore: Optional[FirestoreService] = None):
        self.firestore = firestore or FirestoreService()

    def _is_stale(self, token: str, user: UserInDB) -> bool:
        data: Optional[TokenData] = decode_access_token(token)
        return data is None or changed_password_after(user, data.issued_at)

    async def issue_token(self, user: UserInDB) -> str:
        """
        Sign a new token for the user and add it to their active tokens.

        Expired tokens and tokens older than the last password change are
        pruned from the list at the same time.
        """
        token = create_access_token(user.id)
        stale = [t for t in user.tokens if self._is_stale(t, user)]

        await self.firestore.add_session_token(user.id, token, prune=stale)

        user.tokens = [t for t in user.tokens if t not in stale] + [token]
        return token

    async def verify(self, token: Optional[str]) -> AuthenticatedSession:
        """Resolve a raw token to its user or raise Unauthenticated."""
        if not token:
            raise Unauthenticated()

        data = decode_access_token(token)
        if data is None:
            logger.debug("Rejected token: bad signature or expired")
            raise Unauthenticated()

        user = await self.firestore.get_user_by_id(data.user_id)
        if user is None or token not in user.tokens:
            logger.debug("Rejected token: not active for user %s", data.user_id)
            raise Unauthenticated()

        if changed_password_after(user, data.issued_at):
            logger.debug("Rejected token: issued before password change for user %s", user.id)
            raise Unauthenticated()

        return AuthenticatedSession(user=user, token=token)

    async def revoke(self, user: UserInDB, token: str) -> None:
        """Log one session out. Unknown tokens are ignored."""
        await self.firestore.remove_session_token(user.id, token)
        user.tokens = [t for t in user.tokens if t != token]
        logger.info("Revoked one session for user %s", user.id)

    async def revoke_all(self, user: UserInDB) -> None:
        await self.firestore.clear_session_tokens(user.id)
        user.tokens = []
        logger.info("Revoked all sessions for user %s", user.id)

    @staticmethod
    def authorize(user: UserInDB, allowed_roles: Iterable[str]) -> None:
        """Raise Forbidden unless the user's role is allowed."""
        if Role(user.role) not in {Role(role) for role in allowed_roles}:
            raise Forbidden()

    async def authenticate(self, email: str, password: str) -> UserInDB:
        """Check login credentials."""
        user = await self.firestore.get_user_by_email(email)
        if user is None or not verify_password(password, user.password_hash):
            logger.info("Failed login attempt")
            raise Unauthenticated("Incorrect email or password")
        return user

    async def begin_password_reset(self, user: UserInDB) -> str:
        """
        Create a reset token.

        Only the sha256 of the token is stored; the raw value is returned for
        delivery to the user and is valid for a fixed window.
        """
        raw_token = generate_reset_token()
        expires_at = datetime.now(timezone.utc) + timedelta(
            minutes=settings.password_reset_expire_minutes
        )
        await self.firestore.set_password_reset(user.id, hash_reset_token(raw_token), expires_at)
        return raw_token

    async def cancel_password_reset(self, user: UserInDB) -> None:
        await self.firestore.clear_password_reset(user.id)

    async def _replace_password(self, user_id: str, new_password: str) -> Tuple[UserInDB, str]:
        await self.firestore.set_password(
            user_id, hash_password(new_password), datetime.now(timezone.utc)
        )
        user = await self.firestore.get_user_by_id(user_id)
        token = await self.issue_token(user)
        return user, token

    async def complete_password_reset(
        self, raw_token: str, new_password: str
    ) -> Tuple[UserInDB, str]:
        """Consume a reset token and set a new password; returns a fresh session."""
        user = await self.firestore.get_user_by_reset_token(hash_reset_token(raw_token))
        if user is None:
            raise InvalidOrExpiredToken()

        logger.info("Password reset completed for user %s", user.id)
        return await self._replace_password(user.id, new_password)

    async def change_password(
        self, user: UserInDB, current_password: str, new_password: str
    ) -> Tuple[UserInDB, str]:
        """Change password for a logged-in user; returns a fresh session."""
        if not verify_password(current_password, user.password_hash):
            raise Unauthenticated("Your current password is wrong!")

        return await self._replace_password(user.id, new_password)
