"""
Authentication dependencies for FastAPI.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, Request, Response
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from bootcamp_api.auth.session import AuthenticatedSession, SessionAuthenticator
from bootcamp_api.config import get_settings
from bootcamp_api.models.user import Role, UserInDB

settings = get_settings()

AUTH_COOKIE_NAME = "authToken"

# HTTP Bearer token scheme; the session cookie is the fallback
security = HTTPBearer(auto_error=False)


def get_request_token(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials],
) -> Optional[str]:
    """Bearer header first, then the authToken cookie."""
    if credentials is not None and credentials.credentials:
        return credentials.credentials
    return request.cookies.get(AUTH_COOKIE_NAME)


def is_secure_request(request: Request) -> bool:
    return (
        request.url.scheme == "https"
        or request.headers.get("x-forwarded-proto", "").lower() == "https"
    )


def set_auth_cookie(request: Request, response: Response, token: str) -> None:
    response.set_cookie(
        key=AUTH_COOKIE_NAME,
        value=token,
        httponly=True,
        secure=is_secure_request(request),
        expires=datetime.now(timezone.utc) + timedelta(days=settings.cookie_expire_days),
        path="/",
    )


def clear_auth_cookie(response: Response) -> None:
    response.delete_cookie(AUTH_COOKIE_NAME, path="/", httponly=True)


async def get_current_session(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> AuthenticatedSession:
    """
    Dependency to resolve the caller's session from bearer token or cookie.
    Raises Unauthenticated (401) for anything that is not an active session.
    """
    token = get_request_token(request, credentials)
    return await SessionAuthenticator().verify(token)


async def get_current_user(
    session: AuthenticatedSession = Depends(get_current_session),
) -> UserInDB:
    """
    Dependency to get the current authenticated user.
    """
    return session.user


def restrict_to(*roles: Role):
    """Dependency factory that allows only the given roles (403 otherwise)."""

    async def dependency(user: UserInDB = Depends(get_current_user)) -> UserInDB:
        SessionAuthenticator.authorize(user, roles)
        return user

    return dependency


def is_owner_or_admin(user: UserInDB, owner_id: str) -> bool:
    return user.id == owner_id or user.role == Role.ADMIN
