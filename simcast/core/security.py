"""Request-scoped identification of the calling user."""

from __future__ import annotations

from fastapi import Depends, HTTPException, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from simcast.core.config import settings
from simcast.db.models import User
from simcast.db.session import get_session
from simcast.services.sessions import resolve_session


def session_token(request: Request) -> str | None:
    """Read the session token from the cookie, or from an ``Authorization: Bearer`` header."""

    token = request.cookies.get(settings.session_cookie_name)
    if token:
        return token
    header = request.headers.get("authorization", "")
    scheme, _, credentials = header.partition(" ")
    if scheme.lower() == "bearer" and credentials.strip():
        return credentials.strip()
    return None


def set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        settings.session_cookie_name,
        token,
        max_age=settings.session_ttl_minutes * 60,
        httponly=True,
        samesite="lax",
        secure=settings.session_cookie_secure,
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(settings.session_cookie_name)


async def current_user(
    request: Request,
    response: Response,
    session: AsyncSession = Depends(get_session),
) -> User:
    """Resolve the session token into a user, refreshing its expiry, or answer 401."""

    token = session_token(request)
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")

    user = await resolve_session(session, token)
    await session.commit()
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Session expired")

    set_session_cookie(response, token)
    return user
