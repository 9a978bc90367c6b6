"""Opaque session tokens mapped to users, with rolling expiry."""

from __future__ import annotations

import logging
import secrets
from datetime import datetime, timedelta, timezone

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from simcast.core.config import settings
from simcast.db.models import User, UserSession

logger = logging.getLogger(__name__)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _ttl() -> timedelta:
    return timedelta(minutes=settings.session_ttl_minutes)


async def create_session(session: AsyncSession, user: User, *, now: datetime | None = None) -> UserSession:
    now = now or datetime.now(timezone.utc)
    record = UserSession(
        token=secrets.token_urlsafe(32),
        user_id=user.id,
        created_at=now,
        expires_at=now + _ttl(),
    )
    session.add(record)
    await session.flush()
    return record


async def resolve_session(session: AsyncSession, token: str, *, now: datetime | None = None) -> User | None:
    """Return the user behind a token, extending its expiry; expired tokens are deleted."""

    now = now or datetime.now(timezone.utc)
    record = await session.scalar(select(UserSession).where(UserSession.token == token))
    if record is None:
        return None

    if _as_utc(record.expires_at) <= now:
        logger.info("Session expired", extra={"user_id": record.user_id})
        await session.delete(record)
        await session.flush()
        return None

    record.expires_at = now + _ttl()
    await session.flush()
    return await session.get(User, record.user_id)


async def revoke_session(session: AsyncSession, token: str) -> bool:
    result = await session.execute(delete(UserSession).where(UserSession.token == token))
    return bool(result.rowcount)
