"""Lookups over the tracked channel catalog."""

from __future__ import annotations

from collections.abc import Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from simcast.db.models import Channel


class ChannelNotFoundError(LookupError):
    """Raised when a named channel is not present in the directory."""

    def __init__(self, short_name: str) -> None:
        super().__init__(f"Channel not found: {short_name}")
        self.short_name = short_name


async def list_channels(session: AsyncSession) -> Sequence[Channel]:
    """Return all tracked channels ordered by internal name."""

    result = await session.scalars(select(Channel).order_by(Channel.short_name))
    return list(result)


async def get_channel_by_name(session: AsyncSession, short_name: str) -> Channel | None:
    return await session.scalar(select(Channel).where(Channel.short_name == short_name))


async def resolve_channels(session: AsyncSession, channel_name: str | None = None) -> list[Channel]:
    """Return the channels an aggregation should fan out over.

    Without a name every tracked channel is returned in directory (insertion) order.
    With a name the single matching channel is returned, or ChannelNotFoundError is
    raised so callers can fail before touching the upstream API.
    """

    if channel_name is None:
        result = await session.scalars(select(Channel).order_by(Channel.id))
        return list(result)

    channel = await get_channel_by_name(session, channel_name)
    if channel is None:
        raise ChannelNotFoundError(channel_name)
    return [channel]


async def upsert_channel(
    session: AsyncSession,
    *,
    short_name: str,
    name: str,
    youtube_id: str,
    category: str | None = None,
) -> Channel:
    """Create or update a channel record; the favorite counter is left untouched."""

    channel = await get_channel_by_name(session, short_name)
    if channel:
        channel.name = name
        channel.youtube_id = youtube_id
        channel.category = category
        return channel

    channel = Channel(short_name=short_name, name=name, youtube_id=youtube_id, category=category, favorites=0)
    session.add(channel)
    await session.flush()
    return channel
