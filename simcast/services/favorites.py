"""Favorite channel bookkeeping for users."""

from __future__ import annotations

import logging

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from simcast.db.models import Channel, User, UserFavorite
from simcast.services.channel_directory import ChannelNotFoundError, get_channel_by_name

logger = logging.getLogger(__name__)


class FavoriteNotFoundError(LookupError):
    """Raised when removing a channel the user has not favorited."""


async def _require_channel(session: AsyncSession, channel_name: str) -> Channel:
    channel = await get_channel_by_name(session, channel_name)
    if channel is None:
        raise ChannelNotFoundError(channel_name)
    return channel


async def _adjust_counter(session: AsyncSession, channel: Channel, delta: int) -> int:
    await session.execute(
        update(Channel)
        .where(Channel.id == channel.id)
        .values(favorites=Channel.favorites + delta)
        .execution_options(synchronize_session=False)
    )
    await session.refresh(channel, attribute_names=["favorites"])
    return channel.favorites


async def add_favorite(session: AsyncSession, user: User, channel_name: str) -> int:
    """Append the channel to the user's favorites and bump its counter.

    Both writes are flushed in the caller's transaction; commit once afterwards.
    Returns the channel's new favorite count.
    """

    channel = await _require_channel(session, channel_name)
    session.add(UserFavorite(user_id=user.id, channel_id=channel.id))
    await session.flush()
    count = await _adjust_counter(session, channel, 1)
    logger.info("Channel favorited", extra={"user_id": user.id, "channel": channel_name, "favorites": count})
    return count


async def remove_favorite(session: AsyncSession, user: User, channel_name: str) -> int:
    """Drop one occurrence of the channel from the user's favorites and decrement its counter."""

    channel = await _require_channel(session, channel_name)
    favorite = await session.scalar(
        select(UserFavorite)
        .where(UserFavorite.user_id == user.id, UserFavorite.channel_id == channel.id)
        .order_by(UserFavorite.id)
        .limit(1)
    )
    if favorite is None:
        raise FavoriteNotFoundError(f"{channel_name} is not in the user's favorites")

    await session.delete(favorite)
    await session.flush()
    count = await _adjust_counter(session, channel, -1)
    logger.info("Channel unfavorited", extra={"user_id": user.id, "channel": channel_name, "favorites": count})
    return count


async def favorite_channel_names(session: AsyncSession, user: User) -> list[str]:
    """Return the user's favorites as channel internal names, oldest first, duplicates kept."""

    result = await session.scalars(
        select(Channel.short_name)
        .join(UserFavorite, UserFavorite.channel_id == Channel.id)
        .where(UserFavorite.user_id == user.id)
        .order_by(UserFavorite.id)
    )
    return list(result)
