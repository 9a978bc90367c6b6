"""API endpoints exposing the tracked channel directory."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from simcast.db.session import get_session
from simcast.schema.channel import ChannelResponse
from simcast.services.channel_directory import list_channels

router = APIRouter(tags=["channels"])


@router.get("/channel-names", response_model=list[ChannelResponse])
async def list_channel_names(session: AsyncSession = Depends(get_session)) -> list[ChannelResponse]:
    channels = await list_channels(session)
    return [
        ChannelResponse(
            short_name=channel.short_name,
            name=channel.name,
            youtube_id=channel.youtube_id,
            favorites=channel.favorites,
            category=channel.category,
        )
        for channel in channels
    ]
