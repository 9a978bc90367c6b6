"""Live, upcoming and past broadcast endpoints backed by the YouTube Data API."""

from __future__ import annotations

import logging
from typing import Any

import httpx
from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from simcast.core.config import settings
from simcast.db.models import Channel
from simcast.db.session import get_session
from simcast.schema.broadcast import BroadcastResponse, ChannelUpcomingRequest, ChannelVideosRequest
from simcast.services.broadcasts import (
    AggregationResult,
    collect_live_broadcasts,
    collect_upcoming_broadcasts,
    list_channel_videos,
)
from simcast.services.channel_directory import ChannelNotFoundError, resolve_channels
from simcast.services.youtube_api import UpstreamError, get_youtube_client

logger = logging.getLogger(__name__)

router = APIRouter(tags=["broadcasts"])

PARTIAL_HEADER = "X-Partial-Results"


def _upstream_failure() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_502_BAD_GATEWAY,
        detail="YouTube API request failed; please retry",
    )


def _mark_partial(response: Response, result: AggregationResult[Any]) -> None:
    if result.partial:
        logger.warning("Returning partial aggregation", extra={"failures": len(result.failures)})
        response.headers[PARTIAL_HEADER] = "true"


async def _scoped_channel(session: AsyncSession, channel_name: str) -> Channel:
    try:
        [channel] = await resolve_channels(session, channel_name)
    except ChannelNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return channel


@router.get("/live", response_model=list[Any])
async def live_broadcasts(
    response: Response,
    session: AsyncSession = Depends(get_session),
    client: httpx.AsyncClient = Depends(get_youtube_client),
) -> list[Any]:
    """Raw live search results, one element per tracked channel."""

    channels = await resolve_channels(session)
    try:
        result = await collect_live_broadcasts(client, channels)
    except UpstreamError as exc:
        raise _upstream_failure() from exc
    _mark_partial(response, result)
    return result.items


@router.get("/upcoming", response_model=list[BroadcastResponse])
async def upcoming_broadcasts(
    response: Response,
    session: AsyncSession = Depends(get_session),
    client: httpx.AsyncClient = Depends(get_youtube_client),
) -> list[BroadcastResponse]:
    channels = await resolve_channels(session)
    try:
        result = await collect_upcoming_broadcasts(client, channels, limit=settings.upcoming_bulk_limit)
    except UpstreamError as exc:
        raise _upstream_failure() from exc
    _mark_partial(response, result)
    return [BroadcastResponse.from_detail(detail) for detail in result.items]


@router.post("/channel-upcoming", response_model=list[BroadcastResponse])
async def channel_upcoming_broadcasts(
    payload: ChannelUpcomingRequest,
    response: Response,
    session: AsyncSession = Depends(get_session),
    client: httpx.AsyncClient = Depends(get_youtube_client),
) -> list[BroadcastResponse]:
    channel = await _scoped_channel(session, payload.channel_name)
    try:
        result = await collect_upcoming_broadcasts(client, [channel], limit=settings.upcoming_channel_limit)
    except UpstreamError as exc:
        raise _upstream_failure() from exc
    _mark_partial(response, result)
    return [BroadcastResponse.from_detail(detail) for detail in result.items]


@router.post("/channel-videos")
async def channel_videos(
    payload: ChannelVideosRequest,
    session: AsyncSession = Depends(get_session),
    client: httpx.AsyncClient = Depends(get_youtube_client),
) -> Any:
    """Pass through one page of the channel's completed broadcasts."""

    channel = await _scoped_channel(session, payload.channel_name)
    try:
        return await list_channel_videos(client, channel, page_token=payload.next_page_token)
    except UpstreamError as exc:
        raise _upstream_failure() from exc
