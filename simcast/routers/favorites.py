"""Favorite / unfavorite endpoints for the logged-in user."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from simcast.core.security import current_user
from simcast.db.models import User
from simcast.db.session import get_session
from simcast.schema.user import FavoriteRequest
from simcast.services.channel_directory import ChannelNotFoundError
from simcast.services.favorites import FavoriteNotFoundError, add_favorite, remove_favorite

router = APIRouter(tags=["favorites"])


@router.post("/favorite-channel", response_model=str)
async def favorite_channel(
    payload: FavoriteRequest,
    user: User = Depends(current_user),
    session: AsyncSession = Depends(get_session),
) -> str:
    try:
        await add_favorite(session, user, payload.channel)
    except ChannelNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc

    await session.commit()
    return payload.channel


@router.post("/remove-channel", response_model=str)
async def unfavorite_channel(
    payload: FavoriteRequest,
    user: User = Depends(current_user),
    session: AsyncSession = Depends(get_session),
) -> str:
    try:
        await remove_favorite(session, user, payload.channel)
    except (ChannelNotFoundError, FavoriteNotFoundError) as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc

    await session.commit()
    return payload.channel
