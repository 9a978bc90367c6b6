"""Registration, login and logout endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from simcast.core.security import clear_session_cookie, current_user, session_token, set_session_cookie
from simcast.db.models import User
from simcast.db.session import get_session
from simcast.schema.user import LoginRequest, LogoutResponse, RegisterRequest, UserResponse
from simcast.services.accounts import AccountExistsError, InvalidCredentialsError, authenticate, register_user
from simcast.services.favorites import favorite_channel_names
from simcast.services.sessions import create_session, revoke_session

logger = logging.getLogger(__name__)

router = APIRouter(tags=["accounts"])


async def user_response(session: AsyncSession, user: User) -> UserResponse:
    return UserResponse(
        name=user.name,
        email=user.email,
        user_name=user.user_name,
        favorite_channels=await favorite_channel_names(session, user),
    )


@router.post("/register", response_model=UserResponse)
async def register(
    payload: RegisterRequest,
    response: Response,
    session: AsyncSession = Depends(get_session),
) -> UserResponse | JSONResponse:
    """Create an account and log it in.

    A duplicate account answers 400 with a bare ``[{"msg": ...}]`` list.
    """

    try:
        user = await register_user(
            session,
            name=payload.name,
            email=payload.email,
            user_name=payload.user_name,
            password=payload.password,
        )
    except AccountExistsError as exc:
        logger.info("Rejected duplicate registration", extra={"user_name": payload.user_name})
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=[{"msg": str(exc)}])

    record = await create_session(session, user)
    await session.commit()

    set_session_cookie(response, record.token)
    return await user_response(session, user)


@router.post("/login", response_model=UserResponse)
async def login(
    payload: LoginRequest,
    response: Response,
    session: AsyncSession = Depends(get_session),
) -> UserResponse:
    try:
        user = await authenticate(session, payload.user_name, payload.password)
    except InvalidCredentialsError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc)) from exc

    record = await create_session(session, user)
    await session.commit()

    set_session_cookie(response, record.token)
    return await user_response(session, user)


@router.get("/logout", response_model=LogoutResponse)
async def logout(
    request: Request,
    response: Response,
    session: AsyncSession = Depends(get_session),
) -> LogoutResponse:
    token = session_token(request)
    if token and await revoke_session(session, token):
        await session.commit()
    clear_session_cookie(response)
    return LogoutResponse(authenticated=False)


@router.get("/me", response_model=UserResponse)
async def me(
    user: User = Depends(current_user),
    session: AsyncSession = Depends(get_session),
) -> UserResponse:
    return await user_response(session, user)
