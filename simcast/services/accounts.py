"""User registration and credential checks."""

from __future__ import annotations

import hashlib
import hmac
import logging
import secrets

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from simcast.db.models import User

logger = logging.getLogger(__name__)

_SCRYPT_N = 2**14
_SCRYPT_R = 8
_SCRYPT_P = 1


class AccountExistsError(ValueError):
    """Raised when registering an email or user name that is already taken."""


class InvalidCredentialsError(ValueError):
    """Raised when a login attempt does not match a stored account."""


def hash_password(password: str, *, salt: bytes | None = None) -> str:
    salt = salt or secrets.token_bytes(16)
    digest = hashlib.scrypt(password.encode(), salt=salt, n=_SCRYPT_N, r=_SCRYPT_R, p=_SCRYPT_P)
    return f"scrypt${salt.hex()}${digest.hex()}"


def verify_password(password: str, stored: str) -> bool:
    try:
        scheme, salt_hex, digest_hex = stored.split("$", 2)
        salt = bytes.fromhex(salt_hex)
    except ValueError:
        return False
    if scheme != "scrypt":
        return False
    candidate = hash_password(password, salt=salt).rsplit("$", 1)[-1]
    return hmac.compare_digest(candidate, digest_hex)


async def get_user_by_user_name(session: AsyncSession, user_name: str) -> User | None:
    return await session.scalar(select(User).where(User.user_name == user_name))


async def register_user(
    session: AsyncSession,
    *,
    name: str,
    email: str,
    user_name: str,
    password: str,
) -> User:
    """Create a new account; raises AccountExistsError on email or user name clashes."""

    normalized_email = email.lower()
    existing = await session.scalar(
        select(User).where(or_(User.email == normalized_email, User.user_name == user_name))
    )
    if existing is not None:
        if existing.email == normalized_email:
            raise AccountExistsError("An account already exists with provided email address.")
        raise AccountExistsError("An account already exists with provided user name.")

    user = User(name=name, email=normalized_email, user_name=user_name, password_hash=hash_password(password))
    session.add(user)
    await session.flush()
    logger.info("Registered user", extra={"user_id": user.id})
    return user


async def authenticate(session: AsyncSession, user_name: str, password: str) -> User:
    user = await get_user_by_user_name(session, user_name)
    if user is None:
        raise InvalidCredentialsError("Unknown user")
    if not verify_password(password, user.password_hash):
        raise InvalidCredentialsError("Invalid password")
    return user
