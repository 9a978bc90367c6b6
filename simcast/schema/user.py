"""Pydantic schemas for accounts and favorites."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, EmailStr, Field, model_validator


class RegisterRequest(BaseModel):
    """Inbound payload for creating an account."""

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., min_length=1)
    email: EmailStr
    user_name: str = Field(..., min_length=1, alias="userName")
    password: str = Field(..., min_length=1)
    password2: str

    @model_validator(mode="after")
    def _passwords_match(self) -> "RegisterRequest":
        if self.password != self.password2:
            raise ValueError("Passwords do not match")
        return self


class LoginRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_name: str = Field(..., min_length=1, alias="userName")
    password: str = Field(..., min_length=1)


class UserResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    email: str
    user_name: str = Field(alias="userName")
    favorite_channels: list[str] = Field(default_factory=list, alias="favoriteChannels")


class LogoutResponse(BaseModel):
    authenticated: bool


class FavoriteRequest(BaseModel):
    channel: str = Field(..., min_length=1)
