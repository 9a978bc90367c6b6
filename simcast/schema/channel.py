"""Pydantic models for the channel directory API."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class ChannelResponse(BaseModel):
    """Representation of a tracked channel."""

    model_config = ConfigDict(populate_by_name=True)

    short_name: str = Field(alias="abbreviatedName")
    name: str
    youtube_id: str = Field(alias="youtubeId")
    favorites: int
    category: str | None = None


class ChannelSeed(BaseModel):
    """One entry of the channel seeding file."""

    model_config = ConfigDict(populate_by_name=True)

    short_name: str = Field(..., min_length=1, alias="abbreviatedName")
    name: str = Field(..., min_length=1)
    youtube_id: str = Field(..., min_length=1, alias="youtubeId")
    category: str | None = None
