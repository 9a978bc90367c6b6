"""Pydantic models for broadcast aggregation endpoints."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from simcast.services.broadcasts import BroadcastDetail


class ChannelUpcomingRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    channel_name: str = Field(..., min_length=1, alias="channelName")


class ChannelVideosRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    channel_name: str = Field(..., min_length=1, alias="channelName")
    next_page_token: str | None = Field(None, alias="nextPageToken")


class BroadcastResponse(BaseModel):
    """Upcoming broadcast as returned to clients."""

    model_config = ConfigDict(populate_by_name=True)

    channel_title: str | None = Field(alias="channelTitle")
    title: str | None
    thumbnail: str | None
    date: str
    video_id: str = Field(alias="videoId")

    @classmethod
    def from_detail(cls, detail: BroadcastDetail) -> "BroadcastResponse":
        return cls(
            channel_title=detail.channel_title,
            title=detail.title,
            thumbnail=detail.thumbnail,
            date=detail.date,
            video_id=detail.video_id,
        )
