"""Thin async wrappers around the YouTube Data API search and videos endpoints."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from typing import Any

import httpx

from simcast.core.config import settings

logger = logging.getLogger(__name__)

EVENT_TYPES = frozenset({"live", "upcoming", "completed"})


class UpstreamError(RuntimeError):
    """Raised when the YouTube Data API call fails or returns an unusable body."""


def create_client() -> httpx.AsyncClient:
    """Build the shared HTTP client used for upstream calls."""

    return httpx.AsyncClient(
        base_url=settings.youtube_api_base,
        timeout=settings.upstream_timeout_seconds,
        headers={"User-Agent": "simcast/0.1"},
    )


async def get_youtube_client() -> AsyncIterator[httpx.AsyncClient]:
    """FastAPI dependency that yields an upstream HTTP client for one request."""

    async with create_client() as client:
        yield client


async def _get_json(client: httpx.AsyncClient, path: str, params: dict[str, Any]) -> Any:
    # the key travels as a header so request URLs in httpx errors never carry it
    headers = {"x-goog-api-key": settings.youtube_api_key} if settings.youtube_api_key else None

    try:
        response = await client.get(path, params=params, headers=headers)
        response.raise_for_status()
    except httpx.HTTPError as exc:
        raise UpstreamError(f"YouTube API request to {path} failed: {exc}") from exc

    try:
        payload = response.json()
    except ValueError as exc:
        raise UpstreamError(f"Invalid JSON from YouTube API {path}") from exc

    return payload


async def search_channel_videos(
    client: httpx.AsyncClient,
    channel_id: str,
    *,
    event_type: str,
    max_results: int | None = None,
    order: str | None = None,
    page_token: str | None = None,
) -> Any:
    """Run one search.list call for a channel and return the raw response body."""

    if event_type not in EVENT_TYPES:
        raise ValueError(f"Unsupported event type: {event_type}")

    params: dict[str, Any] = {
        "part": "snippet",
        "channelId": channel_id,
        "eventType": event_type,
        "type": "video",
    }
    if max_results is not None:
        params["maxResults"] = max_results
    if order:
        params["order"] = order
    if page_token:
        params["pageToken"] = page_token

    logger.debug("Searching channel", extra={"channel_id": channel_id, "event_type": event_type})
    return await _get_json(client, "/search", params)


async def fetch_video_details(client: httpx.AsyncClient, video_id: str) -> dict[str, Any] | None:
    """Return the first ``items`` entry of videos.list, or None when the video is gone."""

    payload = await _get_json(
        client,
        "/videos",
        {"part": "snippet,liveStreamingDetails", "id": video_id},
    )
    items = payload.get("items") if isinstance(payload, dict) else None
    if not isinstance(items, list):
        raise UpstreamError(f"Malformed videos response for {video_id}")
    if not items:
        logger.warning("Video %s returned no details", video_id)
        return None
    return items[0]


def stub_video_id(item: dict[str, Any]) -> str | None:
    """Extract the video id from a search result item.

    search.list nests it as ``{"id": {"videoId": ...}}`` while some payloads carry a
    bare string id.
    """

    raw = item.get("id")
    if isinstance(raw, dict):
        return raw.get("videoId")
    if isinstance(raw, str):
        return raw
    return None


__all__ = [
    "UpstreamError",
    "create_client",
    "fetch_video_details",
    "get_youtube_client",
    "search_channel_videos",
    "stub_video_id",
]
