"""Aggregation of live and upcoming broadcasts across tracked channels."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from email.utils import format_datetime
from typing import Any, Generic, TypeVar

import httpx

from simcast.core.config import settings
from simcast.db.models import Channel
from simcast.services.youtube_api import (
    UpstreamError,
    fetch_video_details,
    search_channel_videos,
    stub_video_id,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

THUMBNAIL_PREFERENCE = ("high", "medium", "default")


@dataclass(slots=True)
class BroadcastStub:
    """A search hit that still needs a videos.list lookup."""

    video_id: str
    channel_id: str


@dataclass(slots=True)
class BroadcastDetail:
    """Normalised upcoming broadcast record."""

    channel_title: str | None
    title: str | None
    thumbnail: str | None
    start_time: datetime
    video_id: str

    @property
    def date(self) -> str:
        return format_broadcast_date(self.start_time)


@dataclass(slots=True)
class FetchOutcome(Generic[T]):
    """Result of one fan-out call: either a value or the error that replaced it."""

    key: str
    value: T | None = None
    error: UpstreamError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(slots=True)
class AggregationResult(Generic[T]):
    items: list[T]
    failures: list[FetchOutcome[Any]] = field(default_factory=list)

    @property
    def partial(self) -> bool:
        return bool(self.failures)


def parse_timestamp(value: Any) -> datetime | None:
    if not isinstance(value, str):
        return None
    value = value.strip()
    if not value:
        return None
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        logger.debug("Failed to parse timestamp", extra={"value": value})
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_broadcast_date(value: datetime) -> str:
    """Render a start time as an RFC 1123 UTC string, e.g. ``Sat, 17 Oct 2026 18:00:00 GMT``."""

    return format_datetime(value.astimezone(timezone.utc), usegmt=True)


def _pick_thumbnail(snippet: dict[str, Any]) -> str | None:
    thumbnails = snippet.get("thumbnails") or {}
    for key in THUMBNAIL_PREFERENCE:
        candidate = thumbnails.get(key)
        if isinstance(candidate, dict) and candidate.get("url"):
            return candidate["url"]
    return None


def normalize_detail(item: dict[str, Any], *, video_id: str) -> BroadcastDetail | None:
    """Map a videos.list item onto a BroadcastDetail; None when it has no start time."""

    snippet = item.get("snippet") or {}
    live_details = item.get("liveStreamingDetails") or {}
    start_time = parse_timestamp(live_details.get("scheduledStartTime")) or parse_timestamp(
        live_details.get("actualStartTime")
    )
    if start_time is None:
        logger.debug("Dropping video without start time", extra={"video_id": video_id})
        return None

    return BroadcastDetail(
        channel_title=snippet.get("channelTitle"),
        title=snippet.get("title"),
        thumbnail=_pick_thumbnail(snippet),
        start_time=start_time,
        video_id=item.get("id") if isinstance(item.get("id"), str) else video_id,
    )


def extract_stubs(payload: Any, channel_id: str) -> list[BroadcastStub]:
    items = payload.get("items") if isinstance(payload, dict) else None
    if not isinstance(items, list):
        raise UpstreamError(f"Malformed search response for channel {channel_id}")

    stubs: list[BroadcastStub] = []
    for item in items:
        video_id = stub_video_id(item) if isinstance(item, dict) else None
        if not video_id:
            logger.warning("Skipping search result without video id", extra={"channel_id": channel_id})
            continue
        stubs.append(BroadcastStub(video_id=video_id, channel_id=channel_id))
    return stubs


def sort_and_filter(details: Sequence[BroadcastDetail], *, now: datetime | None = None) -> list[BroadcastDetail]:
    """Stable ascending sort by start time, then keep only broadcasts strictly after now."""

    ordered = sorted(details, key=lambda detail: detail.start_time)
    cutoff = now or datetime.now(timezone.utc)
    return [detail for detail in ordered if detail.start_time > cutoff]


async def _logged(call: Awaitable[T], *, stage: str, key: str) -> T:
    try:
        return await call
    except UpstreamError:
        logger.exception("Upstream %s call failed", stage, extra={"key": key})
        raise


async def _fan_out(
    calls: Sequence[tuple[str, Awaitable[T]]],
    *,
    stage: str,
    isolate: bool,
) -> list[FetchOutcome[T]]:
    """Run calls concurrently and return outcomes in input order.

    Without isolation the first UpstreamError propagates and aborts the aggregation.
    With isolation every UpstreamError is captured on its own outcome.
    """

    tasks = [asyncio.ensure_future(_logged(call, stage=stage, key=key)) for key, call in calls]
    try:
        results = await asyncio.gather(*tasks, return_exceptions=isolate)
    except BaseException:
        for task in tasks:
            task.cancel()
        # settle the siblings so their errors are retrieved before re-raising
        await asyncio.gather(*tasks, return_exceptions=True)
        raise

    outcomes: list[FetchOutcome[T]] = []
    for (key, _), result in zip(calls, results):
        if isinstance(result, UpstreamError):
            outcomes.append(FetchOutcome(key=key, error=result))
        elif isinstance(result, BaseException):
            raise result
        else:
            outcomes.append(FetchOutcome(key=key, value=result))
    return outcomes


def _isolate(partial: bool | None) -> bool:
    return settings.aggregation_partial_results if partial is None else partial


async def collect_live_broadcasts(
    client: httpx.AsyncClient,
    channels: Sequence[Channel],
    *,
    partial: bool | None = None,
) -> AggregationResult[Any]:
    """Return one raw live search body per channel, in channel order.

    A channel whose search failed contributes ``None`` when partial results are enabled.
    """

    outcomes = await _fan_out(
        [
            (channel.youtube_id, search_channel_videos(client, channel.youtube_id, event_type="live"))
            for channel in channels
        ],
        stage="search",
        isolate=_isolate(partial),
    )
    logger.info("Collected live broadcasts", extra={"channels": len(channels)})
    return AggregationResult(
        items=[outcome.value for outcome in outcomes],
        failures=[outcome for outcome in outcomes if not outcome.ok],
    )


async def _search_upcoming(client: httpx.AsyncClient, channel: Channel) -> list[BroadcastStub]:
    payload = await search_channel_videos(
        client,
        channel.youtube_id,
        event_type="upcoming",
        max_results=settings.upcoming_search_max_results,
    )
    return extract_stubs(payload, channel.youtube_id)


async def collect_upcoming_broadcasts(
    client: httpx.AsyncClient,
    channels: Sequence[Channel],
    *,
    limit: int,
    partial: bool | None = None,
    now: datetime | None = None,
) -> AggregationResult[BroadcastDetail]:
    """Search each channel for upcoming streams, resolve details and keep the next ``limit``."""

    isolate = _isolate(partial)

    search_outcomes = await _fan_out(
        [(channel.youtube_id, _search_upcoming(client, channel)) for channel in channels],
        stage="search",
        isolate=isolate,
    )
    stubs = [stub for outcome in search_outcomes if outcome.ok for stub in outcome.value or []]

    detail_outcomes = await _fan_out(
        [(stub.video_id, fetch_video_details(client, stub.video_id)) for stub in stubs],
        stage="detail",
        isolate=isolate,
    )

    details: list[BroadcastDetail] = []
    for outcome in detail_outcomes:
        if not outcome.ok or outcome.value is None:
            continue
        detail = normalize_detail(outcome.value, video_id=outcome.key)
        if detail is not None:
            details.append(detail)

    upcoming = sort_and_filter(details, now=now)
    logger.info(
        "Collected upcoming broadcasts",
        extra={"channels": len(channels), "stubs": len(stubs), "future": len(upcoming), "limit": limit},
    )
    failures = [outcome for outcome in [*search_outcomes, *detail_outcomes] if not outcome.ok]
    return AggregationResult(items=upcoming[:limit], failures=failures)


async def list_channel_videos(
    client: httpx.AsyncClient,
    channel: Channel,
    *,
    page_token: str | None = None,
) -> Any:
    """Return one raw page of a channel's completed broadcasts."""

    return await _logged(
        search_channel_videos(
            client,
            channel.youtube_id,
            event_type="completed",
            order="date",
            max_results=settings.channel_videos_page_size,
            page_token=page_token,
        ),
        stage="search",
        key=channel.youtube_id,
    )


__all__ = [
    "AggregationResult",
    "BroadcastDetail",
    "BroadcastStub",
    "FetchOutcome",
    "collect_live_broadcasts",
    "collect_upcoming_broadcasts",
    "extract_stubs",
    "format_broadcast_date",
    "list_channel_videos",
    "normalize_detail",
    "parse_timestamp",
    "sort_and_filter",
]
