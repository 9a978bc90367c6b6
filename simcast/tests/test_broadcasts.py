"""Tests for the broadcast aggregation pipeline."""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone

import httpx
import pytest

from simcast.core.config import settings
from simcast.services import broadcasts
from simcast.services.broadcasts import BroadcastDetail
from simcast.services.youtube_api import UpstreamError
from simcast.tests.fakes import search_page

pytest_plugins = ("pytest_asyncio",)


def _detail(video_id: str, start: datetime) -> BroadcastDetail:
    return BroadcastDetail(channel_title="C", title=video_id, thumbnail=None, start_time=start, video_id=video_id)


def test_parse_timestamp_handles_zulu_and_naive_values():
    parsed = broadcasts.parse_timestamp("2026-10-17T18:00:00Z")
    assert parsed == datetime(2026, 10, 17, 18, tzinfo=timezone.utc)

    naive = broadcasts.parse_timestamp("2026-10-17T18:00:00")
    assert naive is not None and naive.tzinfo == timezone.utc

    assert broadcasts.parse_timestamp("not a date") is None
    assert broadcasts.parse_timestamp("") is None
    assert broadcasts.parse_timestamp(None) is None


def test_format_broadcast_date_is_rfc1123_utc():
    value = datetime(2026, 10, 17, 20, 30, tzinfo=timezone(timedelta(hours=2)))
    assert broadcasts.format_broadcast_date(value) == "Sat, 17 Oct 2026 18:30:00 GMT"


def test_normalize_detail_prefers_scheduled_start_and_best_thumbnail():
    item = {
        "id": "VID1",
        "snippet": {
            "channelTitle": "Sim League",
            "title": "Round 4",
            "thumbnails": {"medium": {"url": "https://img/m.jpg"}, "default": {"url": "https://img/d.jpg"}},
        },
        "liveStreamingDetails": {
            "scheduledStartTime": "2026-10-18T19:00:00Z",
            "actualStartTime": "2026-10-18T19:05:00Z",
        },
    }

    detail = broadcasts.normalize_detail(item, video_id="VID1")

    assert detail is not None
    assert detail.channel_title == "Sim League"
    assert detail.title == "Round 4"
    assert detail.thumbnail == "https://img/m.jpg"
    assert detail.start_time == datetime(2026, 10, 18, 19, tzinfo=timezone.utc)
    assert detail.date == "Sun, 18 Oct 2026 19:00:00 GMT"


def test_normalize_detail_falls_back_to_actual_start_and_drops_missing():
    item = {"snippet": {}, "liveStreamingDetails": {"actualStartTime": "2026-10-18T19:05:00Z"}}
    detail = broadcasts.normalize_detail(item, video_id="VID2")
    assert detail is not None
    assert detail.video_id == "VID2"
    assert detail.thumbnail is None

    assert broadcasts.normalize_detail({"snippet": {"title": "No schedule"}}, video_id="VID3") is None


def test_extract_stubs_keeps_order_and_skips_items_without_ids():
    payload = {"items": [{"id": {"videoId": "a"}}, {"id": {"kind": "youtube#channel"}}, {"id": "b"}]}
    stubs = broadcasts.extract_stubs(payload, "UC1")
    assert [stub.video_id for stub in stubs] == ["a", "b"]
    assert {stub.channel_id for stub in stubs} == {"UC1"}


def test_extract_stubs_rejects_malformed_payload():
    with pytest.raises(UpstreamError):
        broadcasts.extract_stubs({"error": "quota"}, "UC1")
    with pytest.raises(UpstreamError):
        broadcasts.extract_stubs(["not", "a", "page"], "UC1")


def test_sort_and_filter_is_stable_and_strictly_future():
    now = datetime(2026, 10, 17, 12, tzinfo=timezone.utc)
    same = now + timedelta(hours=2)
    details = [
        _detail("past", now - timedelta(minutes=1)),
        _detail("tie-first", same),
        _detail("soon", now + timedelta(hours=1)),
        _detail("exactly-now", now),
        _detail("tie-second", same),
    ]

    result = broadcasts.sort_and_filter(details, now=now)

    assert [detail.video_id for detail in result] == ["soon", "tie-first", "tie-second"]


@pytest.mark.asyncio
async def test_live_returns_raw_payload_per_channel_in_order(make_channels, youtube, youtube_client):
    channels = await make_channels(10)
    for index, channel in enumerate(channels):
        youtube.searches[(channel.youtube_id, "live")] = {"items": [{"channelResults": 1}, {"channelResults": 2}], "n": index}
        # later channels answer first
        youtube.delays[channel.youtube_id] = 0.001 * (10 - index)

    result = await broadcasts.collect_live_broadcasts(youtube_client, channels)

    assert len(result.items) == 10
    assert [payload["n"] for payload in result.items] == list(range(10))
    assert all(len(payload["items"]) == 2 for payload in result.items)
    assert not result.partial
    assert youtube.calls("/videos") == []
    assert {request.url.params["eventType"] for request in youtube.calls("/search")} == {"live"}


@pytest.mark.asyncio
async def test_live_aborts_on_single_channel_failure(make_channels, youtube, youtube_client):
    channels = await make_channels(3)
    youtube.searches[(channels[1].youtube_id, "live")] = httpx.Response(500, json={"error": "backend"})

    with pytest.raises(UpstreamError):
        await broadcasts.collect_live_broadcasts(youtube_client, channels)


@pytest.mark.asyncio
async def test_live_partial_mode_keeps_one_slot_per_channel(make_channels, youtube, youtube_client):
    channels = await make_channels(3)
    youtube.searches[(channels[1].youtube_id, "live")] = httpx.Response(500, json={"error": "backend"})

    result = await broadcasts.collect_live_broadcasts(youtube_client, channels, partial=True)

    assert result.items == [{"items": []}, None, {"items": []}]
    assert result.partial
    assert [failure.key for failure in result.failures] == [channels[1].youtube_id]


@pytest.mark.asyncio
async def test_upcoming_orders_by_start_time(make_channels, youtube, youtube_client):
    [channel] = await make_channels(1)
    now = datetime.now(timezone.utc)
    youtube.searches[(channel.youtube_id, "upcoming")] = search_page("h1", "h3", "h2")
    youtube.add_video("h1", now + timedelta(hours=1))
    youtube.add_video("h3", now + timedelta(hours=3))
    youtube.add_video("h2", now + timedelta(hours=2))

    result = await broadcasts.collect_upcoming_broadcasts(youtube_client, [channel], limit=4)

    assert [detail.video_id for detail in result.items] == ["h1", "h2", "h3"]
    [search] = youtube.calls("/search")
    assert search.url.params["eventType"] == "upcoming"
    assert search.url.params["maxResults"] == "50"
    assert len(youtube.calls("/videos")) == 3


@pytest.mark.asyncio
async def test_upcoming_drops_past_and_unscheduled_entries(make_channels, youtube, youtube_client):
    [channel] = await make_channels(1)
    now = datetime.now(timezone.utc)
    youtube.searches[(channel.youtube_id, "upcoming")] = search_page("old", "new", "tbd", "gone")
    youtube.add_video("old", now - timedelta(hours=1))
    youtube.add_video("new", now + timedelta(hours=1))
    youtube.add_video("tbd", None)

    result = await broadcasts.collect_upcoming_broadcasts(youtube_client, [channel], limit=4)

    assert [detail.video_id for detail in result.items] == ["new"]
    assert all(detail.start_time > now for detail in result.items)


@pytest.mark.asyncio
async def test_upcoming_truncates_to_limit(make_channels, youtube, youtube_client):
    channels = await make_channels(3)
    now = datetime.now(timezone.utc)
    hour = 0
    for channel in channels:
        ids = [f"{channel.short_name}-{n}" for n in range(6)]
        youtube.searches[(channel.youtube_id, "upcoming")] = search_page(*ids)
        for video_id in ids:
            hour += 1
            youtube.add_video(video_id, now + timedelta(hours=hour))

    bulk = await broadcasts.collect_upcoming_broadcasts(youtube_client, channels, limit=8)
    scoped = await broadcasts.collect_upcoming_broadcasts(youtube_client, channels[:1], limit=4)

    assert len(bulk.items) == 8
    assert [d.start_time for d in bulk.items] == sorted(d.start_time for d in bulk.items)
    assert len(scoped.items) == 4


@pytest.mark.asyncio
async def test_upcoming_equal_times_keep_discovery_order(make_channels, youtube, youtube_client):
    channels = await make_channels(2)
    start = datetime.now(timezone.utc) + timedelta(days=1)
    youtube.searches[(channels[0].youtube_id, "upcoming")] = search_page("a1", "a2")
    youtube.searches[(channels[1].youtube_id, "upcoming")] = search_page("b1")
    for video_id in ("a1", "a2", "b1"):
        youtube.add_video(video_id, start)
    # detail responses arrive in reverse order
    youtube.delays.update({"a1": 0.03, "a2": 0.02, "b1": 0.01})

    result = await broadcasts.collect_upcoming_broadcasts(youtube_client, channels, limit=8)

    assert [detail.video_id for detail in result.items] == ["a1", "a2", "b1"]


@pytest.mark.asyncio
async def test_upcoming_detail_failure_aborts(make_channels, youtube, youtube_client):
    [channel] = await make_channels(1)
    now = datetime.now(timezone.utc)
    youtube.searches[(channel.youtube_id, "upcoming")] = search_page("ok", "bad")
    youtube.add_video("ok", now + timedelta(hours=1))
    youtube.videos["bad"] = httpx.Response(503)

    with pytest.raises(UpstreamError):
        await broadcasts.collect_upcoming_broadcasts(youtube_client, [channel], limit=4)


@pytest.mark.asyncio
async def test_upcoming_partial_mode_skips_failures(make_channels, youtube, youtube_client):
    channels = await make_channels(2)
    now = datetime.now(timezone.utc)
    youtube.searches[(channels[0].youtube_id, "upcoming")] = search_page("ok", "bad")
    youtube.searches[(channels[1].youtube_id, "upcoming")] = httpx.Response(200, content=b"not json")
    youtube.add_video("ok", now + timedelta(hours=1))
    youtube.videos["bad"] = httpx.Response(503)

    result = await broadcasts.collect_upcoming_broadcasts(youtube_client, channels, limit=8, partial=True)

    assert [detail.video_id for detail in result.items] == ["ok"]
    assert result.partial
    assert sorted(failure.key for failure in result.failures) == sorted(["bad", channels[1].youtube_id])


@pytest.mark.asyncio
async def test_list_channel_videos_passes_page_token(make_channels, youtube, youtube_client):
    [channel] = await make_channels(1)
    page = search_page("v1", "v2", next_page_token="TOKEN2")
    youtube.searches[(channel.youtube_id, "completed")] = page

    result = await broadcasts.list_channel_videos(youtube_client, channel, page_token="TOKEN1")

    assert result == page
    [request] = youtube.calls("/search")
    assert request.url.params["order"] == "date"
    assert request.url.params["maxResults"] == "12"
    assert request.url.params["pageToken"] == "TOKEN1"
    assert youtube.calls("/videos") == []


@pytest.mark.asyncio
async def test_upstream_failure_log_omits_api_key(make_channels, youtube, youtube_client, monkeypatch, caplog):
    [channel] = await make_channels(1)
    monkeypatch.setattr(settings, "youtube_api_key", "SECRET-KEY-123")
    youtube.searches[(channel.youtube_id, "completed")] = httpx.Response(403, json={"error": "forbidden"})

    with caplog.at_level("ERROR"), pytest.raises(UpstreamError):
        await broadcasts.list_channel_videos(youtube_client, channel)

    assert "Upstream search call failed" in caplog.text
    assert "SECRET-KEY-123" not in caplog.text
    [request] = youtube.calls("/search")
    assert "key" not in request.url.params
    assert request.headers["x-goog-api-key"] == "SECRET-KEY-123"


@pytest.mark.asyncio
async def test_live_abort_settles_sibling_calls(make_channels, youtube, youtube_client):
    channels = await make_channels(3)
    youtube.searches[(channels[0].youtube_id, "live")] = httpx.Response(500)
    youtube.searches[(channels[1].youtube_id, "live")] = httpx.Response(502)
    youtube.delays[channels[2].youtube_id] = 0.05

    with pytest.raises(UpstreamError):
        await broadcasts.collect_live_broadcasts(youtube_client, channels)

    pending = [task for task in asyncio.all_tasks() if task is not asyncio.current_task()]
    assert all(task.done() for task in pending)
