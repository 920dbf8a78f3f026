"""
Tests for fire-and-forget view recording
"""
import asyncio

import pytest

from factories import NOW, make_record
from geoplaces.services.access_recorder import AccessRecorder, drain_background_tasks


@pytest.mark.asyncio
async def test_record_view_appends_event_and_bumps_counters(store, analytics_repo, clock):
    await store.put(make_record())
    recorder = AccessRecorder(store, analytics_repo, now=clock)

    await recorder.record_view("user-1", "ChIJabc")

    record = await store.get("ChIJabc")
    assert record.platform.analytics.total_views == 1
    assert record.platform.analytics.last_viewed == NOW
    [event] = analytics_repo.read_events()
    assert event["user_id"] == "user-1"
    assert event["action"] == "view_details"
    assert event["source"] == "place_details"


@pytest.mark.asyncio
async def test_dispatch_returns_before_the_write_finishes(store, clock):
    release = asyncio.Event()
    written = []

    class SlowAnalytics:
        async def append_event(self, event):
            await release.wait()
            written.append(event)

    await store.put(make_record())
    recorder = AccessRecorder(store, SlowAnalytics(), now=clock)

    task = recorder.dispatch("user-1", "ChIJabc")

    assert task is not None
    assert written == []
    release.set()
    await drain_background_tasks()
    assert len(written) == 1
    assert (await store.get("ChIJabc")).platform.analytics.total_views == 1


@pytest.mark.asyncio
async def test_failed_recording_is_logged_and_dropped(store, analytics_repo, clock):
    recorder = AccessRecorder(store, analytics_repo, now=clock)

    # No stored record: the counter update fails after the event is written
    task = recorder.dispatch("user-1", "missing")
    await drain_background_tasks()

    assert task.done()
    assert len(analytics_repo.read_events()) == 1


def test_dispatch_without_running_loop_is_a_no_op(store, analytics_repo):
    recorder = AccessRecorder(store, analytics_repo)

    assert recorder.dispatch("user-1", "ChIJabc") is None
