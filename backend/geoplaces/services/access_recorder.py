"""
Best-effort view tracking for place details.

dispatch() schedules record_view() as a detached asyncio task and returns
immediately. The task's outcome is never awaited by the request path: a
failure is logged in the done-callback and dropped.
"""
import asyncio
import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from geoplaces.core.logger import logs
from geoplaces.repos.places_repo import PlacesStore

# Strong references to in-flight tasks; the event loop only keeps weak ones.
_background_tasks: set[asyncio.Task] = set()


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _on_task_done(task: asyncio.Task) -> None:
    _background_tasks.discard(task)
    if task.cancelled():
        return
    error = task.exception()
    if error is not None:
        logs.log(logging.WARNING, f"Access recording failed: {error!r}")


async def drain_background_tasks() -> None:
    """Waits for every dispatched recording to finish (shutdown and tests)."""
    while _background_tasks:
        await asyncio.gather(*list(_background_tasks), return_exceptions=True)


class AccessRecorder:
    def __init__(self, store: PlacesStore, analytics_repo, now: Optional[Callable[[], datetime]] = None):
        self.store = store
        self.analytics_repo = analytics_repo
        self.now = now or _utc_now

    async def record_view(self, caller_id: Optional[str], place_id: str) -> None:
        viewed_at = self.now()
        await self.analytics_repo.append_event({
            "user_id": caller_id,
            "place_id": place_id,
            "action": "view_details",
            "timestamp": viewed_at,
            "source": "place_details",
        })
        await self.store.update(
            place_id,
            set_fields={"platform.analytics.last_viewed": viewed_at},
            inc_fields={"platform.analytics.total_views": 1},
        )

    def dispatch(self, caller_id: Optional[str], place_id: str) -> Optional[asyncio.Task]:
        """Fire-and-forget record_view. Never raises."""
        try:
            task = asyncio.get_running_loop().create_task(self.record_view(caller_id, place_id))
        except RuntimeError as e:
            logs.log(logging.WARNING, f"Access recording not scheduled for {place_id}: {str(e)}")
            return None
        _background_tasks.add(task)
        task.add_done_callback(_on_task_done)
        return task
