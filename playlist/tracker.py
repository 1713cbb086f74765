"""Background polling of the request log into a live playlist state."""

from __future__ import annotations

import asyncio
import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from core.exceptions import PlaylistTrackerError
from core.sentry import capture_exception
from core.telemetry import PollTelemetry
from playlist.models import PlaylistState
from playlist.parser import MAX_HISTORY_SONGS, PlaylistFilters, parse_playlist

if TYPE_CHECKING:
    from posthog import Posthog

    from artwork.service import ArtworkService
    from playlist.archive import ArchiveClient
    from stream.status import StreamStatusService

logger = logging.getLogger(__name__)


class PlaylistTracker:
    """Keeps a PlaylistState current by polling the archive on an interval.

    Only one poll and one artwork lookup are in flight at a time: starting a
    new one cancels the previous, and a cancelled poll never publishes.
    """

    def __init__(
        self,
        archive: ArchiveClient,
        stream_status: StreamStatusService,
        artwork: ArtworkService | None = None,
        *,
        filters: PlaylistFilters | None = None,
        max_history: int = MAX_HISTORY_SONGS,
        interval: float = 30.0,
        posthog_client: Posthog | None = None,
    ):
        self.archive = archive
        self.stream_status = stream_status
        self.artwork = artwork
        self.filters = filters or PlaylistFilters()
        self.max_history = max_history
        self.interval = interval
        self.posthog_client = posthog_client

        self.state = PlaylistState()
        self._previous_title: str | None = None
        self._poll_task: asyncio.Task | None = None
        self._artwork_task: asyncio.Task | None = None
        self._run_task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._run_task is not None and not self._run_task.done()

    async def check_initial_status(self) -> bool:
        """Uncached liveness check performed once before the first poll."""
        live = await self.stream_status.check(use_cache=False)
        self.state = self.state.model_copy(
            update={"stream_live": live, "stream_status_checked": True}
        )
        return live

    async def refresh(self) -> PlaylistState:
        """Poll once, superseding any poll still in flight.

        Returns:
            PlaylistState: The state after this poll, or after the newest poll
            when this one was superseded
        """
        if self._poll_task is not None and not self._poll_task.done():
            logger.debug("Cancelling superseded poll")
            self._poll_task.cancel()

        task = asyncio.create_task(self._poll())
        self._poll_task = task
        try:
            await task
        except asyncio.CancelledError:
            # A newer refresh cancelled this poll: drop it silently.
            superseded = self._poll_task is not task and task.cancelled()
            current = asyncio.current_task()
            if not superseded or (current is not None and current.cancelling()):
                raise
            logger.debug("Poll superseded before completion")
            # Report the state the superseding poll publishes, not the stale one
            while self._poll_task is not None and not self._poll_task.done():
                await asyncio.wait({self._poll_task})
        return self.state

    async def _poll(self) -> None:
        telemetry = PollTelemetry()
        try:
            with telemetry.track_step("stream_status"):
                telemetry.record_upstream_call("stream")
                live = await self.stream_status.check()

            with telemetry.track_step("archive_fetch"):
                telemetry.record_upstream_call("archive")
                lines = await self.archive.fetch_lines()

            with telemetry.track_step("parse"):
                snapshot = parse_playlist(
                    lines, live, filters=self.filters, max_history=self.max_history
                )
        except PlaylistTrackerError as e:
            logger.error(f"Error fetching playlist: {e.message}")
            self._publish_failure()
            self._send_telemetry(telemetry, success=False)
            return
        except Exception as e:
            logger.exception("Unexpected error while polling playlist")
            capture_exception(e, context={"step": "poll"})
            self._publish_failure()
            self._send_telemetry(telemetry, success=False)
            return

        current = snapshot.current_title
        if current and current != self._previous_title:
            self._previous_title = current
            self._schedule_artwork(current)

        self.state = self.state.model_copy(
            update={
                "playlist": snapshot,
                "stream_live": live,
                "stream_status_checked": True,
                "error": False,
                "loading": False,
                "initial_load_complete": True,
                "last_updated": datetime.now(UTC),
            }
        )
        logger.debug(
            f"Playlist updated: current={current!r}, history={len(snapshot.history)} songs"
        )
        self._send_telemetry(
            telemetry,
            success=True,
            history_count=len(snapshot.history),
            has_current=current is not None,
            is_offline=snapshot.is_offline,
        )

    def _publish_failure(self) -> None:
        # The last good playlist stays visible alongside the error flag
        self.state = self.state.model_copy(
            update={"error": True, "loading": False, "initial_load_complete": True}
        )

    def _send_telemetry(self, telemetry: PollTelemetry, **properties) -> None:
        if self.posthog_client:
            telemetry.send_to_posthog(self.posthog_client, properties)

    def _schedule_artwork(self, title: str) -> None:
        if self.artwork is None:
            return
        if self._artwork_task is not None and not self._artwork_task.done():
            self._artwork_task.cancel()
        self._artwork_task = asyncio.create_task(self._update_artwork(title))

    async def _update_artwork(self, title: str) -> None:
        assert self.artwork is not None
        try:
            result = await self.artwork.find_artwork_for_title(title)
        except Exception as e:
            logger.warning(f"Error fetching album art for {title!r}: {e}")
            result = None

        # A newer song may have started while we were looking
        if self._previous_title == title:
            self.state = self.state.model_copy(
                update={"album_art": result.artwork_url if result else None}
            )

    async def wait_for_artwork(self) -> None:
        """Wait for a pending artwork lookup, if any."""
        if self._artwork_task is not None:
            await asyncio.gather(self._artwork_task, return_exceptions=True)

    async def run(self) -> None:
        """Poll immediately, then every ``interval`` seconds until cancelled."""
        while True:
            await self.refresh()
            await asyncio.sleep(self.interval)

    async def start(self) -> None:
        """Check stream status, then start the polling loop in the background."""
        if self.running:
            return
        await self.check_initial_status()
        self._run_task = asyncio.create_task(self.run())
        logger.info(f"Playlist tracker started (interval: {self.interval}s)")

    async def stop(self) -> None:
        """Stop polling and cancel any in-flight poll or artwork lookup."""
        tasks = [t for t in (self._run_task, self._poll_task, self._artwork_task) if t]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._run_task = None
        self._poll_task = None
        self._artwork_task = None
        logger.info("Playlist tracker stopped")
