"""LiveSyncController - Keeps the marker set in step with the live feed.

Protocol:
1. Subscribe to inserts on the table (first, so nothing inserted during the
   bulk read is missed)
2. Bulk-read all current rows
3. Convert every row (bulk or streamed) to a SpatialPoint via the coordinate
   converter, waiting for the view to be ready first
4. Append to the accumulated list and publish the ENTIRE list after the bulk
   batch and after every streamed insert

Concurrency (single event loop):
- The bulk batch and each streamed insert get their own conversion task;
  conversions may finish out of order and are appended in completion order
- Append + publish run without a suspension point in between, so two
  conversions never interleave inside one accumulation step

Failures:
- Malformed rows and failed conversions: logged, dropped, processing continues
- Feed read/subscribe failures: logged and handed to on_error, no retry

Rows with an "id" are deduplicated across bulk read and streamed inserts
(deduplicate=False renders such a row once per delivery). A row counts as seen
only once its point is appended; rows cancelled by stop() are accepted again
after the next start().
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Coroutine, Iterable
from typing import TYPE_CHECKING, Any

from markerpin_viewer.constants import FeedConfig
from markerpin_viewer.model.feed_row import FeedRow
from markerpin_viewer.model.spatial_point import SpatialPoint

if TYPE_CHECKING:
    from markerpin_viewer.core.coordinate_converter import CoordinateConverter
    from markerpin_viewer.core.live_feed import FeedSubscription, LiveFeed

logger = logging.getLogger(__name__)

PublishCallback = Callable[[list[SpatialPoint]], None]
ErrorCallback = Callable[[Exception], None]


class LiveSyncController:
    """Bulk read + insert subscription -> whole-list publishes.

    Example:
        sync = LiveSyncController(feed=feed, converter=converter, publish=decorator_publish)
        async with sync:
            ...
    """

    def __init__(
        self,
        feed: "LiveFeed",
        converter: "CoordinateConverter",
        publish: PublishCallback,
        table: str = FeedConfig.TABLE,
        ready: Awaitable[Any] | None = None,
        on_error: ErrorCallback | None = None,
        deduplicate: bool = True,
    ) -> None:
        """Initialize controller.

        Args:
            feed: Live feed to read and subscribe to
            converter: Geographic -> spatial converter (async to_spatial)
            publish: Receives the full accumulated point list after every step
            table: Feed table name
            ready: Awaitable gating conversions (e.g., the view-opened future);
                must be awaitable more than once, so pass a Future, not a coroutine
            on_error: Receives feed transport failures
            deduplicate: Drop rows whose key was already seen
        """
        self.feed = feed
        self.converter = converter
        self.publish = publish
        self.table = table
        self.ready = ready
        self.on_error = on_error
        self.deduplicate = deduplicate

        self._points: list[SpatialPoint] = []
        self._seen_keys: set[str] = set()
        self._pending_keys: set[str] = set()
        self._tasks: set[asyncio.Task[None]] = set()
        self._subscription: "FeedSubscription | None" = None
        self._running = False

    @property
    def points(self) -> tuple[SpatialPoint, ...]:
        """Accumulated points in append order."""
        return tuple(self._points)

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def pending(self) -> int:
        """Number of conversion tasks (bulk batch or inserts) still running."""
        return len(self._tasks)

    def __repr__(self) -> str:
        return f"LiveSyncController(table={self.table!r}, points={len(self._points)}, running={self._running})"

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    async def start(self, ready: Awaitable[Any] | None = None) -> None:
        """Subscribe, bulk-read, and schedule the bulk conversion. No-op if already started.

        Returns once the rows are read; conversion of the bulk batch waits for
        the ready gate in the background (see drain()).

        Args:
            ready: Overrides the ready gate given at construction
        """
        if self._running:
            return
        if ready is not None:
            self.ready = ready
        self._running = True

        try:
            self._subscription = await self.feed.subscribe(self.table, self._on_insert)
        except Exception as e:
            self._report_error(action="subscribe to", error=e)

        try:
            rows = await self.feed.read_all(self.table)
        except Exception as e:
            self._report_error(action="read", error=e)
            return
        if not self._running:
            return

        logger.info(f"[SYNC] Bulk read {len(rows)} rows from '{self.table}'")
        self._track(self._ingest_bulk(rows))

    async def drain(self) -> None:
        """Wait until the bulk batch and every scheduled insert are processed."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    async def stop(self) -> None:
        """Unsubscribe and cancel in-flight conversions. Idempotent."""
        self._running = False

        subscription, self._subscription = self._subscription, None
        if subscription is not None:
            try:
                await self.feed.unsubscribe(subscription)
            except Exception as e:
                logger.warning(f"[SYNC] Unsubscribe from '{self.table}' failed: {e}")

        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
            logger.info(f"[SYNC] Cancelled {len(tasks)} pending conversions")
        # Rows that never reached the point list must be accepted again on restart
        self._pending_keys.clear()

    async def __aenter__(self) -> "LiveSyncController":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.stop()

    # =========================================================================
    # INGEST
    # =========================================================================

    def _on_insert(self, row: dict[str, Any]) -> None:
        """Feed callback: schedule conversion of one inserted row."""
        if not self._running:
            return
        self._track(self._ingest_insert(row))

    def _track(self, coro: Coroutine[Any, Any, None]) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _ingest_bulk(self, rows: list[dict[str, Any]]) -> None:
        converted = await asyncio.gather(*(self._convert(row) for row in rows))
        if not self._running:
            return
        accepted = [c for c in converted if c is not None]
        self._commit(key for key, _ in accepted)
        self._points.extend(point for _, point in accepted)
        self._publish()

    async def _ingest_insert(self, row: dict[str, Any]) -> None:
        converted = await self._convert(row)
        if converted is None or not self._running:
            return
        key, point = converted
        self._commit([key])
        self._points.append(point)
        self._publish()

    async def _convert(self, row: dict[str, Any]) -> tuple[str | None, SpatialPoint] | None:
        """Parse and convert one row.

        Returns:
            (reserved key, point), or None if the row is dropped. The key stays
            pending until the caller commits it with the appended point.
        """
        try:
            feed_row = FeedRow.from_dict(row)
        except ValueError as e:
            logger.warning(f"[SYNC] Dropping malformed row {row!r}: {e}")
            return None

        # Reserve the key before suspending so a concurrent duplicate is dropped
        key = feed_row.key if self.deduplicate else None
        if key is not None:
            if key in self._seen_keys or key in self._pending_keys:
                logger.debug(f"[SYNC] Skipping duplicate row id={key}")
                return None
            self._pending_keys.add(key)

        try:
            if self.ready is not None:
                # Shielded: cancelling this conversion must not cancel the shared gate
                await asyncio.shield(self.ready)
            point = await self.converter.to_spatial(feed_row.lon, feed_row.lat, 0.0)
        except Exception as e:
            self._pending_keys.discard(key)
            logger.warning(f"[SYNC] Dropping row {row!r}, conversion failed: {e}")
            return None
        return key, point

    def _commit(self, keys: Iterable[str | None]) -> None:
        for key in keys:
            if key is not None:
                self._pending_keys.discard(key)
                self._seen_keys.add(key)

    def _publish(self) -> None:
        logger.debug(f"[SYNC] Publishing {len(self._points)} points")
        self.publish(list(self._points))

    def _report_error(self, action: str, error: Exception) -> None:
        logger.error(f"[SYNC] Failed to {action} '{self.table}': {error}")
        if self.on_error is not None:
            self.on_error(error)
