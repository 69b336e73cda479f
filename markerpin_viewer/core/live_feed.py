"""Live Feed - bulk reads and insert subscriptions on a row table.

Two implementations of the LiveFeed interface:
- InMemoryLiveFeed: Rows held in process; inserts are pushed to subscribers
  immediately (used offline, in demos and in tests)
- RestLiveFeed: PostgREST over HTTP (as served by Supabase); inserts are
  discovered by polling for rows with a key above the last one seen

Subscribers receive the raw row payload (dict). Parsing and validation is the
consumer's job so that a malformed row cannot break the feed itself.
"""

import asyncio
import itertools
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

import requests

from markerpin_viewer.constants import FeedConfig

logger = logging.getLogger(__name__)

RowPayload = dict[str, Any]
InsertCallback = Callable[[RowPayload], None]

_subscription_ids = itertools.count(1)


@dataclass
class FeedSubscription:
    """Handle returned by subscribe(); pass it back to unsubscribe()."""

    table: str
    on_insert: InsertCallback
    id: int = field(default_factory=lambda: next(_subscription_ids))
    active: bool = True


class LiveFeed(ABC):
    """Abstract row feed: bulk read plus insert notifications."""

    @abstractmethod
    async def read_all(self, table: str) -> list[RowPayload]:
        """Return every current row of a table."""
        raise NotImplementedError

    @abstractmethod
    async def subscribe(self, table: str, on_insert: InsertCallback) -> FeedSubscription:
        """Call on_insert with each row inserted into table from now on."""
        raise NotImplementedError

    @abstractmethod
    async def unsubscribe(self, subscription: FeedSubscription) -> None:
        """Stop notifications for a subscription (no-op if already stopped)."""
        raise NotImplementedError


class InMemoryLiveFeed(LiveFeed):
    """Live feed backed by in-process tables.

    Example:
        feed = InMemoryLiveFeed({"coords2": [{"id": 1, "long": 0.0, "lat": 0.0}]})
        feed.insert("coords2", {"id": 2, "long": 1.0, "lat": 1.0})
    """

    def __init__(self, tables: dict[str, list[RowPayload]] | None = None) -> None:
        self.tables: dict[str, list[RowPayload]] = {name: list(rows) for name, rows in (tables or {}).items()}
        self._subscriptions: list[FeedSubscription] = []

    @property
    def subscriptions(self) -> list[FeedSubscription]:
        return [s for s in self._subscriptions if s.active]

    async def read_all(self, table: str) -> list[RowPayload]:
        return list(self.tables.get(table, []))

    async def subscribe(self, table: str, on_insert: InsertCallback) -> FeedSubscription:
        subscription = FeedSubscription(table=table, on_insert=on_insert)
        self._subscriptions.append(subscription)
        logger.info(f"[FEED] Subscribed #{subscription.id} to '{table}'")
        return subscription

    async def unsubscribe(self, subscription: FeedSubscription) -> None:
        subscription.active = False
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)
            logger.info(f"[FEED] Unsubscribed #{subscription.id} from '{subscription.table}'")

    def insert(self, table: str, row: RowPayload) -> None:
        """Insert a row and notify the table's subscribers."""
        self.tables.setdefault(table, []).append(row)
        for subscription in self.subscriptions:
            if subscription.table == table:
                subscription.on_insert(row)


class RestLiveFeed(LiveFeed):
    """PostgREST-backed live feed with polling for inserts.

    Rows must carry a monotonically increasing key column (FeedConfig.KEY_COLUMN).

    Example:
        feed = RestLiveFeed(base_url="https://xyz.supabase.co", api_key="...")
        rows = await feed.read_all("coords2")
    """

    def __init__(
        self,
        base_url: str,
        api_key: str | None = None,
        poll_interval_s: float = FeedConfig.POLL_INTERVAL_S,
        key_column: str = FeedConfig.KEY_COLUMN,
        session: requests.Session | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.poll_interval_s = poll_interval_s
        self.key_column = key_column
        self._session = session or requests.Session()
        if api_key:
            self._session.headers.update({"apikey": api_key, "Authorization": f"Bearer {api_key}"})
        self._pollers: dict[int, asyncio.Task[None]] = {}

    def _table_url(self, table: str) -> str:
        return f"{self.base_url}{FeedConfig.REST_PATH}/{table}"

    def _get(self, table: str, params: dict[str, str]) -> list[RowPayload]:
        response = self._session.get(self._table_url(table), params=params, timeout=FeedConfig.HTTP_TIMEOUT_S)
        response.raise_for_status()
        return response.json()

    async def read_all(self, table: str) -> list[RowPayload]:
        """Fetch all rows.

        Raises:
            requests.RequestException: If the request fails.
        """
        rows = await asyncio.to_thread(self._get, table, {"select": "*"})
        logger.info(f"[FEED] Read {len(rows)} rows from '{table}'")
        return rows

    async def _latest_key(self, table: str) -> Any:
        params = {"select": self.key_column, "order": f"{self.key_column}.desc", "limit": "1"}
        rows = await asyncio.to_thread(self._get, table, params)
        return rows[0][self.key_column] if rows else None

    async def subscribe(self, table: str, on_insert: InsertCallback) -> FeedSubscription:
        """Start polling for rows inserted after the current latest key.

        Raises:
            requests.RequestException: If the baseline key cannot be read.
        """
        last_key = await self._latest_key(table)
        subscription = FeedSubscription(table=table, on_insert=on_insert)
        self._pollers[subscription.id] = asyncio.create_task(self._poll(subscription, last_key))
        logger.info(f"[FEED] Polling '{table}' every {self.poll_interval_s}s from key {last_key}")
        return subscription

    async def _poll(self, subscription: FeedSubscription, last_key: Any) -> None:
        while subscription.active:
            await asyncio.sleep(self.poll_interval_s)
            params = {"select": "*", "order": f"{self.key_column}.asc"}
            if last_key is not None:
                params[self.key_column] = f"gt.{last_key}"
            try:
                rows = await asyncio.to_thread(self._get, subscription.table, params)
            except requests.RequestException as e:
                logger.warning(f"[FEED] Poll of '{subscription.table}' failed: {e}")
                continue
            if not isinstance(rows, list):
                logger.warning(f"[FEED] Poll of '{subscription.table}' returned {type(rows).__name__}, expected a list")
                continue
            for row in rows:
                if not subscription.active:
                    break
                if not isinstance(row, dict):
                    logger.warning(f"[FEED] Skipping non-object row {row!r} from '{subscription.table}'")
                    continue
                last_key = row.get(self.key_column, last_key)
                try:
                    subscription.on_insert(row)
                except Exception as e:
                    logger.error(f"[FEED] Insert callback for '{subscription.table}' failed on {row!r}: {e}")

    async def unsubscribe(self, subscription: FeedSubscription) -> None:
        subscription.active = False
        poller = self._pollers.pop(subscription.id, None)
        if poller is None:
            return
        poller.cancel()
        # gather collects the poller's own outcome; cancelling unsubscribe itself still propagates
        (outcome,) = await asyncio.gather(poller, return_exceptions=True)
        if isinstance(outcome, Exception):
            logger.error(f"[FEED] Poller for '{subscription.table}' had failed: {outcome}")
        logger.info(f"[FEED] Stopped polling '{subscription.table}'")
