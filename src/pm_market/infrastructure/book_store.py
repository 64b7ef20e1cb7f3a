"""In-memory book feed fed by pushes (websocket handler, REST poller, tests).

Each publish replaces the token's snapshot wholesale; readers holding an
older snapshot keep a consistent view.
"""
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from src.pm_market.domain.book_parser import parse_order_book
from src.pm_market.domain.models import OrderBookSnapshot

logger = logging.getLogger(__name__)

BookLoader = Callable[[str], Awaitable[dict[str, Any] | None]]


class InMemoryBookFeed:
    def __init__(self, loader: BookLoader | None = None) -> None:
        self._snapshots: dict[str, OrderBookSnapshot] = {}
        self._loader = loader

    def publish(self, snapshot: OrderBookSnapshot) -> None:
        self._snapshots[snapshot.token_id] = snapshot

    def publish_raw(self, raw: dict[str, Any], token_id: str | None = None) -> OrderBookSnapshot:
        snapshot = parse_order_book(raw, token_id)
        self.publish(snapshot)
        return snapshot

    def drop(self, token_id: str) -> None:
        self._snapshots.pop(token_id, None)

    async def get_snapshot(self, token_id: str) -> OrderBookSnapshot | None:
        """Pushed snapshot if any, else a fresh one pulled through the loader.

        A loader failure means "no book": the caller falls back to a quote.
        """
        snapshot = self._snapshots.get(token_id)
        if snapshot is not None or self._loader is None:
            return snapshot
        try:
            raw = await self._loader(token_id)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Book load for %s failed: %s", token_id, exc)
            return None
        if raw is None:
            return None
        # Pulled books are not kept: the next read pulls again.
        return parse_order_book(raw, token_id)
