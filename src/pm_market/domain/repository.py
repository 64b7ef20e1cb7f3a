# src/pm_market/domain/repository.py
"""BookFeed Protocol: where the engine gets book snapshots from."""
from typing import Protocol

from src.pm_market.domain.models import OrderBookSnapshot


class BookFeedProtocol(Protocol):
    async def get_snapshot(self, token_id: str) -> OrderBookSnapshot | None:
        """Latest snapshot, or None when no book is available for token_id."""
        ...
