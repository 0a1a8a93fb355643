"""
TED Talk API - Talk Query Service

Read-only pass-throughs to the talk store. Absence is reported as None or an
empty list, never as an exception; HTTP mapping is the router's job.
"""

import logging

from ..models import Talk
from ..repository import TalkStore

logger = logging.getLogger(__name__)


class TalkService:
    def __init__(self, store: TalkStore):
        self.store = store

    async def get_by_id(self, talk_id: int) -> Talk | None:
        return await self.store.find_by_id(talk_id)

    async def get_by_year(self, year: int) -> list[Talk]:
        """All talks dated in ``year``; an empty list when there are none."""
        talks = await self.store.find_by_year(year)
        logger.debug(f"Found {len(talks)} talks for year {year}", extra={"count": len(talks)})
        return talks

    async def count(self) -> int:
        return await self.store.count()

    async def list_page(self, page: int, size: int) -> tuple[list[Talk], int]:
        """
        One page of talks in ascending id order plus the total count.

        ``page`` is 0-indexed. Bounds are enforced by the caller.
        """
        total = await self.store.count()
        talks = await self.store.find_page(offset=page * size, limit=size)
        return talks, total
