"""
TED Talk API - Speaker Influence Ranking

Ranks authors by average engagement, where a talk's engagement is
``views + likes`` and a speaker's average is that sum over all their talks
divided by the number of talks.

Ordering is descending by average engagement; equal averages are ordered by
author name ascending.
"""

import logging
from collections import defaultdict
from typing import Iterable

from ..core.logging import log_timing
from ..models import InfluentialSpeaker, Talk
from ..repository import TalkStore

logger = logging.getLogger(__name__)


def aggregate_speaker(author: str, talks: list[Talk]) -> InfluentialSpeaker:
    """Build one speaker's totals. An empty group averages to 0.0."""
    talk_count = len(talks)
    total_views = sum(t.views for t in talks)
    total_likes = sum(t.likes for t in talks)
    average = (total_views + total_likes) / talk_count if talk_count else 0.0
    return InfluentialSpeaker(
        author=author,
        talk_count=talk_count,
        total_views=total_views,
        total_likes=total_likes,
        average_engagement=float(average),
    )


def rank_speakers(talks: Iterable[Talk], limit: int) -> list[InfluentialSpeaker]:
    """
    Group talks by exact author string and return the top ``limit`` speakers.

    Authors differing only in case or whitespace are distinct speakers.
    """
    if limit <= 0:
        return []

    by_author: dict[str, list[Talk]] = defaultdict(list)
    for talk in talks:
        by_author[talk.author].append(talk)

    speakers = [aggregate_speaker(author, group) for author, group in by_author.items()]
    speakers.sort(key=lambda s: (-s.average_engagement, s.author))
    return speakers[:limit]


class InfluenceService:
    """Speaker ranking over the full talk table."""

    def __init__(self, store: TalkStore):
        self.store = store

    @log_timing(logger, "Speaker influence ranking", level=logging.DEBUG)
    async def rank(self, limit: int) -> list[InfluentialSpeaker]:
        """
        Top ``limit`` speakers by average engagement.

        ``limit <= 0`` returns [] without reading the store. Store failures
        propagate unchanged.
        """
        if limit <= 0:
            return []

        talks = await self.store.find_all()
        ranked = rank_speakers(talks, limit)
        logger.info(
            f"Ranked {len(ranked)} speakers from {len(talks)} talks",
            extra={"limit": limit, "count": len(ranked)},
        )
        return ranked
