"""
Tests for speaker influence ranking.

Verifies:
1. limit <= 0 returns [] without touching the store
2. Aggregates (talk_count, totals, average_engagement) per author
3. Descending order by average, ties broken by author name, truncation
4. Store failures propagate
"""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from tedtalk_api.services.influence_service import (
    InfluenceService,
    aggregate_speaker,
    rank_speakers,
)
from tests.helpers import InMemoryTalkStore, make_talk


class TestLimitGuard:
    """Non-positive limits short-circuit."""

    @pytest.mark.parametrize("limit", [0, -1, -100])
    @pytest.mark.asyncio
    async def test_non_positive_limit_returns_empty(self, limit: int) -> None:
        store = AsyncMock()
        service = InfluenceService(store)

        result = await service.rank(limit)

        assert result == []
        store.find_all.assert_not_awaited()

    def test_rank_speakers_guard(self) -> None:
        assert rank_speakers([make_talk()], 0) == []


class TestAggregation:
    """Per-author totals and averages."""

    @pytest.mark.asyncio
    async def test_single_author_two_talks(self) -> None:
        store = InMemoryTalkStore(
            [
                make_talk(author="Speaker", views=1000, likes=100),
                make_talk(author="Speaker", views=2000, likes=200),
            ]
        )

        [speaker] = await InfluenceService(store).rank(5)

        assert speaker.author == "Speaker"
        assert speaker.talk_count == 2
        assert speaker.total_views == 3000
        assert speaker.total_likes == 300
        assert speaker.average_engagement == 1650.0

    def test_empty_group_averages_to_zero(self) -> None:
        speaker = aggregate_speaker("Nobody", [])

        assert speaker.talk_count == 0
        assert speaker.average_engagement == 0.0

    def test_average_is_float(self) -> None:
        speaker = aggregate_speaker("A", [make_talk(views=1, likes=0), make_talk(views=2, likes=0)])

        assert speaker.average_engagement == 1.5
        assert isinstance(speaker.average_engagement, float)

    def test_authors_grouped_by_exact_string(self) -> None:
        talks = [
            make_talk(author="Amy Cuddy"),
            make_talk(author="amy cuddy"),
            make_talk(author="Amy Cuddy "),
        ]

        ranked = rank_speakers(talks, 10)

        assert sorted(s.author for s in ranked) == ["Amy Cuddy", "Amy Cuddy ", "amy cuddy"]
        assert all(s.talk_count == 1 for s in ranked)


class TestOrdering:
    """Sort and truncate."""

    def test_sorted_descending_by_average(self) -> None:
        talks = [
            make_talk(author="Low", views=10, likes=0),
            make_talk(author="High", views=1000, likes=0),
            make_talk(author="Mid", views=100, likes=0),
            make_talk(author="Mid", views=300, likes=0),
        ]

        ranked = rank_speakers(talks, 10)

        assert [s.author for s in ranked] == ["High", "Mid", "Low"]
        averages = [s.average_engagement for s in ranked]
        assert averages == sorted(averages, reverse=True)

    def test_truncated_to_limit(self) -> None:
        talks = [make_talk(author=f"Speaker {i}", views=i) for i in range(20)]

        ranked = rank_speakers(talks, 5)

        assert len(ranked) == 5
        assert ranked[0].author == "Speaker 19"

    def test_ties_ordered_by_author(self) -> None:
        talks = [
            make_talk(author="Zed", views=500, likes=0),
            make_talk(author="Abe", views=400, likes=100),
        ]

        ranked = rank_speakers(talks, 2)

        assert [s.author for s in ranked] == ["Abe", "Zed"]


class TestFailures:
    """Store failures surface as a single error."""

    @pytest.mark.asyncio
    async def test_store_error_propagates(self) -> None:
        store = InMemoryTalkStore([make_talk()])
        store.fail_with = ConnectionError("db down")

        with pytest.raises(ConnectionError, match="db down"):
            await InfluenceService(store).rank(5)

    @pytest.mark.asyncio
    async def test_reads_store_once(self) -> None:
        store = InMemoryTalkStore([make_talk(author="A"), make_talk(author="B")])

        await InfluenceService(store).rank(1)

        assert store.find_all_calls == 1
