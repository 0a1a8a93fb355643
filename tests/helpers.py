"""
tests/helpers.py

Test doubles and CSV builders shared across the suite.

InMemoryTalkStore implements the TalkStore protocol over a plain list, so
services and routers can be exercised without Postgres.
"""

from __future__ import annotations

import dataclasses
from datetime import datetime
from typing import Iterable, Sequence

from tedtalk_api.models import Talk

HEADER = "title,author,date,views,likes,link"


class InMemoryTalkStore:
    """TalkStore over a list. Ids are assigned sequentially from 1."""

    def __init__(self, talks: Iterable[Talk] = ()):
        self.talks: list[Talk] = []
        self.save_calls: list[list[Talk]] = []
        self.find_all_calls = 0
        self.fail_with: Exception | None = None
        self._next_id = 1
        for talk in talks:
            self.add(talk)

    def add(self, talk: Talk) -> Talk:
        stored = dataclasses.replace(talk, id=self._next_id)
        self._next_id += 1
        self.talks.append(stored)
        return stored

    def _check(self) -> None:
        if self.fail_with is not None:
            raise self.fail_with

    async def find_all(self) -> list[Talk]:
        self.find_all_calls += 1
        self._check()
        return list(self.talks)

    async def find_by_id(self, talk_id: int) -> Talk | None:
        self._check()
        return next((t for t in self.talks if t.id == talk_id), None)

    async def find_by_year(self, year: int) -> list[Talk]:
        self._check()
        return [t for t in self.talks if t.date.year == year]

    async def count(self) -> int:
        self._check()
        return len(self.talks)

    async def find_page(self, offset: int, limit: int) -> list[Talk]:
        self._check()
        return self.talks[offset : offset + limit]

    async def save_all(self, talks: Sequence[Talk]) -> list[Talk]:
        self._check()
        self.save_calls.append(list(talks))
        return [self.add(t) for t in talks]


def make_talk(
    author: str = "Ken Robinson",
    views: int = 1000,
    likes: int = 100,
    title: str = "Do schools kill creativity?",
    date: datetime = datetime(2006, 2, 1),
    link: str = "https://ted.com/talks/ken_robinson_says_schools_kill_creativity",
) -> Talk:
    return Talk(title=title, author=author, date=date, views=views, likes=likes, link=link)


def make_csv(*rows: str, header: str = HEADER) -> bytes:
    """Join a header and data lines into CSV bytes."""
    return ("\n".join([header, *rows]) + "\n").encode("utf-8")


VALID_ROWS = (
    "Do schools kill creativity?,Ken Robinson,February 2006,72000000,2200000,https://ted.com/talks/1",
    "Your body language may shape who you are,Amy Cuddy,June 2012,64000000,1900000,https://ted.com/talks/2",
    "The power of vulnerability,Brene Brown,December 2010,56000000,1700000,https://ted.com/talks/3",
)
