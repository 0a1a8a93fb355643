"""
TED Talk API - Talk Repository

``TalkStore`` is the storage contract the services depend on;
``PostgresTalkRepository`` implements it on the psycopg async pool.
The import pipeline is the only writer (``save_all``).
"""

from __future__ import annotations

from typing import Any, Protocol, Sequence

from loguru import logger
from psycopg.rows import dict_row
from psycopg_pool import AsyncConnectionPool

from .models import Talk

_COLUMNS = "id, title, author, date, views, likes, link"


class TalkStore(Protocol):
    """Storage operations consumed by the import, ranking and query services."""

    async def find_all(self) -> list[Talk]: ...

    async def find_by_id(self, talk_id: int) -> Talk | None: ...

    async def find_by_year(self, year: int) -> list[Talk]: ...

    async def count(self) -> int: ...

    async def find_page(self, offset: int, limit: int) -> list[Talk]: ...

    async def save_all(self, talks: Sequence[Talk]) -> list[Talk]: ...


def _row_to_talk(row: dict[str, Any]) -> Talk:
    return Talk(
        id=row["id"],
        title=row["title"],
        author=row["author"],
        date=row["date"],
        views=row["views"],
        likes=row["likes"],
        link=row["link"],
    )


class PostgresTalkRepository:
    """TalkStore backed by the ted_talk table."""

    def __init__(self, pool: AsyncConnectionPool):
        self._pool = pool

    async def _fetch_all(self, query: str, params: Sequence[Any] = ()) -> list[Talk]:
        async with self._pool.connection() as conn:
            async with conn.cursor(row_factory=dict_row) as cur:
                await cur.execute(query, params)
                rows = await cur.fetchall()
        return [_row_to_talk(row) for row in rows]

    async def find_all(self) -> list[Talk]:
        return await self._fetch_all(f"SELECT {_COLUMNS} FROM ted_talk ORDER BY id")

    async def find_by_id(self, talk_id: int) -> Talk | None:
        async with self._pool.connection() as conn:
            async with conn.cursor(row_factory=dict_row) as cur:
                await cur.execute(f"SELECT {_COLUMNS} FROM ted_talk WHERE id = %s", (talk_id,))
                row = await cur.fetchone()
        return _row_to_talk(row) if row else None

    async def find_by_year(self, year: int) -> list[Talk]:
        return await self._fetch_all(
            f"SELECT {_COLUMNS} FROM ted_talk WHERE EXTRACT(YEAR FROM date) = %s ORDER BY id",
            (year,),
        )

    async def count(self) -> int:
        async with self._pool.connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute("SELECT COUNT(*) FROM ted_talk")
                row = await cur.fetchone()
        return int(row[0]) if row else 0

    async def find_page(self, offset: int, limit: int) -> list[Talk]:
        return await self._fetch_all(
            f"SELECT {_COLUMNS} FROM ted_talk ORDER BY id LIMIT %s OFFSET %s",
            (limit, offset),
        )

    async def save_all(self, talks: Sequence[Talk]) -> list[Talk]:
        """
        Insert every talk in one transaction and return them with ids assigned.

        Either all rows are written or none are.
        """
        if not talks:
            return []

        params = [(t.title, t.author, t.date, t.views, t.likes, t.link) for t in talks]
        saved: list[Talk] = []

        async with self._pool.connection() as conn:
            async with conn.transaction():
                async with conn.cursor(row_factory=dict_row) as cur:
                    await cur.executemany(
                        "INSERT INTO ted_talk (title, author, date, views, likes, link) "
                        f"VALUES (%s, %s, %s, %s, %s, %s) RETURNING {_COLUMNS}",
                        params,
                        returning=True,
                    )
                    # one result set per inserted row, in input order
                    while True:
                        saved.extend(_row_to_talk(row) for row in await cur.fetchall())
                        if not cur.nextset():
                            break

        logger.info(f"Inserted {len(saved)} rows into ted_talk")
        return saved
