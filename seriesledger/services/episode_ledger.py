"""Episode ledger: the durable set of owned (subscription, season, episode) facts.

Uniqueness is enforced by the table's unique key and every write is an
``INSERT ... ON CONFLICT DO NOTHING``, so concurrent writers converge and a
duplicate is reported as ``False`` rather than an error.

Functions that take a ``session`` participate in the caller's transaction and
do not commit.
"""

import logging
from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import delete, func
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from seriesledger.database import async_session
from seriesledger.models import SeriesEpisode

logger = logging.getLogger(__name__)

# Rows per multi-row INSERT; keeps bound parameters under SQLite's limit
INSERT_CHUNK_SIZE = 100

_UNIQUE_KEY = ["subscription_id", "season", "episode"]


@dataclass(frozen=True)
class LedgerFact:
    """A (season, episode) observation waiting to be written."""

    season: int
    episode: int
    torrent_hash: str | None = None
    torrent_title: str | None = None


def _row(subscription_id: int, fact: LedgerFact, pre_record_id: int | None) -> dict:
    return {
        "subscription_id": subscription_id,
        "season": fact.season,
        "episode": fact.episode,
        "torrent_hash": fact.torrent_hash,
        "torrent_title": fact.torrent_title,
        "pre_record_id": pre_record_id,
        "recorded_at": datetime.now(timezone.utc),
    }


async def insert_facts(
    session: AsyncSession,
    subscription_id: int,
    facts: Iterable[LedgerFact],
    pre_record_id: int | None = None,
) -> int:
    """Insert-or-ignore many facts. Returns the number of rows actually created."""
    rows = [_row(subscription_id, fact, pre_record_id) for fact in facts]
    inserted = 0
    for start in range(0, len(rows), INSERT_CHUNK_SIZE):
        chunk = rows[start : start + INSERT_CHUNK_SIZE]
        stmt = sqlite_insert(SeriesEpisode.__table__).values(chunk).on_conflict_do_nothing(
            index_elements=_UNIQUE_KEY
        )
        result = await session.execute(stmt)
        inserted += max(result.rowcount or 0, 0)
    return inserted


async def record(
    subscription_id: int,
    season: int,
    episode: int,
    torrent_hash: str | None = None,
    torrent_title: str | None = None,
) -> bool:
    """Record one owned episode. False if it was already in the ledger."""
    async with async_session() as session:
        inserted = await insert_facts(
            session,
            subscription_id,
            [LedgerFact(season, episode, torrent_hash, torrent_title)],
        )
        await session.commit()

    if inserted:
        logger.debug(f"Ledger: subscription {subscription_id} S{season:02d}E{episode:02d} recorded")
    return inserted > 0


async def query(subscription_id: int, season: int) -> set[int]:
    """Owned episode numbers for one season of a subscription."""
    async with async_session() as session:
        result = await session.execute(
            select(SeriesEpisode.episode).where(
                SeriesEpisode.subscription_id == subscription_id,
                SeriesEpisode.season == season,
            )
        )
        return set(result.scalars().all())


async def episodes_by_season(subscription_id: int) -> dict[int, list[int]]:
    """Whole ledger for a subscription as ``{season: [episodes ascending]}``."""
    async with async_session() as session:
        result = await session.execute(
            select(SeriesEpisode.season, SeriesEpisode.episode)
            .where(SeriesEpisode.subscription_id == subscription_id)
            .order_by(SeriesEpisode.season, SeriesEpisode.episode)
        )
        grouped: dict[int, list[int]] = defaultdict(list)
        for season, episode in result.all():
            grouped[season].append(episode)
        return dict(grouped)


async def count(subscription_id: int, season: int | None = None) -> int:
    async with async_session() as session:
        stmt = select(func.count()).select_from(SeriesEpisode).where(
            SeriesEpisode.subscription_id == subscription_id
        )
        if season is not None:
            stmt = stmt.where(SeriesEpisode.season == season)
        result = await session.execute(stmt)
        return result.scalar_one()


async def delete_pre_recorded(session: AsyncSession, pre_record_id: int) -> int:
    """Remove the rows a given pre-record created. Older rows are untouched."""
    result = await session.execute(
        delete(SeriesEpisode).where(SeriesEpisode.pre_record_id == pre_record_id)
    )
    return result.rowcount or 0
