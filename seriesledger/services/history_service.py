"""Download history queries and the pre-record / rollback pair.

A pre-record writes the history row and the ledger rows for a release in one
transaction before the release is handed to a backend. If the backend refuses,
:func:`rollback` deletes both again, keyed by the history row id.
"""

import logging
from collections.abc import Iterable
from datetime import datetime, timezone

from sqlalchemy import delete, func, or_
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import select

from seriesledger.core.errors import DatabaseError, error_context
from seriesledger.database import async_session
from seriesledger.models import TaskHistory
from seriesledger.models.schemas import CandidateItem
from seriesledger.services import episode_ledger
from seriesledger.services.episode_ledger import LedgerFact

logger = logging.getLogger(__name__)


async def find_by_guid(task_id: int | None, guid: str) -> TaskHistory | None:
    async with async_session() as session:
        result = await session.execute(
            select(TaskHistory).where(TaskHistory.task_id == task_id, TaskHistory.item_guid == guid)
        )
        return result.scalars().first()


async def hash_exists(info_hash: str) -> bool:
    """True if any history row (any task) carries this info hash."""
    async with async_session() as session:
        result = await session.execute(
            select(TaskHistory.id)
            .where(func.lower(TaskHistory.item_hash) == info_hash.lower())
            .limit(1)
        )
        return result.first() is not None


async def titles_for_task(task_id: int | None) -> list[str]:
    """Titles previously recorded by one feed task."""
    if task_id is None:
        return []
    async with async_session() as session:
        result = await session.execute(
            select(TaskHistory.item_title).where(TaskHistory.task_id == task_id)
        )
        return list(result.scalars().all())


async def titles_outside_task(task_id: int | None) -> list[str]:
    """Titles recorded by every other task, manual downloads included."""
    async with async_session() as session:
        stmt = select(TaskHistory.item_title)
        if task_id is not None:
            stmt = stmt.where(or_(TaskHistory.task_id.is_(None), TaskHistory.task_id != task_id))
        result = await session.execute(stmt)
        return list(result.scalars().all())


async def finished_records() -> list[TaskHistory]:
    async with async_session() as session:
        result = await session.execute(
            select(TaskHistory).where(TaskHistory.is_finished == True)  # noqa: E712
        )
        return list(result.scalars().all())


async def unfinished_records() -> list[TaskHistory]:
    async with async_session() as session:
        result = await session.execute(
            select(TaskHistory).where(TaskHistory.is_finished == False)  # noqa: E712
        )
        return list(result.scalars().all())


async def pre_record(
    task_id: int | None,
    item: CandidateItem,
    info_hash: str | None = None,
    subscription_id: int | None = None,
    facts: Iterable[LedgerFact] = (),
) -> int | None:
    """Write the in-flight history row and its ledger facts atomically.

    Returns:
        The history row id (the pre-record id), or None if this task already
        has a row for the item's GUID.
    """
    async with async_session() as session:
        stmt = (
            sqlite_insert(TaskHistory.__table__)
            .values(
                task_id=task_id,
                item_guid=item.guid,
                item_title=item.title,
                item_hash=info_hash,
                item_size=item.size,
                is_finished=False,
                download_time=datetime.now(timezone.utc),
            )
            .on_conflict_do_nothing(index_elements=["task_id", "item_guid"])
            .returning(TaskHistory.__table__.c.id)
        )
        result = await session.execute(stmt)
        history_id = result.scalar_one_or_none()
        if history_id is None:
            await session.rollback()
            logger.debug(f"Pre-record skipped, GUID already recorded: {item.guid}")
            return None

        inserted = 0
        if subscription_id is not None:
            inserted = await episode_ledger.insert_facts(
                session, subscription_id, facts, pre_record_id=history_id
            )
        await session.commit()

    logger.debug(f"Pre-recorded history #{history_id} ({inserted} ledger rows): {item.title}")
    return history_id


async def rollback(pre_record_id: int) -> None:
    """Undo a pre-record: its ledger rows and its history row go in one commit."""
    with error_context(
        error_types=(SQLAlchemyError,),
        default_message=f"Rollback of pre-record #{pre_record_id} failed",
        wrap_as=DatabaseError,
    ):
        async with async_session() as session:
            removed = await episode_ledger.delete_pre_recorded(session, pre_record_id)
            await session.execute(delete(TaskHistory).where(TaskHistory.id == pre_record_id))
            await session.commit()

    logger.info(f"Rolled back history entry #{pre_record_id} and {removed} ledger rows")


async def update_record(history_id: int, **fields) -> None:
    """Set columns on one history row (hash linking, size, finish state)."""
    async with async_session() as session:
        row = await session.get(TaskHistory, history_id)
        if row is None:
            return
        for key, value in fields.items():
            setattr(row, key, value)
        await session.commit()
