"""Rebuild a subscription's episode ledger from finished downloads.

Finished history rows that mention the series are parsed. Episode releases
become ledger facts directly. Season packs are expanded by asking the download
backends for the torrent's file list. Every fact goes through the ledger's
insert-or-ignore, so a sync can be re-run at any time and converges on the
same ledger.
"""

import logging

from sqlalchemy.exc import SQLAlchemyError

from seriesledger.core import episode_parser
from seriesledger.core.errors import LedgerError, SubscriptionNotFoundError, handle_errors
from seriesledger.core.title_matcher import title_matches
from seriesledger.database import async_session
from seriesledger.downloaders.base import DownloadBackend
from seriesledger.models import SeriesSubscription, TaskHistory
from seriesledger.models.schemas import SyncReport, TorrentFile
from seriesledger.services import episode_ledger, history_service
from seriesledger.services.episode_ledger import LedgerFact

logger = logging.getLogger(__name__)


async def get_subscription(subscription_id: int) -> SeriesSubscription:
    async with async_session() as session:
        subscription = await session.get(SeriesSubscription, subscription_id)
    if subscription is None:
        raise SubscriptionNotFoundError(subscription_id)
    return subscription


async def fetch_file_list(
    torrent_hash: str, backends: list[DownloadBackend]
) -> list[TorrentFile] | None:
    """Ask each backend in turn; first non-empty answer wins."""
    for backend in backends:
        try:
            files = await backend.list_files(torrent_hash)
        except Exception as e:
            logger.warning(f"[{backend.name}] Listing {torrent_hash} raised: {e}")
            continue
        if files:
            return files
    return None


def facts_from_files(
    files: list[TorrentFile], fallback_season: int, record: TaskHistory
) -> list[LedgerFact]:
    facts = []
    for file in files:
        info = episode_parser.parse(file.name)
        if info is None or not info.episodes:
            continue
        season = info.season if info.season is not None else fallback_season
        facts.extend(
            LedgerFact(season, ep, record.item_hash, record.item_title) for ep in info.episodes
        )
    return facts


@handle_errors(
    error_types=(SQLAlchemyError,),
    default_message="Ledger sync failed",
    wrap_as=LedgerError,
)
async def sync(subscription_id: int, backends: list[DownloadBackend]) -> SyncReport:
    """Backfill the ledger for one subscription and return the merged view."""
    subscription = await get_subscription(subscription_id)
    report = SyncReport(subscription_id=subscription_id)

    matches = [
        record
        for record in await history_service.finished_records()
        if title_matches(record.item_title, subscription.name, subscription.alias)
    ]
    report.scanned = len(matches)

    facts: list[LedgerFact] = []
    for record in matches:
        info = episode_parser.parse(record.item_title)
        if info is None:
            continue

        if info.episodes:
            season = episode_parser.resolve_season(info, subscription.season)
            facts.extend(
                LedgerFact(season, ep, record.item_hash, record.item_title) for ep in info.episodes
            )
            continue

        # Season pack: look inside the torrent
        if not record.item_hash:
            logger.debug(f"Season pack without hash, skipping: {record.item_title}")
            report.packs_skipped += 1
            continue

        files = await fetch_file_list(record.item_hash, backends)
        if files is None:
            logger.info(f"No backend could list {record.item_title}; will retry next sync")
            report.packs_skipped += 1
            continue

        report.packs_inspected += 1
        facts.extend(facts_from_files(files, info.season, record))

    if facts:
        async with async_session() as session:
            report.inserted = await episode_ledger.insert_facts(session, subscription_id, facts)
            await session.commit()

    report.episodes = await episode_ledger.episodes_by_season(subscription_id)
    logger.info(
        f"[{subscription.name}] Sync: {report.scanned} history matches, "
        f"{report.packs_inspected} packs inspected, {report.inserted} new ledger rows"
    )
    return report
