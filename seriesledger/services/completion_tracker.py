"""Mark history rows finished once their torrents are complete in a backend.

Rows are matched to backend torrents by info hash, or failing that by
normalized name (sizes must agree within 1% when both are known). A
name match links the hash so later passes are exact.
"""

import logging
from datetime import datetime, timezone

from seriesledger.core.title_matcher import normalize_title
from seriesledger.downloaders.base import DownloadBackend
from seriesledger.models import TaskHistory
from seriesledger.models.schemas import TorrentStatus
from seriesledger.services import history_service

logger = logging.getLogger(__name__)

FINISHED_STATES = {
    "seeding",
    "complete",
    "uploading",
    "pausedUP",
    "stoppedUP",
    "stalledUP",
    "queuedUP",
    "forcedUP",
    "finished",
}

SIZE_TOLERANCE = 0.01


def find_torrent(record: TaskHistory, torrents: list[TorrentStatus]) -> TorrentStatus | None:
    if record.item_hash:
        wanted = record.item_hash.lower()
        return next((t for t in torrents if t.hash.lower() == wanted), None)

    title = normalize_title(record.item_title)
    if not title:
        return None
    for torrent in torrents:
        name = normalize_title(torrent.name)
        if not name or not (name == title or name in title or title in name):
            continue
        if record.item_size > 0 and torrent.size > 0:
            if abs(torrent.size - record.item_size) >= record.item_size * SIZE_TOLERANCE:
                continue
        return torrent
    return None


def is_finished(torrent: TorrentStatus) -> bool:
    return torrent.progress >= 1 or torrent.state in FINISHED_STATES


async def check_completion(backends: list[DownloadBackend]) -> int:
    """Update unfinished history rows from backend state. Returns rows marked finished."""
    unfinished = await history_service.unfinished_records()
    if not unfinished or not backends:
        return 0

    torrents: list[TorrentStatus] = []
    for backend in backends:
        listing = await backend.list_torrents()
        if listing:
            torrents.extend(listing)
    if not torrents:
        return 0

    logger.debug(f"Checking completion of {len(unfinished)} items against {len(torrents)} torrents")

    finished = 0
    for record in unfinished:
        torrent = find_torrent(record, torrents)
        if torrent is None:
            continue

        updates: dict = {}
        if not record.item_hash and torrent.hash:
            updates["item_hash"] = torrent.hash
            logger.info(f"Linked hash {torrent.hash} to {record.item_title}")
        if not record.item_size and torrent.size > 0:
            updates["item_size"] = torrent.size
        if is_finished(torrent):
            updates["is_finished"] = True
            updates["finish_time"] = (
                datetime.fromtimestamp(torrent.completed_on, tz=timezone.utc)
                if torrent.completed_on
                else datetime.now(timezone.utc)
            )
            finished += 1
            logger.info(f"Finished: {record.item_title}")

        if updates:
            await history_service.update_record(record.id, **updates)

    return finished
