"""Hand a pre-recorded release to a download backend, undoing the pre-record on failure.

The backend can't take part in a local transaction, so submission is a
two-step saga: the caller pre-records (history row + ledger rows tagged with
the history id) and this module submits. A refusal, an exception, a timeout or a
cancellation triggers the compensating delete. Nothing is retried here.
"""

import asyncio
import logging

from seriesledger.downloaders.base import DownloadBackend
from seriesledger.models import SeriesSubscription
from seriesledger.models.schemas import CandidateItem, SubmitOptions, SubmitResult, TorrentPayload
from seriesledger.services import history_service

logger = logging.getLogger(__name__)


async def _submit(
    item: CandidateItem,
    backend: DownloadBackend,
    payload: TorrentPayload | None,
    options: SubmitOptions,
) -> SubmitResult:
    if payload is not None and payload.data_b64 and not item.link.startswith("magnet:"):
        return await backend.submit_data(payload.data_b64, options)

    # Magnets and URL adds fetch the whole torrent
    if options.file_indices:
        logger.info(f"File selection unavailable for URL/magnet add, fetching all of {item.title}")
    return await backend.submit(
        item.link, SubmitOptions(save_path=options.save_path, category=options.category)
    )


async def execute_download(
    item: CandidateItem,
    subscription: SeriesSubscription | None,
    backend: DownloadBackend,
    payload: TorrentPayload | None = None,
    save_path: str | None = None,
    file_indices: list[int] | None = None,
    pre_record_id: int | None = None,
    category: str | None = None,
) -> SubmitResult:
    """Submit ``item`` and commit or roll back its pre-record.

    Returns:
        SubmitResult; on failure ``message`` carries the backend's reason.
    """
    options = SubmitOptions(
        save_path=save_path,
        category=category or (subscription.category if subscription is not None else None),
        file_indices=file_indices or None,
        torrent_hash=payload.info_hash if payload is not None else None,
    )

    try:
        result = await _submit(item, backend, payload, options)
    except asyncio.CancelledError:
        logger.warning(f"[{backend.name}] Submitting {item.title} was cancelled. Rolling back.")
        if pre_record_id is not None:
            await asyncio.shield(history_service.rollback(pre_record_id))
        raise
    except Exception as e:
        logger.error(f"[{backend.name}] Submitting {item.title} raised: {e}. Rolling back.")
        result = SubmitResult(success=False, message=str(e) or type(e).__name__)
    else:
        if result.success:
            message = f"Successfully added: {item.title}"
            if file_indices:
                message += f" ({len(file_indices)} files selected)"
            logger.info(f"[{backend.name}] {message}")
            return SubmitResult(success=True, message=message)

        logger.error(f"[{backend.name}] Failed to add {item.title}: {result.message}. Rolling back.")

    if pre_record_id is not None:
        await history_service.rollback(pre_record_id)

    return SubmitResult(success=False, message=result.message)
