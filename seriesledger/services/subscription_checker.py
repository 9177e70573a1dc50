"""One subscription check: feed candidates in, backend submissions out.

For each candidate that passes the filter the checker skips anything already
handled (same GUID for this task, same info hash anywhere in history or in a
backend), runs the existence check, narrows season packs to the files with
unowned episodes, pre-records and finally submits through the download
coordinator.
"""

import logging
from collections.abc import Awaitable, Callable

from seriesledger.core import episode_parser, file_selector
from seriesledger.core.candidate_filter import CandidateFilter, item_matches
from seriesledger.core.errors import SubscriptionNotFoundError
from seriesledger.core.title_matcher import build_smart_regex
from seriesledger.database import async_session
from seriesledger.downloaders import registry
from seriesledger.downloaders.base import DownloadBackend
from seriesledger.models import AppConfig, SeriesSubscription
from seriesledger.models.schemas import CandidateItem, CheckReport, RedundancyResult, TorrentPayload
from seriesledger.services import download_coordinator, episode_tracker, history_service
from seriesledger.services.config_service import get_config
from seriesledger.services.ledger_sync import get_subscription

logger = logging.getLogger(__name__)

PayloadFetcher = Callable[[CandidateItem], Awaitable[TorrentPayload | None]]


class SubscriptionChecker:
    """Processes feed candidates for subscriptions against one target backend."""

    def __init__(
        self,
        backend: DownloadBackend,
        config: AppConfig,
        backends: list[DownloadBackend] | None = None,
        fetch_payload: PayloadFetcher | None = None,
    ):
        self._backend = backend
        self._backends = backends if backends is not None else [backend]
        self._fetch_payload = fetch_payload
        self._config = config

    def _log(self, message: str) -> None:
        if self._config.enable_system_logs:
            logger.info(message)
        else:
            logger.debug(message)

    async def _payload_for(self, item: CandidateItem) -> TorrentPayload | None:
        if self._fetch_payload is None:
            return None
        try:
            return await self._fetch_payload(item)
        except Exception as e:
            # Falls back to a URL add without hash checks or file selection
            logger.warning(f"Fetching torrent for {item.title} failed: {e}")
            return None

    async def _hash_in_backends(self, info_hash: str) -> bool:
        wanted = info_hash.lower()
        for backend in self._backends:
            torrents = await backend.list_torrents()
            if torrents and any(t.hash.lower() == wanted for t in torrents):
                self._log(f"[{backend.name}] already has {info_hash}")
                return True
        return False

    async def _select_files(
        self,
        subscription: SeriesSubscription,
        payload: TorrentPayload,
        redundancy: RedundancyResult,
    ) -> list[int] | None:
        """File indices to request, None for "all files", [] for "nothing new"."""
        target_season = episode_parser.resolve_season(redundancy.candidate, subscription.season)
        if redundancy.candidate is not None and redundancy.candidate.episodes:
            owned = redundancy.downloaded_episodes
        else:
            owned = await episode_tracker.owned_episodes(subscription, target_season)

        selected = file_selector.select_files(payload.files, owned, target_season)
        extensions = self._config.video_extension_list
        if not file_selector.selection_has_video(payload.files, selected, extensions):
            return []

        if len(selected) == len(payload.files):
            return None
        return selected

    async def process(
        self,
        subscription: SeriesSubscription,
        items: list[CandidateItem],
        candidate_filter: CandidateFilter | None = None,
    ) -> CheckReport:
        report = CheckReport(found=len(items))
        candidate_filter = candidate_filter or CandidateFilter(smart_regex=subscription.smart_regex)

        for item in items:
            if not item_matches(item, candidate_filter):
                continue
            report.matched += 1

            if await history_service.find_by_guid(subscription.task_id, item.guid):
                report.skipped += 1
                continue

            payload = await self._payload_for(item)
            info_hash = payload.info_hash if payload is not None else None
            if info_hash and (
                await history_service.hash_exists(info_hash)
                or await self._hash_in_backends(info_hash)
            ):
                self._log(f"Hash {info_hash} already handled, skipping {item.title}")
                report.skipped += 1
                continue

            redundancy = await episode_tracker.check_redundancy(item, subscription)
            if redundancy.is_redundant:
                self._log(f"All episodes of {item.title} already owned, skipping")
                report.skipped += 1
                continue

            file_indices = None
            if self._config.smart_selection_enabled and payload is not None and len(payload.files) > 1:
                file_indices = await self._select_files(subscription, payload, redundancy)
                if file_indices == []:
                    self._log(f"No new episodes in {item.title}, skipping")
                    report.skipped += 1
                    continue

            facts = episode_tracker.ledger_facts_for(redundancy, info_hash, item.title)
            pre_record_id = await history_service.pre_record(
                subscription.task_id, item, info_hash, subscription.id, facts
            )
            if pre_record_id is None:
                report.skipped += 1
                continue

            result = await download_coordinator.execute_download(
                item,
                subscription,
                self._backend,
                payload=payload,
                save_path=subscription.save_path or self._config.default_save_path or None,
                file_indices=file_indices,
                pre_record_id=pre_record_id,
                category=subscription.category or self._config.default_category or None,
            )
            if result.success:
                report.submitted += 1
            else:
                report.failed += 1
            report.messages.append(result.message)

        logger.info(
            f"[{subscription.name}] Found {report.found}, matched {report.matched}, "
            f"submitted {report.submitted}, skipped {report.skipped}, failed {report.failed}"
        )
        return report


async def run_check(
    subscription_id: int,
    items: list[CandidateItem],
    fetch_payload: PayloadFetcher | None = None,
    candidate_filter: CandidateFilter | None = None,
) -> CheckReport:
    """Load the subscription, settings and backends, then process ``items``."""
    subscription = await get_subscription(subscription_id)
    backend = await registry.resolve_backend(subscription.client_id)
    if backend is None:
        report = CheckReport(found=len(items))
        report.messages.append("No available download client")
        logger.error(f"[{subscription.name}] No available download client")
        return report

    checker = SubscriptionChecker(
        backend,
        await get_config(),
        backends=await registry.load_backends(),
        fetch_payload=fetch_payload,
    )
    return await checker.process(subscription, items, candidate_filter)


async def derive_smart_regex(subscription_id: int) -> str:
    """Rebuild and store the subscription's feed filter from its name, season and quality."""
    async with async_session() as session:
        subscription = await session.get(SeriesSubscription, subscription_id)
        if subscription is None:
            raise SubscriptionNotFoundError(subscription_id)
        subscription.smart_regex = build_smart_regex(
            subscription.name, subscription.season, subscription.quality
        )
        await session.commit()
        logger.info(f"[{subscription.name}] Filter regex: {subscription.smart_regex}")
        return subscription.smart_regex
