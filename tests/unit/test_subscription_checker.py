"""Unit tests for the end-to-end subscription check."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from seriesledger.core import file_selector
from seriesledger.core.candidate_filter import CandidateFilter
from seriesledger.core.errors import SubscriptionNotFoundError
from seriesledger.downloaders.mock import MockBackend
from seriesledger.models import AppConfig
from seriesledger.models.schemas import CandidateItem, TorrentFile, TorrentPayload, TorrentStatus
from seriesledger.services import episode_ledger, history_service
from seriesledger.services.ledger_sync import get_subscription
from seriesledger.services.subscription_checker import (
    SubscriptionChecker,
    derive_smart_regex,
    run_check,
)
from tests.unit.conftest import seed_client, seed_history, seed_subscription


def _item(title: str, guid: str | None = None) -> CandidateItem:
    return CandidateItem(title=title, link=f"http://example.com/{title}.torrent", guid=guid or title)


def _pack_payload(info_hash: str = "packhash", count: int = 6) -> TorrentPayload:
    files = [TorrentFile(name=f"Breaking.Good.S02E{ep:02d}.mkv") for ep in range(1, count + 1)]
    files.append(TorrentFile(name="Breaking.Good.S02.nfo"))
    return TorrentPayload(info_hash=info_hash, data_b64="ZGF0YQ==", files=files)


class TestProcess:
    async def test_new_episode_is_submitted_and_pre_recorded(self):
        sub = await seed_subscription(season=2, task_id=7)
        backend = MockBackend()
        checker = SubscriptionChecker(backend, AppConfig())

        report = await checker.process(sub, [_item("Breaking.Good.S02E01.1080p")])

        assert report.found == 1
        assert report.matched == 1
        assert report.submitted == 1
        assert len(backend.submissions) == 1
        assert await episode_ledger.query(sub.id, 2) == {1}
        assert await history_service.find_by_guid(7, "Breaking.Good.S02E01.1080p") is not None

    async def test_owned_episode_is_skipped(self):
        sub = await seed_subscription(season=2)
        await episode_ledger.record(sub.id, 2, 1)
        backend = MockBackend()

        report = await SubscriptionChecker(backend, AppConfig()).process(
            sub, [_item("Breaking.Good.S02E01.1080p")]
        )

        assert report.skipped == 1
        assert backend.submissions == []

    async def test_same_guid_is_skipped(self):
        sub = await seed_subscription(task_id=7)
        await seed_history("Breaking.Good.S02E03", task_id=7, item_guid="g3")
        backend = MockBackend()

        report = await SubscriptionChecker(backend, AppConfig()).process(
            sub, [_item("Totally different title", guid="g3")]
        )

        assert report.skipped == 1
        assert backend.submissions == []

    async def test_known_hash_is_skipped(self):
        sub = await seed_subscription()
        await seed_history("Something else", item_hash="PACKHASH")
        backend = MockBackend()
        checker = SubscriptionChecker(
            backend, AppConfig(), fetch_payload=AsyncMock(return_value=_pack_payload())
        )

        report = await checker.process(sub, [_item("Breaking.Good.S02.Complete")])

        assert report.skipped == 1
        assert backend.submissions == []

    async def test_hash_already_in_a_backend_is_skipped(self):
        sub = await seed_subscription()
        other = MockBackend(name="Other", torrents=[TorrentStatus(hash="packhash")])
        backend = MockBackend()
        checker = SubscriptionChecker(
            backend,
            AppConfig(),
            backends=[backend, other],
            fetch_payload=AsyncMock(return_value=_pack_payload()),
        )

        report = await checker.process(sub, [_item("Breaking.Good.S02.Complete")])

        assert report.skipped == 1

    async def test_season_pack_selects_missing_files(self):
        sub = await seed_subscription(season=2)
        for ep in (1, 2, 3):
            await episode_ledger.record(sub.id, 2, ep)
        backend = MockBackend()
        checker = SubscriptionChecker(
            backend, AppConfig(), fetch_payload=AsyncMock(return_value=_pack_payload())
        )

        report = await checker.process(sub, [_item("Breaking.Good.S02.Complete.1080p")])

        assert report.submitted == 1
        options = backend.submissions[0]["options"]
        assert backend.submissions[0]["kind"] == "data"
        assert options.file_indices == [3, 4, 5, 6]
        assert options.torrent_hash == "packhash"

    async def test_season_pack_without_new_episodes_is_skipped(self):
        sub = await seed_subscription(season=2)
        for ep in range(1, 7):
            await episode_ledger.record(sub.id, 2, ep)
        backend = MockBackend()
        checker = SubscriptionChecker(
            backend, AppConfig(), fetch_payload=AsyncMock(return_value=_pack_payload())
        )

        report = await checker.process(sub, [_item("Breaking.Good.S02.Complete.1080p")])

        assert report.skipped == 1
        assert backend.submissions == []

    async def test_pack_files_are_selected_once(self, monkeypatch):
        sub = await seed_subscription(season=2)
        await episode_ledger.record(sub.id, 2, 1)
        spy = MagicMock(wraps=file_selector.select_files)
        monkeypatch.setattr(file_selector, "select_files", spy)
        checker = SubscriptionChecker(
            MockBackend(), AppConfig(), fetch_payload=AsyncMock(return_value=_pack_payload())
        )

        report = await checker.process(sub, [_item("Breaking.Good.S02.Complete.1080p")])

        assert report.submitted == 1
        assert spy.call_count == 1

    async def test_smart_selection_disabled_takes_whole_pack(self):
        sub = await seed_subscription(season=2)
        await episode_ledger.record(sub.id, 2, 1)
        backend = MockBackend()
        checker = SubscriptionChecker(
            backend,
            AppConfig(smart_selection_enabled=False),
            fetch_payload=AsyncMock(return_value=_pack_payload()),
        )

        await checker.process(sub, [_item("Breaking.Good.S02.Complete.1080p")])

        assert backend.submissions[0]["options"].file_indices is None

    async def test_failed_submission_is_rolled_back(self):
        sub = await seed_subscription(season=2, task_id=7)
        checker = SubscriptionChecker(MockBackend(fail_with="Unauthorized"), AppConfig())

        report = await checker.process(sub, [_item("Breaking.Good.S02E04")])

        assert report.failed == 1
        assert report.messages == ["Unauthorized"]
        assert await episode_ledger.count(sub.id) == 0
        assert await history_service.find_by_guid(7, "Breaking.Good.S02E04") is None

    async def test_payload_fetch_error_falls_back_to_url(self):
        sub = await seed_subscription(season=2)
        backend = MockBackend()
        checker = SubscriptionChecker(
            backend, AppConfig(), fetch_payload=AsyncMock(side_effect=ConnectionError("boom"))
        )

        report = await checker.process(sub, [_item("Breaking.Good.S02E05")])

        assert report.submitted == 1
        assert backend.submissions[0]["kind"] == "url"

    async def test_filter_and_duplicate_candidates_in_one_batch(self):
        sub = await seed_subscription(season=2)
        backend = MockBackend()
        items = [
            _item("Breaking.Good.S02E07.720p"),
            _item("Breaking.Good.S02E07.1080p"),
            _item("Breaking.Good.S02E07.1080p.REPACK"),
        ]

        report = await SubscriptionChecker(backend, AppConfig()).process(
            sub, items, CandidateFilter(keywords="1080p")
        )

        assert report.found == 3
        assert report.matched == 2
        assert report.submitted == 1
        assert report.skipped == 1

    async def test_subscription_smart_regex_is_default_filter(self):
        sub = await seed_subscription(season=2, smart_regex=r"Breaking Good.*S0?2")
        backend = MockBackend()

        report = await SubscriptionChecker(backend, AppConfig()).process(
            sub, [_item("Breaking.Good.S02E08"), _item("Breaking Good S02E08")]
        )

        assert report.matched == 1


class TestRunCheck:
    async def test_without_clients(self):
        sub = await seed_subscription()
        report = await run_check(sub.id, [_item("Breaking.Good.S02E01")])
        assert report.submitted == 0
        assert report.messages == ["No available download client"]

    async def test_uses_configured_client(self):
        client = await seed_client(is_default=True)
        sub = await seed_subscription(client_id=client.id)

        report = await run_check(sub.id, [_item("Breaking.Good.S02E01")])

        assert report.submitted == 1


class TestDeriveSmartRegex:
    async def test_stores_pattern(self):
        sub = await seed_subscription(name="From", season=2, quality="4K")

        assert await derive_smart_regex(sub.id) == "From.*S0?2.*(2160p|4k|uhd)"
        assert (await get_subscription(sub.id)).smart_regex == "From.*S0?2.*(2160p|4k|uhd)"

    async def test_unknown_subscription(self):
        with pytest.raises(SubscriptionNotFoundError):
            await derive_smart_regex(999)
