"""In-process backend for dry runs: records submissions, serves canned listings."""

import logging

from seriesledger.downloaders.base import DownloadBackend
from seriesledger.models.schemas import SubmitOptions, SubmitResult, TorrentFile, TorrentStatus

logger = logging.getLogger(__name__)


class MockBackend(DownloadBackend):
    """Accepts everything unless told to fail."""

    def __init__(
        self,
        name: str = "Mock",
        files: dict[str, list[TorrentFile]] | None = None,
        torrents: list[TorrentStatus] | None = None,
        fail_with: str | None = None,
    ):
        self.name = name
        self.files = {h.lower(): v for h, v in (files or {}).items()}
        self.torrents = list(torrents or [])
        self.fail_with = fail_with
        self.submissions: list[dict] = []

    def _record(self, kind: str, payload: str, options: SubmitOptions | None) -> SubmitResult:
        if self.fail_with is not None:
            return SubmitResult(success=False, message=self.fail_with)
        self.submissions.append({"kind": kind, "payload": payload, "options": options})
        logger.info(f"[Mock] Accepted {kind} submission ({len(self.submissions)} total)")
        return SubmitResult(success=True, message=f"Added to {self.name}")

    async def submit(self, url: str, options: SubmitOptions | None = None) -> SubmitResult:
        return self._record("url", url, options)

    async def submit_data(
        self, data_b64: str, options: SubmitOptions | None = None
    ) -> SubmitResult:
        return self._record("data", data_b64, options)

    async def list_files(self, torrent_hash: str) -> list[TorrentFile] | None:
        return self.files.get(torrent_hash.lower())

    async def list_torrents(self) -> list[TorrentStatus] | None:
        return list(self.torrents)
