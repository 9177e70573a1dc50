"""qBittorrent backend on top of qbittorrent-api.

qbittorrent-api is synchronous; every call is pushed to a worker thread so the
scheduler loop is never blocked on the Web UI.
"""

import asyncio
import base64
import binascii
import logging

import qbittorrentapi

from seriesledger.config import settings
from seriesledger.downloaders.base import DownloadBackend
from seriesledger.models.schemas import SubmitOptions, SubmitResult, TorrentFile, TorrentStatus

logger = logging.getLogger(__name__)

DESELECT_ATTEMPTS = 3
DESELECT_RETRY_DELAY = 1.0


class QBittorrentBackend(DownloadBackend):
    """Talks to the qBittorrent Web API."""

    def __init__(
        self,
        host: str,
        port: int,
        username: str = "",
        password: str = "",
        name: str | None = None,
        timeout: float | None = None,
    ):
        self.name = name or f"qBittorrent@{host}:{port}"
        self._client = qbittorrentapi.Client(
            host=host,
            port=port,
            username=username or None,
            password=password or None,
            REQUESTS_ARGS={"timeout": timeout or settings.backend_timeout},
        )

    def _add(self, options: SubmitOptions, **kwargs) -> str:
        result = self._client.torrents_add(
            save_path=options.save_path or None,
            category=options.category or None,
            **kwargs,
        )
        return str(result)

    def _deselect_files(self, torrent_hash: str, keep: list[int]) -> int:
        """Give every file outside ``keep`` priority 0. Returns how many were skipped."""
        files = self._client.torrents_files(torrent_hash=torrent_hash)
        wanted = set(keep)
        skip = [idx for idx in range(len(files)) if idx not in wanted]
        if skip:
            self._client.torrents_file_priority(
                torrent_hash=torrent_hash, file_ids=skip, priority=0
            )
        return len(skip)

    async def submit(self, url: str, options: SubmitOptions | None = None) -> SubmitResult:
        options = options or SubmitOptions()
        try:
            result = await asyncio.to_thread(self._add, options, urls=url)
        except qbittorrentapi.APIError as e:
            logger.warning(f"[{self.name}] Add by URL failed: {e}")
            return SubmitResult(success=False, message=f"Add failed: {e}")

        if result.startswith("Fails"):
            return SubmitResult(success=False, message=f"{self.name} rejected the torrent")
        return SubmitResult(success=True, message=f"Added to {self.name}")

    async def _apply_selection(self, torrent_hash: str, keep: list[int]) -> None:
        # The Web UI registers an added torrent asynchronously; its files can 404 briefly
        for attempt in range(1, DESELECT_ATTEMPTS + 1):
            try:
                skipped = await asyncio.to_thread(self._deselect_files, torrent_hash, keep)
            except qbittorrentapi.NotFound404Error:
                if attempt < DESELECT_ATTEMPTS:
                    await asyncio.sleep(DESELECT_RETRY_DELAY)
                    continue
                logger.warning(
                    f"[{self.name}] {torrent_hash} not visible after add; downloading all files"
                )
                return
            except qbittorrentapi.APIError as e:
                logger.warning(
                    f"[{self.name}] File selection for {torrent_hash} failed: {e}; "
                    "downloading all files"
                )
                return
            logger.debug(f"[{self.name}] Skipped {skipped} files of {torrent_hash}")
            return

    async def submit_data(
        self, data_b64: str, options: SubmitOptions | None = None
    ) -> SubmitResult:
        options = options or SubmitOptions()
        try:
            raw = base64.b64decode(data_b64, validate=True)
        except (binascii.Error, ValueError) as e:
            return SubmitResult(success=False, message=f"Invalid torrent payload: {e}")

        try:
            result = await asyncio.to_thread(self._add, options, torrent_files=raw)
        except qbittorrentapi.APIError as e:
            logger.warning(f"[{self.name}] Add from data failed: {e}")
            return SubmitResult(success=False, message=f"Add failed: {e}")
        if result.startswith("Fails"):
            return SubmitResult(success=False, message=f"{self.name} rejected the torrent")

        # The torrent is in the client from here on; selection problems don't undo the add
        if options.file_indices:
            if options.torrent_hash:
                await self._apply_selection(options.torrent_hash, options.file_indices)
            else:
                logger.warning(
                    f"[{self.name}] File selection requested without a torrent hash; "
                    "downloading all files"
                )

        return SubmitResult(success=True, message=f"Added to {self.name}")

    async def list_files(self, torrent_hash: str) -> list[TorrentFile] | None:
        try:
            files = await asyncio.to_thread(self._client.torrents_files, torrent_hash=torrent_hash)
        except qbittorrentapi.NotFound404Error:
            return None
        except qbittorrentapi.APIError as e:
            logger.warning(f"[{self.name}] Listing files of {torrent_hash} failed: {e}")
            return None
        return [TorrentFile(name=f.name, size=f.size) for f in files]

    async def list_torrents(self) -> list[TorrentStatus] | None:
        try:
            torrents = await asyncio.to_thread(self._client.torrents_info)
        except qbittorrentapi.APIError as e:
            logger.warning(f"[{self.name}] Listing torrents failed: {e}")
            return None
        return [
            TorrentStatus(
                hash=t.hash,
                name=t.name,
                size=t.size,
                progress=t.progress,
                state=t.state,
                added_on=t.added_on if t.added_on and t.added_on > 0 else None,
                completed_on=t.completion_on if t.completion_on and t.completion_on > 0 else None,
            )
            for t in torrents
        ]
