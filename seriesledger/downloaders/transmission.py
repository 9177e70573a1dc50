"""Transmission backend on top of transmission-rpc."""

import asyncio
import base64
import binascii
import logging
from datetime import datetime

from transmission_rpc import Client
from transmission_rpc.error import TransmissionError

from seriesledger.config import settings
from seriesledger.downloaders.base import DownloadBackend
from seriesledger.models.schemas import SubmitOptions, SubmitResult, TorrentFile, TorrentStatus

logger = logging.getLogger(__name__)


def _timestamp(value: datetime | None) -> int | None:
    if value is None:
        return None
    ts = int(value.timestamp())
    return ts if ts > 0 else None


class TransmissionBackend(DownloadBackend):
    """Talks to a Transmission daemon over RPC."""

    def __init__(
        self,
        host: str,
        port: int,
        username: str = "",
        password: str = "",
        name: str | None = None,
        timeout: float | None = None,
    ):
        self.name = name or f"Transmission@{host}:{port}"
        self._conn_args = dict(
            host=host,
            port=port,
            username=username or None,
            password=password or None,
            timeout=timeout or settings.backend_timeout,
        )
        self._client: Client | None = None

    def _rpc(self) -> Client:
        # Client() performs the session handshake, so it's built on first use
        if self._client is None:
            self._client = Client(**self._conn_args)
        return self._client

    def _add(self, torrent: str | bytes, options: SubmitOptions, files_wanted: list[int] | None):
        return self._rpc().add_torrent(
            torrent,
            download_dir=options.save_path or None,
            labels=[options.category] if options.category else None,
            files_wanted=files_wanted,
        )

    async def submit(self, url: str, options: SubmitOptions | None = None) -> SubmitResult:
        options = options or SubmitOptions()
        try:
            await asyncio.to_thread(self._add, url, options, None)
        except TransmissionError as e:
            logger.warning(f"[{self.name}] Add by URL failed: {e}")
            return SubmitResult(success=False, message=f"Add failed: {e}")
        return SubmitResult(success=True, message=f"Added to {self.name}")

    async def submit_data(
        self, data_b64: str, options: SubmitOptions | None = None
    ) -> SubmitResult:
        options = options or SubmitOptions()
        try:
            raw = base64.b64decode(data_b64, validate=True)
        except (binascii.Error, ValueError) as e:
            return SubmitResult(success=False, message=f"Invalid torrent payload: {e}")

        try:
            await asyncio.to_thread(self._add, raw, options, options.file_indices or None)
        except TransmissionError as e:
            logger.warning(f"[{self.name}] Add from data failed: {e}")
            return SubmitResult(success=False, message=f"Add failed: {e}")
        return SubmitResult(success=True, message=f"Added to {self.name}")

    def _files(self, torrent_hash: str) -> list[TorrentFile]:
        torrent = self._rpc().get_torrent(torrent_hash)
        return [TorrentFile(name=f.name, size=f.size) for f in torrent.get_files()]

    async def list_files(self, torrent_hash: str) -> list[TorrentFile] | None:
        try:
            return await asyncio.to_thread(self._files, torrent_hash)
        except KeyError:
            return None
        except TransmissionError as e:
            logger.warning(f"[{self.name}] Listing files of {torrent_hash} failed: {e}")
            return None

    def _torrents(self) -> list[TorrentStatus]:
        return [
            TorrentStatus(
                hash=t.hashString,
                name=t.name,
                size=t.total_size,
                progress=t.percent_done,
                state=t.status.value,
                added_on=_timestamp(t.added_date),
                completed_on=_timestamp(t.done_date),
            )
            for t in self._rpc().get_torrents()
        ]

    async def list_torrents(self) -> list[TorrentStatus] | None:
        try:
            return await asyncio.to_thread(self._torrents)
        except TransmissionError as e:
            logger.warning(f"[{self.name}] Listing torrents failed: {e}")
            return None
