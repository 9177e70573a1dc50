"""Download backend abstraction.

Backends report expected remote failures as values: a failed
:class:`SubmitResult` for submissions and ``None`` for listings. They only
raise for programming errors.
"""

import abc

from seriesledger.models.schemas import SubmitOptions, SubmitResult, TorrentFile, TorrentStatus


class DownloadBackend(abc.ABC):
    """A torrent client the engine can submit to and inspect."""

    name: str = "backend"

    @abc.abstractmethod
    async def submit(self, url: str, options: SubmitOptions | None = None) -> SubmitResult:
        """Add a torrent by URL or magnet link. File selection is not available here."""

    @abc.abstractmethod
    async def submit_data(
        self, data_b64: str, options: SubmitOptions | None = None
    ) -> SubmitResult:
        """Add a torrent from base64-encoded .torrent content, honouring ``file_indices``."""

    @abc.abstractmethod
    async def list_files(self, torrent_hash: str) -> list[TorrentFile] | None:
        """File list of a torrent, or None if this backend doesn't have it / can't answer."""

    @abc.abstractmethod
    async def list_torrents(self) -> list[TorrentStatus] | None:
        """All torrents known to the backend, or None on failure."""

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"
