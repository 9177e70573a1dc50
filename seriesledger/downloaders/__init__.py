"""Download backends (torrent clients)."""

from seriesledger.downloaders.base import DownloadBackend
from seriesledger.downloaders.mock import MockBackend
from seriesledger.downloaders.qbittorrent import QBittorrentBackend
from seriesledger.downloaders.transmission import TransmissionBackend

__all__ = ["DownloadBackend", "MockBackend", "QBittorrentBackend", "TransmissionBackend"]
