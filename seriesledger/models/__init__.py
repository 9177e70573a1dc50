"""Data models for SeriesLedger."""

from seriesledger.models.app_config import AppConfig
from seriesledger.models.download_client import ClientType, DownloadClient
from seriesledger.models.series import SeriesEpisode, SeriesSubscription, TaskHistory

__all__ = [
    "AppConfig",
    "ClientType",
    "DownloadClient",
    "SeriesEpisode",
    "SeriesSubscription",
    "TaskHistory",
]
