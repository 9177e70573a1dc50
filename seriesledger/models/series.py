"""Series tracking tables: subscriptions, the episode ledger and download history."""

from datetime import datetime, timezone

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SeriesSubscription(SQLModel, table=True):
    """An ongoing TV-series subscription. Read-only to the episode engine."""

    __tablename__ = "series_subscriptions"

    id: int | None = Field(default=None, primary_key=True)
    name: str
    alias: str | None = None  # Original (e.g. English) title used for matching
    season: int | None = None  # Configured default season
    quality: str | None = None  # e.g. "1080p", "4K"
    smart_regex: str | None = None  # Derived filter, see title_matcher.build_smart_regex
    task_id: int | None = Field(default=None, index=True)  # Feed task that scans for this series
    total_episodes: int | None = None  # Hint only

    # Where accepted releases go
    save_path: str | None = None
    category: str = "Series"
    client_id: int | None = Field(default=None, foreign_key="download_clients.id")

    created_at: datetime = Field(default_factory=utcnow)


class SeriesEpisode(SQLModel, table=True):
    """One confirmed-owned (season, episode) fact for a subscription.

    Rows are written with insert-or-ignore on the unique key and never updated.
    ``pre_record_id`` points at the history row whose pre-record created this
    entry, so a failed submission can remove exactly that batch.
    """

    __tablename__ = "series_episodes"
    __table_args__ = (
        UniqueConstraint("subscription_id", "season", "episode", name="uq_series_episode"),
    )

    id: int | None = Field(default=None, primary_key=True)
    subscription_id: int = Field(foreign_key="series_subscriptions.id", index=True)
    season: int
    episode: int
    torrent_hash: str | None = None
    torrent_title: str | None = None
    pre_record_id: int | None = Field(default=None, index=True)
    recorded_at: datetime = Field(default_factory=utcnow)


class TaskHistory(SQLModel, table=True):
    """A release that was sent (or is being sent) to a download backend.

    ``task_id`` is NULL for manual downloads. ``is_finished`` flips once the
    completion tracker sees the torrent done in a backend.
    """

    __tablename__ = "task_history"
    __table_args__ = (UniqueConstraint("task_id", "item_guid", name="uq_task_history_guid"),)

    id: int | None = Field(default=None, primary_key=True)
    task_id: int | None = Field(default=None, index=True)
    item_guid: str
    item_title: str
    item_hash: str | None = Field(default=None, index=True)
    item_size: int = 0
    is_finished: bool = False
    download_time: datetime = Field(default_factory=utcnow)
    finish_time: datetime | None = None
