"""Transient data models passed between the episode engine components."""

from pydantic import BaseModel, Field, field_validator, model_validator


class EpisodeIdentifier(BaseModel):
    """Season/episode numbers parsed from a release or file title.

    An unparseable title is represented by ``None`` at the call site, never by
    an identifier with neither season nor episodes.
    """

    season: int | None = None
    episodes: tuple[int, ...] = ()

    @field_validator("episodes", mode="before")
    @classmethod
    def _dedupe_and_sort(cls, value):
        return tuple(sorted(set(value or ())))

    @model_validator(mode="after")
    def _not_empty(self):
        if self.season is None and not self.episodes:
            raise ValueError("identifier needs a season or at least one episode")
        return self

    @property
    def is_season_pack(self) -> bool:
        return self.season is not None and not self.episodes

    def label(self) -> str:
        season = f"S{self.season:02d}" if self.season is not None else "S??"
        if not self.episodes:
            return season
        return season + "".join(f"E{ep:02d}" for ep in self.episodes)


class CandidateItem(BaseModel):
    """A release discovered by a feed."""

    title: str
    link: str
    guid: str
    size: int = 0


class TorrentFile(BaseModel):
    """One entry of a torrent's file list."""

    name: str
    size: int = 0


class TorrentPayload(BaseModel):
    """Fetched torrent content. ``data_b64`` is None for magnets or when the download failed."""

    info_hash: str | None = None
    data_b64: str | None = None
    files: list[TorrentFile] = Field(default_factory=list)


class TorrentStatus(BaseModel):
    """A torrent as reported by a download backend."""

    hash: str
    name: str = ""
    size: int = 0
    progress: float = 0.0  # 0.0 - 1.0
    state: str = ""
    added_on: int | None = None  # Unix timestamps
    completed_on: int | None = None


class SubmitOptions(BaseModel):
    save_path: str | None = None
    category: str | None = None
    file_indices: list[int] | None = None
    torrent_hash: str | None = None


class SubmitResult(BaseModel):
    success: bool
    message: str = ""


class RedundancyResult(BaseModel):
    """Outcome of the existence check for one candidate."""

    is_redundant: bool
    downloaded_episodes: set[int] = Field(default_factory=set)
    candidate: EpisodeIdentifier | None = None
    target_season: int | None = None


class DownloadDecision(BaseModel):
    is_redundant: bool = False
    missing_episodes: set[int] = Field(default_factory=set)
    selected_file_indices: list[int] = Field(default_factory=list)


class SyncReport(BaseModel):
    """Result of a ledger synchronization run."""

    subscription_id: int
    scanned: int = 0  # Matching finished history rows
    inserted: int = 0  # New ledger rows written this run
    packs_inspected: int = 0
    packs_skipped: int = 0  # Season packs no backend could list
    episodes: dict[int, list[int]] = Field(default_factory=dict)


class CheckReport(BaseModel):
    """Counters and messages for one subscription check."""

    found: int = 0
    matched: int = 0
    submitted: int = 0
    skipped: int = 0
    failed: int = 0
    messages: list[str] = Field(default_factory=list)
