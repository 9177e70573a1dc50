"""Selective retrieval for multi-file torrents.

Given a torrent's file list and the episodes already owned for the target
season, pick the file indices worth downloading.
"""

import logging
from collections.abc import Iterable, Sequence

from seriesledger.core import episode_parser
from seriesledger.models.app_config import DEFAULT_VIDEO_EXTENSIONS
from seriesledger.models.schemas import TorrentFile

logger = logging.getLogger(__name__)

VIDEO_EXTENSIONS = tuple(DEFAULT_VIDEO_EXTENSIONS.split(","))


def select_files(
    files: Sequence[TorrentFile],
    downloaded_episodes: Iterable[int],
    target_season: int | None = None,
) -> list[int]:
    """Return the 0-based indices of files that should be downloaded.

    Per file, first matching rule wins:
    - nothing owned yet: take everything
    - no parseable episode in the name (subs, NFO, samples): take it
    - a different, known season: take it
    - otherwise take it only if it carries an episode not yet owned

    An empty result means the torrent holds nothing new.
    """
    if not files:
        return []

    owned = set(downloaded_episodes)
    if not owned:
        return list(range(len(files)))

    selected = []
    for idx, file in enumerate(files):
        info = episode_parser.parse(file.name)

        if info is None or not info.episodes:
            selected.append(idx)
            continue

        if target_season is not None and info.season is not None and info.season != target_season:
            selected.append(idx)
            continue

        if any(ep not in owned for ep in info.episodes):
            selected.append(idx)

    logger.debug(f"Selected {len(selected)}/{len(files)} files (owned: {sorted(owned)})")
    return selected


def is_video_file(name: str, extensions: Sequence[str] = VIDEO_EXTENSIONS) -> bool:
    return name.lower().endswith(tuple(extensions))


def selection_has_video(
    files: Sequence[TorrentFile],
    selected: Iterable[int],
    extensions: Sequence[str] = VIDEO_EXTENSIONS,
) -> bool:
    return any(is_video_file(files[idx].name, extensions) for idx in selected)


def has_new_episodes(
    files: Sequence[TorrentFile],
    downloaded_episodes: Iterable[int],
    target_season: int | None = None,
    extensions: Sequence[str] = VIDEO_EXTENSIONS,
) -> bool:
    """True if the selection contains at least one video file.

    A selection made only of NFOs and subtitles is not worth submitting.
    """
    selected = select_files(files, downloaded_episodes, target_season)
    return selection_has_video(files, selected, extensions)


def missing_episodes(
    files: Sequence[TorrentFile],
    downloaded_episodes: Iterable[int],
    target_season: int | None = None,
) -> set[int]:
    """Episodes of ``target_season`` present in the file list but not owned."""
    owned = set(downloaded_episodes)
    found: set[int] = set()
    for file in files:
        info = episode_parser.parse(file.name)
        if info is None:
            continue
        if target_season is not None and info.season is not None and info.season != target_season:
            continue
        found.update(info.episodes)
    return found - owned
