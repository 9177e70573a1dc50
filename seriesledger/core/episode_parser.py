"""Episode identifier parsing for release and file titles.

Turns free text such as ``Show.S01E01-E03.1080p.mkv`` into an
:class:`EpisodeIdentifier`. Patterns are tried from most to least specific and
the first hit wins:

1. ``S01E05``, ``S01E01-E03``, ``S01E01-03``
2. a standalone ``E05`` / ``EP05`` (optionally ``E01-E03``) plus a separate
   ``S01`` / ``Season 1`` token
3. ``1x05``
4. a bare ``S01`` / ``Season 1`` (season pack)

Anything else is unparseable and yields ``None``.
"""

import re

from seriesledger.models.schemas import EpisodeIdentifier

# Longest span a range like E01-E24 may cover before it is treated as two
# separate numbers (guards against "S01E01-1080p")
MAX_EPISODE_SPAN = 100

_SXXEXX_RE = re.compile(r"S(\d+)\s*E(\d+)(?:-\s*E?(\d+))?", re.IGNORECASE)

# Only trust a bare E/EP marker when it is delimited by whitespace or brackets
_EPISODE_ONLY_RE = re.compile(
    r"(?:^|\s|[\[(])EP?(\d+)(?:-\s*E?(\d+))?(?:$|\s|[\])])",
    re.IGNORECASE,
)
_SEASON_TOKEN_RE = re.compile(
    r"(?:^|\s|[\[(])(?:S|Season)\s?(\d+)(?:$|\s|[\])])",
    re.IGNORECASE,
)

# Digit guards keep resolutions like 1920x1080 from reading as season 20
_CROSS_RE = re.compile(r"(?<!\d)(\d{1,2})x(\d{2,3})(?!\d)", re.IGNORECASE)

_SEASON_ONLY_RE = re.compile(
    r"(?:^|[\s.\[(])(?:S|Season)[\s.]?(\d+)(?=[\s.\-\])]|$)",
    re.IGNORECASE,
)


def expand_range(start: int, end: int | None) -> list[int]:
    """Expand ``start``-``end`` into its episodes.

    A reversed or implausibly long range keeps just the two endpoints.
    """
    if end is None:
        return [start]
    if end >= start and end - start < MAX_EPISODE_SPAN:
        return list(range(start, end + 1))
    return [start, end]


def _optional_int(value: str | None) -> int | None:
    return int(value) if value is not None else None


def parse(title: str | None) -> EpisodeIdentifier | None:
    """Parse season and episode numbers from a title.

    Returns:
        EpisodeIdentifier with ascending, de-duplicated episodes. A season pack
        has a season and no episodes. ``None`` when nothing recognisable is found.
    """
    if not title:
        return None

    match = _SXXEXX_RE.search(title)
    if match:
        episodes = expand_range(int(match.group(2)), _optional_int(match.group(3)))
        return EpisodeIdentifier(season=int(match.group(1)), episodes=episodes)

    match = _EPISODE_ONLY_RE.search(title)
    if match:
        episodes = expand_range(int(match.group(1)), _optional_int(match.group(2)))
        season_match = _SEASON_TOKEN_RE.search(title)
        season = int(season_match.group(1)) if season_match else None
        return EpisodeIdentifier(season=season, episodes=episodes)

    match = _CROSS_RE.search(title)
    if match:
        return EpisodeIdentifier(season=int(match.group(1)), episodes=[int(match.group(2))])

    match = _SEASON_ONLY_RE.search(title)
    if match:
        return EpisodeIdentifier(season=int(match.group(1)), episodes=[])

    return None


def resolve_season(identifier: EpisodeIdentifier | None, fallback: int | None) -> int:
    """Season to use for ledger lookups: parsed, else the fallback, else 1."""
    if identifier is not None and identifier.season is not None:
        return identifier.season
    return fallback or 1
