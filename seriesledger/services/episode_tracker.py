"""Existence checking: is a candidate release already owned?

Owned episodes for the target season are merged from three sources:

1. the episode ledger (authoritative, may lag behind)
2. titles this subscription's own feed task recorded
3. titles recorded anywhere else (other tasks, manual downloads) whose text
   mentions the series name or alias

A candidate is redundant when every episode it carries is already owned.
Season packs and unparseable titles are never redundant here; they are
handled by file selection at download time.
"""

import logging

from seriesledger.core import episode_parser
from seriesledger.core.title_matcher import title_matches
from seriesledger.models import SeriesSubscription
from seriesledger.models.schemas import CandidateItem, RedundancyResult
from seriesledger.services import episode_ledger, history_service
from seriesledger.services.episode_ledger import LedgerFact

logger = logging.getLogger(__name__)


def episodes_from_task_titles(titles: list[str], target_season: int) -> set[int]:
    """Episodes of ``target_season`` named by a task's own history.

    Titles without a season tag predate strict tagging and count for any
    season. This can over-match; see DESIGN.md.
    """
    owned: set[int] = set()
    for title in titles:
        info = episode_parser.parse(title)
        if info is None:
            continue
        if info.season is None or info.season == target_season:
            owned.update(info.episodes)
    return owned


def episodes_from_foreign_titles(
    titles: list[str], subscription: SeriesSubscription, target_season: int
) -> set[int]:
    """Episodes of ``target_season`` in other history rows that mention this series."""
    owned: set[int] = set()
    for title in titles:
        if not title_matches(title, subscription.name, subscription.alias):
            continue
        info = episode_parser.parse(title)
        if info is not None and info.season == target_season:
            owned.update(info.episodes)
    return owned


async def owned_episodes(subscription: SeriesSubscription, target_season: int) -> set[int]:
    """Union of all three sources for one season."""
    owned = await episode_ledger.query(subscription.id, target_season)
    from_ledger = len(owned)

    owned |= episodes_from_task_titles(
        await history_service.titles_for_task(subscription.task_id), target_season
    )
    owned |= episodes_from_foreign_titles(
        await history_service.titles_outside_task(subscription.task_id),
        subscription,
        target_season,
    )

    if owned:
        logger.debug(
            f"[{subscription.name}] S{target_season:02d} owned: {sorted(owned)} "
            f"({from_ledger} from ledger)"
        )
    return owned


async def check_redundancy(
    item: CandidateItem, subscription: SeriesSubscription
) -> RedundancyResult:
    """Decide whether every episode in ``item`` is already owned."""
    candidate = episode_parser.parse(item.title)
    if candidate is None or not candidate.episodes:
        return RedundancyResult(is_redundant=False, candidate=candidate)

    target_season = episode_parser.resolve_season(candidate, subscription.season)
    owned = await owned_episodes(subscription, target_season)
    is_redundant = all(ep in owned for ep in candidate.episodes)
    logger.debug(
        f"[{subscription.name}] {candidate.label()} "
        f"{'already owned' if is_redundant else 'has new episodes'}"
    )

    return RedundancyResult(
        is_redundant=is_redundant,
        downloaded_episodes=owned,
        candidate=candidate,
        target_season=target_season,
    )


def ledger_facts_for(
    result: RedundancyResult, info_hash: str | None, title: str
) -> list[LedgerFact]:
    """Facts to pre-record for a single/multi-episode release (none for packs)."""
    if result.candidate is None or not result.candidate.episodes or result.target_season is None:
        return []
    return [
        LedgerFact(result.target_season, ep, info_hash, title) for ep in result.candidate.episodes
    ]
