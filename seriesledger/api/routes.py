"""REST API routes for SeriesLedger."""

import logging

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from seriesledger.core import file_selector
from seriesledger.core.errors import SubscriptionNotFoundError
from seriesledger.downloaders.registry import load_backends
from seriesledger.models.schemas import (
    CandidateItem,
    DownloadDecision,
    SyncReport,
    TorrentFile,
)
from seriesledger.services import episode_ledger, episode_tracker
from seriesledger.services.completion_tracker import check_completion
from seriesledger.services.config_service import get_config
from seriesledger.services.ledger_sync import get_subscription, sync
from seriesledger.services.subscription_checker import derive_smart_regex

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["series"])


# Request/Response Models
class EpisodesResponse(BaseModel):
    """Ledger contents for one subscription, grouped by season."""

    subscription_id: int
    name: str
    total: int
    seasons: dict[int, list[int]]


class CheckRequest(BaseModel):
    title: str


class CheckResponse(BaseModel):
    title: str
    is_redundant: bool
    season: int | None
    episodes: list[int]
    owned_episodes: list[int]


class SmartRegexResponse(BaseModel):
    subscription_id: int
    smart_regex: str


class FileSelectRequest(BaseModel):
    files: list[TorrentFile]
    downloaded_episodes: list[int] = []
    target_season: int | None = None


class FileSelectResponse(DownloadDecision):
    has_new: bool = False


async def _subscription_or_404(subscription_id: int):
    try:
        return await get_subscription(subscription_id)
    except SubscriptionNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e


@router.get("/series/{subscription_id}/episodes", response_model=EpisodesResponse)
async def list_episodes(subscription_id: int) -> EpisodesResponse:
    """Get the downloaded episodes of a subscription."""
    subscription = await _subscription_or_404(subscription_id)
    seasons = await episode_ledger.episodes_by_season(subscription_id)
    return EpisodesResponse(
        subscription_id=subscription_id,
        name=subscription.name,
        total=sum(len(eps) for eps in seasons.values()),
        seasons=seasons,
    )


@router.post("/series/{subscription_id}/sync", response_model=SyncReport)
async def sync_episodes(subscription_id: int) -> SyncReport:
    """Rebuild the ledger from finished downloads."""
    subscription = await _subscription_or_404(subscription_id)
    logger.info(f"Manual ledger sync requested for {subscription.name}")
    return await sync(subscription_id, await load_backends())


@router.post("/series/{subscription_id}/check", response_model=CheckResponse)
async def check_title(subscription_id: int, request: CheckRequest) -> CheckResponse:
    """Would a release with this title be redundant?"""
    subscription = await _subscription_or_404(subscription_id)
    item = CandidateItem(title=request.title, link="", guid=request.title)
    result = await episode_tracker.check_redundancy(item, subscription)
    return CheckResponse(
        title=request.title,
        is_redundant=result.is_redundant,
        season=result.target_season,
        episodes=list(result.candidate.episodes) if result.candidate else [],
        owned_episodes=sorted(result.downloaded_episodes),
    )


@router.post("/series/{subscription_id}/smart-regex", response_model=SmartRegexResponse)
async def rebuild_smart_regex(subscription_id: int) -> SmartRegexResponse:
    """Derive the feed filter regex from name, season and quality."""
    try:
        pattern = await derive_smart_regex(subscription_id)
    except SubscriptionNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    return SmartRegexResponse(subscription_id=subscription_id, smart_regex=pattern)


@router.post("/files/select", response_model=FileSelectResponse)
async def select_files(request: FileSelectRequest) -> FileSelectResponse:
    """Pick the files of a torrent worth downloading."""
    config = await get_config()
    indices = file_selector.select_files(
        request.files, request.downloaded_episodes, request.target_season
    )
    missing = file_selector.missing_episodes(
        request.files, request.downloaded_episodes, request.target_season
    )
    has_new = file_selector.selection_has_video(
        request.files, indices, config.video_extension_list
    )
    return FileSelectResponse(
        is_redundant=not has_new,
        missing_episodes=missing,
        selected_file_indices=indices,
        has_new=has_new,
    )


@router.post("/downloads/check-completion")
async def check_downloads() -> dict:
    """Mark history entries finished from the download clients' state."""
    finished = await check_completion(await load_backends())
    return {"finished": finished}
