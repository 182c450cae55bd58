from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session
import logging

from ...database import get_db
from ...models.user import User
from ...schemas.watch_history import (
    ContinueWatchingItem,
    EpisodeRef,
    HistoryItemResponse,
    HistoryUpdate,
    NextEpisodeCandidate,
    WatchedEpisodesResponse,
)
from ...services import history as history_store
from ...services.catalog import TMDBCatalog, get_catalog
from ...services.player import player_url_for
from ...services.progress_reconciler import (
    continue_watching,
    select_next_episode,
    watched_episode_keys,
)
from ..deps import get_current_user

router = APIRouter()
logger = logging.getLogger(__name__)


def row_to_response(row) -> HistoryItemResponse:
    return HistoryItemResponse(
        id=row.id,
        tmdb_id=row.tmdb_id,
        item_type=row.item_type,
        title=row.title,
        poster_path=row.poster_path,
        progress=row.progress,
        season_number=row.season_number,
        episode_number=row.episode_number,
        updated_at=row.updated_at.isoformat() if row.updated_at else None,
    )


@router.get("", response_model=List[HistoryItemResponse])
def get_history(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Every progress row of the user"""
    return [row_to_response(row) for row in history_store.list_rows(db, current_user.id)]


@router.post("", response_model=HistoryItemResponse)
def update_history(
    payload: HistoryUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Record progress for a movie or an episode.
    Existing rows for the same movie or episode are updated in place.
    """
    try:
        row = history_store.record_event(db, current_user.id, payload)
    except Exception:
        db.rollback()
        raise
    return row_to_response(row)


@router.get("/continue-watching", response_model=List[ContinueWatchingItem])
def get_continue_watching(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """One entry per movie or series, positioned on the most advanced episode"""
    events = history_store.list_events(db, current_user.id)
    return [
        ContinueWatchingItem(**entry.dict(), player_url=player_url_for(entry))
        for entry in continue_watching(events)
    ]


@router.get("/series/{series_id}/watched", response_model=WatchedEpisodesResponse)
def get_watched_episodes(
    series_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Episodes of a series watched to the end"""
    events = history_store.list_events(db, current_user.id)
    keys = sorted(watched_episode_keys(events, series_id))
    return WatchedEpisodesResponse(
        series_id=series_id,
        episodes=[EpisodeRef(season_number=s, episode_number=e) for s, e in keys],
    )


@router.get("/series/{series_id}/next-episode", response_model=Optional[NextEpisodeCandidate])
async def get_next_episode(
    series_id: int,
    season: Optional[int] = Query(default=None, ge=0),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    catalog: TMDBCatalog = Depends(get_catalog),
):
    """
    Episode to offer on the series page for the selected season.
    Defaults to the series' first season when none is given.
    """
    if season is None:
        details = await catalog.tv_details(series_id)
        season = details.default_season_number()
        if season is None:
            return None

    season_details = await catalog.season(series_id, season)
    events = await run_in_threadpool(history_store.list_events, db, current_user.id)

    candidate = select_next_episode(season_details.episodes, events, season, series_id)
    if candidate is None:
        logger.info(f"ℹ️ No episode to suggest for series {series_id} season {season}")
    return candidate
