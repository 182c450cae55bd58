"""
Watch history store.

Rows live in the ``watch_history`` table, one per (user, subject, season,
episode). Reads hand back every row of a user so the reconciler can do its
own subject filtering.
"""
import logging
from typing import List

from sqlalchemy.orm import Session

from ..models.watch_history import WatchHistory
from ..schemas.media import SubjectKind
from ..schemas.watch_history import HistoryUpdate, WatchEvent
from .progress_reconciler import parse_watch_event

logger = logging.getLogger(__name__)


def list_rows(db: Session, user_id: int) -> List[WatchHistory]:
    return db.query(WatchHistory).filter(
        WatchHistory.user_id == user_id
    ).order_by(WatchHistory.id).all()


def row_to_event(row: WatchHistory) -> WatchEvent:
    return parse_watch_event({
        "tmdb_id": row.tmdb_id,
        "item_type": row.item_type,
        "progress": row.progress,
        "season_number": row.season_number,
        "episode_number": row.episode_number,
        "title": row.title,
        "poster_path": row.poster_path,
    })


def list_events(db: Session, user_id: int) -> List[WatchEvent]:
    """All watch events of a user in insertion order"""
    return [row_to_event(row) for row in list_rows(db, user_id)]


def _find_row(db: Session, user_id: int, update: HistoryUpdate):
    query = db.query(WatchHistory).filter(
        WatchHistory.user_id == user_id,
        WatchHistory.tmdb_id == update.tmdb_id,
        WatchHistory.item_type == update.item_type,
    )
    if update.item_type == SubjectKind.SERIES.value:
        query = query.filter(
            WatchHistory.season_number == update.season_number,
            WatchHistory.episode_number == update.episode_number,
        )
    return query.first()


def record_event(db: Session, user_id: int, update: HistoryUpdate) -> WatchHistory:
    """
    Insert or update the progress row for a movie or an episode.

    The update is validated through the same ingestion the reconciler uses,
    so a series row without season/episode never reaches the table.
    """
    event = parse_watch_event(update.dict())

    progress = _find_row(db, user_id, update)
    if progress:
        progress.progress = event.progress_percent
        progress.title = update.title or progress.title
        progress.poster_path = update.poster_path or progress.poster_path
    else:
        progress = WatchHistory(
            user_id=user_id,
            tmdb_id=update.tmdb_id,
            item_type=update.item_type,
            title=update.title,
            poster_path=update.poster_path,
            progress=event.progress_percent,
            season_number=update.season_number if update.item_type == SubjectKind.SERIES.value else None,
            episode_number=update.episode_number if update.item_type == SubjectKind.SERIES.value else None,
        )
        db.add(progress)

    db.commit()
    db.refresh(progress)

    logger.info(
        f"📝 History updated for user {user_id}: {update.item_type} {update.tmdb_id} "
        f"-> {progress.progress}%"
    )
    return progress
