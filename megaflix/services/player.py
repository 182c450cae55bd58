"""Embedded third-party player URLs"""
from typing import Optional
from urllib.parse import urlencode

from ..config import settings
from ..schemas.media import SubjectKind
from ..schemas.watch_history import ResumeEntry


def movie_player_url(tmdb_id: int, base_url: Optional[str] = None) -> str:
    base = (base_url or settings.PLAYER_EMBED_BASE_URL).rstrip("/")
    return f"{base}/movie?{urlencode({'tmdb': tmdb_id})}"


def episode_player_url(
    tmdb_id: int,
    season_number: int,
    episode_number: int,
    base_url: Optional[str] = None,
) -> str:
    base = (base_url or settings.PLAYER_EMBED_BASE_URL).rstrip("/")
    query = urlencode({"tmdb": tmdb_id, "sea": season_number, "epi": episode_number})
    return f"{base}/series?{query}"


def player_url_for(entry: ResumeEntry, base_url: Optional[str] = None) -> str:
    """Player URL that resumes a continue-watching entry"""
    if entry.kind == SubjectKind.SERIES:
        return episode_player_url(entry.subject_id, entry.season_number, entry.episode_number, base_url)
    return movie_player_url(entry.subject_id, base_url)
