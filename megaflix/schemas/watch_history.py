from enum import Enum
from pydantic import BaseModel, Field, validator
from typing import Annotated, List, Literal, Optional, Union

from .media import EpisodeInfo, SubjectKind


# ==================== Watch events ====================

class WatchEventBase(BaseModel):
    subject_id: int
    progress_percent: int = Field(ge=0, le=100)

    # Denormalized display fields, never part of identity
    title: Optional[str] = None
    poster_path: Optional[str] = None

    class Config:
        frozen = True


class MovieProgress(WatchEventBase):
    kind: Literal["movie"] = "movie"


class SeriesProgress(WatchEventBase):
    kind: Literal["series"] = "series"
    season_number: int = Field(ge=0)
    episode_number: int = Field(ge=0)

    @property
    def position(self) -> tuple:
        return (self.season_number, self.episode_number)


WatchEvent = Annotated[Union[MovieProgress, SeriesProgress], Field(discriminator="kind")]


# ==================== Derived views ====================

class ResumeEntry(BaseModel):
    """Single continue-watching record per subject"""
    key: str
    subject_id: int
    kind: SubjectKind
    progress_percent: int
    title: Optional[str] = None
    poster_path: Optional[str] = None
    season_number: Optional[int] = None
    episode_number: Optional[int] = None
    label: Optional[str] = None
    event: WatchEvent

    class Config:
        frozen = True


class NextEpisodeReason(str, Enum):
    START = "start"                    # first episode of the selected season
    RESUME = "resume"                  # unfinished episode, continue in place
    NEXT = "next"                      # episode after a completed one
    LAST_IN_SEASON = "last_in_season"  # completed the season, no rollover


class NextEpisodeCandidate(BaseModel):
    season_number: int
    episode_number: int
    reason: NextEpisodeReason
    episode: EpisodeInfo
    progress_percent: Optional[int] = None

    class Config:
        frozen = True


# ==================== API payloads ====================

class HistoryUpdate(BaseModel):
    """Progress submitted by the player page"""
    tmdb_id: int
    item_type: str
    title: Optional[str] = None
    poster_path: Optional[str] = None
    progress: int = Field(ge=0, le=100)
    season_number: Optional[int] = Field(default=None, ge=0)
    episode_number: Optional[int] = Field(default=None, ge=0)

    @validator('item_type')
    def normalize_item_type(cls, v):
        value = (v or "").strip().lower()
        if value == "tv":
            value = SubjectKind.SERIES.value
        if value not in (SubjectKind.MOVIE.value, SubjectKind.SERIES.value):
            raise ValueError("item_type must be 'movie' or 'series'")
        return value


class HistoryItemResponse(BaseModel):
    id: int
    tmdb_id: int
    item_type: str
    title: Optional[str] = None
    poster_path: Optional[str] = None
    progress: int
    season_number: Optional[int] = None
    episode_number: Optional[int] = None
    updated_at: Optional[str] = None


class ContinueWatchingItem(ResumeEntry):
    player_url: str


class EpisodeRef(BaseModel):
    season_number: int
    episode_number: int


class WatchedEpisodesResponse(BaseModel):
    series_id: int
    episodes: List[EpisodeRef] = []
