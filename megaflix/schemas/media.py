from enum import Enum
from pydantic import BaseModel, Field
from typing import Annotated, List, Literal, Optional, Union


class SubjectKind(str, Enum):
    """Catalog subject discriminant"""
    MOVIE = "movie"
    SERIES = "series"


class Genre(BaseModel):
    id: int
    name: str


# ==================== Catalog items ====================

class MediaItemBase(BaseModel):
    id: int
    title: str
    poster_path: Optional[str] = None
    backdrop_path: Optional[str] = None
    overview: Optional[str] = None
    vote_average: Optional[float] = None

    class Config:
        frozen = True


class MovieItem(MediaItemBase):
    kind: Literal["movie"] = "movie"
    release_date: Optional[str] = None


class SeriesItem(MediaItemBase):
    kind: Literal["series"] = "series"
    first_air_date: Optional[str] = None


MediaItem = Annotated[Union[MovieItem, SeriesItem], Field(discriminator="kind")]


# ==================== Details ====================

class SeasonSummary(BaseModel):
    id: Optional[int] = None
    season_number: int
    name: Optional[str] = None
    episode_count: int = 0
    poster_path: Optional[str] = None

    class Config:
        frozen = True


class MovieDetails(MovieItem):
    genres: List[Genre] = []
    runtime: Optional[int] = None
    tagline: Optional[str] = None
    homepage: Optional[str] = None
    status: Optional[str] = None
    original_language: Optional[str] = None


class SeriesDetails(SeriesItem):
    genres: List[Genre] = []
    seasons: List[SeasonSummary] = []
    number_of_seasons: Optional[int] = None
    number_of_episodes: Optional[int] = None
    episode_run_time: List[int] = []
    tagline: Optional[str] = None
    homepage: Optional[str] = None
    status: Optional[str] = None
    original_language: Optional[str] = None

    def default_season_number(self) -> Optional[int]:
        """Season 1 when the series has one, otherwise its first regular season (specials skipped)"""
        regular = [season.season_number for season in self.seasons if season.season_number > 0]
        if not regular:
            return None
        return 1 if 1 in regular else regular[0]


class EpisodeInfo(BaseModel):
    season_number: int
    episode_number: int
    name: Optional[str] = None
    overview: Optional[str] = None
    still_path: Optional[str] = None
    air_date: Optional[str] = None

    class Config:
        frozen = True


class SeasonDetails(BaseModel):
    series_id: int
    season_number: int
    name: Optional[str] = None
    episodes: List[EpisodeInfo] = []

    class Config:
        frozen = True


class DiscoverResponse(BaseModel):
    movies: List[MovieItem] = []
    series: List[SeriesItem] = []


class SearchResponse(BaseModel):
    page: int = 1
    total_pages: int = 1
    results: List[MediaItem] = []
