"""
TMDB metadata catalog.

Raw TMDB records are shaped either as movies (``title``) or as series
(``name``). They are turned into the ``MovieItem``/``SeriesItem`` union here,
once, so nothing downstream has to guess the kind again.
"""
import asyncio
import httpx
import logging
from typing import Any, Dict, List, Optional

from ..config import settings
from ..schemas.media import (
    DiscoverResponse,
    EpisodeInfo,
    Genre,
    MovieDetails,
    MovieItem,
    SearchResponse,
    SeasonDetails,
    SeasonSummary,
    SeriesDetails,
    SeriesItem,
)
from .cache import CacheService, cache_service

logger = logging.getLogger(__name__)


class CatalogError(Exception):
    """TMDB request failed or returned an unusable payload"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


# ============================================================
# Ingestion
# ============================================================

_SERIES_TYPES = ("tv", "series")


def resolve_kind(raw: Dict[str, Any], hint: Optional[str] = None) -> Optional[str]:
    """
    Decide whether a TMDB record is a movie or a series.
    TMDB ``media_type`` wins, then the caller's hint, then title vs name.
    """
    media_type = raw.get("media_type") or hint
    if media_type == "person":
        return None
    if media_type in _SERIES_TYPES:
        return "series"
    if media_type == "movie":
        return "movie"
    if raw.get("title") is not None:
        return "movie"
    if raw.get("name") is not None:
        return "series"
    return None


def _common_fields(raw: Dict[str, Any], title: str) -> dict:
    return {
        "id": raw["id"],
        "title": title,
        "poster_path": raw.get("poster_path"),
        "backdrop_path": raw.get("backdrop_path"),
        "overview": raw.get("overview"),
        "vote_average": raw.get("vote_average"),
    }


def to_media_item(raw: Dict[str, Any], hint: Optional[str] = None):
    """Build a MovieItem or SeriesItem, or None for people and unknown shapes"""
    if raw.get("id") is None:
        return None

    kind = resolve_kind(raw, hint)
    if kind == "movie":
        title = raw.get("title") or raw.get("original_title") or ""
        return MovieItem(**_common_fields(raw, title), release_date=raw.get("release_date"))
    if kind == "series":
        title = raw.get("name") or raw.get("original_name") or ""
        return SeriesItem(**_common_fields(raw, title), first_air_date=raw.get("first_air_date"))
    return None


def to_media_items(results: List[Dict[str, Any]], hint: Optional[str] = None) -> list:
    items = []
    for raw in results or []:
        item = to_media_item(raw, hint)
        if item is not None:
            items.append(item)
    return items


def _genres(raw: Dict[str, Any]) -> List[Genre]:
    return [Genre(id=g["id"], name=g.get("name", "")) for g in raw.get("genres") or [] if "id" in g]


def to_movie_details(raw: Dict[str, Any]) -> MovieDetails:
    return MovieDetails(
        **_common_fields(raw, raw.get("title") or raw.get("original_title") or ""),
        release_date=raw.get("release_date"),
        genres=_genres(raw),
        runtime=raw.get("runtime"),
        tagline=raw.get("tagline"),
        homepage=raw.get("homepage"),
        status=raw.get("status"),
        original_language=raw.get("original_language"),
    )


def to_series_details(raw: Dict[str, Any]) -> SeriesDetails:
    seasons = [
        SeasonSummary(
            id=s.get("id"),
            season_number=s["season_number"],
            name=s.get("name"),
            episode_count=s.get("episode_count") or 0,
            poster_path=s.get("poster_path"),
        )
        for s in raw.get("seasons") or []
        if s.get("season_number") is not None
    ]
    return SeriesDetails(
        **_common_fields(raw, raw.get("name") or raw.get("original_name") or ""),
        first_air_date=raw.get("first_air_date"),
        genres=_genres(raw),
        seasons=seasons,
        number_of_seasons=raw.get("number_of_seasons"),
        number_of_episodes=raw.get("number_of_episodes"),
        episode_run_time=raw.get("episode_run_time") or [],
        tagline=raw.get("tagline"),
        homepage=raw.get("homepage"),
        status=raw.get("status"),
        original_language=raw.get("original_language"),
    )


def to_season_details(raw: Dict[str, Any], series_id: int, season_number: int) -> SeasonDetails:
    """Season with its episodes in increasing episode-number order"""
    episodes = [
        EpisodeInfo(
            season_number=ep.get("season_number", season_number),
            episode_number=ep["episode_number"],
            name=ep.get("name"),
            overview=ep.get("overview"),
            still_path=ep.get("still_path"),
            air_date=ep.get("air_date"),
        )
        for ep in raw.get("episodes") or []
        if ep.get("episode_number") is not None
    ]
    episodes.sort(key=lambda ep: ep.episode_number)
    return SeasonDetails(
        series_id=series_id,
        season_number=raw.get("season_number", season_number),
        name=raw.get("name"),
        episodes=episodes,
    )


# ============================================================
# Client
# ============================================================

class TMDBCatalog:
    """
    TMDB v3 client
    Supports: popular lists, search, genres, filtered discover, details, seasons
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        language: Optional[str] = None,
        timeout: Optional[float] = None,
        cache: Optional[CacheService] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key if api_key is not None else settings.TMDB_API_KEY
        self.base_url = (base_url or settings.TMDB_BASE_URL).rstrip("/")
        self.language = language or settings.TMDB_LANGUAGE
        self.timeout = timeout or settings.TMDB_TIMEOUT
        self.cache = cache or cache_service
        self.transport = transport

    async def _get(self, endpoint: str, params: Optional[dict] = None) -> Dict[str, Any]:
        if not self.api_key:
            raise CatalogError("TMDB_API_KEY is not configured", status_code=503)

        params = {k: v for k, v in (params or {}).items() if v is not None}

        cached = await self.cache.get_catalog(endpoint, params)
        if cached is not None:
            return cached

        query = {"api_key": self.api_key, "language": self.language, **params}

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.get(f"{self.base_url}{endpoint}", params=query)
        except httpx.HTTPError as e:
            logger.error(f"❌ TMDB request failed for {endpoint}: {e}")
            raise CatalogError(f"TMDB request failed: {e}") from e

        if response.status_code == 404:
            raise CatalogError(f"Not found in TMDB: {endpoint}", status_code=404)
        if response.status_code != 200:
            logger.error(f"❌ TMDB {endpoint} answered {response.status_code}")
            raise CatalogError(f"TMDB error {response.status_code}", status_code=response.status_code)

        try:
            data = response.json()
        except ValueError as e:
            raise CatalogError(f"TMDB returned invalid JSON for {endpoint}") from e

        await self.cache.set_catalog(endpoint, params, data)
        return data

    async def discover(self) -> DiscoverResponse:
        """Popular movies and series for the landing page"""
        movies, series = await asyncio.gather(
            self._get("/movie/popular"),
            self._get("/tv/popular"),
        )
        return DiscoverResponse(
            movies=to_media_items(movies.get("results"), "movie"),
            series=to_media_items(series.get("results"), "tv"),
        )

    async def search(self, query: str, type: str = "multi", page: int = 1) -> SearchResponse:
        if type not in ("multi", "movie", "tv"):
            raise CatalogError(f"Unsupported search type: {type}", status_code=400)

        data = await self._get(f"/search/{type}", {"query": query, "page": page})
        hint = None if type == "multi" else type
        return SearchResponse(
            page=data.get("page", page),
            total_pages=data.get("total_pages", 1),
            results=to_media_items(data.get("results"), hint),
        )

    async def genres(self) -> List[Genre]:
        """Movie and series genres merged by id"""
        movie_genres, tv_genres = await asyncio.gather(
            self._get("/genre/movie/list"),
            self._get("/genre/tv/list"),
        )
        merged: Dict[int, Genre] = {}
        for raw in (movie_genres.get("genres") or []) + (tv_genres.get("genres") or []):
            if "id" in raw and raw["id"] not in merged:
                merged[raw["id"]] = Genre(id=raw["id"], name=raw.get("name", ""))
        return sorted(merged.values(), key=lambda g: g.name)

    async def discover_media(
        self,
        type: str = "movie",
        sort_by: Optional[str] = None,
        genre_id: Optional[int] = None,
        year: Optional[int] = None,
        rating: Optional[float] = None,
        page: int = 1,
    ) -> SearchResponse:
        """Filtered discover listing used by the genres page"""
        hint = "tv" if type in _SERIES_TYPES else "movie"
        params = {
            "sort_by": sort_by or "popularity.desc",
            "with_genres": genre_id,
            "vote_average.gte": rating,
            "page": page,
        }
        if year:
            params["first_air_date_year" if hint == "tv" else "primary_release_year"] = year

        data = await self._get(f"/discover/{hint}", params)
        return SearchResponse(
            page=data.get("page", page),
            total_pages=data.get("total_pages", 1),
            results=to_media_items(data.get("results"), hint),
        )

    async def movie_details(self, movie_id: int) -> MovieDetails:
        return to_movie_details(await self._get(f"/movie/{movie_id}"))

    async def tv_details(self, series_id: int) -> SeriesDetails:
        return to_series_details(await self._get(f"/tv/{series_id}"))

    async def season(self, series_id: int, season_number: int) -> SeasonDetails:
        data = await self._get(f"/tv/{series_id}/season/{season_number}")
        return to_season_details(data, series_id, season_number)


catalog_service = TMDBCatalog()


def get_catalog() -> TMDBCatalog:
    """FastAPI dependency for the shared catalog client"""
    return catalog_service
