from typing import List, Optional
from fastapi import APIRouter, Depends, Query

from ...models.user import User
from ...schemas.media import (
    DiscoverResponse,
    Genre,
    MovieDetails,
    SearchResponse,
    SeasonDetails,
    SeriesDetails,
)
from ...services.catalog import TMDBCatalog, get_catalog
from ..deps import get_current_user

router = APIRouter()


@router.get("/discover", response_model=DiscoverResponse)
async def discover(
    current_user: User = Depends(get_current_user),
    catalog: TMDBCatalog = Depends(get_catalog),
):
    """Popular movies and series"""
    return await catalog.discover()


@router.get("/search", response_model=SearchResponse)
async def search(
    query: str = Query(..., min_length=1),
    type: str = Query(default="multi", pattern="^(multi|movie|tv)$"),
    page: int = Query(default=1, ge=1),
    current_user: User = Depends(get_current_user),
    catalog: TMDBCatalog = Depends(get_catalog),
):
    return await catalog.search(query, type, page)


@router.get("/genres", response_model=List[Genre])
async def genres(
    current_user: User = Depends(get_current_user),
    catalog: TMDBCatalog = Depends(get_catalog),
):
    return await catalog.genres()


@router.get("/discover/media", response_model=SearchResponse)
async def discover_media(
    type: str = Query(default="movie", pattern="^(movie|tv|series)$"),
    sortBy: Optional[str] = None,
    genreId: Optional[int] = None,
    year: Optional[int] = None,
    rating: Optional[float] = Query(default=None, ge=0, le=10),
    page: int = Query(default=1, ge=1),
    current_user: User = Depends(get_current_user),
    catalog: TMDBCatalog = Depends(get_catalog),
):
    """Filtered listing for the genres page"""
    return await catalog.discover_media(type, sortBy, genreId, year, rating, page)


@router.get("/movie/{movie_id}", response_model=MovieDetails)
async def movie_details(
    movie_id: int,
    current_user: User = Depends(get_current_user),
    catalog: TMDBCatalog = Depends(get_catalog),
):
    return await catalog.movie_details(movie_id)


@router.get("/tv/{series_id}", response_model=SeriesDetails)
async def tv_details(
    series_id: int,
    current_user: User = Depends(get_current_user),
    catalog: TMDBCatalog = Depends(get_catalog),
):
    return await catalog.tv_details(series_id)


@router.get("/tv/{series_id}/season/{season_number}", response_model=SeasonDetails)
async def season_details(
    series_id: int,
    season_number: int,
    current_user: User = Depends(get_current_user),
    catalog: TMDBCatalog = Depends(get_catalog),
):
    return await catalog.season(series_id, season_number)
