from pydantic import BaseModel, validator
from typing import Optional

from .media import SubjectKind


class MyListToggle(BaseModel):
    tmdb_id: int
    item_type: str
    title: Optional[str] = None
    poster_path: Optional[str] = None

    @validator('item_type')
    def normalize_item_type(cls, v):
        value = (v or "").strip().lower()
        if value == "tv":
            value = SubjectKind.SERIES.value
        if value not in (SubjectKind.MOVIE.value, SubjectKind.SERIES.value):
            raise ValueError("item_type must be 'movie' or 'series'")
        return value


class MyListItemResponse(BaseModel):
    id: int
    tmdb_id: int
    item_type: str
    title: Optional[str] = None
    poster_path: Optional[str] = None
    created_at: Optional[str] = None
