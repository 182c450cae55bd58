"""
HTTP client for the Megaflix API.

Every request carries the session's bearer token. A 401 on an authenticated
call means the token is no longer accepted: the session is cleared and
``SessionExpiredError`` is raised so the caller can send the user back to
the login screen.
"""
import httpx
import logging
from typing import Any, Dict, List, Optional

from ..schemas.media import EpisodeInfo
from ..schemas.watch_history import NextEpisodeCandidate, ResumeEntry
from ..services.progress_reconciler import (
    continue_watching,
    select_next_episode,
    watched_episode_keys,
)
from .session import Session

logger = logging.getLogger(__name__)


class ApiError(Exception):
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class SessionExpiredError(ApiError):
    """The server rejected the stored token"""


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        detail = body.get("detail") or body.get("message")
        if isinstance(detail, str):
            return detail
        if detail:
            return str(detail)
    return f"HTTP error! status: {response.status_code}"


class MegaflixClient:
    def __init__(
        self,
        base_url: str,
        session: Optional[Session] = None,
        transport: Optional[httpx.BaseTransport] = None,
        timeout: float = 30.0,
    ):
        self.session = session if session is not None else Session().load()
        self._http = httpx.Client(
            base_url=f"{base_url.rstrip('/')}/api/v1",
            timeout=timeout,
            transport=transport,
        )

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "MegaflixClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def call(self, method: str, endpoint: str, authenticated: bool = True, **kwargs) -> Any:
        headers = {"Content-Type": "application/json", **kwargs.pop("headers", {})}
        if authenticated:
            headers.update(self.session.auth_headers())

        try:
            response = self._http.request(method, endpoint, headers=headers, **kwargs)
        except httpx.TransportError as e:
            logger.error(f"❌ Could not reach the server: {e}")
            raise ApiError("Could not connect to the server") from e

        if response.status_code == 401 and authenticated:
            self.session.clear()
            raise SessionExpiredError(_error_message(response), status_code=401)

        if not response.is_success:
            raise ApiError(_error_message(response), status_code=response.status_code)

        if not response.content:
            return None
        return response.json()

    # ==================== Auth ====================

    def login(self, login: str, password: str) -> Dict[str, Any]:
        data = self.call("POST", "/auth/login", authenticated=False, json={"login": login, "password": password})
        self.session.start(data["token"], data["user"])
        return data["user"]

    def register(self, username: str, email: str, password: str) -> Dict[str, Any]:
        return self.call(
            "POST", "/auth/register", authenticated=False,
            json={"username": username, "email": email, "password": password},
        )

    def forgot_password(self, email: str) -> Dict[str, Any]:
        return self.call("POST", "/auth/forgot-password", authenticated=False, json={"email": email})

    def reset_password(self, token: str, new_password: str) -> Dict[str, Any]:
        return self.call(
            "POST", "/auth/reset-password", authenticated=False,
            json={"token": token, "newPassword": new_password},
        )

    def logout(self) -> None:
        self.session.clear()

    # ==================== Catalog ====================

    def discover(self) -> Dict[str, Any]:
        return self.call("GET", "/catalog/discover")

    def search(self, query: str, type: str = "multi", page: int = 1) -> Dict[str, Any]:
        return self.call("GET", "/catalog/search", params={"query": query, "type": type, "page": page})

    def genres(self) -> List[Dict[str, Any]]:
        return self.call("GET", "/catalog/genres")

    def discover_media(
        self,
        type: Optional[str] = None,
        sort_by: Optional[str] = None,
        genre_id: Optional[int] = None,
        year: Optional[int] = None,
        rating: Optional[float] = None,
    ) -> Dict[str, Any]:
        params = {"type": type, "sortBy": sort_by, "genreId": genre_id, "year": year, "rating": rating}
        return self.call("GET", "/catalog/discover/media", params={k: v for k, v in params.items() if v is not None})

    def movie_details(self, movie_id: int) -> Dict[str, Any]:
        return self.call("GET", f"/catalog/movie/{movie_id}")

    def tv_details(self, series_id: int) -> Dict[str, Any]:
        return self.call("GET", f"/catalog/tv/{series_id}")

    def tv_season_details(self, series_id: int, season_number: int) -> Dict[str, Any]:
        return self.call("GET", f"/catalog/tv/{series_id}/season/{season_number}")

    # ==================== My List ====================

    def get_my_list(self) -> List[Dict[str, Any]]:
        return self.call("GET", "/my-list")

    def toggle_my_list(self, tmdb_id: int, item_type: str, poster_path: str = "", title: str = "") -> Dict[str, Any]:
        return self.call("POST", "/my-list", json={
            "tmdb_id": tmdb_id,
            "item_type": item_type,
            "poster_path": poster_path,
            "title": title,
        })

    # ==================== History ====================

    def get_history(self) -> List[Dict[str, Any]]:
        return self.call("GET", "/history")

    def update_history(
        self,
        tmdb_id: int,
        item_type: str,
        progress: int,
        poster_path: str = "",
        title: str = "",
        season_number: Optional[int] = None,
        episode_number: Optional[int] = None,
    ) -> Dict[str, Any]:
        payload = {
            "tmdb_id": tmdb_id,
            "item_type": item_type,
            "poster_path": poster_path,
            "title": title,
            "progress": progress,
        }
        if season_number is not None and episode_number is not None:
            payload["season_number"] = season_number
            payload["episode_number"] = episode_number
        return self.call("POST", "/history", json=payload)

    def continue_watching(self) -> List[ResumeEntry]:
        """Continue-watching row built locally from the raw history"""
        return continue_watching(self.get_history())

    def watched_episodes(self, series_id: int) -> frozenset:
        return watched_episode_keys(self.get_history(), series_id)

    def mark_episode_watched(
        self,
        series_id: int,
        season_number: int,
        episode_number: int,
        title: str = "",
        poster_path: str = "",
    ) -> bool:
        """
        Record an episode as fully watched.
        Episodes already watched are left alone; returns whether a write happened.
        """
        if (season_number, episode_number) in self.watched_episodes(series_id):
            return False

        self.update_history(
            series_id,
            "series",
            progress=100,
            poster_path=poster_path,
            title=title,
            season_number=season_number,
            episode_number=episode_number,
        )
        logger.info(f"✅ Marked series {series_id} T{season_number}:E{episode_number} as watched")
        return True

    def next_episode(self, series_id: int, season_number: int) -> Optional[NextEpisodeCandidate]:
        """
        Episode to offer on a series page, reconciled locally.
        History is fetched after the season, so it reflects any progress
        recorded while the season was loading.
        """
        season = self.tv_season_details(series_id, season_number)
        episodes = [EpisodeInfo(**ep) for ep in season.get("episodes") or []]
        return select_next_episode(episodes, self.get_history(), season_number, series_id)
