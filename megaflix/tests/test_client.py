import json

import httpx
import pytest

from megaflix.client import ApiError, MegaflixClient, Session, SessionExpiredError, SessionStore
from megaflix.schemas.watch_history import NextEpisodeReason


USER = {"id": 1, "username": "maria", "email": "maria@example.com", "is_admin": False}


@pytest.fixture()
def session(tmp_path):
    return Session(SessionStore(tmp_path / "session.json"))


def make_client(session, handler):
    return MegaflixClient("https://api.test/", session=session, transport=httpx.MockTransport(handler))


# ==================== Session ====================

def test_session_survives_reload(tmp_path):
    store = SessionStore(tmp_path / "nested" / "session.json")
    Session(store).start("abc", USER)

    restored = Session(store).load()
    assert restored.is_authenticated
    assert restored.auth_headers() == {"Authorization": "Bearer abc"}
    assert restored.is_admin is False


def test_session_clear_removes_file(session):
    session.start("abc", USER)
    session.clear()

    assert not session.store.path.exists()
    assert not Session(session.store).load().is_authenticated
    session.clear()


def test_corrupt_session_file_is_ignored(tmp_path):
    path = tmp_path / "session.json"
    path.write_text("{not json", encoding="utf-8")
    assert not Session(SessionStore(path)).load().is_authenticated


def test_session_without_user_is_not_authenticated(tmp_path):
    path = tmp_path / "session.json"
    path.write_text(json.dumps({"token": "abc"}), encoding="utf-8")
    session = Session(SessionStore(path)).load()
    assert session.token is None
    assert session.auth_headers() == {}


# ==================== HTTP client ====================

def test_login_starts_session(session):
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={"token": "tok", "token_type": "bearer", "user": USER})

    with make_client(session, handler) as client:
        user = client.login("maria", "secret123")

    assert user == USER
    assert session.token == "tok"
    assert seen[0].url.path == "/api/v1/auth/login"
    assert "authorization" not in seen[0].headers
    assert json.loads(seen[0].content) == {"login": "maria", "password": "secret123"}


def test_authenticated_calls_send_bearer_token(session):
    session.start("tok", USER)
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json=[])

    make_client(session, handler).get_my_list()
    assert seen[0].headers["authorization"] == "Bearer tok"


def test_unauthorized_answer_clears_session(session):
    session.start("tok", USER)

    def handler(request):
        return httpx.Response(401, json={"detail": "Token has expired"})

    with pytest.raises(SessionExpiredError) as info:
        make_client(session, handler).get_history()

    assert info.value.message == "Token has expired"
    assert not session.is_authenticated
    assert not session.store.path.exists()


def test_failed_login_keeps_no_session(session):
    def handler(request):
        return httpx.Response(401, json={"detail": "Invalid credentials"})

    with pytest.raises(ApiError) as info:
        make_client(session, handler).login("maria", "wrong")

    assert not isinstance(info.value, SessionExpiredError)
    assert info.value.status_code == 401
    assert session.token is None


def test_error_message_falls_back_to_status(session):
    session.start("tok", USER)

    with pytest.raises(ApiError) as info:
        make_client(session, lambda request: httpx.Response(500, text="oops")).discover()
    assert info.value.message == "HTTP error! status: 500"
    assert info.value.status_code == 500


def test_connection_error_is_api_error(session):
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(ApiError) as info:
        make_client(session, handler).genres()
    assert info.value.status_code is None


def test_update_history_only_sends_episode_for_series(session):
    session.start("tok", USER)
    bodies = []

    def handler(request):
        bodies.append(json.loads(request.content))
        return httpx.Response(200, json={})

    client = make_client(session, handler)
    client.update_history(550, "movie", 40, title="Fight Club")
    client.update_history(10, "series", 100, season_number=1, episode_number=3)

    assert "season_number" not in bodies[0]
    assert bodies[1]["season_number"] == 1
    assert bodies[1]["episode_number"] == 3


def test_discover_media_drops_empty_filters(session):
    session.start("tok", USER)
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={"results": []})

    make_client(session, handler).discover_media(type="tv", genre_id=18)
    assert dict(seen[0].url.params) == {"type": "tv", "genreId": "18"}


# ==================== Local reconciliation ====================

HISTORY = [
    {"tmdb_id": 10, "item_type": "series", "progress": 100, "season_number": 1, "episode_number": 2, "title": "Dark"},
    {"tmdb_id": 10, "item_type": "series", "progress": 100, "season_number": 1, "episode_number": 3, "title": "Dark"},
    {"tmdb_id": 550, "item_type": "movie", "progress": 30, "title": "Fight Club"},
]


def catalog_handler(request):
    if request.url.path == "/api/v1/history":
        return httpx.Response(200, json=HISTORY)
    if request.url.path == "/api/v1/catalog/tv/10/season/1":
        return httpx.Response(200, json={"series_id": 10, "season_number": 1, "episodes": [
            {"season_number": 1, "episode_number": n} for n in (1, 2, 3, 4)
        ]})
    return httpx.Response(404, json={"detail": "Not found"})


def test_continue_watching_is_reconciled_locally(session):
    session.start("tok", USER)
    entries = make_client(session, catalog_handler).continue_watching()

    assert [e.key for e in entries] == ["10-series", "550-movie"]
    assert entries[0].label == "T1:E3"


def test_next_episode_is_reconciled_locally(session):
    session.start("tok", USER)
    candidate = make_client(session, catalog_handler).next_episode(10, 1)

    assert candidate.episode_number == 4
    assert candidate.reason == NextEpisodeReason.NEXT


def test_watched_episodes(session):
    session.start("tok", USER)
    assert make_client(session, catalog_handler).watched_episodes(10) == frozenset({(1, 2), (1, 3)})


def test_mark_episode_watched_writes_once(session):
    session.start("tok", USER)
    posted = []

    def handler(request):
        if request.method == "POST":
            posted.append(json.loads(request.content))
            return httpx.Response(200, json={})
        return catalog_handler(request)

    client = make_client(session, handler)

    assert client.mark_episode_watched(10, 1, 3) is False
    assert posted == []

    assert client.mark_episode_watched(10, 1, 4, title="Dark") is True
    assert posted == [{
        "tmdb_id": 10,
        "item_type": "series",
        "poster_path": "",
        "title": "Dark",
        "progress": 100,
        "season_number": 1,
        "episode_number": 4,
    }]
