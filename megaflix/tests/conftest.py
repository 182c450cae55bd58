import os

# Settings are read at import time
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["CACHE_ENABLED"] = "false"
os.environ["TMDB_API_KEY"] = "test-tmdb-key"
os.environ["ADMIN_EMAILS"] = "admin@example.com"
os.environ["LOG_LEVEL"] = "WARNING"

import httpx
import pytest
from fastapi.testclient import TestClient

from megaflix import models  # noqa: F401
from megaflix.database import Base, engine
from megaflix.main import app
from megaflix.redis_client import RedisClient
from megaflix.services.cache import CacheService
from megaflix.services.catalog import TMDBCatalog, get_catalog

TMDB_BASE = "https://tmdb.test/3"


@pytest.fixture(autouse=True)
def db_tables():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def client():
    return TestClient(app)


@pytest.fixture()
def tmdb_payloads():
    """TMDB path (without /3) -> JSON body; unknown paths answer 404"""
    return {}


@pytest.fixture()
def tmdb_requests():
    return []


@pytest.fixture()
def catalog(tmdb_payloads, tmdb_requests):
    def handler(request: httpx.Request) -> httpx.Response:
        tmdb_requests.append(request)
        path = request.url.path[len("/3"):]
        if path in tmdb_payloads:
            return httpx.Response(200, json=tmdb_payloads[path])
        return httpx.Response(404, json={"status_message": "not found"})

    catalog = TMDBCatalog(
        api_key="test-tmdb-key",
        base_url=TMDB_BASE,
        cache=CacheService(RedisClient(enabled=False)),
        transport=httpx.MockTransport(handler),
    )
    app.dependency_overrides[get_catalog] = lambda: catalog
    yield catalog
    app.dependency_overrides.pop(get_catalog, None)


def register(client, username="maria", email="maria@example.com", password="secret123"):
    response = client.post("/api/v1/auth/register", json={
        "username": username,
        "email": email,
        "password": password,
    })
    assert response.status_code == 201, response.text
    return response.json()


def login_headers(client, login="maria", password="secret123"):
    response = client.post("/api/v1/auth/login", json={"login": login, "password": password})
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['token']}"}


@pytest.fixture()
def auth_headers(client):
    register(client)
    return login_headers(client)
