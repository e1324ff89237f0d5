"""Integration tests for the home feed, search and item publishing."""
from __future__ import annotations

import os
from io import BytesIO
from typing import Iterator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import delete

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///./test_slika.db")

from slika.clients import IdentityProfile  # noqa: E402
from slika.database import Base, SessionLocal, engine  # noqa: E402
from slika.main import app  # noqa: E402
from slika.models import Comment, Follow, Item, Like, MediaType, Save, User  # noqa: E402
from slika.services import HOME_PATH, get_current_principal, item_service, view_cache  # noqa: E402
from slika.services.storage_service import StorageUploadResult  # noqa: E402

PUBLISHER = IdentityProfile(user_id="user_publisher", username="publisher")


@pytest.fixture(scope="module", autouse=True)
def _create_schema() -> Iterator[None]:
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def _clean_database() -> Iterator[None]:
    with SessionLocal() as session:
        for model in (Comment, Like, Save, Follow, Item, User):
            session.execute(delete(model))
        session.add(User(id=PUBLISHER.user_id, username=PUBLISHER.username))
        session.commit()
    view_cache.clear()
    yield


@pytest.fixture
def client() -> Iterator[TestClient]:
    app.dependency_overrides[get_current_principal] = lambda: PUBLISHER
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def _add_items(*specs: tuple[str, str | None, MediaType]) -> list[int]:
    with SessionLocal() as session:
        items = [
            Item(
                title=title,
                description=description,
                media_url=f"https://cdn.test/{index}",
                media_type=media_type,
                user_id=PUBLISHER.user_id,
            )
            for index, (title, description, media_type) in enumerate(specs)
        ]
        session.add_all(items)
        session.commit()
        return [item.id for item in items]


def test_feed_returns_one_page_newest_first(client):
    ids = _add_items(*[(f"Item {n}", None, MediaType.IMAGE) for n in range(45)])

    response = client.get("/items/feed")
    assert response.status_code == 200
    payload = response.json()
    assert payload["limit"] == 40
    assert [item["id"] for item in payload["items"]] == sorted(ids, reverse=True)[:40]
    assert payload["items"][0]["username"] == "publisher"

    smaller = client.get("/items/feed", params={"limit": 5}).json()
    assert len(smaller["items"]) == 5


def test_search_matches_text_case_insensitively(client):
    _add_items(
        ("Sunset at the beach", None, MediaType.IMAGE),
        ("Night drive", "chasing the SUNSET", MediaType.VIDEO),
        ("Mountain lake", None, MediaType.IMAGE),
    )

    titles = [item["title"] for item in client.get("/items/search", params={"q": "sunset"}).json()["items"]]
    assert sorted(titles) == ["Night drive", "Sunset at the beach"]


def test_search_filters_by_media_type(client):
    _add_items(
        ("Sunset at the beach", None, MediaType.IMAGE),
        ("Night drive", "sunset", MediaType.VIDEO),
        ("Waves", None, MediaType.VIDEO),
    )

    videos = client.get("/items/search", params={"types": "video"}).json()["items"]
    assert {item["media_type"] for item in videos} == {"video"}
    assert len(videos) == 2

    both = client.get("/items/search", params={"q": "sunset", "types": "video"}).json()["items"]
    assert [item["title"] for item in both] == ["Night drive"]


def test_search_rejects_unknown_media_type(client):
    assert client.get("/items/search", params={"types": "gif"}).status_code == 422


def test_search_without_filters_caps_page_size(client):
    _add_items(*[(f"Item {n}", None, MediaType.IMAGE) for n in range(55)])

    payload = client.get("/items/search", params={"limit": 500}).json()
    assert payload["limit"] == 50
    assert len(payload["items"]) == 50


def test_publishing_invalidates_cached_feed(client):
    _add_items(("Old", None, MediaType.IMAGE))
    assert len(client.get("/items/feed").json()["items"]) == 1
    assert HOME_PATH in view_cache

    response = client.post("/items", data={"title": "Clip", "media_url": "https://cdn.test/clip.mp4"})
    assert response.status_code == 201
    assert response.json()["media_type"] == "video"
    assert HOME_PATH not in view_cache

    titles = [item["title"] for item in client.get("/items/feed").json()["items"]]
    assert titles == ["Clip", "Old"]


def test_publishing_requires_exactly_one_media_source(client):
    missing = client.post("/items", data={"title": "Nothing"})
    assert missing.status_code == 400

    both = client.post(
        "/items",
        data={"title": "Both", "media_url": "https://cdn.test/a.jpg"},
        files={"file": ("a.jpg", BytesIO(b"jpeg"), "image/jpeg")},
    )
    assert both.status_code == 400


def test_publishing_with_file_stores_upload_first(client, monkeypatch):
    async def _fake_upload(file, *, folder=None, client=None) -> StorageUploadResult:
        return StorageUploadResult(
            url="https://cdn.test/uploads/1-abc.mp4",
            key="uploads/1-abc.mp4",
            bucket="slika-uploads",
            content_type=file.content_type,
            media_type=MediaType.VIDEO,
        )

    monkeypatch.setattr(item_service, "upload_file", _fake_upload)

    response = client.post(
        "/items",
        data={"title": "Surf", "description": "big waves"},
        files={"file": ("surf.mp4", BytesIO(b"video"), "video/mp4")},
    )

    assert response.status_code == 201
    payload = response.json()
    assert payload["media_url"] == "https://cdn.test/uploads/1-abc.mp4"
    assert payload["media_type"] == "video"
    assert payload["user_id"] == PUBLISHER.user_id
