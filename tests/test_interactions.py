"""Integration tests for likes, saves and comment threads."""
from __future__ import annotations

import os
from typing import Iterator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import delete

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///./test_slika.db")

from slika.clients import IdentityProfile  # noqa: E402
from slika.database import Base, SessionLocal, engine  # noqa: E402
from slika.main import app  # noqa: E402
from slika.models import Comment, Follow, Item, Like, MediaType, Save, User  # noqa: E402
from slika.services import (  # noqa: E402
    HOME_PATH,
    get_current_principal,
    get_optional_viewer_id,
    item_path,
    profile_path,
    view_cache,
)

VIEWER = IdentityProfile(user_id="user_viewer", username="viewer")


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
        session.commit()
    view_cache.clear()
    yield


@pytest.fixture
def item_id() -> int:
    with SessionLocal() as session:
        session.add(User(id="user_owner", username="owner"))
        item = Item(title="Lighthouse", media_url="https://cdn.test/l.jpg", media_type=MediaType.IMAGE, user_id="user_owner")
        session.add(item)
        session.commit()
        return item.id


@pytest.fixture
def client() -> Iterator[TestClient]:
    app.dependency_overrides[get_current_principal] = lambda: VIEWER
    app.dependency_overrides[get_optional_viewer_id] = lambda: VIEWER.user_id
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def test_like_toggles_on_and_off(client, item_id):
    first = client.post(f"/items/{item_id}/like")
    assert first.status_code == 200
    assert first.json() == {"item_id": item_id, "active": True, "like_count": 1, "save_count": 0}

    second = client.post(f"/items/{item_id}/like")
    assert second.status_code == 200
    assert second.json()["active"] is False
    assert second.json()["like_count"] == 0


def test_save_toggles_and_shows_on_savers_profile(client, item_id):
    response = client.post(f"/items/{item_id}/save")
    assert response.status_code == 200
    assert response.json()["active"] is True
    assert response.json()["save_count"] == 1

    profile = client.get("/profiles/viewer")
    assert profile.status_code == 200
    assert [item["id"] for item in profile.json()["saved_items"]] == [item_id]

    assert client.post(f"/items/{item_id}/save").json()["active"] is False
    assert client.get("/profiles/viewer").json()["saved_items"] == []


def test_toggle_on_missing_item_returns_404(client):
    response = client.post("/items/999999/like")
    assert response.status_code == 404


def test_toggle_requires_authentication(item_id):
    with TestClient(app) as anonymous:
        response = anonymous.post(f"/items/{item_id}/like")
    assert response.status_code == 401


def test_item_detail_reflects_viewer_state_after_like(client, item_id):
    before = client.get(f"/items/{item_id}")
    assert before.status_code == 200
    assert before.json()["viewer_has_liked"] is False
    assert item_path(item_id) in view_cache

    client.post(f"/items/{item_id}/like")
    assert item_path(item_id) not in view_cache

    after = client.get(f"/items/{item_id}").json()
    assert after["like_count"] == 1
    assert after["viewer_has_liked"] is True
    assert after["viewer_has_saved"] is False


def test_new_comment_is_listed_first(client, item_id):
    assert client.post(f"/items/{item_id}/comments", json={"content": "first!"}).status_code == 201
    created = client.post(f"/items/{item_id}/comments", json={"content": "  what a view  "})
    assert created.status_code == 201
    assert created.json()["content"] == "what a view"
    assert created.json()["user"]["username"] == "viewer"

    listing = client.get(f"/items/{item_id}/comments")
    assert listing.status_code == 200
    assert [comment["content"] for comment in listing.json()["items"]] == ["what a view", "first!"]

    detail = client.get(f"/items/{item_id}").json()
    assert detail["comment_count"] == 2
    assert detail["comments"][0]["content"] == "what a view"


def test_blank_comment_is_rejected(client, item_id):
    assert client.post(f"/items/{item_id}/comments", json={"content": ""}).status_code == 422
    assert client.post(f"/items/{item_id}/comments", json={"content": "   "}).status_code == 422
    assert client.get(f"/items/{item_id}/comments").json()["items"] == []


def test_mutations_invalidate_cached_views(client, item_id):
    assert client.get("/profiles/me").status_code == 200
    view_cache.set(HOME_PATH, "home")
    view_cache.set(item_path(item_id), "item")
    view_cache.set(profile_path("viewer"), "profile")

    client.post(f"/items/{item_id}/comments", json={"content": "nice"})
    assert HOME_PATH not in view_cache
    assert item_path(item_id) not in view_cache
    assert profile_path("viewer") in view_cache

    client.post(f"/items/{item_id}/save")
    assert profile_path("viewer") not in view_cache


def test_like_refreshes_owner_profile_counts(client, item_id):
    before = client.get("/profiles/owner").json()
    assert before["created_items"][0]["like_count"] == 0
    assert profile_path("owner") in view_cache

    assert client.post(f"/items/{item_id}/like").json()["like_count"] == 1
    assert profile_path("owner") not in view_cache

    after = client.get("/profiles/owner").json()
    assert after["created_items"][0]["like_count"] == 1


def test_save_refreshes_owner_profile_counts(client, item_id):
    assert client.get("/profiles/owner").json()["created_items"][0]["save_count"] == 0

    client.post(f"/items/{item_id}/save")

    assert client.get("/profiles/owner").json()["created_items"][0]["save_count"] == 1


def test_comment_refreshes_counts_in_other_savers_grids(client, item_id):
    with SessionLocal() as session:
        session.add(User(id="user_collector", username="collector"))
        session.add(Save(user_id="user_collector", item_id=item_id))
        session.commit()

    grid = client.get("/profiles/collector").json()["saved_items"]
    assert grid[0]["comment_count"] == 0

    client.post(f"/items/{item_id}/comments", json={"content": "saved this too"})

    assert profile_path("collector") not in view_cache
    assert profile_path("owner") not in view_cache
    grid = client.get("/profiles/collector").json()["saved_items"]
    assert grid[0]["comment_count"] == 1
