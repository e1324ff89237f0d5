"""Integration tests for follow toggles and follower counts."""
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
from slika.models import Comment, Follow, Item, Like, Save, User  # noqa: E402
from slika.services import get_current_principal, get_optional_viewer_id, profile_path, view_cache  # noqa: E402

ALICE = IdentityProfile(user_id="user_alice", username="alice")


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
        session.add_all([User(id="user_alice", username="alice"), User(id="user_bob", username="bob")])
        session.commit()
    view_cache.clear()
    yield


@pytest.fixture
def client() -> Iterator[TestClient]:
    app.dependency_overrides[get_current_principal] = lambda: ALICE
    app.dependency_overrides[get_optional_viewer_id] = lambda: ALICE.user_id
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def test_follow_toggles_edge_and_counts(client):
    followed = client.post("/follows/user_bob")
    assert followed.status_code == 200
    assert followed.json() == {
        "user_id": "user_bob",
        "followers_count": 1,
        "following_count": 0,
        "is_following": True,
        "status": "followed",
    }

    alice_stats = client.get("/follows/stats/user_alice").json()
    assert alice_stats["following_count"] == 1

    unfollowed = client.post("/follows/user_bob")
    assert unfollowed.json()["status"] == "unfollowed"
    assert unfollowed.json()["followers_count"] == 0


def test_cannot_follow_yourself(client):
    response = client.post("/follows/user_alice")
    assert response.status_code == 400

    with SessionLocal() as session:
        assert session.query(Follow).count() == 0


def test_follow_unknown_user_returns_404(client):
    assert client.post("/follows/user_ghost").status_code == 404


def test_follow_refreshes_profile_page(client):
    before = client.get("/profiles/bob").json()
    assert before["followers_count"] == 0
    assert before["is_following"] is False
    assert profile_path("bob") in view_cache

    client.post("/follows/user_bob")
    assert profile_path("bob") not in view_cache

    after = client.get("/profiles/bob").json()
    assert after["followers_count"] == 1
    assert after["is_following"] is True
