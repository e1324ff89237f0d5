"""Integration tests for profile pages and identity-provider synchronised edits."""
from __future__ import annotations

import os
from typing import Iterator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import delete

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///./test_slika.db")

from slika.clients import USERNAME_TAKEN_CODE, IdentityProfile, IdentityProviderError  # noqa: E402
from slika.database import Base, SessionLocal, engine  # noqa: E402
from slika.main import app  # noqa: E402
from slika.models import Comment, Follow, Item, Like, MediaType, Save, User  # noqa: E402
from slika.services import get_current_principal, profile_path, profile_service, view_cache  # noqa: E402

GRACE = IdentityProfile(user_id="user_grace", username="grace")


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
        session.add(User(id=GRACE.user_id, username=GRACE.username, display_name="Grace"))
        session.commit()
    view_cache.clear()
    yield


@pytest.fixture
def provider_calls(monkeypatch) -> list[dict]:
    calls: list[dict] = []

    async def _fake_update_user(user_id, *, username=None, first_name=None):
        calls.append({"user_id": user_id, "username": username, "first_name": first_name})
        return IdentityProfile(user_id=user_id, username=username, first_name=first_name)

    monkeypatch.setattr(profile_service, "update_user", _fake_update_user)
    return calls


@pytest.fixture
def client() -> Iterator[TestClient]:
    app.dependency_overrides[get_current_principal] = lambda: GRACE
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def test_profile_page_lists_created_items(client):
    with SessionLocal() as session:
        session.add(Item(title="Garden", media_url="https://cdn.test/g.jpg", media_type=MediaType.IMAGE, user_id="user_grace"))
        session.commit()

    response = client.get("/profiles/grace")
    assert response.status_code == 200
    payload = response.json()
    assert payload["display_name"] == "Grace"
    assert [item["title"] for item in payload["created_items"]] == ["Garden"]
    assert payload["saved_items"] == []


def test_unknown_profile_returns_404(client):
    assert client.get("/profiles/nobody").status_code == 404


def test_update_profile_syncs_provider_and_invalidates(client, provider_calls):
    client.get("/profiles/grace")
    assert profile_path("grace") in view_cache

    response = client.put("/profiles/me", json={"display_name": "Grace H.", "username": "grace", "bio": "Admiral"})

    assert response.status_code == 200
    assert response.json()["display_name"] == "Grace H."
    assert response.json()["bio"] == "Admiral"
    assert provider_calls == [{"user_id": "user_grace", "username": "grace", "first_name": "Grace H."}]
    assert profile_path("grace") not in view_cache


def test_update_profile_rejects_locally_taken_username(client, provider_calls):
    with SessionLocal() as session:
        session.add(User(id="user_henry", username="henry"))
        session.commit()

    response = client.put("/profiles/me", json={"display_name": "Grace", "username": "henry", "bio": ""})

    assert response.status_code == 409
    assert provider_calls == []


def test_provider_username_conflict_is_reported(client, monkeypatch):
    async def _taken(user_id, *, username=None, first_name=None):
        raise IdentityProviderError("taken", code=USERNAME_TAKEN_CODE, status_code=422)

    monkeypatch.setattr(profile_service, "update_user", _taken)

    response = client.put("/profiles/me", json={"display_name": "Grace", "username": "grace", "bio": ""})
    assert response.status_code == 409
    assert response.json()["detail"] == "Username is already taken."


def test_other_provider_errors_keep_local_edit(client, monkeypatch):
    async def _unreachable(user_id, *, username=None, first_name=None):
        raise IdentityProviderError("Identity provider is unreachable")

    monkeypatch.setattr(profile_service, "update_user", _unreachable)

    response = client.put("/profiles/me", json={"display_name": "Grace", "username": "grace", "bio": "Still saved"})
    assert response.status_code == 200

    with SessionLocal() as session:
        assert session.get(User, "user_grace").bio == "Still saved"


def test_provider_username_wins_after_failed_sync(client, monkeypatch):
    async def _unreachable(user_id, *, username=None, first_name=None):
        raise IdentityProviderError("Identity provider is unreachable")

    monkeypatch.setattr(profile_service, "update_user", _unreachable)

    edited = client.put("/profiles/me", json={"display_name": "Grace", "username": "grace_h", "bio": ""})
    assert edited.status_code == 200
    assert edited.json()["username"] == "grace_h"

    # The provider still reports "grace", so the next request restores it locally.
    assert client.get("/profiles/me").json()["username"] == "grace"
    assert client.get("/profiles/grace").status_code == 200


def test_saved_grid_reports_counts_per_item(client):
    with SessionLocal() as session:
        session.add(User(id="user_owner", username="owner"))
        first = Item(title="Pier", media_url="https://cdn.test/p.jpg", media_type=MediaType.IMAGE, user_id="user_owner")
        second = Item(title="Dunes", media_url="https://cdn.test/d.jpg", media_type=MediaType.IMAGE, user_id="user_owner")
        session.add_all([first, second])
        session.flush()
        session.add_all(
            [
                Save(user_id="user_grace", item_id=first.id),
                Save(user_id="user_owner", item_id=first.id),
                Save(user_id="user_grace", item_id=second.id),
                Like(user_id="user_owner", item_id=second.id),
            ]
        )
        session.commit()
        first_id, second_id = first.id, second.id

    saved = {item["id"]: item for item in client.get("/profiles/grace").json()["saved_items"]}

    assert set(saved) == {first_id, second_id}
    assert saved[first_id]["save_count"] == 2
    assert saved[second_id]["save_count"] == 1
    assert saved[second_id]["like_count"] == 1
