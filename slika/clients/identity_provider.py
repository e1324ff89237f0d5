"""HTTP client for the external identity provider's user API (Clerk-compatible)."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import httpx

from ..config import get_settings
from ..security import MissingSecretError, require_setting

logger = logging.getLogger(__name__)

# Error code the provider returns when a username belongs to another account
USERNAME_TAKEN_CODE = "form_identifier_exists"


@dataclass(frozen=True, slots=True)
class IdentityProfile:
    """Authenticated principal as described by the identity provider."""

    user_id: str
    username: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None
    image_url: str | None = None

    @property
    def full_name(self) -> str | None:
        parts = [part.strip() for part in (self.first_name, self.last_name) if part and part.strip()]
        return " ".join(parts) or None


class IdentityProviderError(RuntimeError):
    """Raised when the identity provider rejects a request or cannot be reached."""

    def __init__(self, message: str, *, code: str | None = None, status_code: int | None = None) -> None:
        super().__init__(message)
        self.code = code
        self.status_code = status_code


def _primary_email(payload: dict[str, Any]) -> str | None:
    addresses = payload.get("email_addresses") or []
    primary_id = payload.get("primary_email_address_id")
    for address in addresses:
        if primary_id and address.get("id") == primary_id:
            return address.get("email_address")
    if addresses:
        return addresses[0].get("email_address")
    return None


def profile_from_payload(payload: dict[str, Any]) -> IdentityProfile:
    """Build an :class:`IdentityProfile` from a provider user object."""

    user_id = payload.get("id")
    if not user_id:
        raise IdentityProviderError("Identity provider returned a user without an id")
    return IdentityProfile(
        user_id=str(user_id),
        username=payload.get("username") or None,
        first_name=payload.get("first_name") or None,
        last_name=payload.get("last_name") or None,
        email=_primary_email(payload),
        image_url=payload.get("image_url") or None,
    )


def _error_code(response: httpx.Response) -> str | None:
    try:
        body = response.json()
    except ValueError:
        return None
    errors = body.get("errors") if isinstance(body, dict) else None
    if errors and isinstance(errors, list) and isinstance(errors[0], dict):
        return errors[0].get("code")
    return None


async def _request(method: str, path: str, *, json: dict[str, Any] | None = None) -> dict[str, Any]:
    settings = get_settings()
    try:
        secret = require_setting(settings.identity_secret_key, "IDENTITY_SECRET_KEY")
    except MissingSecretError as exc:
        raise IdentityProviderError(str(exc)) from exc

    url = f"{settings.identity_api_url.rstrip('/')}/{path.lstrip('/')}"
    headers = {"Authorization": f"Bearer {secret}"}
    try:
        async with httpx.AsyncClient(timeout=settings.identity_timeout) as client:
            response = await client.request(method, url, headers=headers, json=json)
    except httpx.HTTPError as exc:  # pragma: no cover - network bound
        logger.exception("Identity provider request %s %s failed", method, path)
        raise IdentityProviderError("Identity provider is unreachable") from exc

    if response.status_code >= 400:
        code = _error_code(response)
        raise IdentityProviderError(
            f"Identity provider responded with HTTP {response.status_code}",
            code=code,
            status_code=response.status_code,
        )

    data = response.json()
    if not isinstance(data, dict):
        raise IdentityProviderError("Invalid identity provider response")
    return data


async def fetch_user(user_id: str) -> IdentityProfile:
    """Load the provider's current view of ``user_id``."""

    return profile_from_payload(await _request("GET", f"users/{user_id}"))


async def update_user(
    user_id: str,
    *,
    username: str | None = None,
    first_name: str | None = None,
) -> IdentityProfile:
    """Push username / first name changes back to the provider."""

    body: dict[str, Any] = {}
    if username is not None:
        body["username"] = username
    if first_name is not None:
        body["first_name"] = first_name
    return profile_from_payload(await _request("PATCH", f"users/{user_id}", json=body))


__all__ = [
    "USERNAME_TAKEN_CODE",
    "IdentityProfile",
    "IdentityProviderError",
    "fetch_user",
    "profile_from_payload",
    "update_user",
]
