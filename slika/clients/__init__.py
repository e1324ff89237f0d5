"""Clients for services the API depends on but does not own."""
from .identity_provider import (
    USERNAME_TAKEN_CODE,
    IdentityProfile,
    IdentityProviderError,
    fetch_user,
    update_user,
)

__all__ = [
    "USERNAME_TAKEN_CODE",
    "IdentityProfile",
    "IdentityProviderError",
    "fetch_user",
    "update_user",
]
