"""Checks for credentials read from settings, without echoing their values."""
from __future__ import annotations

from typing import Final

__all__ = ["MissingSecretError", "is_placeholder", "optional_setting", "require_setting"]


class MissingSecretError(RuntimeError):
    """A required credential is unset or still holds a template value."""

    def __init__(self, name: str) -> None:
        super().__init__(f"{name} is required and must not use placeholder defaults")
        self.name = name


# Values shipped in sample .env files
_TEMPLATE_VALUES: Final[frozenset[str]] = frozenset(
    {"changeme", "change-me", "placeholder", "example", "sample", "your-key-here", "sk_test_xxx", "none", "null"}
)


def is_placeholder(value: str | None) -> bool:
    cleaned = (value or "").strip()
    if not cleaned:
        return True
    # "<your secret key>" style markers
    if cleaned.startswith("<") and cleaned.endswith(">"):
        return True
    return cleaned.lower() in _TEMPLATE_VALUES


def optional_setting(value: str | None) -> str | None:
    """``value`` trimmed, or ``None`` when it is unset or a template value."""

    return None if is_placeholder(value) else value.strip()


def require_setting(value: str | None, name: str) -> str:
    cleaned = optional_setting(value)
    if cleaned is None:
        raise MissingSecretError(name)
    return cleaned
