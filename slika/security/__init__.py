"""Helpers for handling credentials supplied through configuration."""
from .secrets import MissingSecretError, is_placeholder, optional_setting, require_setting

__all__ = ["MissingSecretError", "is_placeholder", "optional_setting", "require_setting"]
