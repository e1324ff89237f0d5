"""Convenience exports for service layer."""
from .follow_service import FollowStats, get_follow_stats, get_user_or_404, toggle_follow
from .identity_service import (
    ReconcileResult,
    decode_session_token,
    derive_username,
    get_acting_user,
    get_current_principal,
    get_optional_viewer_id,
    reconcile_identity,
)
from .interaction_service import InteractionState, add_comment, list_comments, toggle_like, toggle_save
from .item_service import (
    create_item,
    get_item_detail,
    get_viewer_state,
    list_feed,
    list_items_by_owner,
    list_saved_items,
    search_items,
)
from .profile_service import get_profile_page, get_user_by_username, update_profile
from .storage_service import (
    StorageConfigurationError,
    StorageUploadError,
    StorageUploadResult,
    get_storage_client,
    upload_file,
)
from .view_cache import HOME_PATH, ViewCache, item_path, profile_path, view_cache

__all__ = [
    "FollowStats",
    "get_follow_stats",
    "get_user_or_404",
    "toggle_follow",
    "ReconcileResult",
    "decode_session_token",
    "derive_username",
    "get_acting_user",
    "get_current_principal",
    "get_optional_viewer_id",
    "reconcile_identity",
    "InteractionState",
    "add_comment",
    "list_comments",
    "toggle_like",
    "toggle_save",
    "create_item",
    "get_item_detail",
    "get_viewer_state",
    "list_feed",
    "list_items_by_owner",
    "list_saved_items",
    "search_items",
    "get_profile_page",
    "get_user_by_username",
    "update_profile",
    "StorageConfigurationError",
    "StorageUploadError",
    "StorageUploadResult",
    "get_storage_client",
    "upload_file",
    "HOME_PATH",
    "ViewCache",
    "item_path",
    "profile_path",
    "view_cache",
]
