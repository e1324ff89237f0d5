"""Item routes: feed, search, publishing, item pages and interactions."""
from __future__ import annotations

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile, status
from sqlalchemy.orm import Session

from ..config import get_settings
from ..database import get_session
from ..models import MediaType, User
from ..schemas import (
    CommentCreate,
    CommentListResponse,
    CommentResponse,
    InteractionResponse,
    ItemDetailResponse,
    ItemFeedResponse,
    ItemResponse,
)
from ..services import (
    HOME_PATH,
    add_comment,
    create_item,
    get_acting_user,
    get_item_detail,
    get_optional_viewer_id,
    get_viewer_state,
    item_path,
    list_comments,
    list_feed,
    search_items,
    toggle_like,
    toggle_save,
    view_cache,
)

router = APIRouter(prefix="/items", tags=["items"])


def _parse_media_types(raw: str | None) -> list[MediaType]:
    types: list[MediaType] = []
    for value in (raw or "").split(","):
        value = value.strip().lower()
        if not value:
            continue
        try:
            types.append(MediaType(value))
        except ValueError as exc:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail=f"Unknown media type '{value}'",
            ) from exc
    return types


@router.get("/feed", response_model=ItemFeedResponse)
async def feed_endpoint(
    limit: int | None = Query(None, ge=1),
    db: Session = Depends(get_session),
) -> ItemFeedResponse:
    page_size = get_settings().feed_page_size
    if limit is not None and limit < page_size:
        return ItemFeedResponse(items=list_feed(db, limit=limit), limit=limit)

    # Only the default page is cached; it is what the home view renders.
    return view_cache.get_or_build(
        HOME_PATH,
        lambda: ItemFeedResponse(items=list_feed(db), limit=page_size),
    )


@router.get("/search", response_model=ItemFeedResponse)
async def search_endpoint(
    q: str | None = Query(None, max_length=200),
    types: str | None = Query(None, description="Comma separated media types, e.g. image,video"),
    limit: int | None = Query(None, ge=1),
    db: Session = Depends(get_session),
) -> ItemFeedResponse:
    page_size = get_settings().search_page_size
    effective = min(limit, page_size) if limit is not None else page_size
    items = search_items(db, query=q, media_types=_parse_media_types(types), limit=effective)
    return ItemFeedResponse(items=items, limit=effective)


@router.post("", response_model=ItemResponse, status_code=status.HTTP_201_CREATED)
async def create_item_endpoint(
    title: str = Form(..., min_length=1),
    description: str | None = Form(None),
    media_url: str | None = Form(None),
    media_type: MediaType | None = Form(None),
    file: UploadFile | None = File(None),
    db: Session = Depends(get_session),
    current_user: User = Depends(get_acting_user),
) -> ItemResponse:
    """Publish an item.

    Send ``multipart/form-data`` with either a ``file`` (stored in object
    storage first) or the ``media_url`` of an object that is already stored.
    """

    record = await create_item(
        db,
        owner=current_user,
        title=title,
        description=description,
        media_url=media_url,
        media_type=media_type,
        file=file,
    )
    return ItemResponse.model_validate(record)


@router.get("/{item_id}", response_model=ItemDetailResponse)
async def item_detail_endpoint(
    item_id: int,
    db: Session = Depends(get_session),
    viewer_id: str | None = Depends(get_optional_viewer_id),
) -> ItemDetailResponse:
    public = view_cache.get_or_build(
        item_path(item_id),
        lambda: ItemDetailResponse.model_validate(get_item_detail(db, item_id=item_id)),
    )
    return public.model_copy(update=get_viewer_state(db, item_id=item_id, viewer_id=viewer_id))


@router.post("/{item_id}/like", response_model=InteractionResponse)
async def toggle_like_endpoint(
    item_id: int,
    db: Session = Depends(get_session),
    current_user: User = Depends(get_acting_user),
) -> InteractionResponse:
    state = toggle_like(db, user_id=current_user.id, item_id=item_id)
    return InteractionResponse.model_validate(state, from_attributes=True)


@router.post("/{item_id}/save", response_model=InteractionResponse)
async def toggle_save_endpoint(
    item_id: int,
    db: Session = Depends(get_session),
    current_user: User = Depends(get_acting_user),
) -> InteractionResponse:
    state = toggle_save(db, user_id=current_user.id, item_id=item_id)
    return InteractionResponse.model_validate(state, from_attributes=True)


@router.get("/{item_id}/comments", response_model=CommentListResponse)
async def list_comments_endpoint(
    item_id: int,
    db: Session = Depends(get_session),
) -> CommentListResponse:
    return CommentListResponse(items=list_comments(db, item_id=item_id))


@router.post("/{item_id}/comments", response_model=CommentResponse, status_code=status.HTTP_201_CREATED)
async def add_comment_endpoint(
    item_id: int,
    payload: CommentCreate,
    db: Session = Depends(get_session),
    current_user: User = Depends(get_acting_user),
) -> CommentResponse:
    comment = add_comment(db, item_id=item_id, author=current_user, content=payload.content)
    return CommentResponse.model_validate(comment)


__all__ = ["router"]
