"""
Marketing media router — videos and images for the orange phase.

  GET    /media/               → list, optionally ?approved=true|false
  POST   /media/               → create (starts unapproved)
  POST   /media/upload         → store a video or image file, returns {path, url}
  POST   /media/{id}/approve   → show on the public page
  POST   /media/{id}/reject    → hide from the public page
  DELETE /media/{id}           → delete
"""

from datetime import datetime

from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, UploadFile, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from lightboard.core.database import get_db
from lightboard.core.errors import StorageError
from lightboard.core.limiter import get_role_limit, limiter
from lightboard.core.logging import get_logger
from lightboard.core.security import Permission, TokenPayload, require_permission
from lightboard.core.storage import LocalBlobStore, get_blob_store
from lightboard.models.media import ContentType, MarketingMedia
from lightboard.services.company_service import CompanyNotFoundError
from lightboard.services.links import embed_url
from lightboard.services.media_service import (
    InvalidMediaError,
    MediaNotFoundError,
    create_media,
    delete_media,
    list_media,
    set_media_approval,
    store_upload,
)

router = APIRouter()
logger = get_logger(__name__)

manage_content = require_permission(Permission.MANAGE_CONTENT)


class MediaIn(BaseModel):
    company_id: str
    content_type: ContentType = ContentType.VIDEO
    description: str = Field(..., min_length=1)
    video_url: str | None = None
    video_file_path: str | None = None
    image_url: str | None = None
    image_file_path: str | None = None


class MediaOut(BaseModel):
    id: str
    company_id: str
    company_name: str | None
    content_type: ContentType
    video_url: str | None
    video_file_path: str | None
    image_url: str | None
    image_file_path: str | None
    embed_url: str | None
    file_url: str | None
    description: str | None
    approved: bool
    created_at: datetime
    updated_at: datetime


class UploadOut(BaseModel):
    path: str
    url: str
    size: int


def media_out(media: MarketingMedia, store: LocalBlobStore) -> MediaOut:
    file_path = media.video_file_path or media.image_file_path
    return MediaOut(
        id=media.id,
        company_id=media.company_id,
        company_name=media.company.name if media.company else None,
        content_type=media.content_type,
        video_url=media.video_url,
        video_file_path=media.video_file_path,
        image_url=media.image_url,
        image_file_path=media.image_file_path,
        embed_url=embed_url(media.video_url),
        file_url=store.public_url(file_path) if file_path else None,
        description=media.description,
        approved=media.approved,
        created_at=media.created_at,
        updated_at=media.updated_at,
    )


def _not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Media not found")


@router.get("/", response_model=list[MediaOut], summary="List marketing media")
@limiter.limit(get_role_limit)
async def get_media(
    request: Request,
    approved: bool | None = None,
    current_user: TokenPayload = Depends(manage_content),
    db: AsyncSession = Depends(get_db),
    store: LocalBlobStore = Depends(get_blob_store),
):
    return [media_out(m, store) for m in await list_media(db, approved=approved)]


@router.post("/", response_model=MediaOut, status_code=status.HTTP_201_CREATED, summary="Create media")
@limiter.limit(get_role_limit)
async def add_media(
    request: Request,
    body: MediaIn,
    current_user: TokenPayload = Depends(manage_content),
    db: AsyncSession = Depends(get_db),
    store: LocalBlobStore = Depends(get_blob_store),
):
    try:
        media = await create_media(db, **body.model_dump())
    except InvalidMediaError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))
    except CompanyNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Company not found")
    return media_out(media, store)


@router.post(
    "/upload",
    response_model=UploadOut,
    status_code=status.HTTP_201_CREATED,
    summary="Upload a video or image file",
)
@limiter.limit("30/minute")
async def upload_file(
    request: Request,
    file: UploadFile = File(...),
    content_type: ContentType = Form(ContentType.VIDEO),
    current_user: TokenPayload = Depends(manage_content),
    store: LocalBlobStore = Depends(get_blob_store),
):
    data = await file.read()
    try:
        stored = store_upload(store, content_type, file.filename or "upload", data)
    except StorageError as e:
        logger.warning("media.upload_rejected", operator_id=current_user.sub, error=str(e))
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    logger.info("media.uploaded", operator_id=current_user.sub, path=stored.path, size=stored.size)
    return UploadOut(path=stored.path, url=stored.url, size=stored.size)


@router.post("/{media_id}/approve", response_model=MediaOut, summary="Approve media")
@limiter.limit(get_role_limit)
async def approve(
    request: Request,
    media_id: str,
    current_user: TokenPayload = Depends(manage_content),
    db: AsyncSession = Depends(get_db),
    store: LocalBlobStore = Depends(get_blob_store),
):
    try:
        media = await set_media_approval(db, media_id, True, changed_by=current_user.sub)
    except MediaNotFoundError:
        raise _not_found()
    return media_out(media, store)


@router.post("/{media_id}/reject", response_model=MediaOut, summary="Reject media")
@limiter.limit(get_role_limit)
async def reject(
    request: Request,
    media_id: str,
    current_user: TokenPayload = Depends(manage_content),
    db: AsyncSession = Depends(get_db),
    store: LocalBlobStore = Depends(get_blob_store),
):
    try:
        media = await set_media_approval(db, media_id, False, changed_by=current_user.sub)
    except MediaNotFoundError:
        raise _not_found()
    return media_out(media, store)


@router.delete("/{media_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete media")
@limiter.limit(get_role_limit)
async def remove_media(
    request: Request,
    media_id: str,
    current_user: TokenPayload = Depends(manage_content),
    db: AsyncSession = Depends(get_db),
):
    try:
        await delete_media(db, media_id, deleted_by=current_user.sub)
    except MediaNotFoundError:
        raise _not_found()
    return None
