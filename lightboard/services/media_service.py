"""
Marketing media service — the videos and images of the orange phase.

A video needs either a hosted URL (YouTube, Vimeo or a direct file) or an
uploaded file path; an image likewise. New media waits for approval before
it appears on the public page.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from lightboard.core.logging import get_logger
from lightboard.core.storage import LocalBlobStore, StoredFile
from lightboard.models.media import ContentType, MarketingMedia
from lightboard.services.company_service import get_company

logger = get_logger(__name__)

UPLOAD_FOLDERS = {
    ContentType.VIDEO: "videos",
    ContentType.IMAGE: "images",
}


class MediaNotFoundError(Exception):
    pass


class InvalidMediaError(Exception):
    pass


async def list_media(db: AsyncSession, approved: bool | None = None) -> list[MarketingMedia]:
    stmt = (
        select(MarketingMedia)
        .options(selectinload(MarketingMedia.company))
        .order_by(MarketingMedia.created_at.desc())
    )
    if approved is not None:
        stmt = stmt.where(MarketingMedia.approved == approved)

    result = await db.execute(stmt)
    return list(result.scalars().all())


async def get_media(db: AsyncSession, media_id: str) -> MarketingMedia:
    result = await db.execute(
        select(MarketingMedia)
        .options(selectinload(MarketingMedia.company))
        .where(MarketingMedia.id == media_id)
        .execution_options(populate_existing=True)
    )
    media = result.scalar_one_or_none()
    if not media:
        raise MediaNotFoundError(f"Media {media_id} not found")
    return media


async def create_media(
    db: AsyncSession,
    company_id: str,
    content_type: ContentType,
    description: str,
    video_url: str | None = None,
    video_file_path: str | None = None,
    image_url: str | None = None,
    image_file_path: str | None = None,
) -> MarketingMedia:
    if content_type == ContentType.VIDEO and not (video_url or video_file_path):
        raise InvalidMediaError("A video needs a video_url or an uploaded video file")
    if content_type == ContentType.IMAGE and not (image_url or image_file_path):
        raise InvalidMediaError("An image needs an image_url or an uploaded image file")

    await get_company(db, company_id)

    media = MarketingMedia(
        company_id=company_id,
        content_type=content_type,
        description=description,
        video_url=video_url or None,
        video_file_path=video_file_path or None,
        image_url=image_url or None,
        image_file_path=image_file_path or None,
        approved=False,
    )
    db.add(media)
    await db.flush()
    logger.info(
        "media.created",
        media_id=media.id,
        company_id=company_id,
        content_type=content_type.value,
    )
    return await get_media(db, media.id)


async def set_media_approval(
    db: AsyncSession, media_id: str, approved: bool, changed_by: str
) -> MarketingMedia:
    media = await get_media(db, media_id)
    media.approved = approved
    await db.flush()
    logger.info(
        "media.approved" if approved else "media.rejected",
        media_id=media_id,
        changed_by=changed_by,
    )
    return media


async def delete_media(db: AsyncSession, media_id: str, deleted_by: str) -> None:
    media = await get_media(db, media_id)
    await db.delete(media)
    await db.flush()
    logger.warning("media.deleted", media_id=media_id, deleted_by=deleted_by)


def store_upload(
    store: LocalBlobStore, content_type: ContentType, filename: str, data: bytes
) -> StoredFile:
    """Write an uploaded file to the blob store. Raises StorageError."""
    return store.put(UPLOAD_FOLDERS[content_type], filename, data)
