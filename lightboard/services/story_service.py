"""
Community stories — the testimonials shown alongside proof stats in the red phase.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from lightboard.core.logging import get_logger
from lightboard.models.content import CommunityStory

logger = get_logger(__name__)

EDITABLE_FIELDS = {"title", "content", "image_url", "published"}


class StoryNotFoundError(Exception):
    pass


async def list_stories(db: AsyncSession, published_only: bool = False) -> list[CommunityStory]:
    stmt = select(CommunityStory).order_by(CommunityStory.created_at.desc())
    if published_only:
        stmt = stmt.where(CommunityStory.published == True)  # noqa: E712
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def get_story(db: AsyncSession, story_id: str) -> CommunityStory:
    story = await db.get(CommunityStory, story_id)
    if not story:
        raise StoryNotFoundError(f"Story {story_id} not found")
    return story


async def add_story(
    db: AsyncSession,
    title: str,
    content: str,
    image_url: str | None = None,
    published: bool = True,
) -> CommunityStory:
    story = CommunityStory(
        title=title.strip(),
        content=content,
        image_url=image_url or None,
        published=published,
    )
    db.add(story)
    await db.flush()
    logger.info("story.created", story_id=story.id, published=published)
    return story


async def update_story(db: AsyncSession, story_id: str, updates: dict) -> CommunityStory:
    story = await get_story(db, story_id)
    unknown = set(updates) - EDITABLE_FIELDS
    if unknown:
        raise ValueError(f"Cannot update fields: {', '.join(sorted(unknown))}")

    for field, value in updates.items():
        setattr(story, field, value)
    await db.flush()
    logger.info("story.updated", story_id=story_id, fields=sorted(updates))
    return story


async def set_published(db: AsyncSession, story_id: str, published: bool) -> CommunityStory:
    return await update_story(db, story_id, {"published": published})


async def delete_story(db: AsyncSession, story_id: str, deleted_by: str) -> None:
    story = await get_story(db, story_id)
    await db.delete(story)
    await db.flush()
    logger.warning("story.deleted", story_id=story_id, deleted_by=deleted_by)
