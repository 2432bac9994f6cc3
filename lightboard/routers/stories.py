"""
Community stories router.

  GET    /stories/                → all stories (published and drafts)
  POST   /stories/                → add a story (published by default)
  PATCH  /stories/{id}            → partial update
  POST   /stories/{id}/publish    → set published true/false
  DELETE /stories/{id}            → delete
"""

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from lightboard.core.database import get_db
from lightboard.core.limiter import get_role_limit, limiter
from lightboard.core.security import Permission, TokenPayload, require_permission
from lightboard.services.story_service import (
    StoryNotFoundError,
    add_story,
    delete_story,
    list_stories,
    set_published,
    update_story,
)

router = APIRouter()

manage_content = require_permission(Permission.MANAGE_CONTENT)


class StoryIn(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    content: str = Field(..., min_length=1)
    image_url: str | None = None
    published: bool = True


class StoryPatch(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=200)
    content: str | None = Field(default=None, min_length=1)
    image_url: str | None = None
    published: bool | None = None


class PublishIn(BaseModel):
    published: bool


class StoryOut(BaseModel):
    id: str
    title: str
    content: str
    image_url: str | None
    published: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


def _not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Story not found")


@router.get("/", response_model=list[StoryOut], summary="List stories")
@limiter.limit(get_role_limit)
async def get_stories(
    request: Request,
    current_user: TokenPayload = Depends(manage_content),
    db: AsyncSession = Depends(get_db),
):
    return await list_stories(db)


@router.post("/", response_model=StoryOut, status_code=status.HTTP_201_CREATED, summary="Add a story")
@limiter.limit(get_role_limit)
async def create_story(
    request: Request,
    body: StoryIn,
    current_user: TokenPayload = Depends(manage_content),
    db: AsyncSession = Depends(get_db),
):
    return await add_story(db, **body.model_dump())


@router.patch("/{story_id}", response_model=StoryOut, summary="Update a story")
@limiter.limit(get_role_limit)
async def patch_story(
    request: Request,
    story_id: str,
    body: StoryPatch,
    current_user: TokenPayload = Depends(manage_content),
    db: AsyncSession = Depends(get_db),
):
    updates = body.model_dump(exclude_unset=True)
    # title, content and published are non-nullable columns
    if any(updates.get(k, "") is None for k in ("title", "content", "published")):
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="title, content and published cannot be null",
        )
    try:
        return await update_story(db, story_id, updates)
    except StoryNotFoundError:
        raise _not_found()


@router.post("/{story_id}/publish", response_model=StoryOut, summary="Publish or unpublish a story")
@limiter.limit(get_role_limit)
async def publish_story(
    request: Request,
    story_id: str,
    body: PublishIn,
    current_user: TokenPayload = Depends(manage_content),
    db: AsyncSession = Depends(get_db),
):
    try:
        return await set_published(db, story_id, body.published)
    except StoryNotFoundError:
        raise _not_found()


@router.delete("/{story_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete a story")
@limiter.limit(get_role_limit)
async def remove_story(
    request: Request,
    story_id: str,
    current_user: TokenPayload = Depends(manage_content),
    db: AsyncSession = Depends(get_db),
):
    try:
        await delete_story(db, story_id, deleted_by=current_user.sub)
    except StoryNotFoundError:
        raise _not_found()
    return None
