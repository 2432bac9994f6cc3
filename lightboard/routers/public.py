"""
Public router — everything the anonymous landing page needs.

  GET  /public/page    → traffic light state plus the content for that phase
  POST /public/views   → record one finished viewing session of a media item

View recording never fails the viewer: a write error is logged and answered
with recorded=false.
"""

from fastapi import APIRouter, Depends, Request, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from lightboard.core.config import settings
from lightboard.core.database import get_db
from lightboard.core.errors import DataAccessError
from lightboard.core.limiter import limiter
from lightboard.core.storage import LocalBlobStore, get_blob_store
from lightboard.models.company import JobStatus, JobType
from lightboard.models.content import LightState
from lightboard.routers.jobs import JobOut, job_out
from lightboard.routers.media import MediaOut, media_out
from lightboard.routers.site import ProofStatsOut
from lightboard.routers.stories import StoryOut
from lightboard.services.analytics_service import record_view
from lightboard.services.company_service import list_jobs
from lightboard.services.links import split_links
from lightboard.services.media_service import list_media
from lightboard.services.site_service import get_light_state, get_proof_stats
from lightboard.services.story_service import list_stories

router = APIRouter()


class PublicMedia(MediaOut):
    description_segments: list[dict[str, str]] = Field(default_factory=list)


class PublicPage(BaseModel):
    state: LightState
    proof_stats: ProofStatsOut | None = None
    stories: list[StoryOut] = Field(default_factory=list)
    media: list[PublicMedia] = Field(default_factory=list)
    jobs: list[JobOut] = Field(default_factory=list)
    learnerships: list[JobOut] = Field(default_factory=list)


class ViewIn(BaseModel):
    item_id: str | None = None
    duration_seconds: int = Field(..., ge=0)


class ViewRecorded(BaseModel):
    recorded: bool
    event_id: str | None = None
    view_type: str | None = None


@router.get("/page", response_model=PublicPage, summary="Public landing page content")
async def public_page(
    db: AsyncSession = Depends(get_db),
    store: LocalBlobStore = Depends(get_blob_store),
):
    state = await get_light_state(db)
    page = PublicPage(state=state)

    if state == LightState.RED:
        page.proof_stats = ProofStatsOut.model_validate(await get_proof_stats(db))
        page.stories = [
            StoryOut.model_validate(s) for s in await list_stories(db, published_only=True)
        ]
    elif state == LightState.ORANGE:
        for item in await list_media(db, approved=True):
            public = PublicMedia(
                **media_out(item, store).model_dump(),
                description_segments=split_links(item.description or ""),
            )
            page.media.append(public)
    else:
        for job in await list_jobs(db, status=JobStatus.APPROVED):
            bucket = page.learnerships if job.job_type == JobType.LEARNERSHIP else page.jobs
            bucket.append(job_out(job))

    return page


@router.post(
    "/views",
    response_model=ViewRecorded,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Record a media view",
)
@limiter.limit(settings.RATE_LIMIT_VIEW_EVENTS)
async def post_view(request: Request, body: ViewIn, db: AsyncSession = Depends(get_db)):
    try:
        event = await record_view(
            db,
            item_id=body.item_id,
            duration_seconds=body.duration_seconds,
            user_agent=request.headers.get("user-agent"),
        )
    except DataAccessError:
        await db.rollback()
        return ViewRecorded(recorded=False)

    return ViewRecorded(recorded=True, event_id=event.id, view_type=event.view_type)
