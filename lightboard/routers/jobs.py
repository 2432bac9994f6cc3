"""
Jobs router — job and learnership listings.

  GET    /jobs/               → list, optionally filtered by status / type
  POST   /jobs/               → create (starts pending)
  POST   /jobs/{id}/approve   → publish to the green phase
  POST   /jobs/{id}/fill      → archive as filled
  PUT    /jobs/{id}/counts    → update application / interview / hire counters
  DELETE /jobs/{id}           → delete
"""

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from lightboard.core.database import get_db
from lightboard.core.limiter import get_role_limit, limiter
from lightboard.core.security import Permission, TokenPayload, require_permission
from lightboard.models.company import ApplicationMethod, Job, JobStatus, JobType
from lightboard.services.company_service import (
    CompanyNotFoundError,
    JobNotFoundError,
    approve_job,
    create_job,
    delete_job,
    list_jobs,
    mark_job_filled,
    update_job_counts,
)
from lightboard.services.links import contact_link

router = APIRouter()

manage_content = require_permission(Permission.MANAGE_CONTENT)


class JobIn(BaseModel):
    company_id: str
    title: str = Field(..., min_length=1, max_length=200)
    description: str | None = None
    location: str = Field(..., min_length=1, max_length=200)
    category: str | None = Field(default=None, max_length=100)
    job_type: JobType = JobType.JOB
    application_method: ApplicationMethod
    contact_info: str = Field(..., min_length=1, max_length=500)


class JobCountsIn(BaseModel):
    applications_count: int | None = Field(default=None, ge=0)
    interviews_count: int | None = Field(default=None, ge=0)
    hires_count: int | None = Field(default=None, ge=0)


class JobOut(BaseModel):
    id: str
    company_id: str
    company_name: str | None
    title: str
    description: str | None
    location: str
    category: str | None
    job_type: JobType
    application_method: ApplicationMethod
    contact_info: str
    contact_link: str | None
    status: JobStatus
    applications_count: int
    interviews_count: int
    hires_count: int
    created_at: datetime
    updated_at: datetime
    filled_at: datetime | None


def job_out(job: Job) -> JobOut:
    return JobOut(
        id=job.id,
        company_id=job.company_id,
        company_name=job.company.name if job.company else None,
        title=job.title,
        description=job.description,
        location=job.location,
        category=job.category,
        job_type=job.job_type,
        application_method=job.application_method,
        contact_info=job.contact_info,
        contact_link=contact_link(job.contact_info, job.application_method.value),
        status=job.status,
        applications_count=job.applications_count,
        interviews_count=job.interviews_count,
        hires_count=job.hires_count,
        created_at=job.created_at,
        updated_at=job.updated_at,
        filled_at=job.filled_at,
    )


def _not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Job not found")


@router.get("/", response_model=list[JobOut], summary="List jobs")
@limiter.limit(get_role_limit)
async def get_jobs(
    request: Request,
    status_filter: JobStatus | None = Query(default=None, alias="status"),
    job_type: JobType | None = None,
    current_user: TokenPayload = Depends(manage_content),
    db: AsyncSession = Depends(get_db),
):
    jobs = await list_jobs(db, status=status_filter, job_type=job_type)
    return [job_out(j) for j in jobs]


@router.post("/", response_model=JobOut, status_code=status.HTTP_201_CREATED, summary="Create a job")
@limiter.limit(get_role_limit)
async def add_job(
    request: Request,
    body: JobIn,
    current_user: TokenPayload = Depends(manage_content),
    db: AsyncSession = Depends(get_db),
):
    try:
        job = await create_job(db, **body.model_dump())
    except CompanyNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Company not found")
    return job_out(job)


@router.post("/{job_id}/approve", response_model=JobOut, summary="Approve a job")
@limiter.limit(get_role_limit)
async def approve(
    request: Request,
    job_id: str,
    current_user: TokenPayload = Depends(manage_content),
    db: AsyncSession = Depends(get_db),
):
    try:
        return job_out(await approve_job(db, job_id, approved_by=current_user.sub))
    except JobNotFoundError:
        raise _not_found()


@router.post("/{job_id}/fill", response_model=JobOut, summary="Mark a job as filled")
@limiter.limit(get_role_limit)
async def fill(
    request: Request,
    job_id: str,
    current_user: TokenPayload = Depends(manage_content),
    db: AsyncSession = Depends(get_db),
):
    try:
        return job_out(await mark_job_filled(db, job_id, filled_by=current_user.sub))
    except JobNotFoundError:
        raise _not_found()


@router.put("/{job_id}/counts", response_model=JobOut, summary="Update placement counters")
@limiter.limit(get_role_limit)
async def set_counts(
    request: Request,
    job_id: str,
    body: JobCountsIn,
    current_user: TokenPayload = Depends(manage_content),
    db: AsyncSession = Depends(get_db),
):
    try:
        job = await update_job_counts(
            db,
            job_id,
            applications=body.applications_count,
            interviews=body.interviews_count,
            hires=body.hires_count,
        )
    except JobNotFoundError:
        raise _not_found()
    return job_out(job)


@router.delete("/{job_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete a job")
@limiter.limit(get_role_limit)
async def remove_job(
    request: Request,
    job_id: str,
    current_user: TokenPayload = Depends(manage_content),
    db: AsyncSession = Depends(get_db),
):
    try:
        await delete_job(db, job_id, deleted_by=current_user.sub)
    except JobNotFoundError:
        raise _not_found()
    return None
