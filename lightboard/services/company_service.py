"""
Company and job listing service.

Jobs start out pending, become visible once approved, and are archived when
filled. Deleting a company removes its jobs and marketing media with it.
"""

from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from lightboard.core.logging import get_logger
from lightboard.models.company import (
    ApplicationMethod,
    Company,
    Job,
    JobStatus,
    JobType,
)

logger = get_logger(__name__)


class CompanyNotFoundError(Exception):
    pass


class JobNotFoundError(Exception):
    pass


# ── Companies ──────────────────────────────────────────────────────────────────
async def list_companies(db: AsyncSession) -> list[Company]:
    result = await db.execute(select(Company).order_by(Company.created_at.desc()))
    return list(result.scalars().all())


async def get_company(db: AsyncSession, company_id: str) -> Company:
    company = await db.get(Company, company_id)
    if not company:
        raise CompanyNotFoundError(f"Company {company_id} not found")
    return company


async def create_company(db: AsyncSession, name: str, details: str | None = None) -> Company:
    company = Company(name=name.strip(), details=details or None)
    db.add(company)
    await db.flush()
    logger.info("company.created", company_id=company.id, name=company.name)
    return company


async def delete_company(db: AsyncSession, company_id: str, deleted_by: str) -> None:
    result = await db.execute(
        select(Company)
        .options(selectinload(Company.jobs), selectinload(Company.media))
        .where(Company.id == company_id)
    )
    company = result.scalar_one_or_none()
    if not company:
        raise CompanyNotFoundError(f"Company {company_id} not found")

    await db.delete(company)
    await db.flush()
    logger.warning(
        "company.deleted",
        company_id=company_id,
        jobs_removed=len(company.jobs),
        media_removed=len(company.media),
        deleted_by=deleted_by,
    )


# ── Jobs ───────────────────────────────────────────────────────────────────────
async def list_jobs(
    db: AsyncSession,
    status: JobStatus | None = None,
    job_type: JobType | None = None,
) -> list[Job]:
    stmt = select(Job).options(selectinload(Job.company)).order_by(Job.created_at.desc())
    if status is not None:
        stmt = stmt.where(Job.status == status)
    if job_type is not None:
        stmt = stmt.where(Job.job_type == job_type)

    result = await db.execute(stmt)
    return list(result.scalars().all())


async def get_job(db: AsyncSession, job_id: str) -> Job:
    result = await db.execute(
        select(Job)
        .options(selectinload(Job.company))
        .where(Job.id == job_id)
        .execution_options(populate_existing=True)
    )
    job = result.scalar_one_or_none()
    if not job:
        raise JobNotFoundError(f"Job {job_id} not found")
    return job


async def create_job(
    db: AsyncSession,
    company_id: str,
    title: str,
    location: str,
    application_method: ApplicationMethod,
    contact_info: str,
    job_type: JobType = JobType.JOB,
    description: str | None = None,
    category: str | None = None,
) -> Job:
    await get_company(db, company_id)

    job = Job(
        company_id=company_id,
        title=title.strip(),
        description=description,
        location=location.strip(),
        category=category or None,
        job_type=job_type,
        application_method=application_method,
        contact_info=contact_info.strip(),
        status=JobStatus.PENDING,
    )
    db.add(job)
    await db.flush()
    logger.info("job.created", job_id=job.id, company_id=company_id, job_type=job_type.value)
    return await get_job(db, job.id)


async def approve_job(db: AsyncSession, job_id: str, approved_by: str) -> Job:
    job = await get_job(db, job_id)
    job.status = JobStatus.APPROVED
    await db.flush()
    logger.info("job.approved", job_id=job_id, approved_by=approved_by)
    return job


async def mark_job_filled(db: AsyncSession, job_id: str, filled_by: str) -> Job:
    job = await get_job(db, job_id)
    job.status = JobStatus.FILLED
    job.filled_at = datetime.now(timezone.utc)
    await db.flush()
    logger.info("job.filled", job_id=job_id, filled_by=filled_by)
    return job


async def update_job_counts(
    db: AsyncSession,
    job_id: str,
    applications: int | None = None,
    interviews: int | None = None,
    hires: int | None = None,
) -> Job:
    job = await get_job(db, job_id)
    if applications is not None:
        job.applications_count = applications
    if interviews is not None:
        job.interviews_count = interviews
    if hires is not None:
        job.hires_count = hires
    await db.flush()
    logger.info(
        "job.counts_updated",
        job_id=job_id,
        applications=job.applications_count,
        interviews=job.interviews_count,
        hires=job.hires_count,
    )
    return job


async def delete_job(db: AsyncSession, job_id: str, deleted_by: str) -> None:
    job = await get_job(db, job_id)
    await db.delete(job)
    await db.flush()
    logger.warning("job.deleted", job_id=job_id, deleted_by=deleted_by)
