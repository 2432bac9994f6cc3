"""
Company and Job ORM models.

A company owns its job listings and its marketing media; deleting the
company removes both.
"""

import uuid
from datetime import datetime
from enum import Enum as PyEnum
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, Enum, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from lightboard.core.database import Base, utcnow

if TYPE_CHECKING:
    from lightboard.models.media import MarketingMedia


class JobStatus(str, PyEnum):
    PENDING = "pending"
    APPROVED = "approved"
    FILLED = "filled"


class JobType(str, PyEnum):
    JOB = "job"
    LEARNERSHIP = "learnership"


class ApplicationMethod(str, PyEnum):
    EMAIL = "email"
    WHATSAPP = "whatsapp"
    EXTERNAL_LINK = "external_link"


class Company(Base):
    __tablename__ = "companies"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    details: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    jobs: Mapped[list["Job"]] = relationship(
        "Job", back_populates="company", cascade="all, delete-orphan"
    )
    media: Mapped[list["MarketingMedia"]] = relationship(
        "MarketingMedia", back_populates="company", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Company id={self.id} name={self.name}>"


class Job(Base):
    __tablename__ = "jobs"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    company_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("companies.id", ondelete="CASCADE"), nullable=False
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    location: Mapped[str] = mapped_column(String(200), nullable=False)
    category: Mapped[str | None] = mapped_column(String(100), nullable=True)
    job_type: Mapped[JobType] = mapped_column(Enum(JobType), nullable=False, default=JobType.JOB)
    application_method: Mapped[ApplicationMethod] = mapped_column(
        Enum(ApplicationMethod), nullable=False
    )
    contact_info: Mapped[str] = mapped_column(String(500), nullable=False)
    status: Mapped[JobStatus] = mapped_column(
        Enum(JobStatus), nullable=False, default=JobStatus.PENDING
    )

    # Placement funnel counters, maintained by operators
    applications_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    interviews_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    hires_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )
    filled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    company: Mapped[Company] = relationship("Company", back_populates="jobs")

    __table_args__ = (
        Index("ix_jobs_status_created", "status", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Job id={self.id} title={self.title} status={self.status}>"
