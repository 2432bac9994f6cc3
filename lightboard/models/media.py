"""
Marketing media ORM model — the videos and images shown in the orange phase.

The table name is kept from the first release, when only videos existed.
"""

import uuid
from datetime import datetime
from enum import Enum as PyEnum

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from lightboard.core.database import Base, utcnow
from lightboard.models.company import Company


class ContentType(str, PyEnum):
    VIDEO = "video"
    IMAGE = "image"


class MarketingMedia(Base):
    __tablename__ = "marketing_videos"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    company_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("companies.id", ondelete="CASCADE"), nullable=False
    )
    content_type: Mapped[ContentType] = mapped_column(
        Enum(ContentType), nullable=False, default=ContentType.VIDEO
    )
    video_url: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    video_file_path: Mapped[str | None] = mapped_column(String(500), nullable=True)
    image_url: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    image_file_path: Mapped[str | None] = mapped_column(String(500), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    approved: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    company: Mapped[Company] = relationship("Company", back_populates="media")

    def __repr__(self) -> str:
        return f"<MarketingMedia id={self.id} type={self.content_type} approved={self.approved}>"
