"""
View event model — one row per viewing session of a marketing media item.

Rows are written once by the public player hook and never updated.
``item_id`` is nulled (or left dangling on SQLite) when the media item goes away.
"""

import uuid
from datetime import datetime
from enum import Enum as PyEnum

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from lightboard.core.database import Base, utcnow


class ViewType(str, PyEnum):
    VISIT = "visit"
    WATCH = "watch"


class ViewEvent(Base):
    __tablename__ = "view_events"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    item_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("marketing_videos.id", ondelete="SET NULL"), nullable=True
    )
    # Plain string so unexpected stored values surface as read errors
    view_type: Mapped[str] = mapped_column(String(10), nullable=False)
    duration_seconds: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    user_agent: Mapped[str | None] = mapped_column(String(500), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    __table_args__ = (
        CheckConstraint("duration_seconds >= 0", name="ck_view_events_duration_non_negative"),
        Index("ix_view_events_created", "created_at"),
        Index("ix_view_events_item", "item_id"),
    )

    def __repr__(self) -> str:
        return f"<ViewEvent id={self.id} item={self.item_id} type={self.view_type}>"
