"""
Single-purpose content tables: community stories, proof stats and the
traffic light. Proof stats and the traffic light are single-row tables.
"""

import uuid
from datetime import datetime
from enum import Enum as PyEnum

from sqlalchemy import Boolean, DateTime, Enum, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from lightboard.core.database import Base, utcnow


class LightState(str, PyEnum):
    RED = "red"
    ORANGE = "orange"
    GREEN = "green"


class CommunityStory(Base):
    __tablename__ = "community_stories"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    image_url: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    published: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )


class ProofStats(Base):
    __tablename__ = "proof_stats"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    total_companies: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_applications: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_interviews: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )


class TrafficLight(Base):
    __tablename__ = "traffic_light"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    state: Mapped[LightState] = mapped_column(
        Enum(LightState), nullable=False, default=LightState.RED
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )
