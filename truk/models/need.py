"""
Mutual-aid need ORM model.
"""

from __future__ import annotations

import enum
from datetime import datetime
from uuid import UUID

from sqlalchemy import JSON, Boolean, Enum, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from truk.models.base import Base, TimestampMixin, UUIDMixin


class NeedScope(str, enum.Enum):
    personal = "personal"
    community = "community"
    intercommunity = "intercommunity"
    global_ = "global"


class NeedCategory(str, enum.Enum):
    urgent = "urgent"
    ongoing = "ongoing"
    project = "project"
    recovery = "recovery"


class NeedType(str, enum.Enum):
    food = "food"
    shelter = "shelter"
    health = "health"
    education = "education"
    transport = "transport"
    tools = "tools"
    materials = "materials"
    financial = "financial"
    emotional = "emotional"
    other = "other"


class ResourceType(str, enum.Enum):
    money = "money"
    credits = "credits"
    time = "time"
    skills = "skills"
    materials = "materials"
    equipment = "equipment"


class NeedStatus(str, enum.Enum):
    open = "open"
    in_progress = "in_progress"
    filled = "filled"
    closed = "closed"
    cancelled = "cancelled"


class Need(Base, UUIDMixin, TimestampMixin):
    """A request for help, funded by member contributions."""

    __tablename__ = "needs"

    # Community-level needs have no individual creator
    creator_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True
    )
    community_id: Mapped[UUID | None] = mapped_column(nullable=True, index=True)
    scope: Mapped[NeedScope] = mapped_column(Enum(NeedScope, name="need_scope"), nullable=False)
    category: Mapped[NeedCategory] = mapped_column(
        Enum(NeedCategory, name="need_category"), nullable=False, default=NeedCategory.ongoing
    )
    type: Mapped[NeedType] = mapped_column(Enum(NeedType, name="need_type"), nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    images: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    location: Mapped[str] = mapped_column(String(255), nullable=False)
    latitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    longitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    country: Mapped[str | None] = mapped_column(String(100), nullable=True, index=True)
    resource_types: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    target_eur: Mapped[float | None] = mapped_column(Float, nullable=True)
    target_credits: Mapped[int | None] = mapped_column(Integer, nullable=True)
    target_hours: Mapped[float | None] = mapped_column(Float, nullable=True)
    current_eur: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    current_credits: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    current_hours: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    contributors_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    needed_skills: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    urgency_level: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    deadline: Mapped[datetime | None] = mapped_column(nullable=True)
    status: Mapped[NeedStatus] = mapped_column(
        Enum(NeedStatus, name="need_status"), nullable=False, default=NeedStatus.open
    )
    is_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    closed_at: Mapped[datetime | None] = mapped_column(nullable=True)

    def targets_met(self) -> bool:
        """True when every target that is set has been reached; unset targets count as met."""
        targets = [
            (self.target_eur, self.current_eur),
            (self.target_credits, self.current_credits),
            (self.target_hours, self.current_hours),
        ]
        return all(current >= target for target, current in targets if target)

    def __repr__(self) -> str:
        return f"<Need id={self.id} title={self.title!r} status={self.status}>"
