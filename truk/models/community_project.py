"""
Community project ORM models: project, phases, updates, impact reports.
"""

from __future__ import annotations

import enum
from datetime import datetime
from uuid import UUID

from sqlalchemy import JSON, Boolean, Enum, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from truk.models.base import Base, TimestampMixin, UUIDMixin


class ProjectType(str, enum.Enum):
    infrastructure = "infrastructure"
    water = "water"
    education = "education"
    health = "health"
    housing = "housing"
    environment = "environment"
    food_security = "food_security"
    energy = "energy"
    technology = "technology"
    other = "other"


class ProjectStatus(str, enum.Enum):
    proposed = "proposed"
    funding = "funding"
    forming = "forming"
    executing = "executing"
    completed = "completed"
    cancelled = "cancelled"


class ImpactLevel(str, enum.Enum):
    local = "local"
    regional = "regional"
    national = "national"
    global_ = "global"


class CommunityProject(Base, UUIDMixin, TimestampMixin):
    """A larger collective project with phases and impact reporting."""

    __tablename__ = "community_projects"

    creator_id: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    community_id: Mapped[UUID | None] = mapped_column(nullable=True, index=True)
    type: Mapped[ProjectType] = mapped_column(Enum(ProjectType, name="project_type"), nullable=False)
    status: Mapped[ProjectStatus] = mapped_column(
        Enum(ProjectStatus, name="project_status"), nullable=False, default=ProjectStatus.proposed
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    vision: Mapped[str] = mapped_column(Text, nullable=False)
    images: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    location: Mapped[str] = mapped_column(String(255), nullable=False)
    latitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    longitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    country: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    region: Mapped[str | None] = mapped_column(String(100), nullable=True)
    beneficiaries: Mapped[int | None] = mapped_column(Integer, nullable=True)
    impact_goals: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    target_eur: Mapped[float | None] = mapped_column(Float, nullable=True)
    target_credits: Mapped[int | None] = mapped_column(Integer, nullable=True)
    target_hours: Mapped[float | None] = mapped_column(Float, nullable=True)
    current_eur: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    current_credits: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    current_hours: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    contributors_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    volunteers_needed: Mapped[int | None] = mapped_column(Integer, nullable=True)
    volunteers_enrolled: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    start_date: Mapped[datetime | None] = mapped_column(nullable=True)
    end_date: Mapped[datetime | None] = mapped_column(nullable=True)
    estimated_months: Mapped[int | None] = mapped_column(Integer, nullable=True)
    tags: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    sdg_goals: Mapped[list[int]] = mapped_column(JSON, nullable=False, default=list)
    completion_rate: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    is_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    def __repr__(self) -> str:
        return f"<CommunityProject id={self.id} title={self.title!r} status={self.status}>"


class ProjectPhase(Base, UUIDMixin, TimestampMixin):
    __tablename__ = "project_phases"

    project_id: Mapped[UUID] = mapped_column(
        ForeignKey("community_projects.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    order: Mapped[int] = mapped_column(Integer, nullable=False)
    target_eur: Mapped[float | None] = mapped_column(Float, nullable=True)
    target_credits: Mapped[int | None] = mapped_column(Integer, nullable=True)
    target_hours: Mapped[float | None] = mapped_column(Float, nullable=True)
    start_date: Mapped[datetime | None] = mapped_column(nullable=True)
    end_date: Mapped[datetime | None] = mapped_column(nullable=True)


class ProjectUpdate(Base, UUIDMixin, TimestampMixin):
    __tablename__ = "project_updates"

    project_id: Mapped[UUID] = mapped_column(
        ForeignKey("community_projects.id", ondelete="CASCADE"), nullable=False, index=True
    )
    author_id: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    images: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    progress_update: Mapped[float | None] = mapped_column(Float, nullable=True)
    funds_used: Mapped[float | None] = mapped_column(Float, nullable=True)
    beneficiaries_reached: Mapped[int | None] = mapped_column(Integer, nullable=True)
    milestones: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    challenges: Mapped[str | None] = mapped_column(Text, nullable=True)
    next_steps: Mapped[str | None] = mapped_column(Text, nullable=True)


class ImpactReport(Base, UUIDMixin, TimestampMixin):
    __tablename__ = "impact_reports"

    project_id: Mapped[UUID] = mapped_column(
        ForeignKey("community_projects.id", ondelete="CASCADE"), nullable=False, index=True
    )
    author_id: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    summary: Mapped[str] = mapped_column(Text, nullable=False)
    impact_level: Mapped[ImpactLevel] = mapped_column(
        Enum(ImpactLevel, name="impact_level"), nullable=False, default=ImpactLevel.local
    )
    beneficiaries_reached: Mapped[int | None] = mapped_column(Integer, nullable=True)
    jobs_created: Mapped[int | None] = mapped_column(Integer, nullable=True)
    co2_avoided: Mapped[float | None] = mapped_column(Float, nullable=True)
    water_liters_provided: Mapped[float | None] = mapped_column(Float, nullable=True)
    people_educated: Mapped[int | None] = mapped_column(Integer, nullable=True)
    custom_metrics: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    photos: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    testimonials: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    future_goals: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    published_at: Mapped[datetime | None] = mapped_column(nullable=True)
