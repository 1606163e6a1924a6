"""
Contribution ORM model: a member's support for a need or a project.
"""

from __future__ import annotations

import enum
from datetime import datetime
from uuid import UUID

from sqlalchemy import JSON, Boolean, Enum, Float, ForeignKey, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from truk.models.base import Base, TimestampMixin, UUIDMixin


class ContributionType(str, enum.Enum):
    monetary = "monetary"
    time = "time"
    skills = "skills"
    materials = "materials"


class ContributionStatus(str, enum.Enum):
    pending = "pending"
    active = "active"
    completed = "completed"
    cancelled = "cancelled"


class Contribution(Base, UUIDMixin, TimestampMixin):
    __tablename__ = "contributions"

    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    need_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("needs.id", ondelete="CASCADE"), nullable=True, index=True
    )
    project_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("community_projects.id", ondelete="CASCADE"), nullable=True, index=True
    )
    phase_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("project_phases.id", ondelete="SET NULL"), nullable=True
    )
    contribution_type: Mapped[ContributionType] = mapped_column(
        Enum(ContributionType, name="contribution_type"), nullable=False
    )
    amount_eur: Mapped[float | None] = mapped_column(Float, nullable=True)
    amount_credits: Mapped[int | None] = mapped_column(Integer, nullable=True)
    amount_hours: Mapped[float | None] = mapped_column(Float, nullable=True)
    skills_offered: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    materials_offered: Mapped[str | None] = mapped_column(Text, nullable=True)
    equipment_offered: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    message: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_anonymous: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_recurring: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    recurring_months: Mapped[int | None] = mapped_column(Integer, nullable=True)
    proof_documents: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    status: Mapped[ContributionStatus] = mapped_column(
        Enum(ContributionStatus, name="contribution_status"),
        nullable=False,
        default=ContributionStatus.pending,
    )
    validated_at: Mapped[datetime | None] = mapped_column(nullable=True)
    validated_by: Mapped[UUID | None] = mapped_column(nullable=True)
    refunded_at: Mapped[datetime | None] = mapped_column(nullable=True)
