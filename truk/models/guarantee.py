"""
Community rent guarantee ORM models.
"""

from __future__ import annotations

import enum
from datetime import datetime
from uuid import UUID

from sqlalchemy import Enum, Float, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from truk.models.base import Base, TimestampMixin, UUIDMixin


class GuaranteeStatus(str, enum.Enum):
    pending = "pending"
    active = "active"
    expired = "expired"
    cancelled = "cancelled"


class SupportStatus(str, enum.Enum):
    active = "active"
    withdrawn = "withdrawn"


class CommunityGuarantee(Base, UUIDMixin, TimestampMixin):
    """Rent guarantee for a tenant, backed by pledges from other members."""

    __tablename__ = "community_guarantees"

    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    community_id: Mapped[UUID | None] = mapped_column(nullable=True, index=True)
    landlord_name: Mapped[str] = mapped_column(String(200), nullable=False)
    landlord_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    landlord_phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    property_address: Mapped[str] = mapped_column(String(255), nullable=False)
    monthly_rent: Mapped[float] = mapped_column(Float, nullable=False)
    coverage_months: Mapped[int] = mapped_column(Integer, nullable=False, default=3)
    max_coverage: Mapped[float] = mapped_column(Float, nullable=False)
    reputation: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    status: Mapped[GuaranteeStatus] = mapped_column(
        Enum(GuaranteeStatus, name="guarantee_status"),
        nullable=False,
        default=GuaranteeStatus.pending,
    )
    fund_allocated: Mapped[float | None] = mapped_column(Float, nullable=True)
    activated_at: Mapped[datetime | None] = mapped_column(nullable=True)
    expires_at: Mapped[datetime | None] = mapped_column(nullable=True)


class GuaranteeSupporter(Base, UUIDMixin, TimestampMixin):
    __tablename__ = "guarantee_supporters"

    guarantee_id: Mapped[UUID] = mapped_column(
        ForeignKey("community_guarantees.id", ondelete="CASCADE"), nullable=False, index=True
    )
    supporter_id: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    months_committed: Mapped[int] = mapped_column(Integer, nullable=False)
    amount_committed: Mapped[float] = mapped_column(Float, nullable=False)
    status: Mapped[SupportStatus] = mapped_column(
        Enum(SupportStatus, name="support_status"), nullable=False, default=SupportStatus.active
    )
