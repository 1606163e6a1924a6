"""
Housing cooperative ORM models: coop, members, proposals, votes.
"""

from __future__ import annotations

import enum
from datetime import datetime
from uuid import UUID

from sqlalchemy import JSON, Enum, Float, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from truk.models.base import Base, TimestampMixin, UUIDMixin


class CoopType(str, enum.Enum):
    cohousing = "cohousing"
    housing_coop = "housing_coop"
    community_land_trust = "community_land_trust"
    ecovillage = "ecovillage"


class CoopPhase(str, enum.Enum):
    forming = "forming"
    planning = "planning"
    funding = "funding"
    building = "building"
    living = "living"


class CoopStatus(str, enum.Enum):
    open = "open"
    closed = "closed"
    full = "full"
    archived = "archived"


class GovernanceType(str, enum.Enum):
    consensus = "consensus"
    sociocracy = "sociocracy"
    majority_vote = "majority_vote"
    rotating_admin = "rotating_admin"


class CoopMemberRole(str, enum.Enum):
    founder = "founder"
    member = "member"
    candidate = "candidate"


class MemberStatus(str, enum.Enum):
    pending = "pending"
    active = "active"
    approved = "approved"
    rejected = "rejected"
    left = "left"


class CoopProposalType(str, enum.Enum):
    member_application = "member_application"
    expense = "expense"
    rule_change = "rule_change"
    general = "general"


class VoteDecision(str, enum.Enum):
    approve = "approve"
    reject = "reject"
    abstain = "abstain"


class HousingCoop(Base, UUIDMixin, TimestampMixin):
    """A group of members forming a housing cooperative."""

    __tablename__ = "housing_coops"

    founder_id: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    community_id: Mapped[UUID | None] = mapped_column(nullable=True, index=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    vision: Mapped[str | None] = mapped_column(Text, nullable=True)
    images: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    type: Mapped[CoopType] = mapped_column(Enum(CoopType, name="coop_type"), nullable=False)
    address: Mapped[str | None] = mapped_column(String(255), nullable=True)
    lat: Mapped[float | None] = mapped_column(Float, nullable=True)
    lng: Mapped[float | None] = mapped_column(Float, nullable=True)
    min_members: Mapped[int] = mapped_column(Integer, nullable=False, default=5)
    max_members: Mapped[int | None] = mapped_column(Integer, nullable=True)
    current_members: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_budget: Mapped[float | None] = mapped_column(Float, nullable=True)
    monthly_contribution: Mapped[float | None] = mapped_column(Float, nullable=True)
    governance: Mapped[GovernanceType] = mapped_column(
        Enum(GovernanceType, name="governance_type"), nullable=False
    )
    decision_threshold: Mapped[float] = mapped_column(Float, nullable=False, default=0.66)
    shared_spaces: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    community_rules: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    phase: Mapped[CoopPhase] = mapped_column(
        Enum(CoopPhase, name="coop_phase"), nullable=False, default=CoopPhase.forming
    )
    status: Mapped[CoopStatus] = mapped_column(
        Enum(CoopStatus, name="coop_status"), nullable=False, default=CoopStatus.open
    )
    target_move_in: Mapped[datetime | None] = mapped_column(nullable=True)

    def __repr__(self) -> str:
        return f"<HousingCoop id={self.id} name={self.name!r} phase={self.phase}>"


class HousingCoopMember(Base, UUIDMixin, TimestampMixin):
    __tablename__ = "housing_coop_members"
    __table_args__ = (UniqueConstraint("coop_id", "user_id", name="uq_coop_member"),)

    coop_id: Mapped[UUID] = mapped_column(
        ForeignKey("housing_coops.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    role: Mapped[CoopMemberRole] = mapped_column(
        Enum(CoopMemberRole, name="coop_member_role"), nullable=False
    )
    status: Mapped[MemberStatus] = mapped_column(
        Enum(MemberStatus, name="member_status"), nullable=False, default=MemberStatus.pending
    )
    application_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    skills: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    commitment_level: Mapped[str | None] = mapped_column(String(50), nullable=True)
    joined_at: Mapped[datetime | None] = mapped_column(nullable=True)


class HousingCoopProposal(Base, UUIDMixin, TimestampMixin):
    """A decision put to the coop's members, decided by weighted votes."""

    __tablename__ = "housing_coop_proposals"

    coop_id: Mapped[UUID] = mapped_column(
        ForeignKey("housing_coops.id", ondelete="CASCADE"), nullable=False, index=True
    )
    creator_id: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    applicant_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    type: Mapped[CoopProposalType] = mapped_column(
        Enum(CoopProposalType, name="coop_proposal_type"), nullable=False
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    required_votes: Mapped[int] = mapped_column(Integer, nullable=False)
    current_votes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    approved_at: Mapped[datetime | None] = mapped_column(nullable=True)


class HousingCoopVote(Base, UUIDMixin, TimestampMixin):
    __tablename__ = "housing_coop_votes"
    __table_args__ = (UniqueConstraint("proposal_id", "voter_id", name="uq_coop_vote"),)

    proposal_id: Mapped[UUID] = mapped_column(
        ForeignKey("housing_coop_proposals.id", ondelete="CASCADE"), nullable=False, index=True
    )
    voter_id: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    points: Mapped[int] = mapped_column(Integer, nullable=False)
    decision: Mapped[VoteDecision] = mapped_column(
        Enum(VoteDecision, name="vote_decision"), nullable=False
    )
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
