"""
Housing cooperatives and community rent guarantees.
"""

from __future__ import annotations

import logging
import math
from datetime import UTC, datetime, timedelta
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from truk.core.config import settings
from truk.models.coop import (
    CoopMemberRole,
    CoopPhase,
    CoopProposalType,
    CoopStatus,
    GovernanceType,
    HousingCoop,
    HousingCoopMember,
    HousingCoopProposal,
    HousingCoopVote,
    MemberStatus,
    VoteDecision,
)
from truk.models.guarantee import CommunityGuarantee, GuaranteeStatus, GuaranteeSupporter, SupportStatus
from truk.models.user import User
from truk.schemas.auth import UserSummary
from truk.schemas.housing import (
    CoopCreateRequest,
    CoopDetailResponse,
    CoopFilters,
    CoopJoinRequest,
    CoopMemberResponse,
    CoopProposalResponse,
    CoopResponse,
    CoopVoteRequest,
    CoopVoteResponse,
    GuaranteeRequest,
    GuaranteeResponse,
    GuaranteeSupporterResponse,
    GuaranteeSupportResponse,
)

logger = logging.getLogger(__name__)

# Members allowed to vote on proposals
VOTING_STATUSES = (MemberStatus.active, MemberStatus.approved)

DAYS_PER_COVERAGE_MONTH = 30


def required_votes(current_members: int, threshold: float) -> int:
    return max(math.ceil(current_members * threshold), 1)


class CoopService:
    """Handles cooperative membership, proposals and guarantees."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    # -----------------------------------------------------------------------
    # Cooperatives
    # -----------------------------------------------------------------------

    async def create_coop(self, user: User, data: CoopCreateRequest) -> CoopResponse:
        """Create a cooperative; the creator is its first active founder."""
        coop = HousingCoop(
            founder_id=user.id,
            current_members=1,
            phase=CoopPhase.forming,
            status=CoopStatus.open,
            **data.model_dump(),
        )
        self.db.add(coop)
        await self.db.flush()

        self.db.add(
            HousingCoopMember(
                coop_id=coop.id,
                user_id=user.id,
                role=CoopMemberRole.founder,
                status=MemberStatus.active,
                joined_at=datetime.now(UTC),
            )
        )
        await self.db.flush()

        logger.info("Coop %s founded by %s", coop.id, user.id)
        return CoopResponse.model_validate(coop)

    async def find_coops(self, filters: CoopFilters) -> list[CoopResponse]:
        stmt = select(HousingCoop).where(HousingCoop.status != CoopStatus.archived)
        if filters.type is not None:
            stmt = stmt.where(HousingCoop.type == filters.type)
        if filters.phase is not None:
            stmt = stmt.where(HousingCoop.phase == filters.phase)
        if filters.open_to_members:
            stmt = stmt.where(HousingCoop.status == CoopStatus.open)

        coops = await self.db.scalars(stmt.order_by(HousingCoop.created_at.desc()))
        return [CoopResponse.model_validate(c) for c in coops]

    async def find_coop_by_id(self, coop_id: UUID) -> CoopDetailResponse:
        coop = await self._get_coop(coop_id)

        rows = await self.db.execute(
            select(HousingCoopMember, User)
            .join(User, HousingCoopMember.user_id == User.id)
            .where(HousingCoopMember.coop_id == coop.id)
            .order_by(HousingCoopMember.created_at)
        )
        members = []
        for member, user in rows.all():
            response = CoopMemberResponse.model_validate(member)
            response.user = UserSummary.model_validate(user)
            members.append(response)

        proposals = await self.db.scalars(
            select(HousingCoopProposal)
            .where(HousingCoopProposal.coop_id == coop.id, HousingCoopProposal.approved_at.is_(None))
            .order_by(HousingCoopProposal.created_at.desc())
        )

        response = CoopDetailResponse.model_validate(coop)
        response.members = members
        response.open_proposals = [CoopProposalResponse.model_validate(p) for p in proposals]
        return response

    async def join_coop(self, user: User, coop_id: UUID, data: CoopJoinRequest) -> CoopMemberResponse:
        """
        Apply to a cooperative.

        Rotating-admin cooperatives admit the applicant straight away. Under
        any other governance the applicant starts as a pending candidate and
        an application proposal is opened for members to vote on.
        """
        coop = await self._get_coop(coop_id)

        if coop.status != CoopStatus.open:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail={"code": "COOP_NOT_OPEN", "message": "This cooperative is not accepting members"},
            )
        self._ensure_room(coop)

        existing = await self.db.scalar(
            select(HousingCoopMember.id).where(
                HousingCoopMember.coop_id == coop.id, HousingCoopMember.user_id == user.id
            )
        )
        if existing is not None:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail={"code": "ALREADY_MEMBER", "message": "You already applied to this cooperative"},
            )

        member = HousingCoopMember(
            coop_id=coop.id,
            user_id=user.id,
            role=CoopMemberRole.candidate,
            status=MemberStatus.pending,
            application_message=data.message,
            skills=data.skills,
            commitment_level=data.commitment_level,
        )
        self.db.add(member)

        if coop.governance == GovernanceType.rotating_admin:
            self._admit(coop, member)
        else:
            self.db.add(
                HousingCoopProposal(
                    coop_id=coop.id,
                    creator_id=user.id,
                    applicant_id=user.id,
                    type=CoopProposalType.member_application,
                    title=f"Membership application: {user.name}",
                    description=data.message or f"{user.name} would like to join {coop.name}",
                    required_votes=required_votes(coop.current_members, coop.decision_threshold),
                    current_votes=0,
                )
            )

        await self.db.flush()
        logger.info("User %s applied to coop %s", user.id, coop.id)
        return CoopMemberResponse.model_validate(member)

    async def vote_coop_proposal(
        self, user: User, proposal_id: UUID, data: CoopVoteRequest
    ) -> CoopVoteResponse:
        """
        Cast a vote. Approve votes add their points; once the proposal reaches
        its required votes it is approved, and an application admits the
        applicant.
        """
        proposal = await self.db.get(HousingCoopProposal, proposal_id)
        if proposal is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail={"code": "PROPOSAL_NOT_FOUND", "message": "Proposal not found"},
            )

        member = await self.db.scalar(
            select(HousingCoopMember).where(
                HousingCoopMember.coop_id == proposal.coop_id,
                HousingCoopMember.user_id == user.id,
                HousingCoopMember.status.in_(VOTING_STATUSES),
            )
        )
        if member is None:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail={"code": "NOT_COOP_MEMBER", "message": "Only active members can vote"},
            )

        if proposal.approved_at is not None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail={"code": "PROPOSAL_CLOSED", "message": "This proposal is already approved"},
            )

        already = await self.db.scalar(
            select(HousingCoopVote.id).where(
                HousingCoopVote.proposal_id == proposal.id, HousingCoopVote.voter_id == user.id
            )
        )
        if already is not None:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail={"code": "ALREADY_VOTED", "message": "You already voted on this proposal"},
            )

        points = data.points if data.decision == VoteDecision.approve else 0
        reaches_threshold = proposal.current_votes + points >= proposal.required_votes
        if reaches_threshold and proposal.type == CoopProposalType.member_application:
            # Other applicants may have filled the last seats since this one applied
            self._ensure_room(await self._get_coop(proposal.coop_id))

        vote = HousingCoopVote(
            proposal_id=proposal.id,
            voter_id=user.id,
            points=data.points,
            decision=data.decision,
            reason=data.reason,
        )
        self.db.add(vote)

        proposal.current_votes += points

        approved = False
        if reaches_threshold:
            await self._approve(proposal)
            approved = True

        await self.db.flush()
        response = CoopVoteResponse.model_validate(vote)
        response.proposal_approved = approved
        return response

    # -----------------------------------------------------------------------
    # Community guarantee
    # -----------------------------------------------------------------------

    async def request_guarantee(self, user: User, data: GuaranteeRequest) -> GuaranteeResponse:
        if user.generosity_score < settings.GUARANTEE_MIN_REPUTATION:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail={
                    "code": "INSUFFICIENT_REPUTATION",
                    "message": (
                        f"A reputation of at least {settings.GUARANTEE_MIN_REPUTATION} "
                        "is required to request a guarantee"
                    ),
                },
            )

        guarantee = CommunityGuarantee(
            user_id=user.id,
            max_coverage=data.monthly_rent * data.coverage_months,
            reputation=user.generosity_score,
            status=GuaranteeStatus.pending,
            **data.model_dump(),
        )
        self.db.add(guarantee)
        await self.db.flush()

        logger.info("Guarantee %s requested by %s", guarantee.id, user.id)
        return GuaranteeResponse.model_validate(guarantee)

    async def support_guarantee(
        self, user: User, guarantee_id: UUID, months: int, amount: float
    ) -> GuaranteeSupportResponse:
        """Pledge support; the guarantee activates once pledges cover it."""
        guarantee = await self.db.get(CommunityGuarantee, guarantee_id)
        if guarantee is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail={"code": "GUARANTEE_NOT_FOUND", "message": "Guarantee not found"},
            )
        if guarantee.status != GuaranteeStatus.pending:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail={"code": "GUARANTEE_NOT_PENDING", "message": "This guarantee is not seeking support"},
            )
        if guarantee.user_id == user.id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail={"code": "OWN_GUARANTEE", "message": "You cannot support your own guarantee"},
            )

        supporter = GuaranteeSupporter(
            guarantee_id=guarantee.id,
            supporter_id=user.id,
            months_committed=months,
            amount_committed=amount,
            status=SupportStatus.active,
        )
        self.db.add(supporter)
        await self.db.flush()

        total = await self.db.scalar(
            select(func.coalesce(func.sum(GuaranteeSupporter.amount_committed), 0)).where(
                GuaranteeSupporter.guarantee_id == guarantee.id,
                GuaranteeSupporter.status == SupportStatus.active,
            )
        )
        total = float(total or 0)

        if total >= guarantee.max_coverage:
            now = datetime.now(UTC)
            guarantee.status = GuaranteeStatus.active
            guarantee.fund_allocated = total
            guarantee.activated_at = now
            guarantee.expires_at = now + timedelta(days=guarantee.coverage_months * DAYS_PER_COVERAGE_MONTH)
            await self.db.flush()
            logger.info("Guarantee %s activated with %.2f committed", guarantee.id, total)

        return GuaranteeSupportResponse(
            supporter=GuaranteeSupporterResponse.model_validate(supporter),
            guarantee=GuaranteeResponse.model_validate(guarantee),
            total_committed=total,
        )

    # -----------------------------------------------------------------------
    # Internal helpers
    # -----------------------------------------------------------------------

    async def _approve(self, proposal: HousingCoopProposal) -> None:
        now = datetime.now(UTC)
        proposal.approved_at = now

        if proposal.type != CoopProposalType.member_application or proposal.applicant_id is None:
            return

        applicant = await self.db.scalar(
            select(HousingCoopMember).where(
                HousingCoopMember.coop_id == proposal.coop_id,
                HousingCoopMember.user_id == proposal.applicant_id,
            )
        )
        if applicant is None:
            return

        coop = await self._get_coop(proposal.coop_id)
        self._admit(coop, applicant, now)

    @staticmethod
    def _ensure_room(coop: HousingCoop) -> None:
        if coop.max_members is not None and coop.current_members >= coop.max_members:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail={"code": "COOP_FULL", "message": "This cooperative is full"},
            )

    @staticmethod
    def _admit(coop: HousingCoop, member: HousingCoopMember, now: datetime | None = None) -> None:
        member.status = MemberStatus.approved
        member.role = CoopMemberRole.member
        member.joined_at = now or datetime.now(UTC)
        coop.current_members += 1
        logger.info("User %s admitted to coop %s", member.user_id, coop.id)

    async def _get_coop(self, coop_id: UUID) -> HousingCoop:
        coop = await self.db.get(HousingCoop, coop_id)
        if coop is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail={"code": "COOP_NOT_FOUND", "message": "Cooperative not found"},
            )
        return coop
