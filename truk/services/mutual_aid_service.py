"""
Mutual aid business logic.

Needs and community projects collect contributions in euros, credits,
hours or skills. A contribution, the target's running totals and the
contributor's credit debit are written in the same request transaction.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from truk.core.geo import bounding_box, haversine_km
from truk.models.community_project import (
    CommunityProject,
    ImpactReport,
    ProjectPhase,
    ProjectStatus,
    ProjectUpdate,
)
from truk.models.contribution import Contribution, ContributionStatus, ContributionType
from truk.models.credit import CreditReason
from truk.models.need import Need, NeedStatus
from truk.models.user import User
from truk.schemas.mutual_aid import (
    ContributionRequest,
    ContributionResponse,
    ImpactReportCreateRequest,
    ImpactReportResponse,
    NeedContributionResponse,
    NeedCreateRequest,
    NeedDetailResponse,
    NeedFilters,
    NeedResponse,
    NeedUpdateRequest,
    PhaseCreateRequest,
    PhaseResponse,
    ProjectContributionResponse,
    ProjectCreateRequest,
    ProjectDetailResponse,
    ProjectFilters,
    ProjectResponse,
    ProjectUpdateCreateRequest,
    ProjectUpdateRequest,
    ProjectUpdateResponse,
)
from truk.services.credit_service import CreditService

logger = logging.getLogger(__name__)

OPEN_CONTRIBUTION_STATUSES = (ContributionStatus.pending, ContributionStatus.active)
CLOSED_NEED_STATUSES = (NeedStatus.filled, NeedStatus.closed, NeedStatus.cancelled)
CLOSED_PROJECT_STATUSES = (ProjectStatus.completed, ProjectStatus.cancelled)
VOLUNTEER_TYPES = (ContributionType.time, ContributionType.skills)
RECENT_UPDATES = 10


def _public_contribution(contribution: Contribution) -> ContributionResponse:
    response = ContributionResponse.model_validate(contribution)
    if contribution.is_anonymous:
        response.user_id = None
    return response


def _bad_request(code: str, message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST, detail={"code": code, "message": message}
    )


class MutualAidService:
    """Handles needs, community projects and contributions."""

    def __init__(self, db: AsyncSession, credits: CreditService | None = None) -> None:
        self.db = db
        self.credits = credits or CreditService(db)

    # -----------------------------------------------------------------------
    # Needs
    # -----------------------------------------------------------------------

    async def create_need(self, user: User, data: NeedCreateRequest) -> NeedResponse:
        values = data.model_dump(exclude={"resource_types"})
        need = Need(
            creator_id=user.id,
            status=NeedStatus.open,
            resource_types=[r.value for r in data.resource_types],
            **values,
        )
        self.db.add(need)
        await self.db.flush()

        logger.info("Need %s created by %s", need.id, user.id)
        return NeedResponse.model_validate(need)

    async def find_needs(self, filters: NeedFilters) -> list[NeedResponse]:
        """
        Needs ordered by urgency (highest first), then nearest deadline,
        then newest.

        Closed and cancelled needs are hidden unless a status is asked for.
        """
        stmt = select(Need)
        if filters.status is not None:
            stmt = stmt.where(Need.status == filters.status)
        else:
            stmt = stmt.where(Need.status.not_in([NeedStatus.closed, NeedStatus.cancelled]))
        if filters.scope is not None:
            stmt = stmt.where(Need.scope == filters.scope)
        if filters.category is not None:
            stmt = stmt.where(Need.category == filters.category)
        if filters.type is not None:
            stmt = stmt.where(Need.type == filters.type)
        if filters.community_id is not None:
            stmt = stmt.where(Need.community_id == filters.community_id)
        if filters.country:
            stmt = stmt.where(Need.country == filters.country)
        if filters.min_urgency is not None:
            stmt = stmt.where(Need.urgency_level >= filters.min_urgency)
        if filters.verified is not None:
            stmt = stmt.where(Need.is_verified.is_(filters.verified))

        proximity = (
            filters.near_lat is not None
            and filters.near_lng is not None
            and filters.max_distance is not None
        )
        if proximity:
            min_lat, max_lat, min_lng, max_lng = bounding_box(
                filters.near_lat, filters.near_lng, filters.max_distance
            )
            stmt = stmt.where(
                Need.latitude.between(min_lat, max_lat),
                Need.longitude.between(min_lng, max_lng),
            )

        stmt = stmt.order_by(
            Need.urgency_level.desc(),
            Need.deadline.is_(None),
            Need.deadline.asc(),
            Need.created_at.desc(),
        )
        # Post-filters below run in Python, so the limit is applied after them
        post_filtered = proximity or filters.resource_type is not None
        if not post_filtered:
            stmt = stmt.limit(filters.limit)

        results = []
        for need in await self.db.scalars(stmt):
            if filters.resource_type is not None and filters.resource_type.value not in need.resource_types:
                continue
            response = NeedResponse.model_validate(need)
            if proximity:
                distance = haversine_km(filters.near_lat, filters.near_lng, need.latitude, need.longitude)
                if distance > filters.max_distance:
                    continue
                response.distance_km = round(distance, 2)
            results.append(response)
            if len(results) >= filters.limit:
                break
        return results

    async def find_need_by_id(self, need_id: UUID) -> NeedDetailResponse:
        need = await self._get_need(need_id)
        contributions = await self.db.scalars(
            select(Contribution)
            .where(Contribution.need_id == need.id, Contribution.status != ContributionStatus.cancelled)
            .order_by(Contribution.created_at.desc())
        )

        response = NeedDetailResponse.model_validate(need)
        response.contributions = [_public_contribution(c) for c in contributions]
        return response

    async def contribute_to_need(
        self, user: User, need_id: UUID, data: ContributionRequest
    ) -> NeedContributionResponse:
        """
        Record a contribution and add it to the need's totals.

        - 404 if the need does not exist
        - 400 if the need is filled or closed
        - 400 if nothing is offered
        - 400 if the credits offered exceed the balance

        The need becomes FILLED once every target it sets is reached.
        """
        need = await self._get_need(need_id)
        if need.status in CLOSED_NEED_STATUSES:
            raise _bad_request("NEED_NOT_OPEN", f"This need is {need.status.value}")

        contribution = await self._record_contribution(user, data, need_id=need.id)

        need.current_eur += data.amount_eur or 0
        need.current_credits += data.amount_credits or 0
        need.current_hours += data.amount_hours or 0
        need.contributors_count += 1

        if need.targets_met():
            need.status = NeedStatus.filled
            logger.info("Need %s filled", need.id)

        await self.db.flush()
        return NeedContributionResponse(
            contribution=ContributionResponse.model_validate(contribution),
            need=NeedResponse.model_validate(need),
        )

    async def update_need(self, need: Need, data: NeedUpdateRequest) -> NeedResponse:
        for field, value in data.model_dump(exclude_unset=True).items():
            setattr(need, field, value)
        await self.db.flush()
        return NeedResponse.model_validate(need)

    async def close_need(self, need: Need) -> NeedResponse:
        need.status = NeedStatus.closed
        need.closed_at = datetime.now(UTC)
        await self.db.flush()

        logger.info("Need %s closed", need.id)
        return NeedResponse.model_validate(need)

    async def delete_need(self, need: Need) -> None:
        open_count = await self.db.scalar(
            select(func.count(Contribution.id)).where(
                Contribution.need_id == need.id,
                Contribution.status.in_(OPEN_CONTRIBUTION_STATUSES),
            )
        )
        if open_count:
            raise _bad_request(
                "NEED_HAS_CONTRIBUTIONS", "Cannot delete a need with pending or active contributions"
            )

        await self.db.execute(delete(Contribution).where(Contribution.need_id == need.id))
        await self.db.delete(need)
        await self.db.flush()

    # -----------------------------------------------------------------------
    # Community projects
    # -----------------------------------------------------------------------

    async def create_project(self, user: User, data: ProjectCreateRequest) -> ProjectResponse:
        project = CommunityProject(creator_id=user.id, status=ProjectStatus.proposed, **data.model_dump())
        self.db.add(project)
        await self.db.flush()

        logger.info("Project %s created by %s", project.id, user.id)
        return ProjectResponse.model_validate(project)

    async def find_projects(self, filters: ProjectFilters) -> list[ProjectResponse]:
        stmt = select(CommunityProject)
        if filters.status is not None:
            stmt = stmt.where(CommunityProject.status == filters.status)
        else:
            stmt = stmt.where(CommunityProject.status != ProjectStatus.cancelled)
        if filters.type is not None:
            stmt = stmt.where(CommunityProject.type == filters.type)
        if filters.country:
            stmt = stmt.where(CommunityProject.country == filters.country)
        if filters.region:
            stmt = stmt.where(CommunityProject.region == filters.region)
        if filters.community_id is not None:
            stmt = stmt.where(CommunityProject.community_id == filters.community_id)
        if filters.verified is not None:
            stmt = stmt.where(CommunityProject.is_verified.is_(filters.verified))

        proximity = (
            filters.near_lat is not None
            and filters.near_lng is not None
            and filters.max_distance is not None
        )
        if proximity:
            min_lat, max_lat, min_lng, max_lng = bounding_box(
                filters.near_lat, filters.near_lng, filters.max_distance
            )
            stmt = stmt.where(
                CommunityProject.latitude.between(min_lat, max_lat),
                CommunityProject.longitude.between(min_lng, max_lng),
            )

        stmt = stmt.order_by(CommunityProject.created_at.desc())
        post_filtered = proximity or filters.tag is not None or filters.sdg is not None
        if not post_filtered:
            stmt = stmt.limit(filters.limit)

        results = []
        for project in await self.db.scalars(stmt):
            if filters.tag is not None and filters.tag not in project.tags:
                continue
            if filters.sdg is not None and filters.sdg not in project.sdg_goals:
                continue
            response = ProjectResponse.model_validate(project)
            if proximity:
                distance = haversine_km(
                    filters.near_lat, filters.near_lng, project.latitude, project.longitude
                )
                if distance > filters.max_distance:
                    continue
                response.distance_km = round(distance, 2)
            results.append(response)
            if len(results) >= filters.limit:
                break
        return results

    async def find_project_by_id(self, project_id: UUID) -> ProjectDetailResponse:
        """Project with its phases, latest updates and published impact reports."""
        project = await self._get_project(project_id)

        phases = await self.db.scalars(
            select(ProjectPhase).where(ProjectPhase.project_id == project.id).order_by(ProjectPhase.order)
        )
        updates = await self.db.scalars(
            select(ProjectUpdate)
            .where(ProjectUpdate.project_id == project.id)
            .order_by(ProjectUpdate.created_at.desc())
            .limit(RECENT_UPDATES)
        )
        reports = await self.db.scalars(
            select(ImpactReport)
            .where(ImpactReport.project_id == project.id, ImpactReport.published_at.is_not(None))
            .order_by(ImpactReport.published_at.desc())
        )

        response = ProjectDetailResponse.model_validate(project)
        response.phases = [PhaseResponse.model_validate(p) for p in phases]
        response.updates = [ProjectUpdateResponse.model_validate(u) for u in updates]
        response.impact_reports = [ImpactReportResponse.model_validate(r) for r in reports]
        return response

    async def contribute_to_project(
        self, user: User, project_id: UUID, data: ContributionRequest
    ) -> ProjectContributionResponse:
        project = await self._get_project(project_id)
        if project.status in CLOSED_PROJECT_STATUSES:
            raise _bad_request("PROJECT_CLOSED", f"This project is {project.status.value}")

        if data.phase_id is not None:
            phase = await self.db.get(ProjectPhase, data.phase_id)
            if phase is None or phase.project_id != project.id:
                raise HTTPException(
                    status_code=status.HTTP_404_NOT_FOUND,
                    detail={"code": "PHASE_NOT_FOUND", "message": "Phase not found"},
                )

        contribution = await self._record_contribution(user, data, project_id=project.id)

        project.current_eur += data.amount_eur or 0
        project.current_credits += data.amount_credits or 0
        project.current_hours += data.amount_hours or 0
        project.contributors_count += 1
        if data.contribution_type in VOLUNTEER_TYPES:
            project.volunteers_enrolled += 1

        await self.db.flush()
        return ProjectContributionResponse(
            contribution=ContributionResponse.model_validate(contribution),
            project=ProjectResponse.model_validate(project),
        )

    async def update_project(self, project: CommunityProject, data: ProjectUpdateRequest) -> ProjectResponse:
        for field, value in data.model_dump(exclude_unset=True).items():
            setattr(project, field, value)
        await self.db.flush()
        return ProjectResponse.model_validate(project)

    async def delete_project(self, project: CommunityProject) -> None:
        """Delete a project together with its phases, updates, reports and contributions."""
        open_count = await self.db.scalar(
            select(func.count(Contribution.id)).where(
                Contribution.project_id == project.id,
                Contribution.status.in_(OPEN_CONTRIBUTION_STATUSES),
            )
        )
        if open_count:
            raise _bad_request(
                "PROJECT_HAS_CONTRIBUTIONS",
                "Cannot delete a project with pending or active contributions",
            )

        await self.db.execute(delete(Contribution).where(Contribution.project_id == project.id))
        await self.db.execute(delete(ImpactReport).where(ImpactReport.project_id == project.id))
        await self.db.execute(delete(ProjectUpdate).where(ProjectUpdate.project_id == project.id))
        await self.db.execute(delete(ProjectPhase).where(ProjectPhase.project_id == project.id))
        await self.db.delete(project)
        await self.db.flush()

        logger.info("Project %s deleted", project.id)

    async def add_project_phase(self, project: CommunityProject, data: PhaseCreateRequest) -> PhaseResponse:
        order = data.order
        if order is None:
            order = await self.db.scalar(
                select(func.count(ProjectPhase.id)).where(ProjectPhase.project_id == project.id)
            ) or 0

        phase = ProjectPhase(project_id=project.id, **data.model_dump(exclude={"order"}), order=order)
        self.db.add(phase)
        await self.db.flush()
        return PhaseResponse.model_validate(phase)

    async def add_project_update(
        self, user: User, project: CommunityProject, data: ProjectUpdateCreateRequest
    ) -> ProjectUpdateResponse:
        update = ProjectUpdate(project_id=project.id, author_id=user.id, **data.model_dump())
        self.db.add(update)

        if data.progress_update is not None:
            project.completion_rate = data.progress_update

        await self.db.flush()
        return ProjectUpdateResponse.model_validate(update)

    async def create_impact_report(
        self, user: User, project: CommunityProject, data: ImpactReportCreateRequest
    ) -> ImpactReportResponse:
        report = ImpactReport(
            project_id=project.id,
            author_id=user.id,
            published_at=datetime.now(UTC) if data.publish else None,
            **data.model_dump(exclude={"publish"}),
        )
        self.db.add(report)
        await self.db.flush()
        return ImpactReportResponse.model_validate(report)

    # -----------------------------------------------------------------------
    # Contributions
    # -----------------------------------------------------------------------

    async def validate_contribution(self, user: User, contribution_id: UUID) -> ContributionResponse:
        """The creator of the need or project confirms a contribution was received."""
        contribution = await self._get_contribution(contribution_id)

        owner_id = await self._target_owner(contribution)
        if owner_id != user.id and not user.is_admin:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail={
                    "code": "NOT_OWNER",
                    "message": "Only the creator of the need or project can validate contributions",
                },
            )
        if contribution.status not in OPEN_CONTRIBUTION_STATUSES:
            raise _bad_request(
                "CONTRIBUTION_CLOSED", f"Contribution is already {contribution.status.value}"
            )

        contribution.status = ContributionStatus.completed
        contribution.validated_at = datetime.now(UTC)
        contribution.validated_by = user.id
        await self.db.flush()
        return ContributionResponse.model_validate(contribution)

    async def cancel_contribution(self, user: User, contribution_id: UUID) -> ContributionResponse:
        """
        Withdraw a pending contribution.

        Credits go back to the contributor and the target's totals are
        reduced. A filled need drops back to open when it falls below target
        or loses its last contributor.
        """
        contribution = await self._get_contribution(contribution_id)

        if contribution.user_id != user.id:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail={"code": "NOT_CONTRIBUTOR", "message": "Only the contributor can cancel"},
            )
        if contribution.status != ContributionStatus.pending:
            raise _bad_request("CONTRIBUTION_NOT_PENDING", "Only pending contributions can be cancelled")

        if contribution.need_id is not None:
            need = await self._get_need(contribution.need_id)
            self._subtract(need, contribution)
            if need.status == NeedStatus.filled and (
                not need.targets_met() or need.contributors_count == 0
            ):
                need.status = NeedStatus.open
        if contribution.project_id is not None:
            project = await self._get_project(contribution.project_id)
            self._subtract(project, contribution)
            if contribution.contribution_type in VOLUNTEER_TYPES:
                project.volunteers_enrolled = max(project.volunteers_enrolled - 1, 0)

        if contribution.amount_credits:
            await self.credits.refund_credits(
                user.id,
                contribution.amount_credits,
                related_id=str(contribution.id),
                description="Contribution cancelled",
            )
            contribution.refunded_at = datetime.now(UTC)

        contribution.status = ContributionStatus.cancelled
        await self.db.flush()
        return ContributionResponse.model_validate(contribution)

    async def get_my_contributions(self, user: User) -> list[ContributionResponse]:
        contributions = await self.db.scalars(
            select(Contribution)
            .where(Contribution.user_id == user.id)
            .order_by(Contribution.created_at.desc())
        )
        return [ContributionResponse.model_validate(c) for c in contributions]

    async def get_my_needs(self, user: User) -> list[NeedResponse]:
        needs = await self.db.scalars(
            select(Need).where(Need.creator_id == user.id).order_by(Need.created_at.desc())
        )
        return [NeedResponse.model_validate(n) for n in needs]

    async def get_my_projects(self, user: User) -> list[ProjectResponse]:
        projects = await self.db.scalars(
            select(CommunityProject)
            .where(CommunityProject.creator_id == user.id)
            .order_by(CommunityProject.created_at.desc())
        )
        return [ProjectResponse.model_validate(p) for p in projects]

    # -----------------------------------------------------------------------
    # Internal helpers
    # -----------------------------------------------------------------------

    async def _record_contribution(
        self,
        user: User,
        data: ContributionRequest,
        need_id: UUID | None = None,
        project_id: UUID | None = None,
    ) -> Contribution:
        """Validate the offer, write the contribution and debit any credits."""
        if not data.offers_something():
            raise _bad_request(
                "EMPTY_CONTRIBUTION", "A contribution must offer an amount, skills, materials or equipment"
            )
        if data.amount_credits and user.credits < data.amount_credits:
            raise _bad_request(
                "INSUFFICIENT_CREDITS",
                f"Insufficient credits. Balance: {user.credits}, Required: {data.amount_credits}",
            )

        contribution = Contribution(
            user_id=user.id,
            need_id=need_id,
            project_id=project_id,
            phase_id=data.phase_id,
            contribution_type=data.contribution_type,
            amount_eur=data.amount_eur,
            amount_credits=data.amount_credits,
            amount_hours=data.amount_hours,
            skills_offered=data.skills_offered,
            materials_offered=data.materials_offered,
            equipment_offered=data.equipment_offered,
            message=data.message,
            is_anonymous=data.is_anonymous,
            is_recurring=data.is_recurring,
            recurring_months=data.recurring_months,
            proof_documents=data.proof_documents,
            status=ContributionStatus.pending,
        )
        self.db.add(contribution)
        await self.db.flush()

        if data.amount_credits:
            await self.credits.spend_credits(
                user.id,
                data.amount_credits,
                CreditReason.mutual_aid,
                related_id=str(contribution.id),
                description="Mutual aid contribution",
            )
        return contribution

    @staticmethod
    def _subtract(target: Need | CommunityProject, contribution: Contribution) -> None:
        target.current_eur = max(target.current_eur - (contribution.amount_eur or 0), 0)
        target.current_credits = max(target.current_credits - (contribution.amount_credits or 0), 0)
        target.current_hours = max(target.current_hours - (contribution.amount_hours or 0), 0)
        target.contributors_count = max(target.contributors_count - 1, 0)

    async def _target_owner(self, contribution: Contribution) -> UUID | None:
        if contribution.need_id is not None:
            need = await self._get_need(contribution.need_id)
            return need.creator_id
        project = await self._get_project(contribution.project_id)
        return project.creator_id

    async def _get_need(self, need_id: UUID) -> Need:
        need = await self.db.get(Need, need_id)
        if need is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail={"code": "NEED_NOT_FOUND", "message": "Need not found"},
            )
        return need

    async def _get_project(self, project_id: UUID) -> CommunityProject:
        project = await self.db.get(CommunityProject, project_id)
        if project is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail={"code": "PROJECT_NOT_FOUND", "message": "Project not found"},
            )
        return project

    async def _get_contribution(self, contribution_id: UUID) -> Contribution:
        contribution = await self.db.get(Contribution, contribution_id)
        if contribution is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail={"code": "CONTRIBUTION_NOT_FOUND", "message": "Contribution not found"},
            )
        return contribution
