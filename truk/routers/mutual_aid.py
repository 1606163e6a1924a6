"""
Mutual aid endpoints.

Needs, community projects and contributions.
"""

from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from truk.core.database import get_db
from truk.core.dependencies import get_current_user
from truk.core.guards import require_ownership, require_verified_email
from truk.models.community_project import CommunityProject
from truk.models.need import Need
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
from truk.services.mutual_aid_service import MutualAidService

router = APIRouter()


def get_mutual_aid_service(db: AsyncSession = Depends(get_db)) -> MutualAidService:
    return MutualAidService(db=db)


# ---------------------------------------------------------------------------
# Needs
# ---------------------------------------------------------------------------

@router.post(
    "/needs",
    response_model=NeedResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Publish a need",
)
async def create_need(
    data: NeedCreateRequest,
    current_user: User = Depends(require_verified_email),
    service: MutualAidService = Depends(get_mutual_aid_service),
) -> NeedResponse:
    return await service.create_need(current_user, data)


@router.get("/needs", response_model=list[NeedResponse], summary="Browse needs")
async def list_needs(
    filters: Annotated[NeedFilters, Query()],
    service: MutualAidService = Depends(get_mutual_aid_service),
) -> list[NeedResponse]:
    """Most urgent first, then nearest deadline."""
    return await service.find_needs(filters)


@router.get("/needs/{need_id}", response_model=NeedDetailResponse, summary="Need detail")
async def get_need(
    need_id: UUID,
    service: MutualAidService = Depends(get_mutual_aid_service),
) -> NeedDetailResponse:
    return await service.find_need_by_id(need_id)


@router.post(
    "/needs/{need_id}/contribute",
    response_model=NeedContributionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Contribute to a need",
)
async def contribute_to_need(
    need_id: UUID,
    data: ContributionRequest,
    current_user: User = Depends(get_current_user),
    service: MutualAidService = Depends(get_mutual_aid_service),
) -> NeedContributionResponse:
    return await service.contribute_to_need(current_user, need_id, data)


@router.patch("/needs/{need_id}", response_model=NeedResponse, summary="Update a need")
async def update_need(
    data: NeedUpdateRequest,
    need: Need = Depends(require_ownership("need")),
    service: MutualAidService = Depends(get_mutual_aid_service),
) -> NeedResponse:
    return await service.update_need(need, data)


@router.post("/needs/{need_id}/close", response_model=NeedResponse, summary="Close a need")
async def close_need(
    need: Need = Depends(require_ownership("need")),
    service: MutualAidService = Depends(get_mutual_aid_service),
) -> NeedResponse:
    return await service.close_need(need)


@router.delete(
    "/needs/{need_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a need without open contributions",
)
async def delete_need(
    need: Need = Depends(require_ownership("need")),
    service: MutualAidService = Depends(get_mutual_aid_service),
) -> None:
    await service.delete_need(need)


# ---------------------------------------------------------------------------
# Community projects
# ---------------------------------------------------------------------------

@router.post(
    "/projects",
    response_model=ProjectResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Propose a community project",
)
async def create_project(
    data: ProjectCreateRequest,
    current_user: User = Depends(require_verified_email),
    service: MutualAidService = Depends(get_mutual_aid_service),
) -> ProjectResponse:
    return await service.create_project(current_user, data)


@router.get("/projects", response_model=list[ProjectResponse], summary="Browse projects")
async def list_projects(
    filters: Annotated[ProjectFilters, Query()],
    service: MutualAidService = Depends(get_mutual_aid_service),
) -> list[ProjectResponse]:
    return await service.find_projects(filters)


@router.get("/projects/{project_id}", response_model=ProjectDetailResponse, summary="Project detail")
async def get_project(
    project_id: UUID,
    service: MutualAidService = Depends(get_mutual_aid_service),
) -> ProjectDetailResponse:
    return await service.find_project_by_id(project_id)


@router.post(
    "/projects/{project_id}/contribute",
    response_model=ProjectContributionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Contribute to a project",
)
async def contribute_to_project(
    project_id: UUID,
    data: ContributionRequest,
    current_user: User = Depends(get_current_user),
    service: MutualAidService = Depends(get_mutual_aid_service),
) -> ProjectContributionResponse:
    return await service.contribute_to_project(current_user, project_id, data)


@router.patch("/projects/{project_id}", response_model=ProjectResponse, summary="Update a project")
async def update_project(
    data: ProjectUpdateRequest,
    project: CommunityProject = Depends(require_ownership("project")),
    service: MutualAidService = Depends(get_mutual_aid_service),
) -> ProjectResponse:
    return await service.update_project(project, data)


@router.delete(
    "/projects/{project_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a project and everything attached to it",
)
async def delete_project(
    project: CommunityProject = Depends(require_ownership("project")),
    service: MutualAidService = Depends(get_mutual_aid_service),
) -> None:
    await service.delete_project(project)


@router.post(
    "/projects/{project_id}/phases",
    response_model=PhaseResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add a project phase",
)
async def add_project_phase(
    data: PhaseCreateRequest,
    project: CommunityProject = Depends(require_ownership("project")),
    service: MutualAidService = Depends(get_mutual_aid_service),
) -> PhaseResponse:
    return await service.add_project_phase(project, data)


@router.post(
    "/projects/{project_id}/updates",
    response_model=ProjectUpdateResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Post a progress update",
)
async def add_project_update(
    data: ProjectUpdateCreateRequest,
    project: CommunityProject = Depends(require_ownership("project")),
    current_user: User = Depends(get_current_user),
    service: MutualAidService = Depends(get_mutual_aid_service),
) -> ProjectUpdateResponse:
    return await service.add_project_update(current_user, project, data)


@router.post(
    "/projects/{project_id}/impact-reports",
    response_model=ImpactReportResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Write an impact report",
)
async def create_impact_report(
    data: ImpactReportCreateRequest,
    project: CommunityProject = Depends(require_ownership("project")),
    current_user: User = Depends(get_current_user),
    service: MutualAidService = Depends(get_mutual_aid_service),
) -> ImpactReportResponse:
    return await service.create_impact_report(current_user, project, data)


# ---------------------------------------------------------------------------
# Contributions
# ---------------------------------------------------------------------------

@router.post(
    "/contributions/{contribution_id}/validate",
    response_model=ContributionResponse,
    summary="Confirm a contribution was received",
)
async def validate_contribution(
    contribution_id: UUID,
    current_user: User = Depends(get_current_user),
    service: MutualAidService = Depends(get_mutual_aid_service),
) -> ContributionResponse:
    return await service.validate_contribution(current_user, contribution_id)


@router.post(
    "/contributions/{contribution_id}/cancel",
    response_model=ContributionResponse,
    summary="Withdraw a pending contribution",
)
async def cancel_contribution(
    contribution_id: UUID,
    current_user: User = Depends(get_current_user),
    service: MutualAidService = Depends(get_mutual_aid_service),
) -> ContributionResponse:
    return await service.cancel_contribution(current_user, contribution_id)


# ---------------------------------------------------------------------------
# Dashboards
# ---------------------------------------------------------------------------

@router.get("/me/contributions", response_model=list[ContributionResponse], summary="My contributions")
async def my_contributions(
    current_user: User = Depends(get_current_user),
    service: MutualAidService = Depends(get_mutual_aid_service),
) -> list[ContributionResponse]:
    return await service.get_my_contributions(current_user)


@router.get("/me/needs", response_model=list[NeedResponse], summary="Needs I created")
async def my_needs(
    current_user: User = Depends(get_current_user),
    service: MutualAidService = Depends(get_mutual_aid_service),
) -> list[NeedResponse]:
    return await service.get_my_needs(current_user)


@router.get("/me/projects", response_model=list[ProjectResponse], summary="Projects I created")
async def my_projects(
    current_user: User = Depends(get_current_user),
    service: MutualAidService = Depends(get_mutual_aid_service),
) -> list[ProjectResponse]:
    return await service.get_my_projects(current_user)
