"""
Mutual aid schemas.

Needs, community projects and the contributions made to them.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import AwareDatetime, BaseModel, Field, field_validator

from truk.models.community_project import ImpactLevel, ProjectStatus, ProjectType
from truk.models.contribution import ContributionStatus, ContributionType
from truk.models.need import NeedCategory, NeedScope, NeedStatus, NeedType, ResourceType


class ContributionRequest(BaseModel):
    """Request body for contributing to a need or project."""

    contribution_type: ContributionType
    amount_eur: float | None = Field(default=None, gt=0)
    amount_credits: int | None = Field(default=None, gt=0)
    amount_hours: float | None = Field(default=None, gt=0)
    skills_offered: list[str] = Field(default_factory=list)
    materials_offered: str | None = Field(default=None, max_length=2000)
    equipment_offered: list[str] = Field(default_factory=list)
    message: str | None = Field(default=None, max_length=2000)
    is_anonymous: bool = False
    is_recurring: bool = False
    recurring_months: int | None = Field(default=None, gt=0, le=120)
    proof_documents: list[str] = Field(default_factory=list)
    phase_id: UUID | None = None

    def offers_something(self) -> bool:
        return bool(
            self.amount_eur
            or self.amount_credits
            or self.amount_hours
            or self.skills_offered
            or (self.materials_offered and self.materials_offered.strip())
            or self.equipment_offered
        )


class ContributionResponse(BaseModel):
    id: UUID
    user_id: UUID | None
    need_id: UUID | None
    project_id: UUID | None
    phase_id: UUID | None
    contribution_type: ContributionType
    amount_eur: float | None
    amount_credits: int | None
    amount_hours: float | None
    skills_offered: list[str]
    materials_offered: str | None
    equipment_offered: list[str]
    message: str | None
    is_anonymous: bool
    is_recurring: bool
    recurring_months: int | None
    proof_documents: list[str]
    status: ContributionStatus
    validated_at: datetime | None
    validated_by: UUID | None
    refunded_at: datetime | None
    created_at: datetime

    model_config = {"from_attributes": True}


# ---------------------------------------------------------------------------
# Needs
# ---------------------------------------------------------------------------

class NeedCreateRequest(BaseModel):
    """Request body for POST /mutual-aid/needs."""

    scope: NeedScope
    category: NeedCategory
    type: NeedType
    title: str = Field(min_length=5, max_length=200)
    description: str = Field(min_length=20, max_length=5000)
    images: list[str] = Field(default_factory=list)
    location: str = Field(min_length=1, max_length=255)
    latitude: float | None = Field(default=None, ge=-90, le=90)
    longitude: float | None = Field(default=None, ge=-180, le=180)
    country: str | None = Field(default=None, max_length=100)
    resource_types: list[ResourceType] = Field(min_length=1)
    target_eur: float | None = Field(default=None, gt=0)
    target_credits: int | None = Field(default=None, gt=0)
    target_hours: float | None = Field(default=None, gt=0)
    needed_skills: list[str] = Field(default_factory=list)
    urgency_level: int = Field(default=1, ge=1, le=5)
    deadline: AwareDatetime | None = None
    community_id: UUID | None = None


class NeedUpdateRequest(BaseModel):
    """Request body for PATCH /mutual-aid/needs/{need_id}."""

    title: str | None = Field(default=None, min_length=5, max_length=200)
    description: str | None = Field(default=None, min_length=20, max_length=5000)
    images: list[str] | None = None
    target_eur: float | None = Field(default=None, gt=0)
    target_credits: int | None = Field(default=None, gt=0)
    target_hours: float | None = Field(default=None, gt=0)
    needed_skills: list[str] | None = None
    urgency_level: int | None = Field(default=None, ge=1, le=5)
    deadline: AwareDatetime | None = None
    status: NeedStatus | None = None


class NeedFilters(BaseModel):
    scope: NeedScope | None = None
    category: NeedCategory | None = None
    type: NeedType | None = None
    status: NeedStatus | None = None
    community_id: UUID | None = None
    country: str | None = None
    min_urgency: int | None = Field(default=None, ge=1, le=5)
    resource_type: ResourceType | None = None
    verified: bool | None = None
    near_lat: float | None = Field(default=None, ge=-90, le=90)
    near_lng: float | None = Field(default=None, ge=-180, le=180)
    max_distance: float | None = Field(default=None, gt=0)
    limit: int = Field(default=50, ge=1, le=200)


class NeedResponse(BaseModel):
    id: UUID
    creator_id: UUID | None
    community_id: UUID | None
    scope: NeedScope
    category: NeedCategory
    type: NeedType
    title: str
    description: str
    images: list[str]
    location: str
    latitude: float | None
    longitude: float | None
    country: str | None
    resource_types: list[str]
    target_eur: float | None
    target_credits: int | None
    target_hours: float | None
    current_eur: float
    current_credits: int
    current_hours: float
    contributors_count: int
    needed_skills: list[str]
    urgency_level: int
    deadline: datetime | None
    status: NeedStatus
    is_verified: bool
    closed_at: datetime | None
    created_at: datetime
    distance_km: float | None = None

    model_config = {"from_attributes": True}


class NeedDetailResponse(NeedResponse):
    contributions: list[ContributionResponse] = Field(default_factory=list)


class NeedContributionResponse(BaseModel):
    contribution: ContributionResponse
    need: NeedResponse


# ---------------------------------------------------------------------------
# Community projects
# ---------------------------------------------------------------------------

class ProjectCreateRequest(BaseModel):
    """Request body for POST /mutual-aid/projects."""

    type: ProjectType
    title: str = Field(min_length=5, max_length=200)
    description: str = Field(min_length=20, max_length=5000)
    vision: str = Field(min_length=1, max_length=5000)
    images: list[str] = Field(default_factory=list)
    location: str = Field(min_length=1, max_length=255)
    latitude: float | None = Field(default=None, ge=-90, le=90)
    longitude: float | None = Field(default=None, ge=-180, le=180)
    country: str = Field(min_length=1, max_length=100)
    region: str | None = Field(default=None, max_length=100)
    beneficiaries: int | None = Field(default=None, ge=0)
    impact_goals: list[str] = Field(default_factory=list)
    target_eur: float | None = Field(default=None, gt=0)
    target_credits: int | None = Field(default=None, gt=0)
    target_hours: float | None = Field(default=None, gt=0)
    volunteers_needed: int | None = Field(default=None, ge=0)
    start_date: AwareDatetime | None = None
    end_date: AwareDatetime | None = None
    estimated_months: int | None = Field(default=None, gt=0)
    tags: list[str] = Field(default_factory=list)
    sdg_goals: list[int] = Field(default_factory=list)
    community_id: UUID | None = None

    @field_validator("sdg_goals")
    @classmethod
    def sdg_goals_in_range(cls, v: list[int]) -> list[int]:
        if any(goal < 1 or goal > 17 for goal in v):
            raise ValueError("SDG goals are numbered 1 to 17")
        return v


class ProjectUpdateRequest(BaseModel):
    """Request body for PATCH /mutual-aid/projects/{project_id}."""

    title: str | None = Field(default=None, min_length=5, max_length=200)
    description: str | None = Field(default=None, min_length=20, max_length=5000)
    vision: str | None = None
    images: list[str] | None = None
    status: ProjectStatus | None = None
    beneficiaries: int | None = Field(default=None, ge=0)
    impact_goals: list[str] | None = None
    target_eur: float | None = Field(default=None, gt=0)
    target_credits: int | None = Field(default=None, gt=0)
    target_hours: float | None = Field(default=None, gt=0)
    volunteers_needed: int | None = Field(default=None, ge=0)
    start_date: AwareDatetime | None = None
    end_date: AwareDatetime | None = None
    tags: list[str] | None = None


class ProjectFilters(BaseModel):
    type: ProjectType | None = None
    status: ProjectStatus | None = None
    country: str | None = None
    region: str | None = None
    community_id: UUID | None = None
    tag: str | None = None
    sdg: int | None = Field(default=None, ge=1, le=17)
    verified: bool | None = None
    near_lat: float | None = Field(default=None, ge=-90, le=90)
    near_lng: float | None = Field(default=None, ge=-180, le=180)
    max_distance: float | None = Field(default=None, gt=0)
    limit: int = Field(default=50, ge=1, le=200)


class ProjectResponse(BaseModel):
    id: UUID
    creator_id: UUID
    community_id: UUID | None
    type: ProjectType
    status: ProjectStatus
    title: str
    description: str
    vision: str
    images: list[str]
    location: str
    latitude: float | None
    longitude: float | None
    country: str
    region: str | None
    beneficiaries: int | None
    impact_goals: list[str]
    target_eur: float | None
    target_credits: int | None
    target_hours: float | None
    current_eur: float
    current_credits: int
    current_hours: float
    contributors_count: int
    volunteers_needed: int | None
    volunteers_enrolled: int
    start_date: datetime | None
    end_date: datetime | None
    estimated_months: int | None
    tags: list[str]
    sdg_goals: list[int]
    completion_rate: float
    is_verified: bool
    created_at: datetime
    distance_km: float | None = None

    model_config = {"from_attributes": True}


class PhaseCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    description: str | None = None
    order: int | None = Field(default=None, ge=0)
    target_eur: float | None = Field(default=None, gt=0)
    target_credits: int | None = Field(default=None, gt=0)
    target_hours: float | None = Field(default=None, gt=0)
    start_date: AwareDatetime | None = None
    end_date: AwareDatetime | None = None


class PhaseResponse(BaseModel):
    id: UUID
    project_id: UUID
    name: str
    description: str | None
    order: int
    target_eur: float | None
    target_credits: int | None
    target_hours: float | None
    start_date: datetime | None
    end_date: datetime | None

    model_config = {"from_attributes": True}


class ProjectUpdateCreateRequest(BaseModel):
    """A progress post on a project."""

    title: str = Field(min_length=1, max_length=200)
    content: str = Field(min_length=1, max_length=10000)
    images: list[str] = Field(default_factory=list)
    progress_update: float | None = Field(default=None, ge=0, le=100)
    funds_used: float | None = Field(default=None, ge=0)
    beneficiaries_reached: int | None = Field(default=None, ge=0)
    milestones: list[str] = Field(default_factory=list)
    challenges: str | None = None
    next_steps: str | None = None


class ProjectUpdateResponse(BaseModel):
    id: UUID
    project_id: UUID
    author_id: UUID
    title: str
    content: str
    images: list[str]
    progress_update: float | None
    funds_used: float | None
    beneficiaries_reached: int | None
    milestones: list[str]
    challenges: str | None
    next_steps: str | None
    created_at: datetime

    model_config = {"from_attributes": True}


class ImpactReportCreateRequest(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    summary: str = Field(min_length=1, max_length=10000)
    impact_level: ImpactLevel
    beneficiaries_reached: int | None = Field(default=None, ge=0)
    jobs_created: int | None = Field(default=None, ge=0)
    co2_avoided: float | None = Field(default=None, ge=0)
    water_liters_provided: float | None = Field(default=None, ge=0)
    people_educated: int | None = Field(default=None, ge=0)
    custom_metrics: dict | None = None
    photos: list[str] = Field(default_factory=list)
    testimonials: list[str] = Field(default_factory=list)
    future_goals: list[str] = Field(default_factory=list)
    publish: bool = False


class ImpactReportResponse(BaseModel):
    id: UUID
    project_id: UUID
    author_id: UUID
    title: str
    summary: str
    impact_level: ImpactLevel
    beneficiaries_reached: int | None
    jobs_created: int | None
    co2_avoided: float | None
    water_liters_provided: float | None
    people_educated: int | None
    custom_metrics: dict | None
    photos: list[str]
    testimonials: list[str]
    future_goals: list[str]
    published_at: datetime | None
    created_at: datetime

    model_config = {"from_attributes": True}


class ProjectDetailResponse(ProjectResponse):
    phases: list[PhaseResponse] = Field(default_factory=list)
    updates: list[ProjectUpdateResponse] = Field(default_factory=list)
    impact_reports: list[ImpactReportResponse] = Field(default_factory=list)


class ProjectContributionResponse(BaseModel):
    contribution: ContributionResponse
    project: ProjectResponse
