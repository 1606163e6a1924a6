"""
Tests for MutualAidService: needs, community projects and contributions.
"""

from datetime import UTC, datetime, timedelta

import pytest
from fastapi import HTTPException

from truk.models.community_project import CommunityProject, ImpactLevel, ProjectStatus, ProjectType
from truk.models.contribution import ContributionStatus, ContributionType
from truk.models.need import Need, NeedScope, NeedStatus, NeedType, ResourceType
from truk.schemas.mutual_aid import (
    ContributionRequest,
    ImpactReportCreateRequest,
    NeedCreateRequest,
    NeedFilters,
    PhaseCreateRequest,
    ProjectCreateRequest,
    ProjectFilters,
    ProjectUpdateCreateRequest,
)
from truk.services.mutual_aid_service import MutualAidService


def need_data(**overrides) -> NeedCreateRequest:
    values = {
        "scope": NeedScope.community,
        "category": "ongoing",
        "type": NeedType.food,
        "title": "Food bank restock",
        "description": "The neighbourhood food bank is running low on staples",
        "location": "Lavapiés, Madrid",
        "resource_types": [ResourceType.money, ResourceType.credits],
        "target_eur": 100,
        "target_credits": 20,
        "urgency_level": 3,
    }
    values.update(overrides)
    return NeedCreateRequest(**values)


def project_data(**overrides) -> ProjectCreateRequest:
    values = {
        "type": ProjectType.water,
        "title": "Village water well",
        "description": "Dig and equip a shared well for the village school",
        "vision": "Clean water within walking distance",
        "location": "Kisumu",
        "country": "Kenya",
        "target_eur": 5000,
        "tags": ["water", "school"],
        "sdg_goals": [6],
    }
    values.update(overrides)
    return ProjectCreateRequest(**values)


def money(eur: float) -> ContributionRequest:
    return ContributionRequest(contribution_type=ContributionType.monetary, amount_eur=eur)


def credits(amount: int, **overrides) -> ContributionRequest:
    return ContributionRequest(contribution_type=ContributionType.monetary, amount_credits=amount, **overrides)


class TestNeeds:
    async def test_create_need_stores_resource_types(self, db, make_user):
        need = await MutualAidService(db).create_need(await make_user(), need_data())

        assert need.status == NeedStatus.open
        assert need.resource_types == ["money", "credits"]
        assert need.current_eur == 0

    def test_description_minimum_length(self):
        with pytest.raises(ValueError):
            need_data(description="Too short")

    async def test_targets_met_marks_filled(self, db, make_user):
        service = MutualAidService(db)
        need = await service.create_need(await make_user(), need_data())
        donor = await make_user(credits=30)

        first = await service.contribute_to_need(donor, need.id, money(100))
        assert first.need.status == NeedStatus.open

        second = await service.contribute_to_need(donor, need.id, credits(20))
        assert second.need.status == NeedStatus.filled
        assert second.need.contributors_count == 2
        await db.refresh(donor)
        assert donor.credits == 10

        with pytest.raises(HTTPException) as exc:
            await service.contribute_to_need(donor, need.id, money(5))
        assert exc.value.detail["code"] == "NEED_NOT_OPEN"

    async def test_empty_contribution(self, db, make_user):
        service = MutualAidService(db)
        need = await service.create_need(await make_user(), need_data())

        empty = ContributionRequest(contribution_type=ContributionType.materials)
        with pytest.raises(HTTPException) as exc:
            await service.contribute_to_need(await make_user(), need.id, empty)
        assert exc.value.detail["code"] == "EMPTY_CONTRIBUTION"

    async def test_materials_only_contribution(self, db, make_user):
        service = MutualAidService(db)
        need = await service.create_need(await make_user(), need_data())

        offer = ContributionRequest(
            contribution_type=ContributionType.materials,
            materials_offered="Two bags of rice and cooking oil",
            equipment_offered=["cool box"],
            is_recurring=True,
            recurring_months=3,
            proof_documents=["https://example.com/receipt.pdf"],
        )
        result = await service.contribute_to_need(await make_user(), need.id, offer)

        assert result.contribution.materials_offered == "Two bags of rice and cooking oil"
        assert result.contribution.equipment_offered == ["cool box"]
        assert result.contribution.is_recurring is True
        assert result.contribution.recurring_months == 3
        assert result.contribution.proof_documents == ["https://example.com/receipt.pdf"]
        assert result.need.contributors_count == 1
        assert result.need.status == NeedStatus.open

    async def test_need_without_targets_fills_on_first_contribution(self, db, make_user):
        service = MutualAidService(db)
        need = await service.create_need(
            await make_user(),
            need_data(target_eur=None, target_credits=None, resource_types=[ResourceType.skills]),
        )
        helper = await make_user()

        result = await service.contribute_to_need(
            helper,
            need.id,
            ContributionRequest(contribution_type=ContributionType.skills, skills_offered=["plumbing"]),
        )
        assert result.need.status == NeedStatus.filled

        await service.cancel_contribution(helper, result.contribution.id)
        stored = await db.get(Need, need.id)
        assert stored.status == NeedStatus.open

    async def test_insufficient_credits(self, db, make_user):
        service = MutualAidService(db)
        need = await service.create_need(await make_user(), need_data())

        with pytest.raises(HTTPException) as exc:
            await service.contribute_to_need(await make_user(credits=5), need.id, credits(10))
        assert exc.value.detail["code"] == "INSUFFICIENT_CREDITS"

        detail = await service.find_need_by_id(need.id)
        assert detail.contributions == []

    async def test_cancel_reopens_and_refunds(self, db, make_user):
        service = MutualAidService(db)
        need = await service.create_need(await make_user(), need_data(target_eur=None))
        donor = await make_user(credits=20)
        result = await service.contribute_to_need(donor, need.id, credits(20))
        assert result.need.status == NeedStatus.filled

        cancelled = await service.cancel_contribution(donor, result.contribution.id)

        assert cancelled.status == ContributionStatus.cancelled
        assert cancelled.refunded_at is not None
        await db.refresh(donor)
        assert donor.credits == 20
        stored = await db.get(Need, need.id)
        assert stored.status == NeedStatus.open
        assert stored.current_credits == 0
        assert stored.contributors_count == 0

    async def test_cancel_by_someone_else(self, db, make_user):
        service = MutualAidService(db)
        need = await service.create_need(await make_user(), need_data())
        result = await service.contribute_to_need(await make_user(), need.id, money(10))

        with pytest.raises(HTTPException) as exc:
            await service.cancel_contribution(await make_user(), result.contribution.id)
        assert exc.value.detail["code"] == "NOT_CONTRIBUTOR"

    async def test_validate_contribution(self, db, make_user):
        creator = await make_user()
        service = MutualAidService(db)
        need = await service.create_need(creator, need_data())
        donor = await make_user()
        result = await service.contribute_to_need(donor, need.id, money(10))

        with pytest.raises(HTTPException) as exc:
            await service.validate_contribution(donor, result.contribution.id)
        assert exc.value.status_code == 403

        validated = await service.validate_contribution(creator, result.contribution.id)
        assert validated.status == ContributionStatus.completed
        assert validated.validated_by == creator.id

        with pytest.raises(HTTPException) as exc:
            await service.cancel_contribution(donor, result.contribution.id)
        assert exc.value.detail["code"] == "CONTRIBUTION_NOT_PENDING"

    async def test_anonymous_contributor_hidden(self, db, make_user):
        service = MutualAidService(db)
        need = await service.create_need(await make_user(), need_data())
        await service.contribute_to_need(
            await make_user(),
            need.id,
            ContributionRequest(contribution_type=ContributionType.monetary, amount_eur=5, is_anonymous=True),
        )

        detail = await service.find_need_by_id(need.id)
        assert detail.contributions[0].user_id is None

    async def test_find_needs_ordering_and_filters(self, db, make_user):
        creator = await make_user()
        service = MutualAidService(db)
        soon = datetime.now(UTC) + timedelta(days=2)
        later = datetime.now(UTC) + timedelta(days=20)
        await service.create_need(creator, need_data(title="Low urgency", urgency_level=1))
        await service.create_need(creator, need_data(title="Urgent later", urgency_level=5, deadline=later))
        await service.create_need(creator, need_data(title="Urgent soon", urgency_level=5, deadline=soon))
        await service.create_need(
            creator,
            need_data(title="Volunteers wanted", urgency_level=2, resource_types=[ResourceType.time]),
        )

        ordered = await service.find_needs(NeedFilters())
        assert [n.title for n in ordered] == [
            "Urgent soon",
            "Urgent later",
            "Volunteers wanted",
            "Low urgency",
        ]

        time_needs = await service.find_needs(NeedFilters(resource_type=ResourceType.time))
        assert [n.title for n in time_needs] == ["Volunteers wanted"]

        limited = await service.find_needs(NeedFilters(min_urgency=2, limit=2))
        assert len(limited) == 2

    async def test_closed_needs_hidden_by_default(self, db, make_user):
        creator = await make_user()
        service = MutualAidService(db)
        created = await service.create_need(creator, need_data())
        await service.close_need(await db.get(Need, created.id))

        assert await service.find_needs(NeedFilters()) == []
        closed = await service.find_needs(NeedFilters(status=NeedStatus.closed))
        assert closed[0].closed_at is not None

    async def test_delete_need_with_contributions(self, db, make_user):
        service = MutualAidService(db)
        created = await service.create_need(await make_user(), need_data())
        await service.contribute_to_need(await make_user(), created.id, money(10))

        with pytest.raises(HTTPException) as exc:
            await service.delete_need(await db.get(Need, created.id))
        assert exc.value.detail["code"] == "NEED_HAS_CONTRIBUTIONS"


class TestProjects:
    async def test_volunteers_are_counted(self, db, make_user):
        service = MutualAidService(db)
        project = await service.create_project(await make_user(), project_data())
        assert project.status == ProjectStatus.proposed

        volunteer = ContributionRequest(contribution_type=ContributionType.time, amount_hours=4)
        result = await service.contribute_to_project(await make_user(), project.id, volunteer)
        await service.contribute_to_project(await make_user(), project.id, money(50))

        stored = await db.get(CommunityProject, project.id)
        assert result.project.volunteers_enrolled == 1
        assert stored.volunteers_enrolled == 1
        assert stored.current_hours == 4
        assert stored.current_eur == 50
        assert stored.contributors_count == 2

    async def test_contribution_to_foreign_phase(self, db, make_user):
        creator = await make_user()
        service = MutualAidService(db)
        project = await service.create_project(creator, project_data())
        other = await service.create_project(creator, project_data(title="Solar school roof"))
        phase = await service.add_project_phase(
            await db.get(CommunityProject, other.id), PhaseCreateRequest(name="Survey")
        )

        request = ContributionRequest(contribution_type=ContributionType.monetary, amount_eur=5, phase_id=phase.id)
        with pytest.raises(HTTPException) as exc:
            await service.contribute_to_project(await make_user(), project.id, request)
        assert exc.value.detail["code"] == "PHASE_NOT_FOUND"

    async def test_closed_project(self, db, make_user):
        service = MutualAidService(db)
        created = await service.create_project(await make_user(), project_data())
        (await db.get(CommunityProject, created.id)).status = ProjectStatus.completed

        with pytest.raises(HTTPException) as exc:
            await service.contribute_to_project(await make_user(), created.id, money(5))
        assert exc.value.detail["code"] == "PROJECT_CLOSED"

    async def test_project_detail(self, db, make_user):
        creator = await make_user()
        service = MutualAidService(db)
        created = await service.create_project(creator, project_data())
        project = await db.get(CommunityProject, created.id)

        first = await service.add_project_phase(project, PhaseCreateRequest(name="Survey"))
        second = await service.add_project_phase(project, PhaseCreateRequest(name="Drilling"))
        await service.add_project_update(
            creator, project, ProjectUpdateCreateRequest(title="Survey done", content="Site chosen", progress_update=25)
        )
        draft = ImpactReportCreateRequest(title="Draft", summary="Not yet", impact_level=ImpactLevel.local)
        final = ImpactReportCreateRequest(
            title="Year one", summary="Well in use", impact_level=ImpactLevel.regional, publish=True
        )
        await service.create_impact_report(creator, project, draft)
        await service.create_impact_report(creator, project, final)

        detail = await service.find_project_by_id(project.id)

        assert (first.order, second.order) == (0, 1)
        assert [p.name for p in detail.phases] == ["Survey", "Drilling"]
        assert detail.completion_rate == 25
        assert len(detail.updates) == 1
        assert [r.title for r in detail.impact_reports] == ["Year one"]

    async def test_find_projects_by_tag_and_sdg(self, db, make_user):
        creator = await make_user()
        service = MutualAidService(db)
        await service.create_project(creator, project_data())
        await service.create_project(
            creator, project_data(title="Community orchard", tags=["food"], sdg_goals=[2, 15])
        )

        assert [p.title for p in await service.find_projects(ProjectFilters(tag="food"))] == ["Community orchard"]
        assert [p.title for p in await service.find_projects(ProjectFilters(sdg=6))] == ["Village water well"]

    async def test_delete_project_with_contributions(self, db, make_user):
        service = MutualAidService(db)
        created = await service.create_project(await make_user(), project_data())
        await service.contribute_to_project(await make_user(), created.id, money(5))

        with pytest.raises(HTTPException) as exc:
            await service.delete_project(await db.get(CommunityProject, created.id))
        assert exc.value.detail["code"] == "PROJECT_HAS_CONTRIBUTIONS"

    async def test_dashboards(self, db, make_user):
        user = await make_user()
        service = MutualAidService(db)
        need = await service.create_need(user, need_data())
        await service.create_project(user, project_data())
        await service.contribute_to_need(user, need.id, money(5))

        assert len(await service.get_my_needs(user)) == 1
        assert len(await service.get_my_projects(user)) == 1
        assert len(await service.get_my_contributions(user)) == 1
