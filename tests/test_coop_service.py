"""
Tests for CoopService: cooperative membership voting and rent guarantees.
"""

import pytest
from fastapi import HTTPException

from truk.models.coop import CoopMemberRole, CoopType, GovernanceType, MemberStatus, VoteDecision
from truk.models.guarantee import GuaranteeStatus
from truk.schemas.housing import (
    CoopCreateRequest,
    CoopFilters,
    CoopJoinRequest,
    CoopVoteRequest,
    GuaranteeRequest,
)
from truk.services.coop_service import CoopService, required_votes


def coop_data(**overrides) -> CoopCreateRequest:
    values = {
        "name": "Casa Verde",
        "description": "Cohousing project on the edge of town",
        "type": CoopType.cohousing,
        "governance": GovernanceType.consensus,
        "decision_threshold": 0.66,
    }
    values.update(overrides)
    return CoopCreateRequest(**values)


APPROVE = CoopVoteRequest(decision=VoteDecision.approve)


def test_required_votes():
    assert required_votes(1, 0.66) == 1
    assert required_votes(2, 0.66) == 2
    assert required_votes(10, 0.5) == 5
    assert required_votes(0, 0.66) == 1


async def _open_proposal_id(service: CoopService, coop_id):
    detail = await service.find_coop_by_id(coop_id)
    assert len(detail.open_proposals) == 1
    return detail.open_proposals[0].id


class TestCoops:
    async def test_founder_is_first_member(self, db, make_user):
        founder = await make_user()
        service = CoopService(db)
        coop = await service.create_coop(founder, coop_data())

        detail = await service.find_coop_by_id(coop.id)

        assert detail.current_members == 1
        assert detail.members[0].role == CoopMemberRole.founder
        assert detail.members[0].status == MemberStatus.active

    async def test_application_voting_admits_members(self, db, make_user):
        founder = await make_user()
        first = await make_user()
        second = await make_user()
        service = CoopService(db)
        coop = await service.create_coop(founder, coop_data())

        member = await service.join_coop(first, coop.id, CoopJoinRequest(message="Hi"))
        assert member.status == MemberStatus.pending

        proposal_id = await _open_proposal_id(service, coop.id)
        vote = await service.vote_coop_proposal(founder, proposal_id, APPROVE)
        assert vote.proposal_approved is True

        detail = await service.find_coop_by_id(coop.id)
        assert detail.current_members == 2
        assert {m.status for m in detail.members} == {MemberStatus.active, MemberStatus.approved}

        # With two members a 0.66 threshold needs two approve points
        await service.join_coop(second, coop.id, CoopJoinRequest())
        proposal_id = await _open_proposal_id(service, coop.id)
        assert (await service.vote_coop_proposal(first, proposal_id, APPROVE)).proposal_approved is False
        assert (await service.vote_coop_proposal(founder, proposal_id, APPROVE)).proposal_approved is True

        with pytest.raises(HTTPException) as exc:
            await service.vote_coop_proposal(founder, proposal_id, APPROVE)
        assert exc.value.detail["code"] == "PROPOSAL_CLOSED"

    async def test_vote_rules(self, db, make_user):
        founder = await make_user()
        applicant = await make_user()
        service = CoopService(db)
        coop = await service.create_coop(founder, coop_data(decision_threshold=1.0))
        await service.join_coop(applicant, coop.id, CoopJoinRequest())
        proposal_id = await _open_proposal_id(service, coop.id)

        with pytest.raises(HTTPException) as exc:
            await service.vote_coop_proposal(applicant, proposal_id, APPROVE)
        assert exc.value.status_code == 403

        reject = CoopVoteRequest(decision=VoteDecision.reject, reason="Not yet")
        result = await service.vote_coop_proposal(founder, proposal_id, reject)
        assert result.proposal_approved is False

        with pytest.raises(HTTPException) as exc:
            await service.vote_coop_proposal(founder, proposal_id, APPROVE)
        assert exc.value.status_code == 409

    async def test_join_rules(self, db, make_user):
        founder = await make_user()
        applicant = await make_user()
        service = CoopService(db)
        coop = await service.create_coop(founder, coop_data(max_members=2))

        await service.join_coop(applicant, coop.id, CoopJoinRequest())
        with pytest.raises(HTTPException) as exc:
            await service.join_coop(applicant, coop.id, CoopJoinRequest())
        assert exc.value.status_code == 409

        full = await service.create_coop(founder, coop_data(name="Tiny coop", max_members=1))
        with pytest.raises(HTTPException) as exc:
            await service.join_coop(applicant, full.id, CoopJoinRequest())
        assert exc.value.detail["code"] == "COOP_FULL"

    async def test_rotating_admin_admits_directly(self, db, make_user):
        founder = await make_user()
        applicant = await make_user()
        service = CoopService(db)
        coop = await service.create_coop(
            founder, coop_data(governance=GovernanceType.rotating_admin, max_members=2)
        )

        member = await service.join_coop(applicant, coop.id, CoopJoinRequest())
        assert member.status == MemberStatus.approved
        assert member.role == CoopMemberRole.member
        assert member.joined_at is not None

        detail = await service.find_coop_by_id(coop.id)
        assert detail.open_proposals == []
        assert detail.current_members == 2

        with pytest.raises(HTTPException) as exc:
            await service.join_coop(await make_user(), coop.id, CoopJoinRequest())
        assert exc.value.detail["code"] == "COOP_FULL"

    async def test_approval_respects_max_members(self, db, make_user):
        founder = await make_user()
        first = await make_user()
        second = await make_user()
        service = CoopService(db)
        coop = await service.create_coop(founder, coop_data(max_members=2))

        # Both apply while one seat is still free
        await service.join_coop(first, coop.id, CoopJoinRequest())
        await service.join_coop(second, coop.id, CoopJoinRequest())
        proposals = {p.applicant_id: p.id for p in (await service.find_coop_by_id(coop.id)).open_proposals}

        assert (await service.vote_coop_proposal(founder, proposals[first.id], APPROVE)).proposal_approved is True

        with pytest.raises(HTTPException) as exc:
            await service.vote_coop_proposal(founder, proposals[second.id], APPROVE)
        assert exc.value.status_code == 400
        assert exc.value.detail["code"] == "COOP_FULL"

        detail = await service.find_coop_by_id(coop.id)
        assert detail.current_members == 2
        statuses = {m.user_id: m.status for m in detail.members}
        assert statuses[second.id] == MemberStatus.pending
        assert [p.applicant_id for p in detail.open_proposals] == [second.id]

    async def test_find_coops_filters(self, db, make_user):
        founder = await make_user()
        service = CoopService(db)
        await service.create_coop(founder, coop_data())
        await service.create_coop(founder, coop_data(name="Eco valley", type=CoopType.ecovillage))

        found = await service.find_coops(CoopFilters(type=CoopType.ecovillage))
        assert [c.name for c in found] == ["Eco valley"]


class TestGuarantees:
    def guarantee_data(self, **overrides) -> GuaranteeRequest:
        values = {
            "landlord_name": "Ana",
            "property_address": "Calle Luna 5",
            "monthly_rent": 600,
            "coverage_months": 3,
        }
        values.update(overrides)
        return GuaranteeRequest(**values)

    async def test_reputation_required(self, db, make_user):
        with pytest.raises(HTTPException) as exc:
            await CoopService(db).request_guarantee(await make_user(generosity_score=10), self.guarantee_data())
        assert exc.value.status_code == 403

    async def test_support_activates_when_covered(self, db, make_user):
        tenant = await make_user(generosity_score=80)
        service = CoopService(db)
        guarantee = await service.request_guarantee(tenant, self.guarantee_data())
        assert guarantee.max_coverage == 1800
        assert guarantee.reputation == 80

        with pytest.raises(HTTPException) as exc:
            await service.support_guarantee(tenant, guarantee.id, 3, 100)
        assert exc.value.detail["code"] == "OWN_GUARANTEE"

        partial = await service.support_guarantee(await make_user(), guarantee.id, 3, 1000)
        assert partial.guarantee.status == GuaranteeStatus.pending
        assert partial.total_committed == 1000

        full = await service.support_guarantee(await make_user(), guarantee.id, 3, 800)
        assert full.guarantee.status == GuaranteeStatus.active
        assert full.guarantee.fund_allocated == 1800
        assert (full.guarantee.expires_at - full.guarantee.activated_at).days == 90

        with pytest.raises(HTTPException) as exc:
            await service.support_guarantee(await make_user(), guarantee.id, 1, 50)
        assert exc.value.detail["code"] == "GUARANTEE_NOT_PENDING"
