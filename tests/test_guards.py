"""
Route guard tests: ownership, roles and email verification.
"""

import uuid

import pytest

from truk.core.guards import is_owner, require_ownership
from truk.models.user import UserRole
from truk.schemas.mutual_aid import NeedCreateRequest
from truk.services.mutual_aid_service import MutualAidService

NEED_BODY = {
    "scope": "community",
    "category": "ongoing",
    "type": "food",
    "title": "Food bank restock",
    "description": "The neighbourhood food bank is running low on staples",
    "location": "Lavapiés, Madrid",
    "resource_types": ["money"],
    "target_eur": 100,
}


async def test_is_owner(make_user):
    owner = await make_user()
    other = await make_user()
    admin = await make_user(role=UserRole.admin)

    class Resource:
        creator_id = owner.id

    assert is_owner(owner, Resource, "creator_id") is True
    assert is_owner(other, Resource, "creator_id") is False
    assert is_owner(admin, Resource, "creator_id") is True
    assert is_owner(other, Resource, "missing_field") is False


def test_unknown_resource_type():
    with pytest.raises(ValueError):
        require_ownership("spaceship")


class TestOwnership:
    async def _need(self, db, owner):
        return await MutualAidService(db).create_need(owner, NeedCreateRequest(**NEED_BODY))

    async def test_owner_can_close(self, client, db, make_user, auth_headers):
        owner = await make_user()
        need = await self._need(db, owner)

        resp = await client.post(f"/api/v1/mutual-aid/needs/{need.id}/close", headers=auth_headers(owner))

        assert resp.status_code == 200
        assert resp.json()["status"] == "closed"

    async def test_other_user_is_rejected(self, client, db, make_user, auth_headers):
        need = await self._need(db, await make_user())
        intruder = await make_user()

        resp = await client.post(f"/api/v1/mutual-aid/needs/{need.id}/close", headers=auth_headers(intruder))

        assert resp.status_code == 403
        assert resp.json()["detail"]["code"] == "NOT_OWNER"

    async def test_admin_bypasses_ownership(self, client, db, make_user, auth_headers):
        need = await self._need(db, await make_user())
        admin = await make_user(role=UserRole.admin)

        resp = await client.post(f"/api/v1/mutual-aid/needs/{need.id}/close", headers=auth_headers(admin))

        assert resp.status_code == 200

    async def test_missing_resource(self, client, make_user, auth_headers):
        user = await make_user()

        resp = await client.post(f"/api/v1/mutual-aid/needs/{uuid.uuid4()}/close", headers=auth_headers(user))

        assert resp.status_code == 404
        assert resp.json()["detail"]["code"] == "RESOURCE_NOT_FOUND"


class TestRoles:
    async def test_member_cannot_grant(self, client, make_user, auth_headers):
        member = await make_user()

        resp = await client.post(
            "/api/v1/credits/grant",
            json={"user_id": str(member.id), "amount": 50},
            headers=auth_headers(member),
        )

        assert resp.status_code == 403
        assert resp.json()["detail"]["code"] == "INSUFFICIENT_ROLE"

    async def test_admin_grants(self, client, make_user, auth_headers):
        admin = await make_user(role=UserRole.admin, name="Admin")
        member = await make_user()

        resp = await client.post(
            "/api/v1/credits/grant",
            json={"user_id": str(member.id), "amount": 50},
            headers=auth_headers(admin),
        )

        assert resp.status_code == 201
        body = resp.json()
        assert body["new_balance"] == 50
        assert body["leveled_up"] is True


async def test_unverified_user_cannot_publish(client, make_user, auth_headers):
    user = await make_user(email_verified=False)

    resp = await client.post("/api/v1/mutual-aid/needs", json=NEED_BODY, headers=auth_headers(user))

    assert resp.status_code == 403
    assert resp.json()["detail"]["code"] == "EMAIL_NOT_VERIFIED"
