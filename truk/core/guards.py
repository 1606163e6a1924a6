"""
Route guards.

Declarative checks attached to routes with ``Depends``.
"""

from __future__ import annotations

from typing import Any
from uuid import UUID

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from truk.core.database import get_db
from truk.core.dependencies import get_current_user
from truk.models.community_project import CommunityProject
from truk.models.event import Event
from truk.models.need import Need
from truk.models.offer import Offer
from truk.models.space import SpaceBank
from truk.models.temporary_housing import TemporaryHousing
from truk.models.user import User, UserRole

# resource type -> (model, owner column, path parameter)
OWNED_RESOURCES: dict[str, tuple[type, str, str]] = {
    "offer": (Offer, "user_id", "offer_id"),
    "event": (Event, "organizer_id", "event_id"),
    "space": (SpaceBank, "owner_id", "space_id"),
    "housing_listing": (TemporaryHousing, "host_id", "housing_id"),
    "need": (Need, "creator_id", "need_id"),
    "project": (CommunityProject, "creator_id", "project_id"),
}


def is_owner(user: User, resource: Any, owner_field: str) -> bool:
    """Admins own everything; a resource without an owner belongs to nobody."""
    if user.is_admin:
        return True
    owner_id = getattr(resource, owner_field, None)
    return owner_id is not None and owner_id == user.id


def require_ownership(resource_type: str):
    """
    Dependency factory that loads a resource and checks the caller owns it.

    Usage:
        @router.patch("/{offer_id}")
        async def endpoint(offer: Offer = Depends(require_ownership("offer"))):
            ...

    Raises 404 if the resource does not exist, 403 if the caller is not
    its owner. Admins bypass the ownership check.
    """
    if resource_type not in OWNED_RESOURCES:
        raise ValueError(f"Unknown resource type: {resource_type}")

    model, owner_field, path_param = OWNED_RESOURCES[resource_type]

    async def ownership_checker(
        request: Request,
        current_user: User = Depends(get_current_user),
        db: AsyncSession = Depends(get_db),
    ) -> Any:
        raw_id = request.path_params.get(path_param)
        try:
            resource_id = UUID(str(raw_id))
        except ValueError:
            resource_id = None

        resource = await db.get(model, resource_id) if resource_id else None
        if resource is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail={
                    "code": "RESOURCE_NOT_FOUND",
                    "message": f"{resource_type} not found",
                },
            )

        if not is_owner(current_user, resource, owner_field):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail={
                    "code": "NOT_OWNER",
                    "message": f"You do not own this {resource_type}",
                },
            )

        return resource

    return ownership_checker


async def require_verified_email(
    current_user: User = Depends(get_current_user),
) -> User:
    """Reject users who have not verified their email address."""
    if not current_user.email_verified:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={
                "code": "EMAIL_NOT_VERIFIED",
                "message": "Please verify your email address to continue",
                "email": current_user.email,
            },
        )
    return current_user


def require_role(*roles: UserRole):
    """
    Dependency factory that restricts a route to platform roles.

    Usage:
        @router.post("/grant")
        async def endpoint(admin: User = Depends(require_role(UserRole.admin))):
            ...
    """
    async def role_checker(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail={
                    "code": "INSUFFICIENT_ROLE",
                    "message": f"Required role: {[r.value for r in roles]}",
                },
            )
        return current_user

    return role_checker
