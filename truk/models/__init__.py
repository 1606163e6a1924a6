"""
SQLAlchemy ORM models.

All models imported here to ensure they are registered with Base.metadata.
"""

from truk.models.base import Base, TimestampMixin, UUIDMixin
from truk.models.user import EconomyTier, User, UserRole
from truk.models.credit import CreditReason, CreditTransaction
from truk.models.offer import Offer, OfferInterest, OfferStatus, OfferType
from truk.models.event import Event, EventAttendee, EventType
from truk.models.space import BookingStatus, ExchangeType, SpaceBank, SpaceBooking, SpaceType
from truk.models.temporary_housing import HousingBooking, TemporaryHousing
from truk.models.coop import (
    HousingCoop,
    HousingCoopMember,
    HousingCoopProposal,
    HousingCoopVote,
)
from truk.models.guarantee import CommunityGuarantee, GuaranteeSupporter
from truk.models.need import Need, NeedStatus
from truk.models.community_project import (
    CommunityProject,
    ImpactReport,
    ProjectPhase,
    ProjectStatus,
    ProjectUpdate,
)
from truk.models.contribution import Contribution, ContributionStatus, ContributionType

__all__ = [
    "Base",
    "TimestampMixin",
    "UUIDMixin",
    "User",
    "UserRole",
    "EconomyTier",
    "CreditReason",
    "CreditTransaction",
    "Offer",
    "OfferInterest",
    "OfferStatus",
    "OfferType",
    "Event",
    "EventAttendee",
    "EventType",
    "BookingStatus",
    "ExchangeType",
    "SpaceBank",
    "SpaceBooking",
    "SpaceType",
    "TemporaryHousing",
    "HousingBooking",
    "HousingCoop",
    "HousingCoopMember",
    "HousingCoopProposal",
    "HousingCoopVote",
    "CommunityGuarantee",
    "GuaranteeSupporter",
    "Need",
    "NeedStatus",
    "CommunityProject",
    "ProjectPhase",
    "ProjectUpdate",
    "ImpactReport",
    "ProjectStatus",
    "Contribution",
    "ContributionStatus",
    "ContributionType",
]
