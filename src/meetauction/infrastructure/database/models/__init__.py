"""SQLAlchemy ORM models."""

from meetauction.infrastructure.database.models.access import AccessEvent, AccessMethod
from meetauction.infrastructure.database.models.auction import Auction
from meetauction.infrastructure.database.models.base import Base, TimestampMixin
from meetauction.infrastructure.database.models.gate_pass import GatePass
from meetauction.infrastructure.database.models.meeting import MeetingRecord
from meetauction.infrastructure.database.models.user import User

__all__ = [
    "Base",
    "TimestampMixin",
    "Auction",
    "MeetingRecord",
    "AccessEvent",
    "AccessMethod",
    "GatePass",
    "User",
]
