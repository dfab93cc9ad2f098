"""Repository pattern implementations for database access."""

from meetauction.infrastructure.database.repositories.access import (
    AccessEventRepository,
    GatePassRepository,
)
from meetauction.infrastructure.database.repositories.auction import (
    AuctionRepository,
    MeetingRepository,
)
from meetauction.infrastructure.database.repositories.base import BaseRepository
from meetauction.infrastructure.database.repositories.user import UserRepository

__all__ = [
    "BaseRepository",
    "AuctionRepository",
    "MeetingRepository",
    "AccessEventRepository",
    "GatePassRepository",
    "UserRepository",
]
