"""Meeting model.

One row per auction, created once by the completion workflow and never
mutated afterwards. The unique constraint on auction_id is what makes the
workflow idempotent across overlapping runs.
"""

from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import BigInteger, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from meetauction.infrastructure.database.models.base import (
    Base,
    CreatedAtMixin,
    JSONType,
    UUIDPrimaryKeyMixin,
)

if TYPE_CHECKING:
    from meetauction.infrastructure.database.models.auction import Auction


class MeetingRecord(Base, UUIDPrimaryKeyMixin, CreatedAtMixin):
    """Provisioned room and the two credentials minted for it."""

    __tablename__ = "meetings"

    auction_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("auctions.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )

    room_id: Mapped[str] = mapped_column(String(255), nullable=False)
    room_url: Mapped[str] = mapped_column(String(512), nullable=False)
    room_config: Mapped[dict[str, Any]] = mapped_column(JSONType, default=dict, nullable=False)

    # Delivered verbatim; the video host is the one that verifies them
    creator_access_token: Mapped[str] = mapped_column(Text, nullable=False)
    winner_access_token: Mapped[str] = mapped_column(Text, nullable=False)

    scheduled_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    auction: Mapped["Auction"] = relationship("Auction", back_populates="meeting")
