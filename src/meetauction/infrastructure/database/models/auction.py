"""Auction model.

Mirrors the on-chain auction plus the bookkeeping the orchestrator needs.
The primary key is the contract's auction id, not a surrogate key.
"""

from typing import TYPE_CHECKING

from sqlalchemy import BigInteger, Boolean, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from meetauction.infrastructure.database.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from meetauction.infrastructure.database.models.meeting import MeetingRecord


class Auction(Base, TimestampMixin):
    """Ledger copy of an on-chain auction."""

    __tablename__ = "auctions"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    contract_address: Mapped[str] = mapped_column(String(42), nullable=False)

    # Creator as known to the application (may differ from the on-chain host)
    creator_user_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    creator_wallet: Mapped[str | None] = mapped_column(String(42), nullable=True, index=True)
    host_wallet: Mapped[str] = mapped_column(String(42), nullable=False, index=True)

    title: Mapped[str | None] = mapped_column(String(255), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Wei amounts as decimal strings (exceed BIGINT)
    reserve_price_wei: Mapped[str] = mapped_column(String(78), default="0", nullable=False)
    highest_bid_wei: Mapped[str] = mapped_column(String(78), default="0", nullable=False)
    highest_bidder: Mapped[str | None] = mapped_column(String(42), nullable=True)

    start_block: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    end_block: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    meeting_duration_minutes: Mapped[int] = mapped_column(Integer, default=60, nullable=False)

    # Lifecycle
    ended: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    auto_ended: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    nft_token_id: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    meeting_scheduled: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Operator attention
    processing_attempts: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_processing_error: Mapped[str | None] = mapped_column(Text, nullable=True)

    meeting: Mapped["MeetingRecord | None"] = relationship(
        "MeetingRecord",
        back_populates="auction",
        uselist=False,
    )

    @property
    def has_winner(self) -> bool:
        return self.highest_bidder is not None
