"""Access event model (append-only audit of redemptions)."""

from datetime import datetime
from enum import Enum

from sqlalchemy import BigInteger, DateTime, ForeignKey, String, func
from sqlalchemy.orm import Mapped, mapped_column

from meetauction.infrastructure.database.models.base import Base, UUIDPrimaryKeyMixin


class AccessMethod(str, Enum):
    """How access to a meeting was obtained."""

    NFT_BURN = "nft_burn"


class AccessEvent(Base, UUIDPrimaryKeyMixin):
    """One successful redemption.

    The unique constraint on transaction_hash is the authoritative guard
    against replaying a burn transaction.
    """

    __tablename__ = "meeting_access_events"

    auction_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("auctions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[str] = mapped_column(String(255), nullable=False)
    wallet_address: Mapped[str] = mapped_column(String(42), nullable=False, index=True)
    nft_token_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    transaction_hash: Mapped[str] = mapped_column(String(66), unique=True, nullable=False)
    access_method: Mapped[str] = mapped_column(
        String(32),
        default=AccessMethod.NFT_BURN.value,
        nullable=False,
    )
    gate_pass_nonce: Mapped[str | None] = mapped_column(String(64), nullable=True)
    accessed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
