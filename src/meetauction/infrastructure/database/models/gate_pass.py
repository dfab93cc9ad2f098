"""Gate pass model."""

from datetime import datetime

from sqlalchemy import BigInteger, Boolean, DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from meetauction.infrastructure.database.models.base import Base, CreatedAtMixin


class GatePass(Base, CreatedAtMixin):
    """Short-lived, single-use pass tied to one wallet and one NFT.

    Moves from unused to used exactly once, through a conditional UPDATE.
    """

    __tablename__ = "gate_passes"

    nonce: Mapped[str] = mapped_column(String(64), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(255), nullable=False)
    wallet_address: Mapped[str] = mapped_column(String(42), nullable=False, index=True)
    auction_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    nft_token_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    payload_hash: Mapped[str] = mapped_column(String(66), nullable=False)
    signature: Mapped[str] = mapped_column(Text, nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    used: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    used_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
