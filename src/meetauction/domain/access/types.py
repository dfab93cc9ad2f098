"""Value objects produced and consumed by the access gate."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class MeetingStatus(str, Enum):
    ACTIVE = "active"
    EXPIRED = "expired"


@dataclass(frozen=True)
class BurnClaim:
    """What a caller asserts when redeeming: this wallet burned this NFT."""

    auction_id: int
    nft_token_id: int
    wallet: str
    tx_hash: str


@dataclass(frozen=True)
class RedeemedAccess:
    """Result of a successful redemption."""

    auction_id: int
    room_id: str
    room_url: str
    access_token: str
    join_url: str
    expires_at: datetime
    transaction_hash: str


@dataclass(frozen=True)
class MeetingSummary:
    """Creator-facing view of one meeting."""

    auction_id: int
    title: str
    room_id: str
    meeting_url: str
    scheduled_at: datetime
    expires_at: datetime
    status: MeetingStatus
    winner_wallet: str | None
    nft_token_id: int


@dataclass(frozen=True)
class RedeemableNft:
    """A meeting NFT held by a wallet."""

    token_id: int
    auction_id: int
    title: str
    can_burn_for_meeting: bool


@dataclass(frozen=True)
class IssuedGatePass:
    """A gate pass handed back to its holder."""

    nonce: str
    auction_id: int
    nft_token_id: int
    wallet: str
    payload_hash: str
    expires_at: datetime
