"""Value objects shared by the chain adapters and the auction orchestrator."""

from dataclasses import dataclass, field
from enum import Enum

from meetauction.shared.wallets import is_zero_address, normalize_wallet

TX_STATUS_SUCCESS = 1


@dataclass(frozen=True)
class AuctionSnapshot:
    """Auction state as read from the contract at one block."""

    auction_id: int
    host: str
    start_block: int
    end_block: int
    reserve_price_wei: int
    highest_bid_wei: int
    highest_bidder: str
    ended: bool
    meeting_scheduled: bool
    meeting_duration_minutes: int
    nft_token_id: int = 0
    host_twitter_id: str = ""
    metadata_uri: str = ""

    @property
    def has_winning_bid(self) -> bool:
        return not is_zero_address(self.highest_bidder)

    @property
    def host_wallet(self) -> str:
        return normalize_wallet(self.host)

    @property
    def winner_wallet(self) -> str | None:
        if not self.has_winning_bid:
            return None
        return normalize_wallet(self.highest_bidder)

    def is_expired_at(self, block: int) -> bool:
        return block >= self.end_block


@dataclass(frozen=True)
class ReceiptLog:
    """One event log entry of a transaction receipt (hex strings)."""

    address: str
    topics: tuple[str, ...]
    data: str = "0x"


@dataclass(frozen=True)
class TxReceipt:
    """A mined transaction receipt."""

    tx_hash: str
    status: int
    sender: str
    block_number: int
    logs: tuple[ReceiptLog, ...] = ()
    to: str | None = None
    gas_used: int | None = None

    @property
    def succeeded(self) -> bool:
        return self.status == TX_STATUS_SUCCESS


@dataclass(frozen=True)
class Identity:
    """Application identity a wallet maps to."""

    user_id: str
    display_name: str
    email: str | None = None
    placeholder: bool = False

    @classmethod
    def placeholder_for(cls, display_name: str) -> "Identity":
        return cls(user_id="unknown", display_name=display_name, placeholder=True)


class WorkflowOutcome(str, Enum):
    """How one auction's completion workflow ended in a scan."""

    COMPLETED = "completed"  # meeting recorded in this run
    ALREADY_COMPLETE = "already_complete"  # meeting existed, nothing minted
    ENDED_WITHOUT_MEETING = "ended_without_meeting"  # no-bid policy
    INVARIANT_VIOLATION = "invariant_violation"
    FAILED = "failed"


@dataclass
class ScanResult:
    """Counts reported by one orchestrator cycle."""

    current_block: int | None = None
    examined: int = 0
    processed: int = 0
    skipped: int = 0
    skipped_no_bids: int = 0
    failed: int = 0
    read_errors: int = 0
    reentrant_skip: bool = False
    outcomes: dict[int, WorkflowOutcome] = field(default_factory=dict)

    def as_dict(self) -> dict[str, object]:
        return {
            "current_block": self.current_block,
            "examined": self.examined,
            "processed": self.processed,
            "skipped": self.skipped,
            "skipped_no_bids": self.skipped_no_bids,
            "failed": self.failed,
            "read_errors": self.read_errors,
            "reentrant_skip": self.reentrant_skip,
            "outcomes": {str(k): v.value for k, v in self.outcomes.items()},
        }
