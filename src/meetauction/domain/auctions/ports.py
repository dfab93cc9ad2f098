"""Ports for the auction completion orchestrator."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from datetime import datetime, timedelta
from typing import AsyncContextManager, Protocol

from meetauction.domain.auctions.types import AuctionSnapshot, Identity, TxReceipt
from meetauction.domain.meetings.types import CredentialClaims, CredentialRole, RoomDescriptor
from meetauction.infrastructure.database.models.access import AccessEvent
from meetauction.infrastructure.database.models.auction import Auction
from meetauction.infrastructure.database.models.gate_pass import GatePass
from meetauction.infrastructure.database.models.meeting import MeetingRecord


class ChainReaderPort(Protocol):
    """Read-only view of the auction contract.

    Implementations raise ChainUnavailableError on RPC failure or timeout.
    """

    async def get_block_height(self) -> int:
        """Current block number."""

    async def get_auction_count(self) -> int:
        """Highest auction id issued so far (ids run 1..count)."""

    async def get_auction(self, auction_id: int) -> AuctionSnapshot:
        """Snapshot of one auction."""

    async def get_transaction_receipt(self, tx_hash: str) -> TxReceipt | None:
        """Mined receipt, or None when the transaction is unknown."""

    async def owner_of(self, nft_token_id: int) -> str | None:
        """Current NFT owner, or None when the token does not exist."""

    async def can_burn_for_meeting(self, nft_token_id: int, wallet: str) -> bool:
        """Whether the contract would accept a meeting burn by wallet."""

    async def get_nfts_owned_by(self, wallet: str) -> list[tuple[int, int]]:
        """(token id, auction id) pairs held by wallet."""


class ChainWriterPort(Protocol):
    """State-changing contract calls, signed with the platform key."""

    async def end_auction(self, auction_id: int) -> str | None:
        """End an auction. Returns the tx hash, or None when it had already ended."""

    async def schedule_meeting(self, auction_id: int, meeting_reference: str) -> str:
        """Register the meeting reference on-chain. Returns the tx hash."""


class RoomProvisionerPort(Protocol):
    """Video host room and credential issuing."""

    def create_room(self, room_name: str, duration_minutes: int) -> RoomDescriptor:
        """Reserve a uniquely named room."""

    def issue_credential(
        self,
        room_id: str,
        subject: Identity,
        role: CredentialRole,
        ttl: timedelta,
    ) -> str:
        """Signed token admitting subject to room with role."""

    def decode_credential(self, token: str) -> CredentialClaims:
        """Verify a token issued by this provisioner."""


class AccessLedgerPort(Protocol):
    """Transactional store of auctions, meetings, access events and gate passes.

    Writes are committed when the scope that produced the ledger exits
    cleanly and rolled back otherwise.
    """

    async def resolve_by_wallet(self, wallet: str) -> Identity | None:
        """Application identity for a wallet, if one is registered."""

    async def register_user(
        self,
        external_user_id: str,
        wallet: str,
        *,
        email: str | None = None,
        display_name: str | None = None,
    ) -> bool:
        """Upsert the identity behind a signed-in wallet."""

    async def register_listing(
        self,
        snapshot: AuctionSnapshot,
        *,
        creator_user_id: str,
        creator_wallet: str,
        title: str,
        description: str | None,
    ) -> Auction:
        """Store the creator's title and description for an auction."""

    async def get_auction(self, auction_id: int) -> Auction | None:
        """Ledger copy of an auction."""

    async def get_meeting(self, auction_id: int) -> MeetingRecord | None:
        """The auction's meeting, if one was recorded."""

    async def auctions_with_meetings(self, auction_ids: Sequence[int]) -> set[int]:
        """Subset of auction_ids that already have a meeting."""

    async def record_auction(self, snapshot: AuctionSnapshot, *, auto_ended: bool) -> Auction:
        """Upsert the ledger copy of an auction."""

    async def record_meeting(
        self,
        snapshot: AuctionSnapshot,
        meeting: MeetingRecord,
        *,
        auto_ended: bool,
    ) -> bool:
        """Upsert the auction and insert its meeting in one transaction.

        Returns False (and keeps the existing row) when a meeting already exists.
        """

    async def mark_meeting_scheduled(self, auction_id: int) -> None:
        """Flag the auction as registered on-chain."""

    async def record_processing_failure(self, auction_id: int, error: str) -> None:
        """Count a failed workflow attempt for operator attention."""

    async def list_meetings_for_creator(self, wallet: str) -> Sequence[MeetingRecord]:
        """Meetings of auctions created or hosted by wallet, newest first."""

    async def auction_titles(self, auction_ids: Sequence[int]) -> dict[int, str | None]:
        """Titles keyed by auction id."""

    async def transaction_used(self, tx_hash: str) -> bool:
        """Whether a redemption already used this transaction."""

    async def add_access_event(self, event: AccessEvent) -> AccessEvent:
        """Append an access event. Raises ConflictError on a replayed transaction."""

    async def get_gate_pass(self, nonce: str) -> GatePass | None:
        """Gate pass by nonce."""

    async def add_gate_pass(self, gate_pass: GatePass) -> GatePass:
        """Store a freshly issued gate pass."""

    async def consume_gate_pass(self, nonce: str, used_at: datetime) -> bool:
        """Mark a pass used. False when it was already used."""

    async def delete_expired_gate_passes(self, now: datetime) -> int:
        """Drop expired, unused passes. Returns how many were removed."""


LedgerFactory = Callable[[], AsyncContextManager[AccessLedgerPort]]
