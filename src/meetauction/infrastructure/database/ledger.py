"""SQLAlchemy-backed access ledger.

Groups the repositories behind the narrow interface the orchestrator and
the access gate consume. A ledger lives for one transaction: the scope that
yields it commits on clean exit and rolls back on any exception.
"""

from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from datetime import datetime

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from meetauction.domain.auctions.types import AuctionSnapshot, Identity
from meetauction.infrastructure.database.models.access import AccessEvent
from meetauction.infrastructure.database.models.auction import Auction
from meetauction.infrastructure.database.models.gate_pass import GatePass
from meetauction.infrastructure.database.models.meeting import MeetingRecord
from meetauction.infrastructure.database.repositories import (
    AccessEventRepository,
    AuctionRepository,
    GatePassRepository,
    MeetingRepository,
    UserRepository,
)
from meetauction.shared.exceptions import ConflictError
from meetauction.shared.logging import get_logger
from meetauction.shared.wallets import normalize_wallet

logger = get_logger(__name__)


class AccessLedger:
    """Transactional store used by the orchestrator and the access gate."""

    def __init__(self, session: AsyncSession, contract_address: str) -> None:
        self.session = session
        self.contract_address = contract_address
        self.auctions = AuctionRepository(session)
        self.meetings = MeetingRepository(session)
        self.access_events = AccessEventRepository(session)
        self.gate_passes = GatePassRepository(session)
        self.users = UserRepository(session)

    # ----- Identity -----

    async def resolve_by_wallet(self, wallet: str) -> Identity | None:
        user = await self.users.get_by_wallet(normalize_wallet(wallet))
        if user is None:
            return None
        return Identity(
            user_id=user.external_user_id,
            display_name=user.display_name or user.email or user.wallet_address,
            email=user.email,
        )

    async def register_user(
        self,
        external_user_id: str,
        wallet: str,
        *,
        email: str | None = None,
        display_name: str | None = None,
    ) -> bool:
        """Upsert the identity behind a signed-in wallet; True when a row changed.

        Two first requests from the same wallet can race; the loser's
        transaction is rolled back and the winner's row stands.
        """
        try:
            _, changed = await self.users.upsert_identity(
                external_user_id,
                normalize_wallet(wallet),
                email=email,
                display_name=display_name,
            )
        except IntegrityError:
            await self.session.rollback()
            logger.info("user_already_registered", user_id=external_user_id)
            return False
        return changed

    # ----- Auctions and meetings -----

    async def register_listing(
        self,
        snapshot: AuctionSnapshot,
        *,
        creator_user_id: str,
        creator_wallet: str,
        title: str,
        description: str | None,
    ) -> Auction:
        """Store the creator's title and description next to the chain copy."""
        auction = await self.auctions.upsert_from_snapshot(snapshot, self.contract_address)
        return await self.auctions.set_listing(
            auction,
            creator_user_id=creator_user_id,
            creator_wallet=normalize_wallet(creator_wallet),
            title=title,
            description=description,
        )

    async def get_auction(self, auction_id: int) -> Auction | None:
        return await self.auctions.get_by_id(auction_id)

    async def get_meeting(self, auction_id: int) -> MeetingRecord | None:
        return await self.meetings.get_by_auction(auction_id)

    async def auctions_with_meetings(self, auction_ids: Sequence[int]) -> set[int]:
        return await self.meetings.auction_ids_with_meetings(auction_ids)

    async def record_auction(self, snapshot: AuctionSnapshot, *, auto_ended: bool) -> Auction:
        return await self.auctions.upsert_from_snapshot(
            snapshot, self.contract_address, auto_ended=auto_ended
        )

    async def record_meeting(
        self,
        snapshot: AuctionSnapshot,
        meeting: MeetingRecord,
        *,
        auto_ended: bool,
    ) -> bool:
        """Upsert the auction and insert its meeting atomically.

        A unique violation on meetings.auction_id means a concurrent run
        already persisted the meeting; the whole transaction is rolled back
        and the existing row wins.
        """
        try:
            await self.auctions.upsert_from_snapshot(
                snapshot, self.contract_address, auto_ended=auto_ended
            )
            await self.meetings.create(meeting)
            await self.session.commit()
        except IntegrityError:
            await self.session.rollback()
            if await self.meetings.get_by_auction(snapshot.auction_id) is None:
                raise
            logger.info("meeting_already_recorded", auction_id=snapshot.auction_id)
            return False
        return True

    async def mark_meeting_scheduled(self, auction_id: int) -> None:
        await self.auctions.mark_meeting_scheduled(auction_id)

    async def record_processing_failure(self, auction_id: int, error: str) -> None:
        found = await self.auctions.record_failure(auction_id, error)
        if not found:
            logger.debug("processing_failure_without_row", auction_id=auction_id)

    async def list_meetings_for_creator(self, wallet: str) -> Sequence[MeetingRecord]:
        return await self.meetings.list_for_creator(normalize_wallet(wallet))

    async def auction_titles(self, auction_ids: Sequence[int]) -> dict[int, str | None]:
        return await self.auctions.titles_for(auction_ids)

    # ----- Access events -----

    async def transaction_used(self, tx_hash: str) -> bool:
        return await self.access_events.transaction_used(tx_hash.lower())

    async def add_access_event(self, event: AccessEvent) -> AccessEvent:
        try:
            return await self.access_events.create(event)
        except IntegrityError as e:
            await self.session.rollback()
            raise ConflictError(
                "Transaction already used for access",
                details={"transaction_hash": event.transaction_hash},
            ) from e

    # ----- Gate passes -----

    async def get_gate_pass(self, nonce: str) -> GatePass | None:
        return await self.gate_passes.get_by_id(nonce)

    async def add_gate_pass(self, gate_pass: GatePass) -> GatePass:
        return await self.gate_passes.create(gate_pass)

    async def consume_gate_pass(self, nonce: str, used_at: datetime) -> bool:
        return await self.gate_passes.mark_used(nonce, used_at)

    async def delete_expired_gate_passes(self, now: datetime) -> int:
        return await self.gate_passes.delete_expired(now)


class SqlLedgerFactory:
    """Opens one AccessLedger per transaction."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        contract_address: str,
    ) -> None:
        self._session_factory = session_factory
        self._contract_address = contract_address

    @asynccontextmanager
    async def __call__(self) -> AsyncIterator[AccessLedger]:
        async with self._session_factory() as session:
            try:
                yield AccessLedger(session, self._contract_address)
                await session.commit()
            except Exception:
                await session.rollback()
                raise
