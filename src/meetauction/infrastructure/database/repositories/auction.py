"""Auction and meeting repositories."""

from collections.abc import Sequence

from sqlalchemy import or_, select, update
from sqlalchemy.orm import selectinload

from meetauction.domain.auctions.types import AuctionSnapshot
from meetauction.infrastructure.database.models.auction import Auction
from meetauction.infrastructure.database.models.meeting import MeetingRecord
from meetauction.infrastructure.database.repositories.base import BaseRepository


class AuctionRepository(BaseRepository[Auction]):
    """Repository for Auction rows."""

    model_class = Auction

    async def upsert_from_snapshot(
        self,
        snapshot: AuctionSnapshot,
        contract_address: str,
        *,
        auto_ended: bool = False,
    ) -> Auction:
        """Create or refresh the ledger copy of an auction from chain state."""
        auction = await self.get_by_id(snapshot.auction_id)
        if auction is None:
            auction = Auction(
                id=snapshot.auction_id,
                contract_address=contract_address.lower(),
                creator_wallet=snapshot.host_wallet,
                host_wallet=snapshot.host_wallet,
                processing_attempts=0,
            )
            self.session.add(auction)

        auction.host_wallet = snapshot.host_wallet
        if auction.creator_wallet is None:
            auction.creator_wallet = snapshot.host_wallet
        auction.reserve_price_wei = str(snapshot.reserve_price_wei)
        auction.highest_bid_wei = str(snapshot.highest_bid_wei)
        auction.highest_bidder = snapshot.winner_wallet
        auction.start_block = snapshot.start_block
        auction.end_block = snapshot.end_block
        auction.meeting_duration_minutes = snapshot.meeting_duration_minutes
        auction.ended = snapshot.ended
        auction.nft_token_id = snapshot.nft_token_id
        auction.meeting_scheduled = auction.meeting_scheduled or snapshot.meeting_scheduled
        if auto_ended:
            auction.auto_ended = True

        await self.session.flush()
        return auction

    async def set_listing(
        self,
        auction: Auction,
        *,
        creator_user_id: str,
        creator_wallet: str,
        title: str,
        description: str | None,
    ) -> Auction:
        auction.creator_user_id = creator_user_id
        auction.creator_wallet = creator_wallet
        auction.title = title
        auction.description = description
        return await self.update(auction)

    async def mark_meeting_scheduled(self, auction_id: int) -> None:
        await self.session.execute(
            update(Auction).where(Auction.id == auction_id).values(meeting_scheduled=True)
        )

    async def record_failure(self, auction_id: int, error: str) -> bool:
        """Bump processing_attempts and keep the latest error.

        Returns False when the auction has no ledger row yet.
        """
        result = await self.session.execute(
            update(Auction)
            .where(Auction.id == auction_id)
            .values(
                processing_attempts=Auction.processing_attempts + 1,
                last_processing_error=error[:2000],
            )
        )
        return bool(result.rowcount)

    async def titles_for(self, auction_ids: Sequence[int]) -> dict[int, str | None]:
        auctions = await self.get_many(auction_ids)
        return {auction.id: auction.title for auction in auctions}


class MeetingRepository(BaseRepository[MeetingRecord]):
    """Repository for MeetingRecord rows."""

    model_class = MeetingRecord

    async def get_by_auction(self, auction_id: int) -> MeetingRecord | None:
        query = self._base_query().where(MeetingRecord.auction_id == auction_id)
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def auction_ids_with_meetings(self, auction_ids: Sequence[int]) -> set[int]:
        if not auction_ids:
            return set()
        query = select(MeetingRecord.auction_id).where(
            MeetingRecord.auction_id.in_(list(auction_ids))
        )
        result = await self.session.execute(query)
        return set(result.scalars().all())

    async def list_for_creator(self, wallet: str) -> Sequence[MeetingRecord]:
        """Meetings of auctions the wallet created or hosts, newest first."""
        query = (
            self._base_query()
            .join(Auction, Auction.id == MeetingRecord.auction_id)
            .where(or_(Auction.creator_wallet == wallet, Auction.host_wallet == wallet))
            .options(selectinload(MeetingRecord.auction))
            .order_by(MeetingRecord.created_at.desc(), MeetingRecord.auction_id.desc())
        )
        result = await self.session.execute(query)
        return result.scalars().all()
