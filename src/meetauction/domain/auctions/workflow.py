"""Per-auction completion workflow.

Steps run strictly in order: end on-chain, re-read, resolve identities,
provision the room and credentials, persist, register on-chain. Only the
last step is best effort; everything before it either succeeds or leaves
the auction for the next scan.
"""

from meetauction.domain.auctions.ports import (
    ChainReaderPort,
    ChainWriterPort,
    LedgerFactory,
    RoomProvisionerPort,
)
from meetauction.domain.auctions.types import AuctionSnapshot, Identity, WorkflowOutcome
from meetauction.domain.meetings.types import CredentialRole, credential_ttl
from meetauction.infrastructure.database.models.meeting import MeetingRecord
from meetauction.shared.clock import Clock, utcnow
from meetauction.shared.exceptions import InvariantViolationError, MeetAuctionError
from meetauction.shared.logging import get_logger

logger = get_logger(__name__)

CREATOR_PLACEHOLDER_NAME = "Auction Creator"
WINNER_PLACEHOLDER_NAME = "Auction Winner"


def room_name_for(auction_id: int) -> str:
    return f"auction-{auction_id}"


class AuctionCompletionWorkflow:
    """Drives one definitively ended auction to a recorded meeting."""

    def __init__(
        self,
        chain_reader: ChainReaderPort,
        chain_writer: ChainWriterPort,
        provisioner: RoomProvisionerPort,
        ledger_factory: LedgerFactory,
        *,
        clock: Clock = utcnow,
    ) -> None:
        self.chain_reader = chain_reader
        self.chain_writer = chain_writer
        self.provisioner = provisioner
        self.ledger_factory = ledger_factory
        self.clock = clock

    async def run(self, snapshot: AuctionSnapshot) -> WorkflowOutcome:
        auction_id = snapshot.auction_id
        log = logger.bind(auction_id=auction_id)

        auto_ended = False
        if not snapshot.ended:
            tx_hash = await self.chain_writer.end_auction(auction_id)
            auto_ended = tx_hash is not None
            log.info("auction_ended_on_chain", tx_hash=tx_hash, already_ended=tx_hash is None)

        ended = await self.chain_reader.get_auction(auction_id)
        try:
            self._check_ended_state(ended)
        except InvariantViolationError:
            # Keep the inconsistent state on the ledger row for the operator
            async with self.ledger_factory() as ledger:
                await ledger.record_auction(ended, auto_ended=auto_ended)
            raise

        if not ended.has_winning_bid:
            async with self.ledger_factory() as ledger:
                await ledger.record_auction(ended, auto_ended=auto_ended)
            log.info("auction_ended_without_bids")
            return WorkflowOutcome.ENDED_WITHOUT_MEETING

        async with self.ledger_factory() as ledger:
            existing = await ledger.get_meeting(auction_id)

        if existing is not None:
            log.info("meeting_already_exists", room_id=existing.room_id)
            outcome = WorkflowOutcome.ALREADY_COMPLETE
            room_id = existing.room_id
        else:
            meeting = await self._provision(ended)
            async with self.ledger_factory() as ledger:
                created = await ledger.record_meeting(ended, meeting, auto_ended=auto_ended)
                if not created:
                    # Lost the race: keep the other run's room and credentials
                    stored = await ledger.get_meeting(auction_id)
                    room_id = stored.room_id if stored is not None else meeting.room_id
            if created:
                outcome = WorkflowOutcome.COMPLETED
                room_id = meeting.room_id
                log.info(
                    "meeting_recorded",
                    room_id=room_id,
                    nft_token_id=ended.nft_token_id,
                    winner=ended.winner_wallet,
                )
            else:
                outcome = WorkflowOutcome.ALREADY_COMPLETE

        if not ended.meeting_scheduled:
            await self._register_on_chain(auction_id, room_id)

        return outcome

    def _check_ended_state(self, ended: AuctionSnapshot) -> None:
        if not ended.ended:
            raise InvariantViolationError(
                ended.auction_id, "Auction still reports ended=false after endAuction"
            )
        if ended.has_winning_bid and ended.nft_token_id == 0:
            raise InvariantViolationError(
                ended.auction_id, "Auction has a winner but no NFT was minted"
            )

    async def _resolve_identity(self, wallet: str, placeholder_name: str) -> Identity:
        try:
            async with self.ledger_factory() as ledger:
                identity = await ledger.resolve_by_wallet(wallet)
        except Exception as e:
            logger.warning("identity_lookup_failed", wallet=wallet, error=str(e))
            identity = None
        return identity or Identity.placeholder_for(placeholder_name)

    async def _provision(self, ended: AuctionSnapshot) -> MeetingRecord:
        creator = await self._resolve_identity(ended.host_wallet, CREATOR_PLACEHOLDER_NAME)
        winner = await self._resolve_identity(ended.highest_bidder, WINNER_PLACEHOLDER_NAME)

        room = self.provisioner.create_room(
            room_name_for(ended.auction_id), ended.meeting_duration_minutes
        )
        ttl = credential_ttl(ended.meeting_duration_minutes)
        creator_token = self.provisioner.issue_credential(
            room.room_id, creator, CredentialRole.MODERATOR, ttl
        )
        winner_token = self.provisioner.issue_credential(
            room.room_id, winner, CredentialRole.PARTICIPANT, ttl
        )

        return MeetingRecord(
            auction_id=ended.auction_id,
            room_id=room.room_id,
            room_url=room.base_url,
            room_config=room.config,
            creator_access_token=creator_token,
            winner_access_token=winner_token,
            scheduled_at=self.clock(),
            expires_at=room.expires_at,
        )

    async def _register_on_chain(self, auction_id: int, room_id: str) -> None:
        try:
            tx_hash = await self.chain_writer.schedule_meeting(auction_id, room_id)
        except MeetAuctionError as e:
            logger.warning(
                "schedule_meeting_failed",
                auction_id=auction_id,
                room_id=room_id,
                error=e.message,
            )
            return

        async with self.ledger_factory() as ledger:
            await ledger.mark_meeting_scheduled(auction_id)
        logger.info("meeting_scheduled_on_chain", auction_id=auction_id, tx_hash=tx_hash)
