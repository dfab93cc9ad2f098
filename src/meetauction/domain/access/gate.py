"""Access gate: redeem meeting access by burning the auction NFT.

Fail-closed pipeline, cheapest checks first. Nothing is written unless
every check passes; the AccessEvent unique constraint on the transaction
hash is the final, authoritative replay guard.
"""

import asyncio

from meetauction.domain.access.ports import BurnProofVerifier
from meetauction.domain.access.types import (
    BurnClaim,
    MeetingStatus,
    MeetingSummary,
    RedeemableNft,
    RedeemedAccess,
)
from meetauction.domain.auctions.ports import AccessLedgerPort, ChainReaderPort, LedgerFactory
from meetauction.domain.auctions.types import TxReceipt
from meetauction.domain.meetings.types import join_url
from meetauction.infrastructure.database.models.access import AccessEvent, AccessMethod
from meetauction.infrastructure.database.models.meeting import MeetingRecord
from meetauction.observability.metrics import GATE_DECISIONS
from meetauction.shared.clock import Clock, ensure_utc, utcnow
from meetauction.shared.exceptions import (
    ChainUnavailableError,
    ConflictError,
    GateConflictError,
    GateError,
    GateExpiredError,
    GateNotFoundError,
    InvalidTransactionError,
    ProofMismatchError,
    UpstreamUnavailableError,
    WalletMismatchError,
)
from meetauction.shared.logging import get_logger
from meetauction.shared.wallets import is_tx_hash, is_wallet_address, normalize_wallet, same_wallet

logger = get_logger(__name__)


def _title(auction_id: int, title: str | None) -> str:
    return title or f"Auction {auction_id}"


class AccessGate:
    """Verifies burn claims and records redemptions."""

    def __init__(
        self,
        chain_reader: ChainReaderPort,
        ledger_factory: LedgerFactory,
        burn_verifier: BurnProofVerifier,
        *,
        receipt_timeout_seconds: float = 10.0,
        clock: Clock = utcnow,
    ) -> None:
        self.chain_reader = chain_reader
        self.ledger_factory = ledger_factory
        self.burn_verifier = burn_verifier
        self.receipt_timeout = receipt_timeout_seconds
        self.clock = clock

    def _is_expired(self, meeting: MeetingRecord) -> bool:
        return self.clock() > ensure_utc(meeting.expires_at)

    async def verify_and_redeem(
        self,
        auction_id: int,
        nft_token_id: int,
        wallet: str,
        tx_hash: str,
        user_id: str,
        gate_pass_nonce: str | None = None,
    ) -> RedeemedAccess:
        """Redeem meeting access for the winner.

        Args:
            auction_id: Auction whose meeting is requested
            nft_token_id: NFT the caller claims to have burned
            wallet: Authenticated caller's wallet (never taken from the request body)
            tx_hash: Burn transaction hash
            user_id: Authenticated caller's id, stored on the audit event
            gate_pass_nonce: Optional pre-issued gate pass to consume

        Returns:
            RedeemedAccess with the winner credential and joinable URL

        Raises:
            GateError subclass tagged with the rejection reason
        """
        claim = BurnClaim(
            auction_id=auction_id,
            nft_token_id=nft_token_id,
            wallet=normalize_wallet(wallet),
            tx_hash=tx_hash.strip().lower(),
        )
        log = logger.bind(auction_id=auction_id, tx_hash=claim.tx_hash)

        try:
            access = await self._redeem(claim, user_id, gate_pass_nonce)
        except GateError as e:
            GATE_DECISIONS.labels(decision=e.reason.value).inc()
            if e.retryable:
                log.warning("access_gate_upstream_unavailable", error=e.message)
            else:
                log.info("access_gate_rejected", reason=e.reason.value, error=e.message)
            raise

        GATE_DECISIONS.labels(decision="granted").inc()
        log.info("access_gate_granted", nft_token_id=nft_token_id, wallet=claim.wallet)
        return access

    async def _redeem(
        self,
        claim: BurnClaim,
        user_id: str,
        gate_pass_nonce: str | None,
    ) -> RedeemedAccess:
        if not is_wallet_address(claim.wallet):
            raise WalletMismatchError("Caller has no valid wallet address")
        if not is_tx_hash(claim.tx_hash):
            raise InvalidTransactionError("Malformed transaction hash")

        async with self.ledger_factory() as ledger:
            meeting = await ledger.get_meeting(claim.auction_id)
            if meeting is None:
                raise GateNotFoundError(
                    "Meeting not found for this auction",
                    details={"auction_id": claim.auction_id},
                )
            if self._is_expired(meeting):
                raise GateExpiredError("Meeting has expired")
            if await ledger.transaction_used(claim.tx_hash):
                raise GateConflictError("This transaction has already been used")
            auction = await ledger.get_auction(claim.auction_id)
            recorded_nft_id = auction.nft_token_id if auction is not None else 0

        # No connection is held while waiting on the chain
        receipt = await self._fetch_receipt(claim.tx_hash)
        if receipt is None or not receipt.succeeded:
            raise InvalidTransactionError("Burn transaction not found or failed")
        if not same_wallet(receipt.sender, claim.wallet):
            raise WalletMismatchError("Transaction was not sent by your wallet")
        if recorded_nft_id and recorded_nft_id != claim.nft_token_id:
            raise ProofMismatchError("NFT does not belong to this auction")
        if not self.burn_verifier.verify(receipt, claim):
            raise ProofMismatchError("Transaction does not burn this NFT for this auction")

        async with self.ledger_factory() as ledger:
            now = self.clock()
            if gate_pass_nonce:
                await self._consume_gate_pass(ledger, gate_pass_nonce, claim)
            try:
                await ledger.add_access_event(
                    AccessEvent(
                        auction_id=claim.auction_id,
                        user_id=user_id,
                        wallet_address=claim.wallet,
                        nft_token_id=claim.nft_token_id,
                        transaction_hash=claim.tx_hash,
                        access_method=AccessMethod.NFT_BURN.value,
                        gate_pass_nonce=gate_pass_nonce,
                        accessed_at=now,
                    )
                )
            except ConflictError as e:
                raise GateConflictError("This transaction has already been used") from e

        return RedeemedAccess(
            auction_id=claim.auction_id,
            room_id=meeting.room_id,
            room_url=meeting.room_url,
            access_token=meeting.winner_access_token,
            join_url=join_url(meeting.room_url, meeting.winner_access_token),
            expires_at=ensure_utc(meeting.expires_at),
            transaction_hash=claim.tx_hash,
        )

    async def _fetch_receipt(self, tx_hash: str) -> TxReceipt | None:
        try:
            return await asyncio.wait_for(
                self.chain_reader.get_transaction_receipt(tx_hash),
                timeout=self.receipt_timeout,
            )
        except (ChainUnavailableError, TimeoutError) as e:
            raise UpstreamUnavailableError("Could not verify the transaction, try again") from e

    async def _consume_gate_pass(
        self,
        ledger: AccessLedgerPort,
        nonce: str,
        claim: BurnClaim,
    ) -> None:
        gate_pass = await ledger.get_gate_pass(nonce)
        if (
            gate_pass is None
            or not same_wallet(gate_pass.wallet_address, claim.wallet)
            or gate_pass.auction_id != claim.auction_id
            or gate_pass.nft_token_id != claim.nft_token_id
        ):
            raise ProofMismatchError("Gate pass does not match this redemption")
        if gate_pass.used:
            raise GateConflictError("Gate pass has already been used")
        now = self.clock()
        if now >= ensure_utc(gate_pass.expires_at):
            raise GateExpiredError("Gate pass has expired")
        if not await ledger.consume_gate_pass(nonce, now):
            raise GateConflictError("Gate pass has already been used")

    async def check_redeemable(self, auction_id: int, nft_token_id: int, wallet: str) -> bool:
        """Read-only pre-check: could this wallet burn this NFT for the meeting now?

        Only UpstreamUnavailableError propagates; every other failure is False.
        """
        wallet = normalize_wallet(wallet)
        if not is_wallet_address(wallet):
            return False

        async with self.ledger_factory() as ledger:
            meeting = await ledger.get_meeting(auction_id)
        if meeting is None or self._is_expired(meeting):
            return False

        try:
            owner = await self.chain_reader.owner_of(nft_token_id)
            if owner is None or not same_wallet(owner, wallet):
                return False
            return await self.chain_reader.can_burn_for_meeting(nft_token_id, wallet)
        except ChainUnavailableError as e:
            raise UpstreamUnavailableError("Could not query NFT ownership, try again") from e

    async def list_meetings_for_creator(self, wallet: str) -> list[MeetingSummary]:
        """Meetings of auctions the wallet created or hosts, newest first."""
        async with self.ledger_factory() as ledger:
            meetings = await ledger.list_meetings_for_creator(wallet)

        summaries = []
        for meeting in meetings:
            auction = meeting.auction
            summaries.append(
                MeetingSummary(
                    auction_id=meeting.auction_id,
                    title=_title(meeting.auction_id, auction.title if auction else None),
                    room_id=meeting.room_id,
                    meeting_url=join_url(meeting.room_url, meeting.creator_access_token),
                    scheduled_at=ensure_utc(meeting.scheduled_at),
                    expires_at=ensure_utc(meeting.expires_at),
                    status=MeetingStatus.EXPIRED
                    if self._is_expired(meeting)
                    else MeetingStatus.ACTIVE,
                    winner_wallet=auction.highest_bidder if auction else None,
                    nft_token_id=auction.nft_token_id if auction else 0,
                )
            )
        return summaries

    async def list_redeemable_nfts(self, wallet: str) -> list[RedeemableNft]:
        """Meeting NFTs the wallet holds, with whether each can be burned now."""
        wallet = normalize_wallet(wallet)
        try:
            owned = await self.chain_reader.get_nfts_owned_by(wallet)
            burnable = [
                await self.chain_reader.can_burn_for_meeting(token_id, wallet)
                for token_id, _ in owned
            ]
        except ChainUnavailableError as e:
            raise UpstreamUnavailableError("Could not list NFTs, try again") from e

        async with self.ledger_factory() as ledger:
            titles = await ledger.auction_titles([auction_id for _, auction_id in owned])

        return [
            RedeemableNft(
                token_id=token_id,
                auction_id=auction_id,
                title=_title(auction_id, titles.get(auction_id)),
                can_burn_for_meeting=can_burn,
            )
            for (token_id, auction_id), can_burn in zip(owned, burnable, strict=True)
        ]
