"""Unit tests for the access gate (NFT burn redemption)."""

import pytest

from meetauction.domain.access.types import MeetingStatus
from meetauction.shared.exceptions import (
    GateConflictError,
    GateErrorReason,
    GateExpiredError,
    GateNotFoundError,
    InvalidTransactionError,
    ProofMismatchError,
    UpstreamUnavailableError,
    WalletMismatchError,
)
from tests.fakes import CREATOR_WALLET, STRANGER_WALLET, WINNER_WALLET, tx_hash_for

BURN_TX = tx_hash_for(1)


async def _redeem(gate, *, auction_id=1, nft_token_id=1, wallet=WINNER_WALLET, tx=BURN_TX, **kw):
    return await gate.verify_and_redeem(auction_id, nft_token_id, wallet, tx, "user-winner", **kw)


class TestRedeem:
    """Happy path and replay protection."""

    @pytest.mark.asyncio
    async def test_burn_grants_winner_credential(self, chain, gate, ledger_factory, completed_auction):
        chain.add_burn(BURN_TX, wallet=WINNER_WALLET, nft_token_id=1, auction_id=1)

        access = await _redeem(gate)

        async with ledger_factory() as ledger:
            meeting = await ledger.get_meeting(1)
            assert await ledger.transaction_used(BURN_TX)

        assert access.auction_id == 1
        assert access.room_id == meeting.room_id
        assert access.access_token == meeting.winner_access_token
        assert access.join_url == f"{meeting.room_url}?jwt={meeting.winner_access_token}"
        assert access.transaction_hash == BURN_TX

    @pytest.mark.asyncio
    async def test_tx_hash_is_case_insensitive(self, chain, gate, completed_auction):
        chain.add_burn(BURN_TX, wallet=WINNER_WALLET, nft_token_id=1, auction_id=1)

        access = await _redeem(gate, tx=BURN_TX.upper().replace("0X", "0x"))

        assert access.transaction_hash == BURN_TX

    @pytest.mark.asyncio
    async def test_replay_is_rejected(self, chain, gate, completed_auction):
        chain.add_burn(BURN_TX, wallet=WINNER_WALLET, nft_token_id=1, auction_id=1)
        await _redeem(gate)

        with pytest.raises(GateConflictError) as exc_info:
            await _redeem(gate)

        assert exc_info.value.reason is GateErrorReason.CONFLICT
        assert exc_info.value.retryable is False


class TestRejections:
    """Every failed check rejects without writing anything."""

    @pytest.mark.asyncio
    async def test_unknown_auction(self, gate):
        with pytest.raises(GateNotFoundError):
            await _redeem(gate, auction_id=99)

    @pytest.mark.asyncio
    async def test_expired_meeting(self, chain, gate, clock, completed_auction):
        chain.add_burn(BURN_TX, wallet=WINNER_WALLET, nft_token_id=1, auction_id=1)
        clock.advance(minutes=61)

        with pytest.raises(GateExpiredError):
            await _redeem(gate)

    @pytest.mark.asyncio
    async def test_malformed_tx_hash(self, gate, completed_auction):
        with pytest.raises(InvalidTransactionError):
            await _redeem(gate, tx="0x1234")

    @pytest.mark.asyncio
    async def test_unknown_transaction(self, gate, completed_auction):
        with pytest.raises(InvalidTransactionError):
            await _redeem(gate)

    @pytest.mark.asyncio
    async def test_failed_transaction(self, chain, gate, completed_auction):
        chain.add_burn(BURN_TX, wallet=WINNER_WALLET, nft_token_id=1, auction_id=1, status=0)

        with pytest.raises(InvalidTransactionError):
            await _redeem(gate)

    @pytest.mark.asyncio
    async def test_someone_elses_transaction(self, chain, gate, ledger_factory, completed_auction):
        # The winner burned; a different account presents the same tx
        chain.add_burn(BURN_TX, wallet=WINNER_WALLET, nft_token_id=1, auction_id=1)

        with pytest.raises(WalletMismatchError):
            await _redeem(gate, wallet=STRANGER_WALLET)

        async with ledger_factory() as ledger:
            assert not await ledger.transaction_used(BURN_TX)

    @pytest.mark.asyncio
    async def test_nft_of_another_auction(self, chain, gate, completed_auction):
        chain.add_burn(BURN_TX, wallet=WINNER_WALLET, nft_token_id=2, auction_id=1)

        with pytest.raises(ProofMismatchError):
            await _redeem(gate, nft_token_id=2)

    @pytest.mark.asyncio
    async def test_receipt_without_burn_event(self, chain, gate, completed_auction):
        # Burn event for another auction in the same contract
        chain.add_burn(BURN_TX, wallet=WINNER_WALLET, nft_token_id=1, auction_id=5)

        with pytest.raises(ProofMismatchError):
            await _redeem(gate)

    @pytest.mark.asyncio
    async def test_burn_event_from_another_contract(self, chain, gate, completed_auction):
        chain.add_burn(
            BURN_TX,
            wallet=WINNER_WALLET,
            nft_token_id=1,
            auction_id=1,
            contract="0x" + "ee" * 20,
        )

        with pytest.raises(ProofMismatchError):
            await _redeem(gate)

    @pytest.mark.asyncio
    async def test_chain_unavailable_is_retryable(self, chain, gate, ledger_factory, completed_auction):
        chain.add_burn(BURN_TX, wallet=WINNER_WALLET, nft_token_id=1, auction_id=1)
        chain.unavailable = True

        with pytest.raises(UpstreamUnavailableError) as exc_info:
            await _redeem(gate)

        assert exc_info.value.retryable is True
        async with ledger_factory() as ledger:
            assert not await ledger.transaction_used(BURN_TX)

        # Same request succeeds once the node answers again
        chain.unavailable = False
        access = await _redeem(gate)
        assert access.transaction_hash == BURN_TX

    @pytest.mark.asyncio
    async def test_slow_receipt_times_out(self, chain, gate, completed_auction):
        chain.add_burn(BURN_TX, wallet=WINNER_WALLET, nft_token_id=1, auction_id=1)
        chain.receipt_delay = 2.0

        with pytest.raises(UpstreamUnavailableError):
            await _redeem(gate)


class TestGatePassRedemption:
    """Optional gate pass consumed together with the burn."""

    @pytest.mark.asyncio
    async def test_gate_pass_is_single_use(
        self, chain, gate, gate_passes, sign_gate_pass, ledger_factory, completed_auction
    ):
        issued = await gate_passes.issue(1, 1, WINNER_WALLET, sign_gate_pass(1, 1), "user-winner")
        chain.add_burn(BURN_TX, wallet=WINNER_WALLET, nft_token_id=1, auction_id=1)

        await _redeem(gate, gate_pass_nonce=issued.nonce)

        async with ledger_factory() as ledger:
            gate_pass = await ledger.get_gate_pass(issued.nonce)
        assert gate_pass.used is True

        second_tx = tx_hash_for(2)
        chain.add_burn(second_tx, wallet=WINNER_WALLET, nft_token_id=1, auction_id=1)
        with pytest.raises(GateConflictError):
            await _redeem(gate, tx=second_tx, gate_pass_nonce=issued.nonce)

    @pytest.mark.asyncio
    async def test_unknown_gate_pass(self, chain, gate, ledger_factory, completed_auction):
        chain.add_burn(BURN_TX, wallet=WINNER_WALLET, nft_token_id=1, auction_id=1)

        with pytest.raises(ProofMismatchError):
            await _redeem(gate, gate_pass_nonce="not-a-real-nonce")

        # The rejected redemption left no trace
        async with ledger_factory() as ledger:
            assert not await ledger.transaction_used(BURN_TX)

    @pytest.mark.asyncio
    async def test_expired_gate_pass(
        self, chain, gate, gate_passes, sign_gate_pass, ledger_factory, clock, completed_auction
    ):
        issued = await gate_passes.issue(1, 1, WINNER_WALLET, sign_gate_pass(1, 1), "user-winner")
        chain.add_burn(BURN_TX, wallet=WINNER_WALLET, nft_token_id=1, auction_id=1)

        # The pass outlives the meeting by default, so expire it directly
        async with ledger_factory() as ledger:
            gate_pass = await ledger.get_gate_pass(issued.nonce)
            gate_pass.expires_at = clock()

        with pytest.raises(GateExpiredError):
            await _redeem(gate, gate_pass_nonce=issued.nonce)


class TestCheckRedeemable:
    """Read-only pre-check."""

    @pytest.mark.asyncio
    async def test_owner_can_redeem(self, gate, completed_auction):
        assert await gate.check_redeemable(1, 1, WINNER_WALLET) is True

    @pytest.mark.asyncio
    async def test_non_owner_cannot_redeem(self, gate, completed_auction):
        assert await gate.check_redeemable(1, 1, STRANGER_WALLET) is False

    @pytest.mark.asyncio
    async def test_no_meeting(self, gate):
        assert await gate.check_redeemable(1, 1, WINNER_WALLET) is False

    @pytest.mark.asyncio
    async def test_expired_meeting(self, gate, clock, completed_auction):
        clock.advance(hours=2)
        assert await gate.check_redeemable(1, 1, WINNER_WALLET) is False

    @pytest.mark.asyncio
    async def test_invalid_wallet(self, gate, completed_auction):
        assert await gate.check_redeemable(1, 1, "not-a-wallet") is False

    @pytest.mark.asyncio
    async def test_chain_unavailable_propagates(self, chain, gate, completed_auction):
        chain.unavailable = True
        with pytest.raises(UpstreamUnavailableError):
            await gate.check_redeemable(1, 1, WINNER_WALLET)


class TestListings:
    """Creator meetings and holder NFTs."""

    @pytest.mark.asyncio
    async def test_creator_sees_meeting_with_moderator_link(
        self, gate, ledger_factory, completed_auction
    ):
        summaries = await gate.list_meetings_for_creator(CREATOR_WALLET)

        async with ledger_factory() as ledger:
            meeting = await ledger.get_meeting(1)

        assert len(summaries) == 1
        summary = summaries[0]
        assert summary.auction_id == 1
        assert summary.title == "Auction 1"
        assert summary.status is MeetingStatus.ACTIVE
        assert summary.meeting_url.endswith(f"?jwt={meeting.creator_access_token}")
        assert summary.winner_wallet == WINNER_WALLET
        assert summary.nft_token_id == 1

    @pytest.mark.asyncio
    async def test_meeting_status_expires(self, gate, clock, completed_auction):
        clock.advance(hours=2)

        summaries = await gate.list_meetings_for_creator(CREATOR_WALLET)

        assert summaries[0].status is MeetingStatus.EXPIRED

    @pytest.mark.asyncio
    async def test_other_wallets_see_nothing(self, gate, completed_auction):
        assert await gate.list_meetings_for_creator(WINNER_WALLET) == []

    @pytest.mark.asyncio
    async def test_winner_lists_redeemable_nft(self, gate, completed_auction):
        nfts = await gate.list_redeemable_nfts(WINNER_WALLET)

        assert len(nfts) == 1
        assert nfts[0].token_id == 1
        assert nfts[0].auction_id == 1
        assert nfts[0].title == "Auction 1"
        assert nfts[0].can_burn_for_meeting is True

    @pytest.mark.asyncio
    async def test_burned_nft_is_gone(self, chain, gate, completed_auction):
        chain.add_burn(BURN_TX, wallet=WINNER_WALLET, nft_token_id=1, auction_id=1)

        assert await gate.list_redeemable_nfts(WINNER_WALLET) == []
