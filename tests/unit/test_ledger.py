"""Unit tests for the SQL access ledger."""

from datetime import timedelta

import pytest
from sqlalchemy.exc import IntegrityError

from meetauction.infrastructure.database.models.access import AccessEvent
from meetauction.infrastructure.database.models.gate_pass import GatePass
from meetauction.infrastructure.database.models.meeting import MeetingRecord
from meetauction.infrastructure.database.models.user import User
from meetauction.shared.clock import ensure_utc
from meetauction.shared.exceptions import ConflictError
from tests.fakes import CREATOR_WALLET, WINNER_WALLET, tx_hash_for


def _meeting_for(snapshot, room_id, now):
    return MeetingRecord(
        auction_id=snapshot.auction_id,
        room_id=room_id,
        room_url=f"https://8x8.vc/app/{room_id}",
        room_config={},
        creator_access_token="creator-token",
        winner_access_token="winner-token",
        scheduled_at=now,
        expires_at=now + timedelta(hours=1),
    )


class TestRecordMeeting:
    """One meeting per auction, whoever writes first."""

    @pytest.mark.asyncio
    async def test_first_write_wins(self, chain, ledger_factory, clock):
        snapshot = chain.add_auction(1, ended=True, nft_token_id=1)

        async with ledger_factory() as ledger:
            created = await ledger.record_meeting(
                snapshot, _meeting_for(snapshot, "auction-1-a", clock()), auto_ended=True
            )
        assert created is True

        async with ledger_factory() as ledger:
            created = await ledger.record_meeting(
                snapshot, _meeting_for(snapshot, "auction-1-b", clock()), auto_ended=True
            )
        assert created is False

        async with ledger_factory() as ledger:
            meeting = await ledger.get_meeting(1)
            auction = await ledger.get_auction(1)

        assert meeting.room_id == "auction-1-a"
        assert auction.auto_ended is True
        assert auction.nft_token_id == 1

    @pytest.mark.asyncio
    async def test_auctions_with_meetings(self, chain, ledger_factory, clock):
        first = chain.add_auction(1, ended=True, nft_token_id=1)
        chain.add_auction(2, ended=True, nft_token_id=2)

        async with ledger_factory() as ledger:
            await ledger.record_meeting(
                first, _meeting_for(first, "auction-1-a", clock()), auto_ended=False
            )

        async with ledger_factory() as ledger:
            assert await ledger.auctions_with_meetings([1, 2]) == {1}
            assert await ledger.auctions_with_meetings([]) == set()

    @pytest.mark.asyncio
    async def test_scope_rolls_back_on_error(self, chain, ledger_factory):
        snapshot = chain.add_auction(1)

        with pytest.raises(RuntimeError):
            async with ledger_factory() as ledger:
                await ledger.record_auction(snapshot, auto_ended=False)
                raise RuntimeError("boom")

        async with ledger_factory() as ledger:
            assert await ledger.get_auction(1) is None

    @pytest.mark.asyncio
    async def test_record_auction_keeps_scheduled_flag(self, chain, ledger_factory):
        snapshot = chain.add_auction(1, ended=True, nft_token_id=1)

        async with ledger_factory() as ledger:
            await ledger.record_auction(snapshot, auto_ended=True)
            await ledger.mark_meeting_scheduled(1)

        # A later upsert from a stale snapshot must not clear it
        async with ledger_factory() as ledger:
            auction = await ledger.record_auction(snapshot, auto_ended=False)

        assert auction.meeting_scheduled is True
        assert auction.auto_ended is True


class TestAccessEvents:
    """Replay protection at the storage layer."""

    @pytest.mark.asyncio
    async def test_duplicate_transaction_is_a_conflict(self, chain, ledger_factory, clock):
        snapshot = chain.add_auction(1, ended=True, nft_token_id=1)
        async with ledger_factory() as ledger:
            await ledger.record_auction(snapshot, auto_ended=False)

        def event():
            return AccessEvent(
                auction_id=1,
                user_id="user-1",
                wallet_address=WINNER_WALLET,
                nft_token_id=1,
                transaction_hash=tx_hash_for(1),
                accessed_at=clock(),
            )

        async with ledger_factory() as ledger:
            await ledger.add_access_event(event())

        with pytest.raises(ConflictError):
            async with ledger_factory() as ledger:
                await ledger.add_access_event(event())

        async with ledger_factory() as ledger:
            assert await ledger.transaction_used(tx_hash_for(1).upper().replace("0X", "0x"))
            assert not await ledger.transaction_used(tx_hash_for(2))


class TestGatePasses:
    """Single-use transition and cleanup."""

    @pytest.mark.asyncio
    async def test_consume_once(self, ledger_factory, clock):
        async with ledger_factory() as ledger:
            await ledger.add_gate_pass(
                GatePass(
                    nonce="n1",
                    user_id="user-1",
                    wallet_address=WINNER_WALLET,
                    auction_id=1,
                    nft_token_id=1,
                    payload_hash="0x" + "ab" * 32,
                    signature="0xsig",
                    expires_at=clock() + timedelta(hours=1),
                    used=False,
                )
            )

        async with ledger_factory() as ledger:
            assert await ledger.consume_gate_pass("n1", clock()) is True
        async with ledger_factory() as ledger:
            assert await ledger.consume_gate_pass("n1", clock()) is False
            gate_pass = await ledger.get_gate_pass("n1")

        assert gate_pass.used is True
        assert ensure_utc(gate_pass.used_at) == clock()

    @pytest.mark.asyncio
    async def test_delete_expired_keeps_live_passes(self, ledger_factory, clock):
        async with ledger_factory() as ledger:
            for nonce, offset in (("old", -2), ("live", 2)):
                await ledger.add_gate_pass(
                    GatePass(
                        nonce=nonce,
                        user_id="user-1",
                        wallet_address=WINNER_WALLET,
                        auction_id=1,
                        nft_token_id=1,
                        payload_hash="0x" + "ab" * 32,
                        signature="0xsig",
                        expires_at=clock() + timedelta(hours=offset),
                        used=False,
                    )
                )

        async with ledger_factory() as ledger:
            removed = await ledger.delete_expired_gate_passes(clock())

        assert removed == 1
        async with ledger_factory() as ledger:
            assert await ledger.get_gate_pass("old") is None
            assert await ledger.get_gate_pass("live") is not None


class TestIdentity:
    """Wallet to application identity."""

    @pytest.mark.asyncio
    async def test_resolve_by_wallet_is_case_insensitive(self, async_session, ledger_factory):
        async_session.add(
            User(
                external_user_id="user-creator",
                wallet_address=CREATOR_WALLET,
                email="creator@example.com",
            )
        )
        await async_session.commit()

        async with ledger_factory() as ledger:
            identity = await ledger.resolve_by_wallet(CREATOR_WALLET.upper().replace("0X", "0x"))
            missing = await ledger.resolve_by_wallet(WINNER_WALLET)

        assert identity.user_id == "user-creator"
        # Falls back to the email when no display name is set
        assert identity.display_name == "creator@example.com"
        assert identity.placeholder is False
        assert missing is None

    @pytest.mark.asyncio
    async def test_duplicate_wallet_rejected(self, async_session):
        async_session.add(User(external_user_id="a", wallet_address=WINNER_WALLET))
        async_session.add(User(external_user_id="b", wallet_address=WINNER_WALLET))
        with pytest.raises(IntegrityError):
            await async_session.commit()

    @pytest.mark.asyncio
    async def test_register_user_inserts_then_noops(self, ledger_factory):
        async with ledger_factory() as ledger:
            created = await ledger.register_user(
                "user-creator", CREATOR_WALLET.upper().replace("0X", "0x"), email="c@example.com"
            )
        async with ledger_factory() as ledger:
            again = await ledger.register_user("user-creator", CREATOR_WALLET)
            identity = await ledger.resolve_by_wallet(CREATOR_WALLET)

        assert created is True
        assert again is False
        # Omitted fields keep what was stored
        assert identity.email == "c@example.com"
        assert identity.user_id == "user-creator"

    @pytest.mark.asyncio
    async def test_wallet_moves_to_new_session_user(self, ledger_factory):
        async with ledger_factory() as ledger:
            await ledger.register_user("old-id", WINNER_WALLET, display_name="Winnie")
            await ledger.register_user("new-id", CREATOR_WALLET)
        async with ledger_factory() as ledger:
            changed = await ledger.register_user("new-id", WINNER_WALLET)

        assert changed is True
        async with ledger_factory() as ledger:
            winner = await ledger.resolve_by_wallet(WINNER_WALLET)
            creator = await ledger.resolve_by_wallet(CREATOR_WALLET)

        assert winner.user_id == "new-id"
        assert winner.display_name == "Winnie"
        # The stale row for the new id is gone, so the creator wallet is unclaimed
        assert creator is None


class TestListings:
    """Creator-supplied auction details."""

    @pytest.mark.asyncio
    async def test_listing_title_feeds_titles_and_creator_meetings(
        self, chain, ledger_factory, clock
    ):
        snapshot = chain.add_auction(1, ended=True, nft_token_id=1)
        async with ledger_factory() as ledger:
            await ledger.record_meeting(
                snapshot, _meeting_for(snapshot, "auction-1-a", clock()), auto_ended=True
            )
        async with ledger_factory() as ledger:
            auction = await ledger.register_listing(
                snapshot,
                creator_user_id="user-creator",
                creator_wallet=CREATOR_WALLET,
                title="Coffee with a founder",
                description="30 minutes, any topic",
            )
            assert auction.creator_user_id == "user-creator"

        async with ledger_factory() as ledger:
            titles = await ledger.auction_titles([1])
            meetings = await ledger.list_meetings_for_creator(CREATOR_WALLET)

        assert titles == {1: "Coffee with a founder"}
        assert [m.auction_id for m in meetings] == [1]
