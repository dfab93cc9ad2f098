"""Unit tests for the auction registry."""

import pytest

from meetauction.shared.exceptions import ChainUnavailableError, NotFoundError, UnauthorizedError
from tests.fakes import CREATOR_WALLET, STRANGER_WALLET, WINNER_WALLET


class TestRegisterAuction:
    """Hosts name their auctions."""

    @pytest.mark.asyncio
    async def test_host_sets_title(self, chain, registry, ledger_factory):
        chain.add_auction(1)

        listing = await registry.register_auction(
            1, CREATOR_WALLET.upper().replace("0X", "0x"), "user-creator", "Lunch chat", "1:1"
        )

        assert listing.title == "Lunch chat"
        assert listing.creator_wallet == CREATOR_WALLET
        assert listing.ended is False
        async with ledger_factory() as ledger:
            auction = await ledger.get_auction(1)
        assert auction.creator_user_id == "user-creator"
        assert auction.description == "1:1"

    @pytest.mark.asyncio
    async def test_non_host_rejected(self, chain, registry, ledger_factory):
        chain.add_auction(1)

        with pytest.raises(UnauthorizedError):
            await registry.register_auction(1, STRANGER_WALLET, "user-stranger", "Mine now")

        async with ledger_factory() as ledger:
            assert await ledger.get_auction(1) is None

    @pytest.mark.asyncio
    async def test_unknown_auction(self, registry):
        with pytest.raises(NotFoundError):
            await registry.register_auction(42, CREATOR_WALLET, "user-creator", "Ghost")

    @pytest.mark.asyncio
    async def test_chain_outage_propagates(self, chain, registry):
        chain.add_auction(1)
        chain.unavailable = True

        with pytest.raises(ChainUnavailableError):
            await registry.register_auction(1, CREATOR_WALLET, "user-creator", "Lunch chat")

    @pytest.mark.asyncio
    async def test_title_shows_on_winner_nfts(self, chain, registry, orchestrator, gate):
        chain.add_auction(1)
        await registry.register_auction(1, CREATOR_WALLET, "user-creator", "Lunch chat")
        await orchestrator.trigger_scan()

        nfts = await gate.list_redeemable_nfts(WINNER_WALLET)

        assert [(n.auction_id, n.title) for n in nfts] == [(1, "Lunch chat")]


class TestRegisterIdentity:
    """Signed-in callers become named meeting participants."""

    @pytest.mark.asyncio
    async def test_registered_creator_is_named_on_credential(
        self, chain, registry, orchestrator, ledger_factory, provisioner
    ):
        await registry.register_identity(
            "user-creator", CREATOR_WALLET, email="c@example.com", display_name="Cora"
        )
        chain.add_auction(1)
        await orchestrator.trigger_scan()

        async with ledger_factory() as ledger:
            meeting = await ledger.get_meeting(1)
        creator = provisioner.decode_credential(meeting.creator_access_token)

        assert creator.subject_id == "user-creator"
        assert creator.display_name == "Cora"
