"""Off-chain facts the contract does not carry.

The contract knows wallets and block numbers. Who is behind a wallet and
what an auction is called come from the application, and both feed the
meeting credentials and the creator's meeting list.
"""

from dataclasses import dataclass

from meetauction.domain.auctions.ports import ChainReaderPort, LedgerFactory
from meetauction.shared.exceptions import NotFoundError, UnauthorizedError
from meetauction.shared.logging import get_logger
from meetauction.shared.wallets import is_zero_address, same_wallet

logger = get_logger(__name__)


@dataclass(frozen=True)
class AuctionListing:
    auction_id: int
    title: str
    description: str | None
    creator_wallet: str
    ended: bool


class AuctionRegistry:
    """Records callers' identities and creators' auction listings."""

    def __init__(self, chain_reader: ChainReaderPort, ledger_factory: LedgerFactory) -> None:
        self.chain_reader = chain_reader
        self.ledger_factory = ledger_factory

    async def register_identity(
        self,
        user_id: str,
        wallet: str,
        *,
        email: str | None = None,
        display_name: str | None = None,
    ) -> None:
        async with self.ledger_factory() as ledger:
            changed = await ledger.register_user(
                user_id, wallet, email=email, display_name=display_name
            )
        if changed:
            logger.info("user_registered", user_id=user_id, wallet=wallet)

    async def register_auction(
        self,
        auction_id: int,
        wallet: str,
        user_id: str,
        title: str,
        description: str | None = None,
    ) -> AuctionListing:
        """Attach a title and description to an auction the caller hosts.

        Raises NotFoundError when the contract has no such auction and
        UnauthorizedError when the caller is not its host. Chain failures
        propagate as ChainUnavailableError.
        """
        snapshot = await self.chain_reader.get_auction(auction_id)
        # getAuction returns a zeroed struct for ids never issued
        if is_zero_address(snapshot.host):
            raise NotFoundError("Auction", str(auction_id))
        if not same_wallet(snapshot.host_wallet, wallet):
            raise UnauthorizedError("Only the auction host can describe this auction")

        async with self.ledger_factory() as ledger:
            auction = await ledger.register_listing(
                snapshot,
                creator_user_id=user_id,
                creator_wallet=wallet,
                title=title,
                description=description,
            )
            listing = AuctionListing(
                auction_id=auction.id,
                title=title,
                description=description,
                creator_wallet=auction.host_wallet,
                ended=auction.ended,
            )

        logger.info("auction_listing_registered", auction_id=auction_id, user_id=user_id)
        return listing
