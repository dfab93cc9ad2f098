"""Ports for the access gate."""

from typing import Protocol

from meetauction.domain.access.types import BurnClaim
from meetauction.domain.auctions.types import TxReceipt


class BurnProofVerifier(Protocol):
    """Decides whether a successful receipt proves the claimed burn."""

    def verify(self, receipt: TxReceipt, claim: BurnClaim) -> bool:
        """True only when the receipt burns claim.nft_token_id for claim.auction_id by claim.wallet."""
