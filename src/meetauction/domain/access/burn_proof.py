"""Burn proof verification from receipt event logs.

The contract emits

    NFTBurnedForMeeting(uint256 indexed tokenId, uint256 indexed auctionId, address indexed user)

when a meeting NFT is burned. All three arguments are indexed, so they sit
in topics 1-3 and no ABI decoding of the data field is needed.
"""

from eth_utils import keccak

from meetauction.domain.access.types import BurnClaim
from meetauction.domain.auctions.types import ReceiptLog, TxReceipt
from meetauction.shared.logging import get_logger
from meetauction.shared.wallets import normalize_wallet

logger = get_logger(__name__)


def event_topic(signature: str) -> str:
    """topic0 for an event signature such as "Transfer(address,address,uint256)"."""
    return "0x" + keccak(text=signature).hex()


def _topic_int(topic: str) -> int:
    return int(topic, 16)


def _topic_address(topic: str) -> str:
    # Addresses are left-padded to 32 bytes
    return normalize_wallet("0x" + topic[-40:])


class EventLogBurnProofVerifier:
    """Looks for the burn event emitted by the auction contract.

    strict: reject receipts whose burn-looking logs cannot be decoded,
    instead of ignoring them.
    """

    def __init__(
        self,
        contract_address: str,
        event_signature: str,
        *,
        strict: bool = True,
    ) -> None:
        self.contract_address = normalize_wallet(contract_address)
        self.topic0 = event_topic(event_signature)
        self.strict = strict

    def _decode(self, log: ReceiptLog) -> tuple[int, int, str] | None:
        if len(log.topics) != 4:
            return None
        try:
            return (
                _topic_int(log.topics[1]),
                _topic_int(log.topics[2]),
                _topic_address(log.topics[3]),
            )
        except ValueError:
            return None

    def verify(self, receipt: TxReceipt, claim: BurnClaim) -> bool:
        if not receipt.succeeded:
            return False

        wallet = normalize_wallet(claim.wallet)
        for log in receipt.logs:
            if normalize_wallet(log.address) != self.contract_address:
                continue
            if not log.topics or log.topics[0].lower() != self.topic0:
                continue

            decoded = self._decode(log)
            if decoded is None:
                logger.warning(
                    "burn_event_undecodable",
                    tx_hash=receipt.tx_hash,
                    topics=len(log.topics),
                )
                if self.strict:
                    return False
                continue

            token_id, auction_id, user = decoded
            if (
                token_id == claim.nft_token_id
                and auction_id == claim.auction_id
                and user == wallet
            ):
                return True

        return False
