"""Gate passes: optional, short-lived pre-authorization before the burn.

A pass proves that the wallet owner asked for access to one auction with
one NFT (EIP-191 signature) while that NFT was still redeemable. It never
replaces the burn check; AccessGate consumes it alongside the burn.
"""

import json
import secrets
from datetime import timedelta

from eth_account import Account
from eth_account.messages import encode_defunct
from eth_utils import keccak

from meetauction.domain.access.gate import AccessGate
from meetauction.domain.access.types import IssuedGatePass
from meetauction.domain.auctions.ports import LedgerFactory
from meetauction.infrastructure.database.models.gate_pass import GatePass
from meetauction.shared.clock import Clock, utcnow
from meetauction.shared.exceptions import ProofMismatchError
from meetauction.shared.logging import get_logger
from meetauction.shared.wallets import normalize_wallet, same_wallet

logger = get_logger(__name__)

GATE_PASS_ACTION = "meeting_access"


def gate_pass_message(auction_id: int, nft_token_id: int, wallet: str) -> str:
    """Text the wallet signs (personal_sign) to request a gate pass."""
    return (
        "Request meeting access\n"
        f"Auction: {auction_id}\n"
        f"NFT: {nft_token_id}\n"
        f"Wallet: {normalize_wallet(wallet)}"
    )


def recover_signer(message: str, signature: str) -> str | None:
    try:
        return Account.recover_message(encode_defunct(text=message), signature=signature)
    except Exception:
        # Malformed signatures surface as assorted eth-keys and hex errors
        return None


def payload_hash(payload: dict[str, object]) -> str:
    canonical = json.dumps(payload, sort_keys=True, separators=(",", ":"))
    return "0x" + keccak(text=canonical).hex()


class GatePassService:
    """Issues gate passes and garbage-collects expired ones."""

    def __init__(
        self,
        gate: AccessGate,
        ledger_factory: LedgerFactory,
        *,
        ttl_hours: int = 24,
        clock: Clock = utcnow,
    ) -> None:
        self.gate = gate
        self.ledger_factory = ledger_factory
        self.ttl = timedelta(hours=ttl_hours)
        self.clock = clock

    async def issue(
        self,
        auction_id: int,
        nft_token_id: int,
        wallet: str,
        signature: str,
        user_id: str,
    ) -> IssuedGatePass:
        wallet = normalize_wallet(wallet)
        signer = recover_signer(gate_pass_message(auction_id, nft_token_id, wallet), signature)
        if not same_wallet(signer, wallet):
            raise ProofMismatchError("Signature was not produced by your wallet")

        if not await self.gate.check_redeemable(auction_id, nft_token_id, wallet):
            raise ProofMismatchError("NFT cannot be used for meeting access")

        now = self.clock()
        nonce = secrets.token_hex(16)
        expires_at = now + self.ttl
        digest = payload_hash(
            {
                "auctionId": auction_id,
                "nftTokenId": nft_token_id,
                "userAddress": wallet,
                "nonce": nonce,
                "timestamp": int(now.timestamp() * 1000),
                "action": GATE_PASS_ACTION,
            }
        )

        async with self.ledger_factory() as ledger:
            await ledger.add_gate_pass(
                GatePass(
                    nonce=nonce,
                    user_id=user_id,
                    wallet_address=wallet,
                    auction_id=auction_id,
                    nft_token_id=nft_token_id,
                    payload_hash=digest,
                    signature=signature,
                    expires_at=expires_at,
                    used=False,
                )
            )

        logger.info(
            "gate_pass_issued",
            auction_id=auction_id,
            nft_token_id=nft_token_id,
            expires_at=expires_at.isoformat(),
        )
        return IssuedGatePass(
            nonce=nonce,
            auction_id=auction_id,
            nft_token_id=nft_token_id,
            wallet=wallet,
            payload_hash=digest,
            expires_at=expires_at,
        )

    async def cleanup_expired(self) -> int:
        async with self.ledger_factory() as ledger:
            removed = await ledger.delete_expired_gate_passes(self.clock())
        logger.info("gate_passes_cleaned_up", removed=removed)
        return removed
