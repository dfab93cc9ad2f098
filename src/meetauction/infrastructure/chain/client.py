"""Web3 client for the MeetingAuction contract.

Reads are idempotent and retried on transient failures. Writes are signed
with the platform key, serialized per signer and never retried here; the
next orchestrator scan is the retry.
"""

import asyncio
from collections.abc import Awaitable, Callable, Mapping
from typing import Any, TypeVar

from eth_account import Account
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)
from web3 import AsyncHTTPProvider, AsyncWeb3, Web3
from web3.exceptions import (
    ContractLogicError,
    MismatchedABI,
    TimeExhausted,
    TransactionNotFound,
    Web3ValidationError,
)

from meetauction.config import Settings
from meetauction.domain.auctions.types import AuctionSnapshot, ReceiptLog, TxReceipt
from meetauction.infrastructure.chain.abi import ALREADY_ENDED_MARKER, MEETING_AUCTION_ABI
from meetauction.shared.exceptions import (
    ChainTransactionError,
    ChainUnavailableError,
    ConfigurationError,
)
from meetauction.shared.logging import get_logger
from meetauction.shared.wallets import normalize_wallet

logger = get_logger(__name__)

T = TypeVar("T")

UINT256_MAX = 2**256 - 1

# The contract answered, or the call could not be encoded; never an outage
_PASS_THROUGH_ERRORS = (
    ContractLogicError,
    TransactionNotFound,
    MismatchedABI,
    Web3ValidationError,
)
_INVALID_ARGUMENT_ERRORS = (MismatchedABI, Web3ValidationError)


def snapshot_from_tuple(
    auction_id: int,
    raw: tuple[Any, ...],
    default_duration_minutes: int = 60,
) -> AuctionSnapshot:
    """Build a snapshot from the getAuction struct (see AUCTION_TUPLE_COMPONENTS)."""
    (
        _id,
        host,
        start_block,
        end_block,
        reserve_price,
        highest_bid,
        highest_bidder,
        metadata_uri,
        host_twitter_id,
        ended,
        meeting_scheduled,
        duration,
        *rest,
    ) = raw
    nft_token_id = int(rest[0]) if rest else 0
    return AuctionSnapshot(
        auction_id=auction_id,
        host=normalize_wallet(str(host)),
        start_block=int(start_block),
        end_block=int(end_block),
        reserve_price_wei=int(reserve_price),
        highest_bid_wei=int(highest_bid),
        highest_bidder=normalize_wallet(str(highest_bidder)),
        ended=bool(ended),
        meeting_scheduled=bool(meeting_scheduled),
        meeting_duration_minutes=int(duration) or default_duration_minutes,
        nft_token_id=nft_token_id,
        host_twitter_id=str(host_twitter_id),
        metadata_uri=str(metadata_uri),
    )


def receipt_from_web3(receipt: Mapping[str, Any]) -> TxReceipt:
    """Convert a web3 receipt (AttributeDict of HexBytes) into a TxReceipt."""
    logs = tuple(
        ReceiptLog(
            address=normalize_wallet(str(log["address"])),
            topics=tuple(Web3.to_hex(topic).lower() for topic in log["topics"]),
            data=Web3.to_hex(log["data"]) if log.get("data") else "0x",
        )
        for log in receipt.get("logs", [])
    )
    to = receipt.get("to")
    return TxReceipt(
        tx_hash=Web3.to_hex(receipt["transactionHash"]).lower(),
        status=int(receipt["status"]),
        sender=normalize_wallet(str(receipt["from"])),
        block_number=int(receipt["blockNumber"]),
        logs=logs,
        to=normalize_wallet(str(to)) if to else None,
        gas_used=receipt.get("gasUsed"),
    )


class Web3ChainClient:
    """ChainReader and ChainWriter over an EVM JSON-RPC endpoint."""

    def __init__(
        self,
        rpc_url: str,
        contract_address: str,
        *,
        chain_id: int,
        private_key: str = "",
        rpc_timeout_seconds: float = 10.0,
        tx_timeout_seconds: float = 120.0,
        read_attempts: int = 3,
        read_backoff_seconds: float = 1.0,
        default_meeting_duration_minutes: int = 60,
        w3: AsyncWeb3 | None = None,
    ) -> None:
        self.w3 = w3 or AsyncWeb3(
            AsyncHTTPProvider(rpc_url, request_kwargs={"timeout": rpc_timeout_seconds})
        )
        self.contract_address = Web3.to_checksum_address(contract_address)
        self.contract = self.w3.eth.contract(address=self.contract_address, abi=MEETING_AUCTION_ABI)
        self.chain_id = chain_id
        self.rpc_timeout = rpc_timeout_seconds
        self.tx_timeout = tx_timeout_seconds
        self.read_attempts = max(1, read_attempts)
        self.read_backoff = read_backoff_seconds
        self.default_meeting_duration = default_meeting_duration_minutes
        self._account = Account.from_key(private_key) if private_key else None
        # One in-flight transaction per signer keeps pending nonces ordered
        self._write_lock = asyncio.Lock()

    @classmethod
    def from_settings(cls, settings: Settings) -> "Web3ChainClient":
        return cls(
            settings.chain_rpc_url,
            settings.auction_contract_address,
            chain_id=settings.chain_id,
            private_key=settings.platform_private_key,
            rpc_timeout_seconds=settings.chain_rpc_timeout_seconds,
            tx_timeout_seconds=settings.chain_tx_timeout_seconds,
            read_attempts=settings.chain_read_attempts,
            default_meeting_duration_minutes=settings.default_meeting_duration_minutes,
        )

    @property
    def signer_address(self) -> str | None:
        return self._account.address if self._account else None

    async def _call(
        self,
        label: str,
        make_call: Callable[[], Awaitable[T]],
        timeout: float | None = None,
    ) -> T:
        """Build and await one RPC with a deadline, mapping every other failure.

        Reverts, unknown transactions and arguments the ABI cannot encode
        pass through untouched so callers can tell "the contract said no"
        apart from "the node is unreachable". Anything else (HTTP errors
        from the node, dropped connections, malformed responses) is an
        outage.
        """
        try:
            return await asyncio.wait_for(make_call(), timeout=timeout or self.rpc_timeout)
        except _PASS_THROUGH_ERRORS:
            raise
        except Exception as e:
            logger.warning("chain_call_failed", call=label, error=str(e))
            raise ChainUnavailableError(
                f"Chain call {label} failed",
                details={"call": label, "error": str(e)},
            ) from e

    async def _read(self, label: str, make_call: Callable[[], Awaitable[T]]) -> T:
        """Idempotent read with exponential backoff on ChainUnavailableError."""
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.read_attempts),
            wait=wait_exponential(multiplier=self.read_backoff, max=10),
            retry=retry_if_exception_type(ChainUnavailableError),
            reraise=True,
        ):
            with attempt:
                return await self._call(label, make_call)
        raise AssertionError("unreachable")

    # ----- ChainReader -----

    async def get_block_height(self) -> int:
        return int(await self._read("block_number", lambda: self.w3.eth.block_number))

    async def get_auction_count(self) -> int:
        return int(
            await self._read(
                "auctionCounter", lambda: self.contract.functions.auctionCounter().call()
            )
        )

    async def get_auction(self, auction_id: int) -> AuctionSnapshot:
        raw = await self._read(
            "getAuction", lambda: self.contract.functions.getAuction(auction_id).call()
        )
        return snapshot_from_tuple(auction_id, tuple(raw), self.default_meeting_duration)

    async def get_transaction_receipt(self, tx_hash: str) -> TxReceipt | None:
        try:
            receipt = await self._call(
                "get_transaction_receipt", lambda: self.w3.eth.get_transaction_receipt(tx_hash)
            )
        except TransactionNotFound:
            return None
        # Some nodes answer null instead of an error for pending transactions
        if receipt is None:
            return None
        return receipt_from_web3(receipt)

    async def owner_of(self, nft_token_id: int) -> str | None:
        try:
            owner = await self._call(
                "ownerOf", lambda: self.contract.functions.ownerOf(nft_token_id).call()
            )
        except ContractLogicError:
            # ownerOf reverts only for tokens that do not exist (or were burned)
            return None
        except _INVALID_ARGUMENT_ERRORS:
            # Not a uint256, so no such token can exist
            return None
        return normalize_wallet(str(owner))

    async def can_burn_for_meeting(self, nft_token_id: int, wallet: str) -> bool:
        try:
            allowed = await self._call(
                "canBurnForMeeting",
                lambda: self.contract.functions.canBurnForMeeting(
                    nft_token_id, Web3.to_checksum_address(wallet)
                ).call(),
            )
        except (ContractLogicError, *_INVALID_ARGUMENT_ERRORS):
            return False
        return bool(allowed)

    async def get_nfts_owned_by(self, wallet: str) -> list[tuple[int, int]]:
        token_ids, auction_ids = await self._call(
            "getNFTsOwnedByUser",
            lambda: self.contract.functions.getNFTsOwnedByUser(
                Web3.to_checksum_address(wallet)
            ).call(),
        )
        return [(int(t), int(a)) for t, a in zip(token_ids, auction_ids, strict=False)]

    # ----- ChainWriter -----

    async def _send(self, label: str, function: Any) -> str:
        if self._account is None:
            raise ConfigurationError("PLATFORM_PRIVATE_KEY is required for chain writes")

        async with self._write_lock:
            sender = self._account.address
            nonce = await self._call(
                "get_transaction_count",
                lambda: self.w3.eth.get_transaction_count(sender, "pending"),
            )
            tx = await self._call(
                f"{label}.build_transaction",
                lambda: function.build_transaction(
                    {"from": sender, "nonce": nonce, "chainId": self.chain_id}
                ),
            )
            signed = self._account.sign_transaction(tx)
            tx_hash = Web3.to_hex(
                await self._call(
                    f"{label}.send_raw_transaction",
                    lambda: self.w3.eth.send_raw_transaction(signed.raw_transaction),
                )
            )
            logger.info("chain_tx_submitted", call=label, tx_hash=tx_hash, nonce=nonce)

            try:
                receipt = await self._call(
                    f"{label}.wait_for_receipt",
                    lambda: self.w3.eth.wait_for_transaction_receipt(
                        tx_hash, timeout=self.tx_timeout
                    ),
                    timeout=self.tx_timeout + self.rpc_timeout,
                )
            except ChainUnavailableError as e:
                if isinstance(e.__cause__, TimeExhausted | TimeoutError):
                    logger.warning("chain_tx_unconfirmed", call=label, tx_hash=tx_hash)
                raise

        if int(receipt["status"]) != 1:
            raise ChainTransactionError(f"{label} transaction reverted", tx_hash=tx_hash)

        logger.info(
            "chain_tx_confirmed",
            call=label,
            tx_hash=tx_hash,
            gas_used=receipt.get("gasUsed"),
        )
        return tx_hash

    async def end_auction(self, auction_id: int) -> str | None:
        try:
            return await self._send("endAuction", self.contract.functions.endAuction(auction_id))
        except ContractLogicError as e:
            if ALREADY_ENDED_MARKER in str(e).lower():
                logger.info("auction_already_ended_on_chain", auction_id=auction_id)
                return None
            raise ChainTransactionError(f"endAuction reverted: {e}") from e
        except _INVALID_ARGUMENT_ERRORS as e:
            raise ChainTransactionError(f"endAuction arguments rejected: {e}") from e

    async def schedule_meeting(self, auction_id: int, meeting_reference: str) -> str:
        try:
            return await self._send(
                "scheduleMeeting",
                self.contract.functions.scheduleMeeting(auction_id, meeting_reference),
            )
        except ContractLogicError as e:
            raise ChainTransactionError(f"scheduleMeeting reverted: {e}") from e
        except _INVALID_ARGUMENT_ERRORS as e:
            raise ChainTransactionError(f"scheduleMeeting arguments rejected: {e}") from e
