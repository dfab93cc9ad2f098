"""Custom exception hierarchy for meetauction."""

from enum import Enum
from typing import Any


class MeetAuctionError(Exception):
    """Base exception for all meetauction errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)


class ConfigurationError(MeetAuctionError):
    """A collaborator is used without the configuration it needs."""

    pass


# ----- Authentication Errors -----


class AuthenticationError(MeetAuctionError):
    """Authentication failed."""

    pass


class TokenExpiredError(AuthenticationError):
    """Session token has expired."""

    pass


class TokenInvalidError(AuthenticationError):
    """Session token is invalid."""

    pass


class UnauthorizedError(MeetAuctionError):
    """User is not authorized to perform this action."""

    pass


# ----- Resource Errors -----


class NotFoundError(MeetAuctionError):
    """Requested resource was not found."""

    def __init__(self, resource: str, identifier: str) -> None:
        super().__init__(
            message=f"{resource} not found",
            details={"resource": resource, "identifier": identifier},
        )


class ConflictError(MeetAuctionError):
    """Resource conflict (e.g., duplicate)."""

    pass


# ----- Validation Errors -----


class ValidationError(MeetAuctionError):
    """Input validation failed."""

    pass


# ----- External Service Errors -----


class ExternalServiceError(MeetAuctionError):
    """Error from an external service."""

    pass


class ChainUnavailableError(ExternalServiceError):
    """Chain RPC failed or timed out. Always retryable."""

    pass


class ChainTransactionError(ExternalServiceError):
    """A submitted transaction reverted or was mined with a failure status."""

    def __init__(self, message: str, tx_hash: str | None = None) -> None:
        super().__init__(message=message, details={"tx_hash": tx_hash})
        self.tx_hash = tx_hash


class RoomProvisioningError(ExternalServiceError):
    """Room descriptor or credential could not be produced."""

    pass


# ----- Orchestration Errors -----


class InvariantViolationError(MeetAuctionError):
    """Chain or ledger state contradicts what the workflow relies on.

    Never retried within a cycle; the auction is flagged for an operator.
    """

    def __init__(self, auction_id: int, message: str) -> None:
        super().__init__(message=message, details={"auction_id": auction_id})
        self.auction_id = auction_id


# ----- Access Gate Errors -----


class GateErrorReason(str, Enum):
    """Why the access gate rejected a redemption."""

    NOT_FOUND = "not_found"
    EXPIRED = "expired"
    CONFLICT = "conflict"
    INVALID_TRANSACTION = "invalid_transaction"
    WALLET_MISMATCH = "wallet_mismatch"
    PROOF_MISMATCH = "proof_mismatch"
    UPSTREAM_UNAVAILABLE = "upstream_unavailable"


class GateError(MeetAuctionError):
    """Base class for access gate rejections."""

    reason: GateErrorReason

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message=message, details=details)

    @property
    def retryable(self) -> bool:
        return self.reason is GateErrorReason.UPSTREAM_UNAVAILABLE


class GateNotFoundError(GateError):
    """No meeting exists for the auction."""

    reason = GateErrorReason.NOT_FOUND


class GateExpiredError(GateError):
    """The meeting (or gate pass) has expired."""

    reason = GateErrorReason.EXPIRED


class GateConflictError(GateError):
    """The burn transaction (or gate pass) was already used."""

    reason = GateErrorReason.CONFLICT


class InvalidTransactionError(GateError):
    """The burn transaction is unknown or did not succeed."""

    reason = GateErrorReason.INVALID_TRANSACTION


class WalletMismatchError(GateError):
    """The burn transaction was not sent by the claiming wallet."""

    reason = GateErrorReason.WALLET_MISMATCH


class ProofMismatchError(GateError):
    """The burn proof does not match the claimed NFT, auction or wallet."""

    reason = GateErrorReason.PROOF_MISMATCH


class UpstreamUnavailableError(GateError):
    """The chain could not be queried in time. Safe to retry."""

    reason = GateErrorReason.UPSTREAM_UNAVAILABLE
