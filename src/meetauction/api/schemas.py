"""Shared API schemas and field types.

Chain-facing values are validated here, before they reach the node: ids
must fit the contract's uint256 and hashes must be full 32-byte hex.
"""

from typing import Annotated

from fastapi import Path
from pydantic import BaseModel, ConfigDict, Field

from meetauction.infrastructure.chain.client import UINT256_MAX

TX_HASH_PATTERN = r"^0x[0-9a-fA-F]{64}$"
# personal_sign output: r, s and v
SIGNATURE_PATTERN = r"^0x[0-9a-fA-F]{130}$"

AuctionId = Annotated[int, Path(ge=1, le=UINT256_MAX, description="On-chain auction id")]
NftTokenId = Annotated[int, Field(ge=1, le=UINT256_MAX)]
TransactionHash = Annotated[str, Field(pattern=TX_HASH_PATTERN)]
WalletSignature = Annotated[str, Field(pattern=SIGNATURE_PATTERN)]


class APIRequestModel(BaseModel):
    """Base model for request bodies.

    Unknown fields are rejected; in particular a client cannot name the
    wallet to act for, which always comes from the session.
    """

    model_config = ConfigDict(extra="forbid")
