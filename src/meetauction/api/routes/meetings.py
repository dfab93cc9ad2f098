"""Meeting access API routes.

The wallet the gate checks is always the one bound to the caller's
session, never a request field.
"""

from datetime import datetime

from fastapi import APIRouter
from pydantic import BaseModel, Field

from meetauction.api.deps import AccessGateDep, GatePassServiceDep
from meetauction.api.middleware.auth import WalletUser
from meetauction.api.schemas import (
    APIRequestModel,
    AuctionId,
    NftTokenId,
    TransactionHash,
    WalletSignature,
)
from meetauction.domain.access.types import MeetingStatus
from meetauction.shared.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/meetings", tags=["Meetings"])


# ----- Request Schemas -----


class NftRequest(APIRequestModel):
    """Identifies the meeting NFT being checked."""

    nft_token_id: NftTokenId


class GatePassRequest(APIRequestModel):
    """Signed request for a gate pass."""

    nft_token_id: NftTokenId
    signature: WalletSignature


class RedeemRequest(APIRequestModel):
    """Burn proof presented to redeem meeting access."""

    nft_token_id: NftTokenId
    transaction_hash: TransactionHash
    gate_pass_nonce: str | None = Field(default=None, max_length=64)


# ----- Response Schemas -----


class MeetingSummaryResponse(BaseModel):
    auction_id: int
    title: str
    room_id: str
    meeting_url: str
    scheduled_at: datetime
    expires_at: datetime
    status: MeetingStatus
    winner_wallet: str | None
    nft_token_id: int


class MeetingListResponse(BaseModel):
    meetings: list[MeetingSummaryResponse]
    total: int


class RedeemableNftResponse(BaseModel):
    token_id: int
    auction_id: int
    title: str
    can_burn_for_meeting: bool


class NftListResponse(BaseModel):
    nfts: list[RedeemableNftResponse]
    total: int


class CheckResponse(BaseModel):
    auction_id: int
    nft_token_id: int
    redeemable: bool


class GatePassResponse(BaseModel):
    nonce: str
    auction_id: int
    nft_token_id: int
    payload_hash: str
    expires_at: datetime


class RedeemResponse(BaseModel):
    auction_id: int
    room_id: str
    room_url: str
    access_token: str
    join_url: str
    expires_at: datetime
    transaction_hash: str


# ----- Routes -----


@router.get("/mine", response_model=MeetingListResponse)
async def list_my_meetings(user: WalletUser, gate: AccessGateDep) -> MeetingListResponse:
    """Meetings for auctions the caller created."""
    assert user.wallet is not None
    summaries = await gate.list_meetings_for_creator(user.wallet)
    return MeetingListResponse(
        meetings=[MeetingSummaryResponse(**vars(s)) for s in summaries],
        total=len(summaries),
    )


@router.get("/nfts", response_model=NftListResponse)
async def list_my_nfts(user: WalletUser, gate: AccessGateDep) -> NftListResponse:
    """Meeting NFTs the caller holds."""
    assert user.wallet is not None
    nfts = await gate.list_redeemable_nfts(user.wallet)
    return NftListResponse(
        nfts=[RedeemableNftResponse(**vars(n)) for n in nfts],
        total=len(nfts),
    )


@router.post("/{auction_id}/check", response_model=CheckResponse)
async def check_redeemable(
    auction_id: AuctionId,
    body: NftRequest,
    user: WalletUser,
    gate: AccessGateDep,
) -> CheckResponse:
    """Whether the caller could burn this NFT for the meeting right now."""
    assert user.wallet is not None
    redeemable = await gate.check_redeemable(auction_id, body.nft_token_id, user.wallet)
    return CheckResponse(
        auction_id=auction_id,
        nft_token_id=body.nft_token_id,
        redeemable=redeemable,
    )


@router.post("/{auction_id}/gate-pass", response_model=GatePassResponse, status_code=201)
async def issue_gate_pass(
    auction_id: AuctionId,
    body: GatePassRequest,
    user: WalletUser,
    gate_passes: GatePassServiceDep,
) -> GatePassResponse:
    """Issue a single-use gate pass before burning."""
    assert user.wallet is not None
    issued = await gate_passes.issue(
        auction_id,
        body.nft_token_id,
        user.wallet,
        body.signature,
        user.id,
    )
    return GatePassResponse(
        nonce=issued.nonce,
        auction_id=issued.auction_id,
        nft_token_id=issued.nft_token_id,
        payload_hash=issued.payload_hash,
        expires_at=issued.expires_at,
    )


@router.post("/{auction_id}/redeem", response_model=RedeemResponse)
async def redeem_access(
    auction_id: AuctionId,
    body: RedeemRequest,
    user: WalletUser,
    gate: AccessGateDep,
) -> RedeemResponse:
    """Redeem meeting access with a burn transaction."""
    assert user.wallet is not None
    access = await gate.verify_and_redeem(
        auction_id,
        body.nft_token_id,
        user.wallet,
        body.transaction_hash,
        user.id,
        gate_pass_nonce=body.gate_pass_nonce,
    )
    return RedeemResponse(**vars(access))
