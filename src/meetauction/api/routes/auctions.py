"""Auction listing routes.

The contract stores no title or description; hosts attach them here so the
meeting list and the winner's NFT list can show them.
"""

from fastapi import APIRouter
from pydantic import BaseModel, Field

from meetauction.api.deps import AuctionRegistryDep
from meetauction.api.middleware.auth import WalletUser
from meetauction.api.schemas import APIRequestModel, AuctionId

router = APIRouter(prefix="/auctions", tags=["Auctions"])


class ListingRequest(APIRequestModel):
    """Creator-supplied details for an auction."""

    title: str = Field(..., min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=5000)


class ListingResponse(BaseModel):
    auction_id: int
    title: str
    description: str | None
    creator_wallet: str
    ended: bool


@router.put("/{auction_id}/listing", response_model=ListingResponse)
async def register_listing(
    auction_id: AuctionId,
    body: ListingRequest,
    user: WalletUser,
    registry: AuctionRegistryDep,
) -> ListingResponse:
    """Attach a title and description to an auction the caller hosts."""
    assert user.wallet is not None
    listing = await registry.register_auction(
        auction_id,
        user.wallet,
        user.id,
        body.title,
        body.description,
    )
    return ListingResponse(**vars(listing))
