"""ABI fragments of the MeetingAuction contract used by the backend."""

from typing import Any

AUCTION_TUPLE_COMPONENTS: list[dict[str, Any]] = [
    {"name": "id", "type": "uint256"},
    {"name": "host", "type": "address"},
    {"name": "startBlock", "type": "uint256"},
    {"name": "endBlock", "type": "uint256"},
    {"name": "reservePrice", "type": "uint256"},
    {"name": "highestBid", "type": "uint256"},
    {"name": "highestBidder", "type": "address"},
    {"name": "meetingMetadataIPFS", "type": "string"},
    {"name": "hostTwitterId", "type": "string"},
    {"name": "ended", "type": "bool"},
    {"name": "meetingScheduled", "type": "bool"},
    {"name": "duration", "type": "uint256"},
    {"name": "nftTokenId", "type": "uint256"},
]


def _view(name: str, inputs: list[dict[str, Any]], outputs: list[dict[str, Any]]) -> dict[str, Any]:
    return {
        "type": "function",
        "name": name,
        "stateMutability": "view",
        "inputs": inputs,
        "outputs": outputs,
    }


def _write(name: str, inputs: list[dict[str, Any]]) -> dict[str, Any]:
    return {
        "type": "function",
        "name": name,
        "stateMutability": "nonpayable",
        "inputs": inputs,
        "outputs": [],
    }


MEETING_AUCTION_ABI: list[dict[str, Any]] = [
    _view(
        "getAuction",
        [{"name": "_auctionId", "type": "uint256"}],
        [{"name": "", "type": "tuple", "components": AUCTION_TUPLE_COMPONENTS}],
    ),
    _view("auctionCounter", [], [{"name": "", "type": "uint256"}]),
    _view(
        "ownerOf",
        [{"name": "tokenId", "type": "uint256"}],
        [{"name": "", "type": "address"}],
    ),
    _view(
        "canBurnForMeeting",
        [{"name": "_tokenId", "type": "uint256"}, {"name": "_user", "type": "address"}],
        [{"name": "", "type": "bool"}],
    ),
    _view(
        "getNFTsOwnedByUser",
        [{"name": "_user", "type": "address"}],
        [
            {"name": "tokenIds", "type": "uint256[]"},
            {"name": "auctionIds", "type": "uint256[]"},
        ],
    ),
    _write("endAuction", [{"name": "_auctionId", "type": "uint256"}]),
    _write(
        "scheduleMeeting",
        [
            {"name": "_auctionId", "type": "uint256"},
            {"name": "_meetingAccessHash", "type": "string"},
        ],
    ),
    {
        "type": "event",
        "name": "NFTBurnedForMeeting",
        "anonymous": False,
        "inputs": [
            {"name": "tokenId", "type": "uint256", "indexed": True},
            {"name": "auctionId", "type": "uint256", "indexed": True},
            {"name": "user", "type": "address", "indexed": True},
        ],
    },
]

# Revert reason meaning the endAuction call is redundant rather than failed
ALREADY_ENDED_MARKER = "already ended"
