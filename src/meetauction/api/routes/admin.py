"""Operator endpoints."""

from typing import Any

from fastapi import APIRouter, HTTPException

from meetauction.api.middleware.auth import RequireAdmin
from meetauction.config import get_settings
from meetauction.infrastructure.queue.client import run_auction_scan
from meetauction.shared.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.post("/auctions/scan")
async def trigger_auction_scan(user: RequireAdmin) -> dict[str, Any]:
    """Run one auction scan in the worker and return its counts."""
    logger.info("manual_scan_requested", user_id=user.id)
    try:
        return await run_auction_scan(get_settings().admin_scan_timeout_seconds)
    except TimeoutError:
        raise HTTPException(
            status_code=504,
            detail="Scan is still running; check the worker logs for its result",
        )
