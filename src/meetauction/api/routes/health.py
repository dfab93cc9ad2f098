"""Health check endpoints.

/ready reports on everything a scan or a redemption needs: the ledger
database, the job queue and the chain node.
"""

import asyncio
from typing import Any, cast

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel
from sqlalchemy import literal, select
from sqlalchemy.ext.asyncio import AsyncSession

from meetauction.config import get_settings
from meetauction.infrastructure.database.connection import get_session
from meetauction.shared.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(tags=["Health"])

# Readiness must answer well inside a load balancer's probe interval
CHAIN_CHECK_TIMEOUT_SECONDS = 3.0


class HealthResponse(BaseModel):
    status: str
    version: str
    chain_id: int
    contract_address: str


class ReadyResponse(BaseModel):
    ready: bool
    checks: dict[str, bool]
    block_height: int | None = None


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Liveness only; touches no dependency."""
    from meetauction import __version__

    settings = get_settings()
    return HealthResponse(
        status="healthy",
        version=__version__,
        chain_id=settings.chain_id,
        contract_address=settings.auction_contract_address.lower(),
    )


async def _chain_block_height(request: Request) -> int | None:
    services = getattr(request.app.state, "services", None)
    if services is None:
        logger.warning("ready_chain_check_skipped", reason="services not initialized")
        return None
    try:
        return await asyncio.wait_for(
            services.chain.get_block_height(), timeout=CHAIN_CHECK_TIMEOUT_SECONDS
        )
    except Exception as e:
        logger.warning("ready_chain_check_failed", error=str(e))
        return None


@router.get("/ready", response_model=ReadyResponse)
async def readiness_check(
    request: Request,
    session: AsyncSession = Depends(get_session),
) -> ReadyResponse:
    """Readiness check over the database, the job queue and the chain node."""
    checks: dict[str, bool] = {}

    try:
        await session.execute(select(literal(1)))
        checks["database"] = True
    except Exception as e:
        logger.warning("ready_database_check_failed", error=str(e))
        checks["database"] = False

    try:
        import redis.asyncio as redis

        settings = get_settings()
        redis_client = getattr(request.app.state, "redis_client", None)
        if redis_client is None:
            redis_client = cast(Any, redis.from_url)(str(settings.redis_url))
            request.app.state.redis_client = redis_client
        await redis_client.ping()
        checks["redis"] = True
    except Exception as e:
        logger.warning("ready_redis_check_failed", error=str(e))
        checks["redis"] = False

    block_height = await _chain_block_height(request)
    checks["chain"] = block_height is not None

    return ReadyResponse(ready=all(checks.values()), checks=checks, block_height=block_height)
