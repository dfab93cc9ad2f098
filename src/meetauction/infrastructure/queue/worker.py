"""Background worker using ARQ (async Redis queue).

Jobs:
- scan_auctions_job: auction completion scan (cron every SCAN_INTERVAL_MINUTES,
  once at worker start, and on demand from the admin API)
- cleanup_gate_passes_job: drop expired, unused gate passes (cron, hourly)
"""

from dataclasses import dataclass
from typing import cast

from arq import cron
from arq.connections import RedisSettings

from meetauction.config import get_settings
from meetauction.container import Services, build_services
from meetauction.infrastructure.database.connection import dispose_engine, get_session_factory
from meetauction.shared.logging import get_logger, setup_logging

logger = get_logger(__name__)


@dataclass
class JobContext:
    services: Services


# ----- Job Functions -----


async def scan_auctions_job(ctx: dict[str, object], trigger: str = "cron") -> dict[str, object]:
    """Run one orchestrator scan.

    Never raises: a failed scan is retried by the next tick, not by arq.
    """
    logger.info("job_started", job="scan_auctions", trigger=trigger)

    try:
        job_ctx = cast(JobContext, ctx["job_context"])
        result = await job_ctx.services.orchestrator.trigger_scan()

        logger.info(
            "job_completed",
            job="scan_auctions",
            processed=result.processed,
            failed=result.failed,
            reentrant_skip=result.reentrant_skip,
        )
        return {"status": "completed", **result.as_dict()}

    except Exception as e:
        logger.exception(
            "job_failed",
            job="scan_auctions",
            error=str(e),
        )
        return {"status": "failed", "error": str(e)}


async def cleanup_gate_passes_job(ctx: dict[str, object]) -> dict[str, object]:
    """Hourly cron job to garbage-collect expired gate passes."""
    logger.info("job_started", job="cleanup_gate_passes")

    try:
        job_ctx = cast(JobContext, ctx["job_context"])
        removed = await job_ctx.services.gate_passes.cleanup_expired()

        logger.info("job_completed", job="cleanup_gate_passes", removed=removed)
        return {"status": "completed", "removed": removed}

    except Exception as e:
        logger.exception(
            "job_failed",
            job="cleanup_gate_passes",
            error=str(e),
        )
        return {"status": "failed", "error": str(e)}


# ----- Worker Settings -----


async def startup(ctx: dict[str, object]) -> None:
    """Initialize worker resources on startup."""
    setup_logging(role="worker")
    logger.info("worker_starting")

    settings = get_settings()
    services = build_services(settings, get_session_factory(settings))
    if services.chain.signer_address is None:
        logger.warning("worker_without_chain_signer", detail="auctions cannot be ended")
    ctx["job_context"] = JobContext(services=services)

    logger.info(
        "worker_started",
        contract=services.chain.contract_address,
        signer=services.chain.signer_address,
        scan_interval_minutes=settings.scan_interval_minutes,
    )


async def shutdown(ctx: dict[str, object]) -> None:
    """Clean up worker resources on shutdown."""
    _ = ctx
    logger.info("worker_stopping")
    await dispose_engine()
    logger.info("worker_stopped")


def get_redis_settings() -> RedisSettings:
    """Get Redis settings from app config."""
    settings = get_settings()
    return RedisSettings.from_dsn(str(settings.redis_url))


def scan_minutes(interval: int) -> set[int]:
    """Cron minute set for an every-N-minutes schedule."""
    return set(range(0, 60, interval))


class WorkerSettings:
    """ARQ worker settings."""

    # Job functions (on-demand jobs)
    functions = [
        scan_auctions_job,
    ]

    # Redis connection - must be a RedisSettings instance, not a method
    redis_settings = get_redis_settings()

    # Lifecycle hooks
    on_startup = startup
    on_shutdown = shutdown

    # Worker config
    max_jobs = 10
    job_timeout = 600  # A full scan may wait on several transaction confirmations
    keep_result = 3600  # Keep results for 1 hour
    # Retry is by rescheduling: the next scan picks up whatever failed
    retry_jobs = False
    max_tries = 1

    # Cron jobs (scheduled tasks)
    cron_jobs = [
        cron(
            scan_auctions_job,
            minute=scan_minutes(get_settings().scan_interval_minutes),
            run_at_startup=True,
        ),
        # Every hour - Drop expired gate passes
        cron(cleanup_gate_passes_job, minute=15),
    ]
