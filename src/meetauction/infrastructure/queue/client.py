"""Queue client for enqueuing background jobs."""

from typing import Any

from arq.connections import ArqRedis, RedisSettings, create_pool
from arq.jobs import Job
from redis.exceptions import RedisError

from meetauction.config import get_settings
from meetauction.shared.exceptions import ExternalServiceError
from meetauction.shared.logging import get_logger

logger = get_logger(__name__)

SCAN_AUCTIONS_JOB = "scan_auctions_job"

_pool: ArqRedis | None = None


async def get_queue_pool() -> ArqRedis:
    """Get or create the ARQ Redis connection pool."""
    global _pool
    if _pool is None:
        settings = get_settings()
        _pool = await create_pool(RedisSettings.from_dsn(str(settings.redis_url)))
    return _pool


async def close_queue_pool() -> None:
    """Close the queue pool connection."""
    global _pool
    if _pool is not None:
        await _pool.close()
        _pool = None


async def enqueue_job(
    job_name: str,
    *args: Any,
    **kwargs: Any,
) -> Job | None:
    """Enqueue a background job.

    Args:
        job_name: Name of the job function to execute
        *args: Positional arguments for the job
        **kwargs: Keyword arguments for the job

    Returns:
        The arq Job handle, or None when arq refused a duplicate job id
    """
    pool = await get_queue_pool()
    job = await pool.enqueue_job(job_name, *args, **kwargs)
    if job:
        logger.info("job_enqueued", job_name=job_name, job_id=job.job_id)
    return job


async def run_auction_scan(timeout_seconds: float) -> dict[str, Any]:
    """Enqueue a manual orchestrator scan and wait for its counts.

    The scan runs in the worker, so it shares the worker's single-flight
    guard with the cron-driven scans.
    """
    try:
        job = await enqueue_job(SCAN_AUCTIONS_JOB, trigger="manual")
    except (RedisError, OSError) as e:
        logger.warning("job_enqueue_failed", job_name=SCAN_AUCTIONS_JOB, error=str(e))
        raise ExternalServiceError("Job queue is unavailable") from e
    if job is None:
        raise ExternalServiceError("Auction scan could not be enqueued")

    result: dict[str, Any] = await job.result(timeout=timeout_seconds)
    return result
