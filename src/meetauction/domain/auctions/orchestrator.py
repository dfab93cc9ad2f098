"""Auction completion orchestrator.

Runs on a timer in the background worker. Each scan reads every auction
from the contract, picks the ones that have definitively ended with a
winning bid (or were ended earlier but never got a meeting), and drives
each through AuctionCompletionWorkflow one at a time.

Failed auctions are not retried within a scan; they are picked up again
by the next scan for as long as their meeting is missing.
"""

import asyncio
import time

from meetauction.domain.auctions.ports import ChainReaderPort, LedgerFactory
from meetauction.domain.auctions.types import AuctionSnapshot, ScanResult, WorkflowOutcome
from meetauction.domain.auctions.workflow import AuctionCompletionWorkflow
from meetauction.observability.metrics import SCAN_DURATION, SCAN_SKIPPED, WORKFLOW_OUTCOMES
from meetauction.shared.exceptions import InvariantViolationError
from meetauction.shared.logging import get_logger

logger = get_logger(__name__)


class AuctionOrchestrator:
    """Single-flight scanner over the auction contract.

    One instance per process. Overlapping trigger_scan calls do not queue:
    the late caller gets ScanResult(reentrant_skip=True) back immediately.
    """

    def __init__(
        self,
        chain_reader: ChainReaderPort,
        workflow: AuctionCompletionWorkflow,
        ledger_factory: LedgerFactory,
        *,
        end_unbid_auctions: bool = False,
    ) -> None:
        self.chain_reader = chain_reader
        self.workflow = workflow
        self.ledger_factory = ledger_factory
        self.end_unbid_auctions = end_unbid_auctions
        self._scan_lock = asyncio.Lock()

    @property
    def scanning(self) -> bool:
        return self._scan_lock.locked()

    async def trigger_scan(self) -> ScanResult:
        """Run one scan cycle unless another is in flight."""
        if self._scan_lock.locked():
            logger.info("auction_scan_already_running")
            SCAN_SKIPPED.inc()
            return ScanResult(reentrant_skip=True)

        async with self._scan_lock:
            started = time.perf_counter()
            result = await self._scan()
            duration = time.perf_counter() - started

        SCAN_DURATION.observe(duration)
        for outcome in result.outcomes.values():
            WORKFLOW_OUTCOMES.labels(outcome=outcome.value).inc()
        logger.info(
            "auction_scan_completed",
            current_block=result.current_block,
            examined=result.examined,
            processed=result.processed,
            skipped=result.skipped,
            skipped_no_bids=result.skipped_no_bids,
            failed=result.failed,
            read_errors=result.read_errors,
            duration_seconds=round(duration, 3),
        )
        return result

    async def _scan(self) -> ScanResult:
        result = ScanResult()
        result.current_block = await self.chain_reader.get_block_height()
        auction_count = await self.chain_reader.get_auction_count()

        snapshots = await self._read_snapshots(auction_count, result)
        candidates = await self._select(snapshots, result.current_block, result)

        for snapshot in candidates:
            outcome = await self._process(snapshot)
            result.outcomes[snapshot.auction_id] = outcome
            if outcome in (WorkflowOutcome.COMPLETED, WorkflowOutcome.ENDED_WITHOUT_MEETING):
                result.processed += 1
            elif outcome is WorkflowOutcome.FAILED:
                result.failed += 1
            else:
                result.skipped += 1

        return result

    async def _read_snapshots(self, auction_count: int, result: ScanResult) -> list[AuctionSnapshot]:
        snapshots: list[AuctionSnapshot] = []
        for auction_id in range(1, auction_count + 1):
            result.examined += 1
            try:
                snapshots.append(await self.chain_reader.get_auction(auction_id))
            except Exception as e:
                # One unreadable auction must not hide the others
                result.read_errors += 1
                logger.warning("auction_read_failed", auction_id=auction_id, error=str(e))
        return snapshots

    async def _select(
        self,
        snapshots: list[AuctionSnapshot],
        current_block: int,
        result: ScanResult,
    ) -> list[AuctionSnapshot]:
        ended_with_winner = [s.auction_id for s in snapshots if s.ended and s.has_winning_bid]
        completed: set[int] = set()
        if ended_with_winner:
            async with self.ledger_factory() as ledger:
                completed = await ledger.auctions_with_meetings(ended_with_winner)

        candidates: list[AuctionSnapshot] = []
        for snapshot in snapshots:
            if snapshot.ended:
                if snapshot.has_winning_bid and snapshot.auction_id not in completed:
                    logger.info("auction_resuming_interrupted", auction_id=snapshot.auction_id)
                    candidates.append(snapshot)
                continue

            if not snapshot.is_expired_at(current_block):
                continue

            if not snapshot.has_winning_bid and not self.end_unbid_auctions:
                result.skipped_no_bids += 1
                logger.info(
                    "auction_expired_without_bids",
                    auction_id=snapshot.auction_id,
                    end_block=snapshot.end_block,
                )
                continue

            candidates.append(snapshot)
        return candidates

    async def _process(self, snapshot: AuctionSnapshot) -> WorkflowOutcome:
        auction_id = snapshot.auction_id
        try:
            outcome = await self.workflow.run(snapshot)
        except InvariantViolationError as e:
            logger.error("auction_invariant_violation", auction_id=auction_id, error=e.message)
            await self._record_failure(auction_id, f"invariant: {e.message}")
            return WorkflowOutcome.INVARIANT_VIOLATION
        except Exception as e:
            logger.warning(
                "auction_workflow_failed",
                auction_id=auction_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            await self._record_failure(auction_id, f"{type(e).__name__}: {e}")
            return WorkflowOutcome.FAILED

        logger.info("auction_workflow_finished", auction_id=auction_id, outcome=outcome.value)
        return outcome

    async def _record_failure(self, auction_id: int, error: str) -> None:
        try:
            async with self.ledger_factory() as ledger:
                await ledger.record_processing_failure(auction_id, error)
        except Exception as e:
            logger.warning("processing_failure_not_recorded", auction_id=auction_id, error=str(e))
