"""
============================================================================
Temporary Product Cleanup Worker - Background Sweep Job
============================================================================

Reliability Level: L5 Critical
Traceability: Every cycle carries its own correlation_id

Periodically invokes TempProductLifecycleManager.sweep_expired():
- Scans for expired, undeleted temporary products
- Deletes them remotely and marks them deleted in the ledger
- Leaves failures for the next cycle

The HTTP cleanup endpoint (driven by an external cron) and this worker call
the same sweep; run only one of them per deployment. Sweeps are not
serialized against each other.

============================================================================
"""

from typing import Callable, Optional
import asyncio
import logging
import uuid

from app.storefront.admin_client import AdminCapability
from services.temp_product_lifecycle import TempProductLifecycleManager
from services.temp_product_models import SweepReport

# Configure module logger
logger = logging.getLogger(__name__)


class CleanupWorker:
    """
    Background job sweeping expired temporary products.

    Input Constraints: interval_seconds must be positive
    Side Effects: Remote deletes, ledger writes, metrics
    """

    def __init__(
        self,
        lifecycle: TempProductLifecycleManager,
        capability_factory: Callable[[], Optional[AdminCapability]],
        interval_seconds: int = 600,
    ) -> None:
        """
        Args:
            lifecycle: Manager whose sweep_expired() is invoked
            capability_factory: Supplies an admin capability per cycle
                (None skips the cycle)
            interval_seconds: Interval between sweeps (default: 600)
        """
        if interval_seconds <= 0:
            raise ValueError(
                f"interval_seconds must be positive, got: {interval_seconds}"
            )

        self._lifecycle = lifecycle
        self._capability_factory = capability_factory
        self._interval_seconds = interval_seconds
        self._running = False
        self._task: Optional[asyncio.Task] = None

        logger.info(
            f"[CLEANUP-WORKER] Initialized | "
            f"interval_seconds={interval_seconds}"
        )

    @property
    def interval_seconds(self) -> int:
        return self._interval_seconds

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Start the background sweep task."""
        if self._running:
            logger.warning("[CLEANUP-WORKER] Already running, ignoring start request")
            return

        self._running = True
        self._task = asyncio.create_task(self._run_loop())

        logger.info(
            f"[CLEANUP-WORKER] Started | "
            f"interval_seconds={self._interval_seconds}"
        )

    async def stop(self) -> None:
        """Stop the background sweep task."""
        if not self._running:
            logger.warning("[CLEANUP-WORKER] Not running, ignoring stop request")
            return

        self._running = False

        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        logger.info("[CLEANUP-WORKER] Stopped")

    async def _run_loop(self) -> None:
        logger.info("[CLEANUP-WORKER] Starting main loop")
        loop = asyncio.get_running_loop()

        while self._running:
            try:
                # Sweep does blocking I/O
                await loop.run_in_executor(None, self.run_once)
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(
                    f"[CLEANUP-WORKER] Error in main loop | "
                    f"error={str(e)}"
                )

            try:
                await asyncio.sleep(self._interval_seconds)
            except asyncio.CancelledError:
                break

        logger.info("[CLEANUP-WORKER] Main loop exited")

    def run_once(self) -> Optional[SweepReport]:
        """
        Run one sweep synchronously.

        Returns:
            SweepReport, or None when no capability was available
        """
        correlation_id = str(uuid.uuid4())
        capability = self._capability_factory()

        if capability is None:
            logger.warning(
                f"[CLEANUP-WORKER] No admin capability - cycle skipped | "
                f"correlation_id={correlation_id}"
            )
            return None

        report = self._lifecycle.sweep_expired(capability, correlation_id=correlation_id)

        if not report.is_noop:
            logger.info(
                f"[CLEANUP-WORKER] Cycle complete | "
                f"deleted={report.deleted_count} | failed={report.failed_count} | "
                f"correlation_id={correlation_id}"
            )
        return report


# =============================================================================
# Factory Functions
# =============================================================================

_cleanup_worker_instance: Optional[CleanupWorker] = None


def get_cleanup_worker(
    lifecycle: TempProductLifecycleManager,
    capability_factory: Callable[[], Optional[AdminCapability]],
    interval_seconds: int = 600,
) -> CleanupWorker:
    """Get or create the singleton CleanupWorker."""
    global _cleanup_worker_instance

    if _cleanup_worker_instance is None:
        _cleanup_worker_instance = CleanupWorker(
            lifecycle=lifecycle,
            capability_factory=capability_factory,
            interval_seconds=interval_seconds,
        )

    return _cleanup_worker_instance


def reset_cleanup_worker() -> None:
    """Reset the singleton instance (for testing)."""
    global _cleanup_worker_instance
    _cleanup_worker_instance = None


__all__ = [
    "CleanupWorker",
    "get_cleanup_worker",
    "reset_cleanup_worker",
]
