"""
Background auto-assignment timer.

APScheduler fires an assignment pass every few seconds (with jitter so
several workers do not fire in lockstep). Passes are single-flight: an
``asyncio.Lock`` covers overlapping ticks in this process and a redis lock
covers other workers. Correctness does not depend on either lock, the
conditional updates in ``AssignmentService`` already make a losing pass a
no-op; the locks just avoid wasted round-trips. When redis is unreachable
the pass runs without its lock.
"""
import asyncio
from typing import Callable, List, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from redis.exceptions import LockError, RedisError
from sqlalchemy.ext.asyncio import AsyncSession

from queuedesk.core.config import settings
from queuedesk.core.logger import logger
from queuedesk.schemas.assignment import AssignmentResult
from queuedesk.services.assignment_service import AssignmentService
from queuedesk.services.settings_service import SettingsService

AUTO_ASSIGN_LOCK_NAME = "auto-assign"

# Global scheduler instance
scheduler = AsyncIOScheduler()


class AutoAssignRunner:
    def __init__(
        self,
        session_factory: Callable[[], AsyncSession],
        lock_client=None,
        lock_timeout: int = settings.AUTO_ASSIGN_LOCK_TIMEOUT_SECONDS,
    ):
        self.session_factory = session_factory
        self.lock_client = lock_client
        self.lock_timeout = lock_timeout
        self._local_lock = asyncio.Lock()

    async def run_once(self) -> Optional[List[AssignmentResult]]:
        """
        Run one pass unless another is in flight.

        Returns None when the pass was skipped because of a concurrent one,
        otherwise the results of ``assign_all`` (empty when auto-assignment
        is switched off).
        """
        if self._local_lock.locked():
            logger.debug("Auto-assign pass already running in this process, skipping")
            return None

        async with self._local_lock:
            if self.lock_client is None:
                return await self._run_pass()

            lock = self.lock_client.lock(AUTO_ASSIGN_LOCK_NAME, timeout=self.lock_timeout)
            try:
                acquired = await lock.acquire(blocking=False)
            except RedisError as e:
                logger.warning(f"Auto-assign lock unavailable ({str(e)}), running pass without it")
                return await self._run_pass()

            if not acquired:
                logger.debug("Auto-assign pass running on another worker, skipping")
                return None
            try:
                return await self._run_pass()
            finally:
                try:
                    await lock.release()
                except LockError:
                    logger.warning("Auto-assign lock expired before the pass finished")
                except RedisError as e:
                    logger.warning(f"Could not release auto-assign lock: {str(e)}")

    async def _run_pass(self) -> List[AssignmentResult]:
        async with self.session_factory() as session:
            system_settings = await SettingsService(session).get_settings()
            if not system_settings.auto_assign_enabled:
                return []

            results = await AssignmentService(session).assign_all()

        assigned = sum(1 for result in results if result.assigned)
        if assigned:
            logger.info(f"Auto-assign pass assigned {assigned} token(s), stopped on {results[-1].outcome.value}")
        return results


async def auto_assign_job(runner: AutoAssignRunner):
    """
    Background job for the auto-assignment timer.
    Failures are logged and the next tick tries again.
    """
    try:
        await runner.run_once()
    except Exception as e:
        logger.error(f"Scheduled auto-assign job failed: {str(e)}", exc_info=True)


def start_scheduler(runner: AutoAssignRunner):
    scheduler.add_job(
        auto_assign_job,
        IntervalTrigger(
            seconds=settings.AUTO_ASSIGN_INTERVAL_SECONDS,
            jitter=settings.AUTO_ASSIGN_JITTER_SECONDS or None,
        ),
        args=[runner],
        id="auto_assign",
        name="Assign waiting tokens to free desks",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )
    scheduler.start()
    logger.info(
        f"Auto-assign scheduler started (every {settings.AUTO_ASSIGN_INTERVAL_SECONDS}s, "
        f"jitter {settings.AUTO_ASSIGN_JITTER_SECONDS}s)"
    )


def shutdown_scheduler():
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Auto-assign scheduler stopped")
