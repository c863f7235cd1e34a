"""Scheduler for automatic syncs and deletion checks.

Jobs run inside the service's event loop through APScheduler's
AsyncIOScheduler. The engines' single-flight guards make an overlapping
run a no-op, so jobs never queue behind each other.
"""

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from blinkosync.core.config import SyncConfig
from blinkosync.core.errors import BlinkoSyncError
from blinkosync.core.service import BlinkoSyncService

logger = logging.getLogger(__name__)

SYNC_JOB_ID = "auto_sync"
DELETE_CHECK_JOB_ID = "delete_check"


class SchedulerManager:
    """Manages the interval jobs of the watch mode.

    Features:
    - Auto sync every ``auto_sync_interval`` minutes (0 disables)
    - Deletion check every ``delete_check_interval`` minutes when enabled
    - Job failures are logged and never stop the scheduler
    """

    def __init__(self, service: BlinkoSyncService):
        self.service = service
        self.scheduler = AsyncIOScheduler()
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    def start(self) -> None:
        """Register the jobs for the current config and start the scheduler."""
        if self._running:
            logger.warning("Scheduler already running")
            return

        self.apply_config(self.service.config.sync)
        self.scheduler.start()
        self._running = True
        logger.info(f"Scheduler started with {len(self.scheduler.get_jobs())} jobs")

    def stop(self) -> None:
        if not self._running:
            return
        self.scheduler.shutdown(wait=False)
        self._running = False
        logger.info("Scheduler stopped")

    def apply_config(self, sync_config: SyncConfig) -> None:
        """(Re)create the interval jobs from the sync settings."""
        self._schedule(SYNC_JOB_ID, self._run_sync, sync_config.auto_sync_interval, "Blinko sync")

        interval = sync_config.delete_check_interval if sync_config.delete_check_enabled else 0
        self._schedule(DELETE_CHECK_JOB_ID, self._run_delete_check, interval, "Blinko deletion check")

    def job_ids(self) -> list[str]:
        return [job.id for job in self.scheduler.get_jobs()]

    def _schedule(self, job_id: str, func, minutes: int, name: str) -> None:
        if self.scheduler.get_job(job_id):
            self.scheduler.remove_job(job_id)

        if minutes <= 0:
            logger.debug(f"{name} disabled")
            return

        self.scheduler.add_job(
            func,
            trigger=IntervalTrigger(minutes=minutes),
            id=job_id,
            name=name,
            replace_existing=True,
        )
        logger.info(f"{name} scheduled every {minutes} minutes")

    async def _run_sync(self) -> None:
        try:
            report = await self.service.sync_now()
            logger.info(f"Scheduled sync finished: {report.new_count} notes")
        except BlinkoSyncError as e:
            logger.error(f"Scheduled sync failed: {e}")
        except Exception:
            logger.exception("Scheduled sync crashed")

    async def _run_delete_check(self) -> None:
        try:
            removed = await self.service.check_deleted()
            logger.info(f"Scheduled deletion check finished: {removed} notes removed")
        except BlinkoSyncError as e:
            logger.error(f"Scheduled deletion check failed: {e}")
        except Exception:
            logger.exception("Scheduled deletion check crashed")
