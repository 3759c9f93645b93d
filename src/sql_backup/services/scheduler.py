"""Backup scheduler - runs the backup service on a cron schedule.

Usage:
    scheduler = BackupScheduler("0 2 * * *", service)
    await scheduler.run_now()   # one export immediately
    scheduler.start()           # then on schedule
    scheduler.stop()
"""

from datetime import datetime

import structlog
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from sql_backup.models.backup import ExportResult
from sql_backup.models.errors import ConfigurationError
from sql_backup.services.backup_service import BackupService

JOB_ID = "scheduled_backup"


def parse_schedule(schedule: str) -> CronTrigger:
    """Build a trigger from a 5-field crontab expression.

    Raises:
        ConfigurationError: If the expression is invalid.
    """
    try:
        return CronTrigger.from_crontab(schedule)
    except ValueError as e:
        raise ConfigurationError(f"Invalid cron expression: {schedule} ({e})") from e


class BackupScheduler:
    """Periodic trigger for BackupService.

    At most one scheduled run is active at a time: a run that comes due while the
    previous one is still going is skipped.
    """

    def __init__(
        self,
        schedule: str,
        service: BackupService,
        logger: structlog.stdlib.BoundLogger | None = None,
        scheduler: AsyncIOScheduler | None = None,
    ) -> None:
        self.schedule = schedule
        self._service = service
        self._scheduler = scheduler or AsyncIOScheduler()
        self._running = False
        self.logger = logger or structlog.get_logger(__name__)

    def start(self) -> None:
        """Register the backup job and start the scheduler.

        Raises:
            ConfigurationError: If the cron expression is invalid.
        """
        trigger = parse_schedule(self.schedule)
        if self._running:
            self.logger.warning("scheduler_already_running")
            return

        self._scheduler.add_job(
            self._run_scheduled,
            trigger=trigger,
            id=JOB_ID,
            name="Database backup",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        self._scheduler.start()
        self._running = True

        self.logger.info("scheduler_started", schedule=self.schedule, next_run=str(self.next_run))

    def stop(self) -> None:
        """Stop the scheduler without waiting for a running export."""
        if not self._running:
            return
        self._scheduler.shutdown(wait=False)
        self._running = False
        self.logger.info("scheduler_stopped")

    async def run_now(self) -> ExportResult:
        """Run one export immediately. Errors propagate to the caller."""
        self.logger.info("manual_backup_triggered")
        return await self._service.execute()

    async def _run_scheduled(self) -> None:
        # A failing cycle must not stop the schedule
        try:
            await self._service.execute()
        except Exception:
            self.logger.exception("scheduled_backup_failed")

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def next_run(self) -> datetime | None:
        """Next planned execution time, or None when stopped."""
        if not self._running:
            return None
        job = self._scheduler.get_job(JOB_ID)
        return job.next_run_time if job else None
