"""Central scheduler: cron-style nudge jobs on an asyncio APScheduler."""

import structlog
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from config.settings import Settings
from scheduler.jobs import MISFIRE_GRACE_SECONDS, nudge_slots
from scheduler.nudges import NudgeRunner, nudge_handler

log = structlog.get_logger(__name__)


class Scheduler:
    """Registers one cron job per nudge slot in the configured time zone."""

    def __init__(self, settings: Settings, runner: NudgeRunner) -> None:
        self.settings = settings
        self.runner = runner
        self._scheduler = AsyncIOScheduler(timezone=settings.timezone)

    def register_jobs(self) -> list[str]:
        """Add every nudge slot; returns the registered job ids."""
        job_ids: list[str] = []
        for slot in nudge_slots(self.settings):
            # Pending jobs are not deduplicated by replace_existing until start()
            if self._scheduler.get_job(slot.slot_id) is not None:
                self._scheduler.remove_job(slot.slot_id)
            self._scheduler.add_job(
                nudge_handler(self.runner, slot.job_id),
                CronTrigger(hour=slot.at.hour, minute=slot.at.minute, timezone=self.settings.timezone),
                id=slot.slot_id,
                name=slot.job_id,
                replace_existing=True,
                coalesce=True,
                max_instances=1,
                misfire_grace_time=MISFIRE_GRACE_SECONDS,
            )
            job_ids.append(slot.slot_id)
        log.info("scheduler_jobs_registered", jobs=job_ids, timezone=self.settings.timezone)
        return job_ids

    def start(self) -> None:
        """Register and start all scheduled jobs. Must be called inside a running loop."""
        if self._scheduler.running:
            return
        self.register_jobs()
        self._scheduler.start()
        log.info("scheduler_all_tasks_started")

    def stop(self) -> None:
        """Stop all scheduled jobs."""
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)
            log.info("scheduler_stopped")

    @property
    def jobs(self):
        return self._scheduler.get_jobs()
