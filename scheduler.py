import logging
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from config import get_settings
from database import Database
from services import rebuild_all_user_totals

logger = logging.getLogger(__name__)


class SchedulerManager:
    """Refreshes the cached per-user totals once a night."""

    def __init__(self, db: Database) -> None:
        settings = get_settings()
        self.db = db
        self.refresh_hour = settings.totals_refresh_hour
        self.scheduler = BackgroundScheduler(timezone=settings.timezone)

    def _run_job(self, source: str = "manual") -> int:
        logger.info(f"scheduler_run: source={source}")
        with self.db.session_scope() as session:
            count = rebuild_all_user_totals(session)
        logger.info(f"scheduler_run: source={source} users_refreshed={count}")
        return count

    def start(self) -> None:
        self._run_job("startup")

        trigger = CronTrigger(hour=self.refresh_hour, minute=0)
        self.scheduler.add_job(
            self._run_job,
            trigger,
            args=[f"daily_{self.refresh_hour:02d}:00"],
            id="user_totals_daily",
            replace_existing=True,
            misfire_grace_time=3600,
        )

        self.scheduler.start()
        logger.info(f"Scheduler started with daily {self.refresh_hour:02d}:00 totals refresh")

    def stop(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Scheduler stopped")
