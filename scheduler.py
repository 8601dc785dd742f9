import logging
from typing import Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from config import get_settings
from database import session_scope
from periods import day_key, utcnow
from services import generate_daily_recommendations


logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class SchedulerManager:
    def __init__(self, scheduler: Optional[BackgroundScheduler] = None) -> None:
        self.settings = get_settings()
        self.scheduler = scheduler or BackgroundScheduler(
            timezone=self.settings.timezone
        )

    def _run_job(self, source: str = "manual") -> int:
        day = day_key(utcnow(), self.settings.timezone)
        logger.info(f"scheduler_run: source={source} date={day}")
        with session_scope() as session:
            count = generate_daily_recommendations(session, day, self.settings)
        logger.info(
            f"scheduler_run: source={source} date={day} recommendations_created={count}"
        )
        return count

    def start(self) -> None:
        self._run_job("startup")

        trigger = CronTrigger(hour=self.settings.recommendation_hour, minute=0)
        self.scheduler.add_job(
            self._run_job,
            trigger,
            args=["daily"],
            id="recommendations_daily",
            replace_existing=True,
            misfire_grace_time=3600,
        )

        self.scheduler.start()
        logger.info(
            f"Scheduler started with daily recommendations at "
            f"{self.settings.recommendation_hour:02d}:00"
        )

    def stop(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Scheduler stopped")
