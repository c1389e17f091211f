"""
APScheduler 调度后端 - ISchedulerBackend 的 BackgroundScheduler 实现
"""
from typing import Callable, Dict, List, Optional
import logging

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from hostel.core.scheduler import ISchedulerBackend

logger = logging.getLogger(__name__)


def _job_info(job) -> Dict:
    return {
        "id": job.id,
        "name": job.name or job.id,
        "trigger": str(job.trigger),
        "next_run_time": job.next_run_time.isoformat() if job.next_run_time else None,
        "status": "active" if job.next_run_time else "paused",
    }


class APSchedulerBackend(ISchedulerBackend):
    """BackgroundScheduler 后端"""

    def __init__(self, scheduler: Optional[BackgroundScheduler] = None):
        self.scheduler = scheduler or BackgroundScheduler(daemon=True)

    def start(self) -> None:
        if not self.scheduler.running:
            self.scheduler.start()
            logger.info("Scheduler started")

    def shutdown(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Scheduler stopped")

    def add_job(self, job_id: str, func: Callable, trigger: str, **trigger_args) -> None:
        if trigger == "cron" and "cron_expression" in trigger_args:
            trigger = CronTrigger.from_crontab(trigger_args.pop("cron_expression"))
        self.scheduler.add_job(
            func,
            trigger=trigger,
            id=job_id,
            replace_existing=True,
            **trigger_args,
        )
        logger.info(f"Job {job_id} scheduled")

    def remove_job(self, job_id: str) -> None:
        try:
            self.scheduler.remove_job(job_id)
        except Exception as e:
            logger.debug(f"Job {job_id} not removed: {e}")

    def get_jobs(self) -> List[Dict]:
        return [_job_info(job) for job in self.scheduler.get_jobs()]

    def get_job(self, job_id: str) -> Optional[Dict]:
        job = self.scheduler.get_job(job_id)
        return _job_info(job) if job else None
