"""
调度器接口 - 定时任务抽象，APScheduler 实现见 hostel.services.scheduler_backend
"""
from hostel.core.scheduler.base import ISchedulerBackend, SchedulerRegistry

__all__ = ["ISchedulerBackend", "SchedulerRegistry"]
