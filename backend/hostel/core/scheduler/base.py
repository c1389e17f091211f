"""
调度器后端接口

后台任务（最新预订缓存刷新）通过 ISchedulerBackend 登记，
不直接依赖具体调度框架。
"""
from abc import ABC, abstractmethod
from typing import Callable, Dict, List, Optional


class ISchedulerBackend(ABC):
    """调度后端接口"""

    @abstractmethod
    def start(self) -> None:
        """启动调度器（已启动时无操作）"""

    @abstractmethod
    def shutdown(self) -> None:
        """停止调度器（未启动时无操作）"""

    @abstractmethod
    def add_job(
        self,
        job_id: str,
        func: Callable,
        trigger: str,
        **trigger_args,
    ) -> None:
        """添加定时任务

        Args:
            job_id: 任务唯一标识，重复添加时替换
            func: 要执行的函数
            trigger: 触发器类型（'interval', 'cron', 'date'）
            **trigger_args: 触发器参数，如 seconds=10
        """

    @abstractmethod
    def remove_job(self, job_id: str) -> None:
        """移除任务（不存在时无操作）"""

    @abstractmethod
    def get_jobs(self) -> List[Dict]:
        """获取所有任务

        Returns:
            任务列表，每项包含 id, name, trigger, next_run_time, status
        """

    @abstractmethod
    def get_job(self, job_id: str) -> Optional[Dict]:
        """获取单个任务信息"""


class SchedulerRegistry:
    """调度器注册表 - 单例

    应用启动时登记：
        SchedulerRegistry().set_backend(APSchedulerBackend())
    """

    _instance: Optional["SchedulerRegistry"] = None

    def __new__(cls) -> "SchedulerRegistry":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._backend: Optional[ISchedulerBackend] = None
        return cls._instance

    def set_backend(self, backend: ISchedulerBackend) -> None:
        self._backend = backend

    def get_backend(self) -> Optional[ISchedulerBackend]:
        return self._backend

    def clear(self) -> None:
        """清除后端（用于测试）"""
        self._backend = None
