"""
事件总线 - 进程内发布/订阅
预订事务提交后发布事件；订阅者异常只记录日志，不影响已提交的数据
"""
from typing import Callable, Dict, List, Optional
from dataclasses import dataclass, field
from datetime import datetime
from collections import deque
import logging
import threading
import uuid

from hostel.models.events import BaseEventData

logger = logging.getLogger(__name__)


def _event_key(event_type) -> str:
    """EventType 枚举与字符串统一为字符串键"""
    return getattr(event_type, "value", event_type)


@dataclass
class Event:
    """事件"""
    event_type: str
    data: Dict
    source: str  # 触发来源（服务名）
    timestamp: datetime = field(default_factory=datetime.now)
    event_id: str = field(default_factory=lambda: uuid.uuid4().hex)

    @classmethod
    def of(cls, event_type: str, data: BaseEventData, source: str) -> "Event":
        return cls(event_type=_event_key(event_type), data=data.to_dict(), source=source)


class EventBus:
    """
    内存级事件总线（线程安全）

    使用方式：
        event_bus.subscribe("booking.created", handler)
        event_bus.publish(Event.of(EventType.BOOKING_CREATED, data, "BookingService"))
    """

    def __init__(self, history_size: int = 100):
        self._subscribers: Dict[str, List[Callable[[Event], None]]] = {}
        self._history: deque = deque(maxlen=history_size)
        self._lock = threading.Lock()

    def subscribe(self, event_type: str, handler: Callable[[Event], None]) -> None:
        """订阅事件（同一处理器只登记一次）"""
        with self._lock:
            handlers = self._subscribers.setdefault(_event_key(event_type), [])
            if handler not in handlers:
                handlers.append(handler)
                logger.info(f"Handler {getattr(handler, '__name__', handler)} subscribed to {event_type}")

    def unsubscribe(self, event_type: str, handler: Callable[[Event], None]) -> None:
        """取消订阅"""
        with self._lock:
            handlers = self._subscribers.get(_event_key(event_type), [])
            if handler in handlers:
                handlers.remove(handler)

    def publish(self, event: Event) -> int:
        """
        发布事件（同步调用所有处理器）

        Returns:
            成功执行的处理器数量
        """
        self._history.append(event)
        with self._lock:
            handlers = list(self._subscribers.get(event.event_type, []))

        delivered = 0
        for handler in handlers:
            try:
                handler(event)
                delivered += 1
            except Exception as e:
                logger.error(
                    f"Event handler {getattr(handler, '__name__', handler)} "
                    f"error for {event.event_type}: {e}",
                    exc_info=True
                )
        return delivered

    def get_history(self, event_type: Optional[str] = None, limit: int = 50) -> List[Event]:
        """获取事件历史（最新的在前）"""
        history = list(self._history)
        if event_type:
            history = [e for e in history if e.event_type == _event_key(event_type)]
        return list(reversed(history))[:limit]

    def clear_subscribers(self) -> None:
        """清空所有订阅（用于测试）"""
        with self._lock:
            self._subscribers.clear()

    def clear_history(self) -> None:
        self._history.clear()


# 全局事件总线实例
event_bus = EventBus()
