"""
事件处理器 - 预订提交后的确认消息分发
订阅 booking.created，由每个已登记的渠道生成并发送确认消息。
发送失败只记录日志，已提交的预订不受影响。
"""
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, Optional
import logging

from hostel.config import settings
from hostel.core.notification import INotificationChannel, NotificationChannelRegistry
from hostel.models.events import EventType
from hostel.services.event_bus import event_bus, Event

logger = logging.getLogger(__name__)


class NotificationDispatcher:
    """
    预订确认分发器

    支持依赖注入以便于测试：
    - registry: 通知渠道注册表
    - executor: 线程池；为 None 时在发布线程内同步发送
    """

    def __init__(
        self,
        registry: Optional[NotificationChannelRegistry] = None,
        executor: Optional[ThreadPoolExecutor] = None,
    ):
        self._registry = registry or NotificationChannelRegistry()
        self._executor = executor
        self._registered = False

    def dispatch_confirmation(self, data: Dict) -> Dict[str, bool]:
        """
        通过所有已登记渠道发送确认

        Returns:
            {渠道类型: 是否成功}；负载中没有该渠道收件人的项不出现
        """
        results: Dict[str, bool] = {}
        booking_id = data.get('booking_id')

        for channel in self._registry.channels():
            sent = self._safe_confirm(channel, data)
            if sent is not None:
                results[channel.get_channel_type()] = sent

        if not results:
            logger.info(f"No confirmation channel available for booking {booking_id}")
        elif not all(results.values()):
            logger.warning(f"Confirmation for booking {booking_id} partially failed: {results}")
        return results

    def _safe_confirm(self, channel: INotificationChannel, data: Dict) -> Optional[bool]:
        try:
            return channel.send_confirmation(data)
        except Exception as e:
            logger.error(
                f"{channel.get_channel_type()} channel raised for booking {data.get('booking_id')}: {e}",
                exc_info=True
            )
            return False

    def handle_booking_created(self, event: Event) -> None:
        """处理预订创建事件：发送确认消息"""
        if self._executor is not None:
            self._executor.submit(self.dispatch_confirmation, dict(event.data))
        else:
            self.dispatch_confirmation(event.data)

    def register_handlers(self, event_bus_instance=None) -> None:
        """注册事件处理器"""
        if self._registered:
            return
        bus = event_bus_instance or event_bus
        bus.subscribe(EventType.BOOKING_CREATED, self.handle_booking_created)
        self._registered = True
        logger.info("Notification dispatcher registered")

    def unregister_handlers(self, event_bus_instance=None) -> None:
        """取消注册（用于测试）"""
        bus = event_bus_instance or event_bus
        bus.unsubscribe(EventType.BOOKING_CREATED, self.handle_booking_created)
        self._registered = False

    def shutdown(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=False)


def build_dispatcher() -> NotificationDispatcher:
    """按配置创建分发器（NOTIFY_ASYNC 时使用线程池）"""
    executor = (
        ThreadPoolExecutor(max_workers=2, thread_name_prefix="notify")
        if settings.NOTIFY_ASYNC else None
    )
    return NotificationDispatcher(executor=executor)
