"""
预订确认渠道接口

每个渠道从 booking.created 负载中取出自己的收件人并生成确认消息，
分发器遍历已登记的渠道，不关心具体类型。
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, List, Optional


@dataclass
class ConfirmationMessage:
    """一条待发送的预订确认"""
    recipient: str
    subject: str
    content: str
    extra: Dict = field(default_factory=dict)


class INotificationChannel(ABC):
    """预订确认渠道接口"""

    @abstractmethod
    def build_confirmation(self, booking: Dict) -> Optional[ConfirmationMessage]:
        """由 booking.created 负载生成确认消息；负载中没有本渠道的收件人时返回 None"""

    @abstractmethod
    def send(
        self,
        recipient: str,
        subject: str,
        content: str,
        extra: Optional[Dict] = None,
    ) -> bool:
        """发送消息

        Returns:
            是否发送成功；渠道内部的异常不向外抛出
        """

    @abstractmethod
    def get_channel_type(self) -> str:
        """渠道类型标识，如 'email', 'sms'"""

    def send_confirmation(self, booking: Dict) -> Optional[bool]:
        """生成并发送确认；没有收件人时返回 None"""
        message = self.build_confirmation(booking)
        if message is None:
            return None
        return self.send(message.recipient, message.subject, message.content, message.extra)


class NotificationChannelRegistry:
    """渠道注册表 - 单例

    应用启动时按配置登记：
        registry = NotificationChannelRegistry()
        registry.register(EmailChannel.from_settings(settings))
    """

    _instance: Optional["NotificationChannelRegistry"] = None

    def __new__(cls) -> "NotificationChannelRegistry":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._channels: Dict[str, INotificationChannel] = {}
        return cls._instance

    def register(self, channel: INotificationChannel) -> None:
        """登记渠道（同类型后登记者覆盖先登记者）"""
        self._channels[channel.get_channel_type()] = channel

    def get_channel(self, channel_type: str) -> Optional[INotificationChannel]:
        return self._channels.get(channel_type)

    def channels(self) -> List[INotificationChannel]:
        """按登记顺序返回所有渠道"""
        return list(self._channels.values())

    def clear(self) -> None:
        """清除所有渠道（用于测试）"""
        self._channels.clear()
