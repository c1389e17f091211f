"""
通知渠道抽象层 - 仅定义接口，具体渠道在 hostel.notification 中实现
"""
from hostel.core.notification.channel import (
    ConfirmationMessage, INotificationChannel, NotificationChannelRegistry
)

__all__ = ["ConfirmationMessage", "INotificationChannel", "NotificationChannelRegistry"]
