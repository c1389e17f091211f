"""
通知服务 - 站内通知收件箱
通知是预订创建时的快照，只允许标记已读和删除
"""
from typing import List
import logging

from sqlalchemy import desc
from sqlalchemy.orm import Session

from hostel.models.ontology import Notification, sequence_order
from hostel.services.errors import NotFoundError
from hostel.services.unit_of_work import SqlAlchemyUnitOfWork, store_errors

logger = logging.getLogger(__name__)


class NotificationService:
    """通知服务"""

    def __init__(self, db: Session):
        self.db = db

    def get_notifications(self, unread_only: bool = False) -> List[Notification]:
        """获取通知（最新的在前）"""
        query = self.db.query(Notification)
        if unread_only:
            query = query.filter(Notification.is_read == False)
        return query.order_by(
            desc(Notification.created_at), *[c.desc() for c in sequence_order(Notification.id)]
        ).all()

    def get_unread(self) -> List[Notification]:
        return self.get_notifications(unread_only=True)

    def get_notification(self, notification_id: str) -> Notification:
        notification = self.db.query(Notification).filter(
            Notification.id == notification_id
        ).first()
        if not notification:
            raise NotFoundError(f"通知不存在: {notification_id}",
                                {"notification_id": notification_id})
        return notification

    def mark_as_read(self, notification_id: str) -> Notification:
        """标记为已读（重复标记无副作用）"""
        notification = self.get_notification(notification_id)
        if not notification.is_read:
            with store_errors("标记通知已读", {"notification_id": notification_id}), SqlAlchemyUnitOfWork(self.db):
                notification.is_read = True
            self.db.refresh(notification)
        return notification

    def delete_notification(self, notification_id: str) -> bool:
        notification = self.get_notification(notification_id)
        with store_errors("删除通知", {"notification_id": notification_id}), SqlAlchemyUnitOfWork(self.db):
            self.db.delete(notification)
        logger.info(f"Notification {notification_id} deleted")
        return True
