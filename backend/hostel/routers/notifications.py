"""
通知收件箱路由
"""
from typing import List
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from hostel.database import get_db
from hostel.models.schemas import NotificationResponse
from hostel.routers import http_error
from hostel.services.errors import HostelError
from hostel.services.notification_service import NotificationService

router = APIRouter(prefix="/notifications", tags=["通知"])


@router.get("", response_model=List[NotificationResponse])
def list_notifications(unread_only: bool = False, db: Session = Depends(get_db)):
    """获取通知列表"""
    return NotificationService(db).get_notifications(unread_only)


@router.get("/unread", response_model=List[NotificationResponse])
def list_unread_notifications(db: Session = Depends(get_db)):
    """获取未读通知"""
    return NotificationService(db).get_unread()


@router.post("/{notification_id}/read", response_model=NotificationResponse)
def mark_notification_read(notification_id: str, db: Session = Depends(get_db)):
    """标记通知为已读"""
    try:
        return NotificationService(db).mark_as_read(notification_id)
    except HostelError as e:
        raise http_error(e)


@router.delete("/{notification_id}")
def delete_notification(notification_id: str, db: Session = Depends(get_db)):
    """删除通知"""
    try:
        NotificationService(db).delete_notification(notification_id)
        return {"message": "删除成功", "notification_id": notification_id}
    except HostelError as e:
        raise http_error(e)
