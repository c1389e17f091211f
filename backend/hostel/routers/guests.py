"""
客人管理路由
"""
from typing import List
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from hostel.database import get_db
from hostel.models.schemas import GuestCreate, GuestUpdate, GuestResponse
from hostel.routers import http_error
from hostel.services.errors import HostelError, NotFoundError
from hostel.services.guest_service import GuestService

router = APIRouter(prefix="/guests", tags=["客人管理"])


@router.get("", response_model=List[GuestResponse])
def list_guests(db: Session = Depends(get_db)):
    """获取客人列表"""
    return [GuestResponse(**GuestService.to_response(g)) for g in GuestService(db).get_guests()]


@router.get("/by-email", response_model=GuestResponse)
def get_guest_by_email(email: str, db: Session = Depends(get_db)):
    """根据邮箱查找客人"""
    guest = GuestService(db).get_guest_by_email(email)
    if not guest:
        raise http_error(NotFoundError(f"客人不存在: {email}"))
    return GuestResponse(**GuestService.to_response(guest))


@router.get("/{guest_id}", response_model=GuestResponse)
def get_guest(guest_id: str, db: Session = Depends(get_db)):
    """获取客人详情"""
    guest = GuestService(db).get_guest(guest_id)
    if not guest:
        raise http_error(NotFoundError(f"客人不存在: {guest_id}"))
    return GuestResponse(**GuestService.to_response(guest))


@router.post("", response_model=GuestResponse)
def create_guest(data: GuestCreate, db: Session = Depends(get_db)):
    """创建客人并分配床位"""
    try:
        guest = GuestService(db).create_guest(data)
        return GuestResponse(**GuestService.to_response(guest))
    except HostelError as e:
        raise http_error(e)


@router.put("/{guest_id}", response_model=GuestResponse)
def update_guest(guest_id: str, data: GuestUpdate, db: Session = Depends(get_db)):
    """更新客人信息"""
    try:
        guest = GuestService(db).update_guest(guest_id, data)
        return GuestResponse(**GuestService.to_response(guest))
    except HostelError as e:
        raise http_error(e)


@router.delete("/{guest_id}")
def delete_guest(guest_id: str, db: Session = Depends(get_db)):
    """删除客人"""
    try:
        GuestService(db).delete_guest(guest_id)
        return {"message": "删除成功", "guest_id": guest_id}
    except HostelError as e:
        raise http_error(e)
