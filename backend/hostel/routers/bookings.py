"""
预订管理路由
"""
from typing import Dict, List, Optional
from datetime import date
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from hostel.database import get_db
from hostel.models.schemas import BookingCreate, BookingSummary, BookingResponse
from hostel.routers import http_error
from hostel.services.booking_cache import latest_booking_cache
from hostel.services.booking_service import BookingService
from hostel.services.errors import HostelError, NotFoundError

router = APIRouter(prefix="/bookings", tags=["预订管理"])


@router.post("", response_model=BookingSummary)
def create_booking(data: BookingCreate, db: Session = Depends(get_db)):
    """创建预订（分配床位、客人、支付、通知）"""
    try:
        return BookingService(db).create_booking(data)
    except HostelError as e:
        raise http_error(e)


@router.get("", response_model=List[BookingResponse])
def list_bookings(
    status: Optional[str] = None,
    check_in_from: Optional[date] = None,
    check_in_to: Optional[date] = None,
    first_name: Optional[str] = None,
    last_name: Optional[str] = None,
    db: Session = Depends(get_db)
):
    """获取预订列表"""
    try:
        bookings = BookingService(db).get_bookings(
            status, check_in_from, check_in_to, first_name, last_name
        )
    except HostelError as e:
        raise http_error(e)
    return [BookingResponse(**BookingService.to_detail(b)) for b in bookings]


@router.get("/status-counts", response_model=Dict[str, int])
def get_status_counts(db: Session = Depends(get_db)):
    """按状态统计预订数"""
    return BookingService(db).status_counts()


@router.get("/latest", response_model=BookingResponse)
def get_latest_booking(db: Session = Depends(get_db)):
    """最近创建的预订"""
    booking = BookingService(db).get_latest_booking()
    if not booking:
        raise http_error(NotFoundError("暂无预订"))
    return BookingResponse(**BookingService.to_detail(booking))


@router.get("/latest/cached", response_model=BookingResponse)
def get_cached_latest_booking():
    """后台任务缓存的最近预订"""
    cached = latest_booking_cache.get()
    if cached is None:
        raise http_error(NotFoundError("缓存为空"))
    return cached


@router.get("/{booking_id}", response_model=BookingResponse)
def get_booking(booking_id: str, db: Session = Depends(get_db)):
    """获取预订详情"""
    try:
        return BookingResponse(**BookingService(db).get_booking_detail(booking_id))
    except HostelError as e:
        raise http_error(e)


@router.post("/{booking_id}/cancel")
def cancel_booking(booking_id: str, db: Session = Depends(get_db)):
    """取消预订"""
    try:
        booking = BookingService(db).cancel_booking(booking_id)
        return {"message": "预订已取消", "booking_id": booking.id, "status": booking.status.value}
    except HostelError as e:
        raise http_error(e)


@router.post("/{booking_id}/complete")
def complete_booking(booking_id: str, db: Session = Depends(get_db)):
    """完成预订"""
    try:
        booking = BookingService(db).complete_booking(booking_id)
        return {"message": "预订已完成", "booking_id": booking.id, "status": booking.status.value}
    except HostelError as e:
        raise http_error(e)


@router.delete("/{booking_id}")
def delete_booking(booking_id: str, db: Session = Depends(get_db)):
    """删除预订（连同支付记录）"""
    try:
        BookingService(db).delete_booking(booking_id)
        return {"message": "删除成功", "booking_id": booking_id}
    except HostelError as e:
        raise http_error(e)
