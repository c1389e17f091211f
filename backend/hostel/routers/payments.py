"""
支付记录路由（只读）
"""
from typing import List, Optional
from datetime import datetime
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from hostel.database import get_db
from hostel.models.schemas import PaymentResponse
from hostel.routers import http_error
from hostel.services.errors import HostelError
from hostel.services.payment_service import PaymentService

router = APIRouter(prefix="/payments", tags=["支付记录"])


@router.get("", response_model=List[PaymentResponse])
def list_payments(
    method: Optional[str] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    db: Session = Depends(get_db)
):
    """获取支付记录（可按支付方式、时间范围过滤）"""
    try:
        return PaymentService(db).get_payments(method, start, end)
    except HostelError as e:
        raise http_error(e)


@router.get("/booking/{booking_id}", response_model=PaymentResponse)
def get_payment_by_booking(booking_id: str, db: Session = Depends(get_db)):
    """获取预订的支付记录"""
    try:
        return PaymentService(db).get_payment_by_booking(booking_id)
    except HostelError as e:
        raise http_error(e)


@router.get("/{payment_id}", response_model=PaymentResponse)
def get_payment(payment_id: str, db: Session = Depends(get_db)):
    """获取支付记录"""
    try:
        return PaymentService(db).get_payment(payment_id)
    except HostelError as e:
        raise http_error(e)
