"""
支付服务 - 支付记录查询
支付记录在创建预订时一并生成，之后不可修改
"""
from typing import List, Optional, Union
from datetime import datetime
import logging

from sqlalchemy import desc
from sqlalchemy.orm import Session

from hostel.models.ontology import Payment, PaymentMethod, sequence_order
from hostel.services.errors import NotFoundError, InvalidStateError

logger = logging.getLogger(__name__)


def parse_payment_method(value: Union[str, PaymentMethod]) -> PaymentMethod:
    if isinstance(value, PaymentMethod):
        return value
    try:
        return PaymentMethod(value.upper())
    except (AttributeError, ValueError):
        raise InvalidStateError(
            f"无效的支付方式: {value}",
            {"allowed": [m.value for m in PaymentMethod]}
        )


class PaymentService:
    """支付服务"""

    def __init__(self, db: Session):
        self.db = db

    def _newest_first(self, query):
        return query.order_by(
            desc(Payment.payment_date), *[c.desc() for c in sequence_order(Payment.id)]
        )

    def get_payments(self, method: Optional[Union[str, PaymentMethod]] = None,
                     start: Optional[datetime] = None,
                     end: Optional[datetime] = None) -> List[Payment]:
        """获取支付记录（最新的在前）"""
        query = self.db.query(Payment)
        if method:
            query = query.filter(Payment.payment_method == parse_payment_method(method))
        if start and end and start > end:
            raise InvalidStateError("起始时间不能晚于结束时间")
        if start:
            query = query.filter(Payment.payment_date >= start)
        if end:
            query = query.filter(Payment.payment_date <= end)
        return self._newest_first(query).all()

    def get_payment(self, payment_id: str) -> Payment:
        """获取单个支付记录"""
        payment = self.db.query(Payment).filter(Payment.id == payment_id).first()
        if not payment:
            raise NotFoundError(f"支付记录不存在: {payment_id}", {"payment_id": payment_id})
        return payment

    def get_payment_by_booking(self, booking_id: str) -> Payment:
        """获取预订对应的支付记录"""
        payment = self.db.query(Payment).filter(Payment.booking_id == booking_id).first()
        if not payment:
            raise NotFoundError(f"预订 {booking_id} 没有支付记录", {"booking_id": booking_id})
        return payment

    def find_by_method(self, method: Union[str, PaymentMethod]) -> List[Payment]:
        return self.get_payments(method=method)

    def find_between(self, start: datetime, end: datetime) -> List[Payment]:
        """支付时间在 [start, end] 内的记录"""
        return self.get_payments(start=start, end=end)
