"""
领域事件定义 (Domain Events)
预订提交后发布，由通知分发器等订阅者异步消费
"""
from enum import Enum
from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import Optional, Dict, Any


class EventType(str, Enum):
    """事件类型枚举"""
    BOOKING_CREATED = "booking.created"
    BOOKING_CANCELLED = "booking.cancelled"
    BOOKING_COMPLETED = "booking.completed"
    BOOKING_DELETED = "booking.deleted"


@dataclass
class BaseEventData:
    """事件数据基类"""
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        """转换为字典"""
        result = asdict(self)
        # 处理 datetime 序列化
        for key, value in result.items():
            if isinstance(value, datetime):
                result[key] = value.isoformat()
        return result


@dataclass
class BookingCreatedData(BaseEventData):
    """预订创建事件数据（确认消息所需的全部快照）"""
    booking_id: str = ""
    payment_id: str = ""
    guest_id: str = ""
    guest_first_name: str = ""
    guest_full_name: str = ""
    guest_email: Optional[str] = None
    guest_phone: Optional[str] = None
    room_number: str = ""
    bed_number: str = ""
    check_in_date: str = ""  # date as string
    check_out_date: str = ""  # date as string
    total_price: float = 0.0


@dataclass
class BookingStatusChangedData(BaseEventData):
    """预订状态变更事件数据（取消/完成/删除）"""
    booking_id: str = ""
    guest_id: str = ""
    bed_id: str = ""
    old_status: str = ""
    new_status: str = ""
