"""
Pydantic 模式定义
用于 API 请求/响应验证
"""
from datetime import datetime, date
from decimal import Decimal
from typing import Optional, List
from pydantic import BaseModel, Field, ConfigDict
from hostel.models.ontology import BookingStatus, PaymentMethod


# ============== 床位 Schemas ==============

class BedCreate(BaseModel):
    room_id: str
    bed_number: Optional[str] = Field(None, max_length=20)


class BedResponse(BaseModel):
    id: str
    bed_number: str
    room_id: str
    model_config = ConfigDict(from_attributes=True)


# ============== 房间 Schemas ==============

class RoomBase(BaseModel):
    room_number: str = Field(..., max_length=20)
    floor: int
    capacity: int = Field(..., ge=1)


class RoomCreate(RoomBase):
    bed_count: int = Field(default=0, ge=0)


class RoomUpdate(BaseModel):
    room_number: Optional[str] = Field(None, max_length=20)
    floor: Optional[int] = None
    capacity: Optional[int] = Field(None, ge=1)


class RoomResponse(RoomBase):
    id: str
    created_at: datetime
    beds: List[BedResponse] = []
    model_config = ConfigDict(from_attributes=True)


# ============== 客人 Schemas ==============

class GuestBase(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, max_length=30)
    date_of_birth: Optional[date] = None


class GuestCreate(GuestBase):
    room_number: str = Field(..., max_length=20)


class GuestUpdate(BaseModel):
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    email: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, max_length=30)
    date_of_birth: Optional[date] = None
    room_number: Optional[str] = Field(None, max_length=20)


class GuestResponse(GuestBase):
    id: str
    full_name: str
    room_id: Optional[str] = None
    bed_id: Optional[str] = None
    room_number: Optional[str] = None
    bed_number: Optional[str] = None
    registered_at: datetime


# ============== 预订 Schemas ==============

class BookingCreate(GuestBase):
    """创建预订：房间号 + 客人信息 + 入住区间 + 总价"""
    room_number: str = Field(..., max_length=20)
    check_in_date: date
    check_out_date: date
    total_price: Decimal = Field(..., gt=0)


class BookingSummary(BaseModel):
    """预订创建结果"""
    booking_id: str
    guest_full_name: str
    room_number: str
    bed_number: str
    check_in_date: date
    check_out_date: date
    total_price: Decimal
    payment_id: str


class BookingResponse(BaseModel):
    """预订详情（含房间/床位/客人）"""
    id: str
    guest_id: str
    guest_full_name: str
    guest_email: Optional[str] = None
    room_id: str
    room_number: Optional[str] = None
    bed_id: str
    bed_number: Optional[str] = None
    status: BookingStatus
    check_in_date: date
    check_out_date: date
    total_price: Decimal
    created_at: datetime


# ============== 支付 Schemas ==============

class PaymentResponse(BaseModel):
    id: str
    booking_id: str
    payment_method: PaymentMethod
    amount: Decimal
    payment_date: datetime
    model_config = ConfigDict(from_attributes=True)


# ============== 通知 Schemas ==============

class NotificationResponse(BaseModel):
    id: str
    booking_id: Optional[str] = None
    title: str
    message: Optional[str] = None
    is_read: bool
    created_at: datetime
    guest_full_name: Optional[str] = None
    room_number: Optional[str] = None
    bed_number: Optional[str] = None
    check_in_date: Optional[date] = None
    check_out_date: Optional[date] = None
    total_price: Optional[Decimal] = None
    model_config = ConfigDict(from_attributes=True)
