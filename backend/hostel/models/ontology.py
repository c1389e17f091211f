"""
本体对象定义 (Ontology Objects)
房间/床位/客人/预订/支付/通知，全部以字符串顺序号 (<前缀><整数>) 作为主键
对象之间仅通过 id 关联，关系属性由会话按需加载
"""
from datetime import datetime
from enum import Enum
from sqlalchemy import (
    Column, Integer, String, DateTime, Date, ForeignKey, Text,
    Enum as SQLEnum, Boolean, Numeric, Index, UniqueConstraint, func
)
from sqlalchemy.orm import relationship
from hostel.database import Base


# ============== 枚举定义 ==============

class BookingStatus(str, Enum):
    """预订状态枚举"""
    BOOKED = "Booked"          # 已预订（占用床位）
    CANCELLED = "Cancelled"    # 已取消
    COMPLETED = "Completed"    # 已完成


class PaymentMethod(str, Enum):
    """支付方式"""
    CREDIT_CARD = "CREDIT_CARD"
    CASH = "CASH"
    PAYPAL = "PAYPAL"


# ============== 实体 id 前缀 ==============

class IdPrefix:
    """各实体的顺序号前缀"""
    ROOM = "R"
    BED = "B"
    BED_NUMBER = "BN"
    GUEST = "C"
    BOOKING = "BK"
    PAYMENT = "PY"
    NOTIFICATION = "N"


def sequence_order(column):
    """按顺序号数值排序：先比长度再比字面值（BK9 排在 BK10 之前）"""
    return [func.length(column), column]


# ============== 本体对象定义 ==============

class Room(Base):
    """
    房间对象
    capacity 为同时入住人数上限，床位数不得超过 capacity
    """
    __tablename__ = "rooms"

    id = Column(String(20), primary_key=True)
    room_number = Column(String(20), unique=True, nullable=False, index=True)  # 房间号
    floor = Column(Integer, nullable=False)                                     # 楼层
    capacity = Column(Integer, nullable=False)                                  # 容量
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    @property
    def bed_ids(self):
        return [bed.id for bed in self.beds]


class Bed(Base):
    """床位对象 - 可单独预订的最小单元"""
    __tablename__ = "beds"

    id = Column(String(20), primary_key=True)
    bed_number = Column(String(20), unique=True, nullable=False, index=True)  # 床位号
    room_id = Column(String(20), ForeignKey("rooms.id"), nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    # 链接
    room = relationship("Room", back_populates="beds")


# 房间 -> 床位：按顺序号排序，删除房间时级联删除床位
Room.beds = relationship(
    Bed,
    back_populates="room",
    order_by=sequence_order(Bed.id),
    cascade="all, delete-orphan",
)


class Guest(Base):
    """
    客人对象
    room_id / bed_id 为当前分配，可为空
    """
    __tablename__ = "guests"

    id = Column(String(20), primary_key=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    email = Column(String(255), index=True)
    phone = Column(String(30))
    date_of_birth = Column(Date)
    room_id = Column(String(20), ForeignKey("rooms.id"), nullable=True)
    bed_id = Column(String(20), ForeignKey("beds.id"), nullable=True)
    registered_at = Column(DateTime, default=datetime.utcnow)

    # 链接
    room = relationship("Room")
    bed = relationship("Bed")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class Booking(Base):
    """
    预订对象 - 预订分配的聚合根
    入住区间 [check_in_date, check_out_date)，total_price > 0
    """
    __tablename__ = "bookings"
    __table_args__ = (
        # 可用性查询按 床位 + 状态 + 区间 命中索引
        Index("ix_bookings_bed_status_dates", "bed_id", "status", "check_in_date", "check_out_date"),
    )

    id = Column(String(20), primary_key=True)
    room_id = Column(String(20), ForeignKey("rooms.id"), nullable=False)
    bed_id = Column(String(20), ForeignKey("beds.id"), nullable=False)
    guest_id = Column(String(20), ForeignKey("guests.id"), nullable=False, index=True)
    check_in_date = Column(Date, nullable=False, index=True)
    check_out_date = Column(Date, nullable=False)
    status = Column(SQLEnum(BookingStatus), default=BookingStatus.BOOKED, nullable=False)
    total_price = Column(Numeric(10, 2), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # 链接
    room = relationship("Room")
    bed = relationship("Bed")
    guest = relationship("Guest")
    payment = relationship("Payment", back_populates="booking", uselist=False,
                           cascade="all, delete-orphan")
    nights = relationship("BedNight", back_populates="booking",
                          cascade="all, delete-orphan")


class Payment(Base):
    """支付对象 - 与预订一同创建，之后不可变"""
    __tablename__ = "payments"

    id = Column(String(20), primary_key=True)
    booking_id = Column(String(20), ForeignKey("bookings.id"), nullable=False, unique=True)
    payment_method = Column(SQLEnum(PaymentMethod), nullable=False)
    amount = Column(Numeric(10, 2), nullable=False)
    payment_date = Column(DateTime, default=datetime.utcnow, index=True)

    # 链接
    booking = relationship("Booking", back_populates="payment")


class Notification(Base):
    """
    通知对象 - 预订创建时的快照
    booking_id 不设外键：预订删除后通知仍保留
    """
    __tablename__ = "notifications"

    id = Column(String(20), primary_key=True)
    booking_id = Column(String(20), index=True)
    title = Column(String(100), nullable=False)
    message = Column(Text)
    is_read = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    # 快照
    guest_full_name = Column(String(200))
    room_number = Column(String(20))
    bed_number = Column(String(20))
    check_in_date = Column(Date)
    check_out_date = Column(Date)
    total_price = Column(Numeric(10, 2))


class IdSequence(Base):
    """顺序号计数器 - 每个前缀一行，在业务事务内递增"""
    __tablename__ = "id_sequences"

    prefix = Column(String(10), primary_key=True)
    last_value = Column(Integer, nullable=False, default=0)


class BedNight(Base):
    """
    床位占用夜 - 每个 Booked 预订占用的每一晚一行
    (bed_id, night) 唯一约束在存储层阻止重叠预订
    """
    __tablename__ = "bed_nights"
    __table_args__ = (
        UniqueConstraint("bed_id", "night", name="uq_bed_nights_bed_night"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    bed_id = Column(String(20), ForeignKey("beds.id"), nullable=False)
    night = Column(Date, nullable=False)
    booking_id = Column(String(20), ForeignKey("bookings.id"), nullable=False, index=True)

    # 链接
    booking = relationship("Booking", back_populates="nights")
