"""
预订服务 - 预订分配引擎

创建预订在一个工作单元内依次完成：
1. 按房间号查找房间
2. 选取区间内第一个空闲床位
3. 创建（或按邮箱复用）客人并分配房间/床位
4. 创建预订 (Booked) 并占用 bed_nights
5. 生成支付记录（默认支付方式）
6. 生成通知
7. 提交并返回预订摘要
任一写步骤失败则整体回滚；并发抢占同一床位时重试，最终失败返回冲突。
"""
from typing import Callable, Dict, List, Optional, Union
from datetime import date, datetime
from decimal import Decimal
import logging
import threading

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session

from hostel.config import settings
from hostel.models.ontology import (
    Room, Bed, Guest, Booking, BookingStatus, Payment, PaymentMethod,
    Notification, BedNight, IdPrefix, sequence_order
)
from hostel.models.events import EventType, BookingCreatedData, BookingStatusChangedData
from hostel.models.schemas import BookingCreate, BookingSummary
from hostel.services.availability_service import (
    AvailabilityService, claimed_nights, validate_interval
)
from hostel.services.errors import (
    HostelError, NotFoundError, ConflictError, InvalidStateError, InternalError
)
from hostel.services.event_bus import Event, event_bus
from hostel.services.sequence_service import SequenceService
from hostel.services.unit_of_work import SqlAlchemyUnitOfWork, store_errors

logger = logging.getLogger(__name__)


class _BedTaken(Exception):
    """加锁后复查发现床位已被其他事务占用"""


def parse_booking_status(value: Union[str, BookingStatus]) -> BookingStatus:
    """将字符串解析为预订状态，必须与枚举值完全一致"""
    if isinstance(value, BookingStatus):
        return value
    try:
        return BookingStatus(value)
    except ValueError:
        raise InvalidStateError(
            f"无效的预订状态: {value}",
            {"allowed": [s.value for s in BookingStatus]}
        )


class BookingService:
    """预订服务"""

    _room_locks: Dict[str, threading.Lock] = {}
    _room_locks_guard = threading.Lock()

    def __init__(self, db: Session,
                 event_publisher: Callable[[Event], None] = None,
                 same_day_turnover: Optional[bool] = None,
                 max_retries: Optional[int] = None):
        self.db = db
        # 支持依赖注入事件发布器，便于测试
        self._publish_event = event_publisher or event_bus.publish
        self.same_day_turnover = (
            settings.SAME_DAY_TURNOVER if same_day_turnover is None else same_day_turnover
        )
        self.max_retries = max_retries if max_retries is not None else settings.BOOKING_MAX_RETRIES
        self.availability = AvailabilityService(db, self.same_day_turnover)
        self.sequences = SequenceService(db)

    @classmethod
    def _room_lock(cls, room_number: str) -> threading.Lock:
        with cls._room_locks_guard:
            if room_number not in cls._room_locks:
                cls._room_locks[room_number] = threading.Lock()
            return cls._room_locks[room_number]

    def _unit_of_work(self) -> SqlAlchemyUnitOfWork:
        return SqlAlchemyUnitOfWork(self.db, self._publish_event)

    # ============== 创建预订 ==============

    def create_booking(self, data: BookingCreate) -> BookingSummary:
        """创建预订（原子操作）"""
        validate_interval(data.check_in_date, data.check_out_date)
        if data.total_price is None or Decimal(data.total_price) <= 0:
            raise InvalidStateError("总价必须大于 0", {"total_price": str(data.total_price)})

        attempts = max(1, self.max_retries)
        for attempt in range(1, attempts + 1):
            # 同一房间的分配在进程内串行，锁持有到提交结束
            with self._room_lock(data.room_number):
                try:
                    return self._create_booking_once(data)
                except HostelError:
                    raise
                except (_BedTaken, IntegrityError, OperationalError) as e:
                    logger.warning(
                        f"Booking attempt {attempt}/{attempts} for room {data.room_number} "
                        f"lost a race: {e}"
                    )
                except SQLAlchemyError as e:
                    logger.error(f"Booking for room {data.room_number} failed: {e}", exc_info=True)
                    raise InternalError("创建预订时存储失败") from e

        raise ConflictError(
            f"房间 {data.room_number} 的床位已被并发预订占用，请重试",
            {"room_number": data.room_number, "attempts": attempts}
        )

    def _create_booking_once(self, data: BookingCreate) -> BookingSummary:
        check_in, check_out = data.check_in_date, data.check_out_date

        with self._unit_of_work() as uow:
            # 1. 查找房间
            room = self.db.query(Room).filter(Room.room_number == data.room_number).first()
            if not room:
                raise NotFoundError(f"房间不存在: {data.room_number}", {"room_number": data.room_number})

            # 2. 选取空闲床位，加行锁后复查
            bed = self.availability.first_available_bed(room, check_in, check_out)
            if bed is None:
                raise ConflictError(
                    f"房间 {room.room_number} 在 {check_in} 至 {check_out} 没有空闲床位",
                    {"room_number": room.room_number}
                )
            self.db.query(Bed).filter(Bed.id == bed.id).with_for_update().one()
            if self.availability.conflicting_bookings(bed.id, check_in, check_out):
                raise _BedTaken(f"bed {bed.bed_number} taken after lock")

            now = datetime.utcnow()

            # 3. 客人
            guest = self._resolve_guest(data, room, bed, now)

            # 4. 预订 + 占用夜
            booking = Booking(
                id=self.sequences.next_id(IdPrefix.BOOKING),
                room_id=room.id,
                bed_id=bed.id,
                guest=guest,
                check_in_date=check_in,
                check_out_date=check_out,
                status=BookingStatus.BOOKED,
                total_price=data.total_price,
                created_at=now,
            )
            booking.nights = [
                BedNight(bed_id=bed.id, night=night)
                for night in claimed_nights(check_in, check_out, self.same_day_turnover)
            ]
            self.db.add(booking)

            # 5. 支付（默认支付方式代替支付网关）
            payment = Payment(
                id=self.sequences.next_id(IdPrefix.PAYMENT),
                booking=booking,
                payment_method=PaymentMethod(settings.DEFAULT_PAYMENT_METHOD),
                amount=data.total_price,
                payment_date=now,
            )
            self.db.add(payment)

            # 6. 通知
            notification = Notification(
                id=self.sequences.next_id(IdPrefix.NOTIFICATION),
                booking_id=booking.id,
                title="New Booking",
                message=f"Booking created successfully for {guest.full_name}",
                is_read=False,
                created_at=now,
                guest_full_name=guest.full_name,
                room_number=room.room_number,
                bed_number=bed.bed_number,
                check_in_date=check_in,
                check_out_date=check_out,
                total_price=data.total_price,
            )
            self.db.add(notification)

            # bed_nights 唯一约束在此处生效
            self.db.flush()

            summary = BookingSummary(
                booking_id=booking.id,
                guest_full_name=guest.full_name,
                room_number=room.room_number,
                bed_number=bed.bed_number,
                check_in_date=check_in,
                check_out_date=check_out,
                total_price=data.total_price,
                payment_id=payment.id,
            )
            uow.add_event(Event.of(
                EventType.BOOKING_CREATED,
                BookingCreatedData(
                    booking_id=booking.id,
                    payment_id=payment.id,
                    guest_id=guest.id,
                    guest_first_name=guest.first_name,
                    guest_full_name=guest.full_name,
                    guest_email=guest.email,
                    guest_phone=guest.phone,
                    room_number=room.room_number,
                    bed_number=bed.bed_number,
                    check_in_date=check_in.isoformat(),
                    check_out_date=check_out.isoformat(),
                    total_price=float(data.total_price),
                ),
                "BookingService",
            ))

        logger.info(
            f"Booking {summary.booking_id} committed: room {summary.room_number} "
            f"bed {summary.bed_number} {check_in}..{check_out}"
        )
        return summary

    def _resolve_guest(self, data: BookingCreate, room: Room, bed: Bed, now: datetime) -> Guest:
        """按邮箱复用已有客人，否则新建；并分配房间/床位"""
        guest = None
        if data.email:
            guest = self.db.query(Guest).filter(
                func.lower(Guest.email) == data.email.lower()
            ).first()

        if guest is None:
            guest = Guest(
                id=self.sequences.next_id(IdPrefix.GUEST),
                email=data.email,
                registered_at=now,
            )
            self.db.add(guest)

        guest.first_name = data.first_name
        guest.last_name = data.last_name
        if data.phone:
            guest.phone = data.phone
        if data.date_of_birth:
            guest.date_of_birth = data.date_of_birth
        guest.room_id = room.id
        guest.bed_id = bed.id
        return guest

    # ============== 生命周期 ==============

    def _get_booking_or_raise(self, booking_id: str) -> Booking:
        booking = self.db.query(Booking).filter(Booking.id == booking_id).with_for_update().first()
        if not booking:
            raise NotFoundError(f"预订不存在: {booking_id}", {"booking_id": booking_id})
        return booking

    def _release(self, booking: Booking) -> None:
        """释放占用夜；若客人没有该床位上的其他有效预订，则解除其床位分配"""
        booking.nights.clear()

        guest = booking.guest
        if guest is None or guest.bed_id != booking.bed_id:
            return
        other_active = self.db.query(Booking).filter(
            Booking.guest_id == guest.id,
            Booking.bed_id == booking.bed_id,
            Booking.status == BookingStatus.BOOKED,
            Booking.id != booking.id,
        ).count()
        if other_active == 0:
            guest.room_id = None
            guest.bed_id = None

    def _transition(self, booking_id: str, target: BookingStatus, event_type: EventType) -> Booking:
        with store_errors("变更预订状态", {"booking_id": booking_id}), self._unit_of_work() as uow:
            booking = self._get_booking_or_raise(booking_id)
            old_status = booking.status

            # 只有取消是幂等的
            if old_status == target == BookingStatus.CANCELLED:
                logger.info(f"Booking {booking_id} already {target.value}")
                return booking
            if old_status != BookingStatus.BOOKED:
                raise InvalidStateError(
                    f"状态为 {old_status.value} 的预订不能变更为 {target.value}",
                    {"booking_id": booking_id, "status": old_status.value}
                )

            self._release(booking)
            booking.status = target
            uow.add_event(Event.of(
                event_type,
                BookingStatusChangedData(
                    booking_id=booking.id,
                    guest_id=booking.guest_id,
                    bed_id=booking.bed_id,
                    old_status=old_status.value,
                    new_status=target.value,
                ),
                "BookingService",
            ))

        logger.info(f"Booking {booking_id}: {old_status.value} -> {target.value}")
        return booking

    def cancel_booking(self, booking_id: str) -> Booking:
        """取消预订：Booked -> Cancelled；重复取消为空操作"""
        return self._transition(booking_id, BookingStatus.CANCELLED, EventType.BOOKING_CANCELLED)

    def complete_booking(self, booking_id: str) -> Booking:
        """完成预订：Booked -> Completed"""
        return self._transition(booking_id, BookingStatus.COMPLETED, EventType.BOOKING_COMPLETED)

    def delete_booking(self, booking_id: str) -> bool:
        """
        删除预订（不论状态）
        级联删除支付记录与占用夜；通知作为快照保留
        """
        with store_errors("删除预订", {"booking_id": booking_id}), self._unit_of_work() as uow:
            booking = self._get_booking_or_raise(booking_id)
            old_status = booking.status
            if old_status == BookingStatus.BOOKED:
                self._release(booking)
            uow.add_event(Event.of(
                EventType.BOOKING_DELETED,
                BookingStatusChangedData(
                    booking_id=booking.id,
                    guest_id=booking.guest_id,
                    bed_id=booking.bed_id,
                    old_status=old_status.value,
                ),
                "BookingService",
            ))
            self.db.delete(booking)

        logger.info(f"Booking {booking_id} deleted")
        return True

    # ============== 查询 ==============

    def get_booking(self, booking_id: str) -> Optional[Booking]:
        """获取单个预订"""
        return self.db.query(Booking).filter(Booking.id == booking_id).first()

    def get_bookings(self, status: Optional[Union[str, BookingStatus]] = None,
                     check_in_from: Optional[date] = None,
                     check_in_to: Optional[date] = None,
                     first_name: Optional[str] = None,
                     last_name: Optional[str] = None) -> List[Booking]:
        """获取预订列表（最新创建的在前）"""
        query = self.db.query(Booking)

        if status:
            query = query.filter(Booking.status == parse_booking_status(status))
        if check_in_from and check_in_to and check_in_from > check_in_to:
            raise InvalidStateError("起始日期不能晚于结束日期")
        if check_in_from:
            query = query.filter(Booking.check_in_date >= check_in_from)
        if check_in_to:
            query = query.filter(Booking.check_in_date <= check_in_to)
        if first_name or last_name:
            query = query.join(Guest, Booking.guest_id == Guest.id)
            if first_name:
                query = query.filter(Guest.first_name == first_name)
            if last_name:
                query = query.filter(Guest.last_name == last_name)

        return query.order_by(
            Booking.created_at.desc(), *[c.desc() for c in sequence_order(Booking.id)]
        ).all()

    def find_by_status(self, status: Union[str, BookingStatus]) -> List[Booking]:
        return self.get_bookings(status=status)

    def find_by_check_in_range(self, start: date, end: date) -> List[Booking]:
        """入住日期在 [start, end] 内的预订"""
        return self.get_bookings(check_in_from=start, check_in_to=end)

    def find_by_guest_name(self, first_name: str, last_name: str) -> List[Booking]:
        return self.get_bookings(first_name=first_name, last_name=last_name)

    def get_latest_booking(self) -> Optional[Booking]:
        """最近创建的预订"""
        return self.db.query(Booking).order_by(
            Booking.created_at.desc(), *[c.desc() for c in sequence_order(Booking.id)]
        ).first()

    def status_counts(self) -> Dict[str, int]:
        """按状态分组计数，没有记录的状态计为 0"""
        counts = {status.value: 0 for status in BookingStatus}
        rows = self.db.query(Booking.status, func.count(Booking.id)).group_by(Booking.status).all()
        for status, count in rows:
            counts[parse_booking_status(status).value] = count
        return counts

    def get_booking_detail(self, booking_id: str) -> dict:
        """获取预订详情（包含房间/床位/客人）"""
        booking = self.get_booking(booking_id)
        if not booking:
            raise NotFoundError(f"预订不存在: {booking_id}", {"booking_id": booking_id})
        return self.to_detail(booking)

    @staticmethod
    def to_detail(booking: Booking) -> dict:
        guest = booking.guest
        return {
            'id': booking.id,
            'guest_id': booking.guest_id,
            'guest_full_name': guest.full_name if guest else "",
            'guest_email': guest.email if guest else None,
            'room_id': booking.room_id,
            'room_number': booking.room.room_number if booking.room else None,
            'bed_id': booking.bed_id,
            'bed_number': booking.bed.bed_number if booking.bed else None,
            'status': booking.status,
            'check_in_date': booking.check_in_date,
            'check_out_date': booking.check_out_date,
            'total_price': booking.total_price,
            'created_at': booking.created_at,
        }
