"""
可用性服务 - 判断床位在区间内是否空闲，并聚合为房间级可用性

重叠规则由 SAME_DAY_TURNOVER 决定：
- True : 半开区间 [check_in, check_out)，同日退房/入住不冲突
- False: 闭区间比较，仅当一方严格早于另一方时不冲突
"""
import logging
from datetime import date, timedelta
from typing import Dict, List, Optional, Set

from sqlalchemy import and_, or_, not_
from sqlalchemy.orm import Session

from hostel.config import settings
from hostel.models.ontology import Room, Bed, Booking, BookingStatus, sequence_order
from hostel.services.errors import InvalidStateError

logger = logging.getLogger(__name__)


def intervals_overlap(check_in: date, check_out: date,
                      other_in: date, other_out: date,
                      same_day_turnover: Optional[bool] = None) -> bool:
    """两个入住区间是否冲突"""
    if same_day_turnover is None:
        same_day_turnover = settings.SAME_DAY_TURNOVER
    if same_day_turnover:
        return check_in < other_out and other_in < check_out
    return not (check_out < other_in or check_in > other_out)


def claimed_nights(check_in: date, check_out: date,
                   same_day_turnover: Optional[bool] = None) -> List[date]:
    """
    预订占用的日期列表（写入 bed_nights 的行）

    半开规则占用 [check_in, check_out)；闭区间规则额外占用退房当天，
    这样两条唯一约束与 intervals_overlap 的判定完全一致。
    """
    if same_day_turnover is None:
        same_day_turnover = settings.SAME_DAY_TURNOVER
    nights = (check_out - check_in).days
    if not same_day_turnover:
        nights += 1
    return [check_in + timedelta(days=i) for i in range(nights)]


def validate_interval(check_in: date, check_out: date) -> None:
    if check_in is None or check_out is None or check_out <= check_in:
        raise InvalidStateError(
            "离店日期必须晚于入住日期",
            {"check_in_date": str(check_in), "check_out_date": str(check_out)}
        )


class AvailabilityService:
    """可用性服务"""

    def __init__(self, db: Session, same_day_turnover: Optional[bool] = None):
        self.db = db
        self.same_day_turnover = (
            settings.SAME_DAY_TURNOVER if same_day_turnover is None else same_day_turnover
        )

    def _overlap_filter(self, check_in: date, check_out: date):
        """与 intervals_overlap 等价的 SQL 条件"""
        if self.same_day_turnover:
            return and_(Booking.check_in_date < check_out, Booking.check_out_date > check_in)
        return not_(or_(Booking.check_in_date > check_out, Booking.check_out_date < check_in))

    def conflicting_bookings(self, bed_id: str, check_in: date, check_out: date,
                             exclude_booking_id: Optional[str] = None) -> List[Booking]:
        """获取与区间冲突的 Booked 预订"""
        query = self.db.query(Booking).filter(
            Booking.bed_id == bed_id,
            Booking.status == BookingStatus.BOOKED,
            self._overlap_filter(check_in, check_out),
        )
        if exclude_booking_id:
            query = query.filter(Booking.id != exclude_booking_id)
        return query.all()

    def busy_bed_ids(self, check_in: date, check_out: date,
                     room_id: Optional[str] = None) -> Set[str]:
        """区间内被 Booked 预订占用的床位 id 集合"""
        query = self.db.query(Booking.bed_id).filter(
            Booking.status == BookingStatus.BOOKED,
            self._overlap_filter(check_in, check_out),
        )
        if room_id:
            query = query.filter(Booking.room_id == room_id)
        return {bed_id for (bed_id,) in query.distinct().all()}

    def is_bed_available(self, bed: Bed, check_in: date, check_out: date) -> bool:
        """床位在区间内是否空闲"""
        validate_interval(check_in, check_out)
        conflicts = self.conflicting_bookings(bed.id, check_in, check_out)
        if conflicts:
            logger.debug(
                f"Bed {bed.bed_number} unavailable {check_in}..{check_out}: "
                f"conflicts with {[b.id for b in conflicts]}"
            )
            return False
        return True

    def find_available_beds(self, room: Room, check_in: date, check_out: date) -> List[Bed]:
        """房间内在区间内空闲的床位（按床位顺序）"""
        validate_interval(check_in, check_out)
        busy = self.busy_bed_ids(check_in, check_out, room_id=room.id)
        beds = self.db.query(Bed).filter(Bed.room_id == room.id).order_by(
            *sequence_order(Bed.id)
        ).all()
        return [bed for bed in beds if bed.id not in busy]

    def first_available_bed(self, room: Room, check_in: date, check_out: date) -> Optional[Bed]:
        beds = self.find_available_beds(room, check_in, check_out)
        return beds[0] if beds else None

    def free_bed_counts(self, check_in: date, check_out: date) -> Dict[str, int]:
        """每个房间在区间内的空闲床位数 {room_id: count}"""
        validate_interval(check_in, check_out)
        busy = self.busy_bed_ids(check_in, check_out)
        counts: Dict[str, int] = {}
        for bed_id, room_id in self.db.query(Bed.id, Bed.room_id).all():
            counts.setdefault(room_id, 0)
            if bed_id not in busy:
                counts[room_id] += 1
        return counts

    def find_available_rooms(self, check_in: date, check_out: date, guest_count: int) -> List[str]:
        """
        查找空闲床位数不少于 guest_count 的房间

        Returns:
            房间号列表（按楼层、房间号排序）
        """
        if guest_count is None or guest_count < 1:
            raise InvalidStateError("入住人数必须大于 0", {"guest_count": guest_count})

        counts = self.free_bed_counts(check_in, check_out)
        rooms = self.db.query(Room).order_by(Room.floor, Room.room_number).all()

        available = []
        for room in rooms:
            free = counts.get(room.id, 0)
            if free >= guest_count:
                available.append(room.room_number)
            else:
                logger.debug(f"Room {room.room_number} skipped: {free} free bed(s) < {guest_count}")

        logger.info(
            f"Availability {check_in}..{check_out} for {guest_count} guest(s): {available}"
        )
        return available
