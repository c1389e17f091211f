"""
房间服务 - 房间/床位管理
房间与床位一同创建；床位数不得超过房间容量
"""
from typing import List, Optional
import logging

from sqlalchemy.orm import Session

from hostel.models.ontology import Room, Bed, Guest, Booking, IdPrefix, sequence_order
from hostel.models.schemas import RoomCreate, RoomUpdate, BedCreate
from hostel.services.errors import NotFoundError, ConflictError
from hostel.services.sequence_service import SequenceService
from hostel.services.unit_of_work import SqlAlchemyUnitOfWork, store_errors

logger = logging.getLogger(__name__)


class RoomService:
    """房间服务"""

    def __init__(self, db: Session):
        self.db = db
        self.sequences = SequenceService(db)

    # ============== 房间操作 ==============

    def get_rooms(self, floor: Optional[int] = None) -> List[Room]:
        """获取房间列表"""
        query = self.db.query(Room)
        if floor is not None:
            query = query.filter(Room.floor == floor)
        return query.order_by(Room.floor, Room.room_number).all()

    def get_room(self, room_id: str) -> Optional[Room]:
        """获取单个房间"""
        return self.db.query(Room).filter(Room.id == room_id).first()

    def get_room_by_number(self, room_number: str) -> Optional[Room]:
        """根据房间号获取房间"""
        return self.db.query(Room).filter(Room.room_number == room_number).first()

    def _get_room_or_raise(self, room_id: str) -> Room:
        room = self.get_room(room_id)
        if not room:
            raise NotFoundError(f"房间不存在: {room_id}", {"room_id": room_id})
        return room

    def _new_bed(self, room: Room, bed_number: Optional[str] = None) -> Bed:
        bed_number = bed_number or self.sequences.next_id(IdPrefix.BED_NUMBER)
        if self.db.query(Bed).filter(Bed.bed_number == bed_number).first():
            raise ConflictError(f"床位号 '{bed_number}' 已存在", {"bed_number": bed_number})
        bed = Bed(id=self.sequences.next_id(IdPrefix.BED), bed_number=bed_number)
        room.beds.append(bed)
        return bed

    def create_room(self, data: RoomCreate) -> Room:
        """创建房间（同时创建 bed_count 个床位）"""
        if self.get_room_by_number(data.room_number):
            raise ConflictError(f"房间号 '{data.room_number}' 已存在",
                                {"room_number": data.room_number})
        if data.bed_count > data.capacity:
            raise ConflictError(
                f"床位数 {data.bed_count} 超过房间容量 {data.capacity}",
                {"bed_count": data.bed_count, "capacity": data.capacity}
            )

        with store_errors("创建房间", {"room_number": data.room_number}), SqlAlchemyUnitOfWork(self.db):
            room = Room(
                id=self.sequences.next_id(IdPrefix.ROOM),
                room_number=data.room_number,
                floor=data.floor,
                capacity=data.capacity,
            )
            self.db.add(room)
            for _ in range(data.bed_count):
                self._new_bed(room)
                self.db.flush()

        self.db.refresh(room)
        logger.info(f"Room {room.room_number} created with {len(room.beds)} bed(s)")
        return room

    def update_room(self, room_id: str, data: RoomUpdate) -> Room:
        """更新房间"""
        room = self._get_room_or_raise(room_id)
        update_data = data.model_dump(exclude_unset=True, exclude_none=True)

        if 'room_number' in update_data:
            existing = self.get_room_by_number(update_data['room_number'])
            if existing and existing.id != room_id:
                raise ConflictError(f"房间号 '{update_data['room_number']}' 已存在",
                                    {"room_number": update_data['room_number']})
        if 'capacity' in update_data and update_data['capacity'] < len(room.beds):
            raise ConflictError(
                f"容量 {update_data['capacity']} 小于现有床位数 {len(room.beds)}",
                {"capacity": update_data['capacity'], "bed_count": len(room.beds)}
            )

        with store_errors("更新房间", {"room_id": room_id}), SqlAlchemyUnitOfWork(self.db):
            for key, value in update_data.items():
                setattr(room, key, value)

        self.db.refresh(room)
        return room

    def _ensure_no_bookings(self, bed_ids: List[str], label: str) -> None:
        if not bed_ids:
            return
        count = self.db.query(Booking).filter(Booking.bed_id.in_(bed_ids)).count()
        if count > 0:
            raise ConflictError(f"{label}有 {count} 条预订记录，无法删除", {"booking_count": count})

    def _unassign_guests(self, bed_ids: List[str]) -> None:
        if not bed_ids:
            return
        for guest in self.db.query(Guest).filter(Guest.bed_id.in_(bed_ids)).all():
            guest.room_id = None
            guest.bed_id = None

    def delete_room(self, room_id: str) -> bool:
        """删除房间（级联删除床位）；有预订历史的房间不可删除"""
        room = self._get_room_or_raise(room_id)
        bed_ids = room.bed_ids
        room_number = room.room_number
        self._ensure_no_bookings(bed_ids, f"房间 {room.room_number} ")

        with store_errors("删除房间", {"room_id": room_id}), SqlAlchemyUnitOfWork(self.db):
            self._unassign_guests(bed_ids)
            self.db.query(Guest).filter(Guest.room_id == room.id).update(
                {Guest.room_id: None}, synchronize_session="fetch"
            )
            self.db.delete(room)

        logger.info(f"Room {room_number} deleted with {len(bed_ids)} bed(s)")
        return True

    # ============== 床位操作 ==============

    def get_beds(self, room_id: Optional[str] = None) -> List[Bed]:
        """获取床位列表"""
        query = self.db.query(Bed)
        if room_id:
            query = query.filter(Bed.room_id == room_id)
        return query.order_by(*sequence_order(Bed.id)).all()

    def get_bed(self, bed_id: str) -> Optional[Bed]:
        return self.db.query(Bed).filter(Bed.id == bed_id).first()

    def add_bed(self, data: BedCreate) -> Bed:
        """向房间添加床位"""
        room = self._get_room_or_raise(data.room_id)
        if len(room.beds) >= room.capacity:
            raise ConflictError(
                f"房间 {room.room_number} 已满（容量 {room.capacity}）",
                {"room_number": room.room_number, "capacity": room.capacity}
            )

        with store_errors("添加床位", {"room_id": data.room_id}), SqlAlchemyUnitOfWork(self.db):
            bed = self._new_bed(room, data.bed_number)

        self.db.refresh(bed)
        logger.info(f"Bed {bed.bed_number} added to room {room.room_number}")
        return bed

    def delete_bed(self, bed_id: str) -> bool:
        """删除床位；清除指向该床位的客人分配"""
        bed = self.get_bed(bed_id)
        if not bed:
            raise NotFoundError(f"床位不存在: {bed_id}", {"bed_id": bed_id})
        bed_number = bed.bed_number
        self._ensure_no_bookings([bed.id], f"床位 {bed.bed_number} ")

        with store_errors("删除床位", {"bed_id": bed_id}), SqlAlchemyUnitOfWork(self.db):
            self._unassign_guests([bed.id])
            bed.room.beds.remove(bed)

        logger.info(f"Bed {bed_number} deleted")
        return True
