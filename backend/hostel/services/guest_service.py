"""
客人服务 - 客人管理
管理员创建客人时按房间号自动分配第一个未被占用的床位
"""
from typing import List, Optional
from datetime import datetime
import logging

from sqlalchemy import desc, func
from sqlalchemy.orm import Session

from hostel.models.ontology import Guest, Room, Bed, Booking, IdPrefix, sequence_order
from hostel.models.schemas import GuestCreate, GuestUpdate
from hostel.services.errors import NotFoundError, ConflictError
from hostel.services.sequence_service import SequenceService
from hostel.services.unit_of_work import SqlAlchemyUnitOfWork, store_errors

logger = logging.getLogger(__name__)


class GuestService:
    """客人服务"""

    def __init__(self, db: Session):
        self.db = db
        self.sequences = SequenceService(db)

    def get_guests(self) -> List[Guest]:
        """获取客人列表（最新登记的在前）"""
        return self.db.query(Guest).order_by(
            desc(Guest.registered_at), *[c.desc() for c in sequence_order(Guest.id)]
        ).all()

    def get_guest(self, guest_id: str) -> Optional[Guest]:
        """获取单个客人"""
        return self.db.query(Guest).filter(Guest.id == guest_id).first()

    def get_guest_by_email(self, email: str) -> Optional[Guest]:
        """根据邮箱获取客人（不区分大小写）"""
        return self.db.query(Guest).filter(func.lower(Guest.email) == email.lower()).first()

    def _get_guest_or_raise(self, guest_id: str) -> Guest:
        guest = self.get_guest(guest_id)
        if not guest:
            raise NotFoundError(f"客人不存在: {guest_id}", {"guest_id": guest_id})
        return guest

    def _free_bed(self, room_number: str, exclude_guest_id: Optional[str] = None) -> Bed:
        """房间内第一个没有客人分配的床位"""
        room = self.db.query(Room).filter(Room.room_number == room_number).first()
        if not room:
            raise NotFoundError(f"房间不存在: {room_number}", {"room_number": room_number})

        query = self.db.query(Guest.bed_id).filter(Guest.room_id == room.id, Guest.bed_id.isnot(None))
        if exclude_guest_id:
            query = query.filter(Guest.id != exclude_guest_id)
        occupied = {bed_id for (bed_id,) in query.all()}

        for bed in room.beds:
            if bed.id not in occupied:
                return bed
        raise ConflictError(f"房间 {room_number} 没有空闲床位", {"room_number": room_number})

    def create_guest(self, data: GuestCreate) -> Guest:
        """创建客人并分配床位"""
        bed = self._free_bed(data.room_number)

        with store_errors("登记客人", {"email": data.email}), SqlAlchemyUnitOfWork(self.db):
            guest = Guest(
                id=self.sequences.next_id(IdPrefix.GUEST),
                **data.model_dump(exclude={"room_number"}),
                room_id=bed.room_id,
                bed_id=bed.id,
                registered_at=datetime.utcnow(),
            )
            self.db.add(guest)

        self.db.refresh(guest)
        logger.info(f"Guest {guest.id} registered on bed {bed.bed_number}")
        return guest

    def update_guest(self, guest_id: str, data: GuestUpdate) -> Guest:
        """更新客人信息；提供房间号时重新分配床位"""
        guest = self._get_guest_or_raise(guest_id)
        update_data = data.model_dump(exclude_unset=True, exclude_none=True)
        room_number = update_data.pop('room_number', None)

        bed = None
        if room_number and not (guest.room and guest.room.room_number == room_number and guest.bed_id):
            bed = self._free_bed(room_number, exclude_guest_id=guest.id)

        with store_errors("更新客人", {"guest_id": guest_id}), SqlAlchemyUnitOfWork(self.db):
            for key, value in update_data.items():
                setattr(guest, key, value)
            if bed is not None:
                guest.room_id = bed.room_id
                guest.bed_id = bed.id

        self.db.refresh(guest)
        return guest

    def delete_guest(self, guest_id: str) -> bool:
        """删除客人；有预订记录的客人不可删除"""
        guest = self._get_guest_or_raise(guest_id)
        count = self.db.query(Booking).filter(Booking.guest_id == guest_id).count()
        if count > 0:
            raise ConflictError(f"客人 {guest_id} 有 {count} 条预订记录，无法删除",
                                {"booking_count": count})

        with store_errors("删除客人", {"guest_id": guest_id}), SqlAlchemyUnitOfWork(self.db):
            self.db.delete(guest)

        logger.info(f"Guest {guest_id} deleted")
        return True

    @staticmethod
    def to_response(guest: Guest) -> dict:
        return {
            'id': guest.id,
            'first_name': guest.first_name,
            'last_name': guest.last_name,
            'full_name': guest.full_name,
            'email': guest.email,
            'phone': guest.phone,
            'date_of_birth': guest.date_of_birth,
            'room_id': guest.room_id,
            'bed_id': guest.bed_id,
            'room_number': guest.room.room_number if guest.room else None,
            'bed_number': guest.bed.bed_number if guest.bed else None,
            'registered_at': guest.registered_at,
        }
