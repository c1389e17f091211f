"""
房间管理路由（含可用房间查询）
"""
from typing import List, Optional
from datetime import date
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from hostel.database import get_db
from hostel.models.schemas import RoomCreate, RoomUpdate, RoomResponse
from hostel.routers import http_error
from hostel.services.availability_service import AvailabilityService
from hostel.services.errors import HostelError, NotFoundError
from hostel.services.room_service import RoomService

router = APIRouter(prefix="/rooms", tags=["房间管理"])


@router.get("/available", response_model=List[str])
def list_available_rooms(
    check_in_date: date,
    check_out_date: date,
    guest_count: int = Query(1),
    db: Session = Depends(get_db)
):
    """查询区间内空闲床位数不少于 guest_count 的房间号"""
    try:
        return AvailabilityService(db).find_available_rooms(check_in_date, check_out_date, guest_count)
    except HostelError as e:
        raise http_error(e)


@router.get("", response_model=List[RoomResponse])
def list_rooms(
    floor: Optional[int] = None,
    db: Session = Depends(get_db)
):
    """获取房间列表（含床位）"""
    return RoomService(db).get_rooms(floor)


@router.get("/{room_id}", response_model=RoomResponse)
def get_room(room_id: str, db: Session = Depends(get_db)):
    """获取房间详情"""
    room = RoomService(db).get_room(room_id)
    if not room:
        raise http_error(NotFoundError(f"房间不存在: {room_id}"))
    return room


@router.post("", response_model=RoomResponse)
def create_room(data: RoomCreate, db: Session = Depends(get_db)):
    """创建房间（同时创建床位）"""
    try:
        return RoomService(db).create_room(data)
    except HostelError as e:
        raise http_error(e)


@router.put("/{room_id}", response_model=RoomResponse)
def update_room(room_id: str, data: RoomUpdate, db: Session = Depends(get_db)):
    """更新房间"""
    try:
        return RoomService(db).update_room(room_id, data)
    except HostelError as e:
        raise http_error(e)


@router.delete("/{room_id}")
def delete_room(room_id: str, db: Session = Depends(get_db)):
    """删除房间（级联删除床位）"""
    try:
        RoomService(db).delete_room(room_id)
        return {"message": "删除成功", "room_id": room_id}
    except HostelError as e:
        raise http_error(e)
