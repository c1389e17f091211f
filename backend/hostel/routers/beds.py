"""
床位管理路由
"""
from typing import List, Optional
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from hostel.database import get_db
from hostel.models.schemas import BedCreate, BedResponse
from hostel.routers import http_error
from hostel.services.errors import HostelError
from hostel.services.room_service import RoomService

router = APIRouter(prefix="/beds", tags=["床位管理"])


@router.get("", response_model=List[BedResponse])
def list_beds(room_id: Optional[str] = None, db: Session = Depends(get_db)):
    """获取床位列表"""
    return RoomService(db).get_beds(room_id)


@router.post("", response_model=BedResponse)
def add_bed(data: BedCreate, db: Session = Depends(get_db)):
    """向房间添加床位"""
    try:
        return RoomService(db).add_bed(data)
    except HostelError as e:
        raise http_error(e)


@router.delete("/{bed_id}")
def delete_bed(bed_id: str, db: Session = Depends(get_db)):
    """删除床位"""
    try:
        RoomService(db).delete_bed(bed_id)
        return {"message": "删除成功", "bed_id": bed_id}
    except HostelError as e:
        raise http_error(e)
