"""
最新预订缓存 - 由后台定时任务刷新
"""
from typing import Callable, Optional
import logging
import threading

from sqlalchemy.exc import SQLAlchemyError

from hostel.database import SessionLocal
from hostel.models.schemas import BookingResponse
from hostel.services.booking_service import BookingService

logger = logging.getLogger(__name__)


def _recency(booking: BookingResponse):
    """创建时间相同时按顺序号数值比较（BK9 早于 BK10）"""
    return booking.created_at, len(booking.id), booking.id


class LatestBookingCache:
    """持有最近创建的预订（线程安全）"""

    def __init__(self):
        self._lock = threading.Lock()
        self._latest: Optional[BookingResponse] = None

    def get(self) -> Optional[BookingResponse]:
        with self._lock:
            return self._latest

    def offer(self, booking: BookingResponse) -> bool:
        """缓存为空或新预订更新时写入，返回是否写入"""
        with self._lock:
            current = self._latest
            if current is not None and _recency(booking) <= _recency(current):
                return False
            self._latest = booking
            return True

    def clear(self) -> None:
        with self._lock:
            self._latest = None


def poll_latest_booking(cache: LatestBookingCache,
                        session_factory: Callable = None) -> Optional[BookingResponse]:
    """读取最近创建的预订并尝试写入缓存"""
    db = (session_factory or SessionLocal)()
    try:
        booking = BookingService(db).get_latest_booking()
        if booking is None:
            return cache.get()
        snapshot = BookingResponse(**BookingService.to_detail(booking))
        if cache.offer(snapshot):
            logger.info(f"Latest booking cache updated: {snapshot.id}")
        return cache.get()
    except SQLAlchemyError as e:
        logger.error(f"Latest booking poll failed: {e}", exc_info=True)
        return cache.get()
    finally:
        db.close()


# 全局缓存实例
latest_booking_cache = LatestBookingCache()
