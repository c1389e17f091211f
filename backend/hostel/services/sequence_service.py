"""
顺序号服务 - 为各实体生成 <前缀><整数> 形式的 id

计数器保存在 id_sequences 表中，与它所服务的实体写入处于同一事务：
首次使用某前缀时扫描现有 id 播种，之后只做递增，不再重新扫描。
"""
import logging
import re
from typing import Iterable, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from hostel.models.ontology import (
    IdSequence, IdPrefix, Room, Bed, Guest, Booking, Payment, Notification
)

logger = logging.getLogger(__name__)


# 前缀 -> 已有 id 所在的列（用于首次播种）
SEQUENCE_SOURCES = {
    IdPrefix.ROOM: Room.id,
    IdPrefix.BED: Bed.id,
    IdPrefix.BED_NUMBER: Bed.bed_number,
    IdPrefix.GUEST: Guest.id,
    IdPrefix.BOOKING: Booking.id,
    IdPrefix.PAYMENT: Payment.id,
    IdPrefix.NOTIFICATION: Notification.id,
}


def max_sequence_number(prefix: str, existing_ids: Iterable[Optional[str]]) -> int:
    """返回匹配 <prefix><digits> 的最大数值后缀，无匹配时为 0；格式不符的 id 忽略"""
    pattern = re.compile(rf"^{re.escape(prefix)}(\d+)$")
    numbers = []
    for value in existing_ids:
        if not value:
            continue
        match = pattern.match(value)
        if match:
            numbers.append(int(match.group(1)))
    return max(numbers, default=0)


def next_sequential_id(prefix: str, existing_ids: Iterable[Optional[str]]) -> str:
    """
    根据现有 id 计算下一个顺序号

    Examples:
        next_sequential_id("C", ["C1", "C3", "C7"]) -> "C8"
        next_sequential_id("C", []) -> "C1"
    """
    return f"{prefix}{max_sequence_number(prefix, existing_ids) + 1}"


class SequenceService:
    """
    顺序号服务

    递增先于读取：UPDATE 取得计数器行的写锁（SQLite 上为数据库写锁），
    锁一直持有到调用方事务提交或回滚，同前缀的其他写者在此排队。
    """

    def __init__(self, db: Session):
        self.db = db

    def _scan_max(self, prefix: str) -> int:
        column = SEQUENCE_SOURCES.get(prefix)
        if column is None:
            return 0
        existing = [value for (value,) in self.db.query(column).all()]
        return max_sequence_number(prefix, existing)

    def _increment(self, prefix: str) -> int:
        return self.db.query(IdSequence).filter(
            IdSequence.prefix == prefix
        ).update(
            {IdSequence.last_value: IdSequence.last_value + 1}
        )

    def _seed(self, prefix: str) -> None:
        """首次使用：扫描现有 id 插入计数器行；并发播种时以先插入者为准"""
        self.db.flush()
        start = self._scan_max(prefix)
        try:
            with self.db.begin_nested():
                self.db.add(IdSequence(prefix=prefix, last_value=start))
            logger.info(f"Sequence {prefix} seeded at {start}")
        except IntegrityError:
            logger.debug(f"Sequence {prefix} seeded concurrently")

    def next_id(self, prefix: str) -> str:
        """生成下一个 id（在调用方事务内）"""
        if not self._increment(prefix):
            self._seed(prefix)
            self._increment(prefix)

        value = self.db.query(IdSequence.last_value).filter(
            IdSequence.prefix == prefix
        ).scalar()
        return f"{prefix}{value}"
