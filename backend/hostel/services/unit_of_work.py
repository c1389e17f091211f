"""
工作单元 (Unit of Work)
包裹一次业务写操作：成功则提交，异常则整体回滚；
收集的领域事件只在提交成功之后发布。
"""
import logging
from contextlib import contextmanager
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from hostel.services.errors import ConflictError, InternalError
from hostel.services.event_bus import Event, event_bus

logger = logging.getLogger(__name__)


class SqlAlchemyUnitOfWork:
    """
    SQLAlchemy 工作单元

    使用方式：
        with SqlAlchemyUnitOfWork(db) as uow:
            db.add(booking)
            uow.add_event(Event.of(EventType.BOOKING_CREATED, data, "BookingService"))
        # 此处已提交，事件已发布
    """

    def __init__(self, db: Session, event_publisher: Optional[Callable[[Event], None]] = None):
        self.db = db
        self._publish_event = event_publisher or event_bus.publish
        self._events: List[Event] = []

    def __enter__(self) -> "SqlAlchemyUnitOfWork":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        if exc_type is not None:
            self.rollback()
            return False
        try:
            self.commit()
        except Exception:
            self.rollback()
            raise
        return False

    def add_event(self, event: Event) -> None:
        self._events.append(event)

    def commit(self) -> None:
        self.db.commit()
        events, self._events = self._events, []
        for event in events:
            # 已提交的数据不受订阅者失败影响
            try:
                self._publish_event(event)
            except Exception as e:
                logger.error(f"Failed to publish {event.event_type} after commit: {e}", exc_info=True)

    def rollback(self) -> None:
        self._events.clear()
        self.db.rollback()


@contextmanager
def store_errors(action: str, context: Optional[Dict[str, Any]] = None):
    """
    将写阶段的存储异常映射为服务层异常

    约束冲突（如并发写入重复的房间号）-> ConflictError，
    其他存储失败 -> InternalError；服务层异常原样抛出。

    使用方式：
        with store_errors("创建房间"), SqlAlchemyUnitOfWork(db):
            ...
    """
    try:
        yield
    except IntegrityError as e:
        logger.warning(f"Store constraint violated during {action}: {e.orig}")
        raise ConflictError(f"{action}失败：与现有数据冲突", context) from e
    except SQLAlchemyError as e:
        logger.error(f"Store failure during {action}: {e}", exc_info=True)
        raise InternalError(f"{action}时存储失败", context) from e
