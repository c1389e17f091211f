"""
Pytest 配置和共享 fixtures
"""
import os

# 测试中不启动后台调度器，通知同步发送，不写本地数据库文件
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("SCHEDULER_ENABLED", "false")
os.environ.setdefault("NOTIFY_ASYNC", "false")

import pytest
from datetime import date
from decimal import Decimal
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient

from hostel.database import Base, get_db
from hostel.models import ontology
from hostel.models.schemas import RoomCreate, BookingCreate
from hostel.core.notification import NotificationChannelRegistry
from hostel.services.booking_cache import latest_booking_cache
from hostel.services.event_bus import event_bus
from hostel.services.room_service import RoomService
from hostel.main import app


@pytest.fixture(scope="function")
def db_engine():
    """创建内存数据库引擎"""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db_session(db_engine):
    """创建数据库会话"""
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = SessionLocal()
    yield session
    session.close()


@pytest.fixture(scope="function")
def client(db_session):
    """创建测试客户端"""
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def clean_globals():
    """每个测试前后清理全局事件总线、渠道注册表与缓存"""
    event_bus.clear_subscribers()
    event_bus.clear_history()
    NotificationChannelRegistry().clear()
    latest_booking_cache.clear()
    yield
    event_bus.clear_subscribers()
    event_bus.clear_history()
    NotificationChannelRegistry().clear()
    latest_booking_cache.clear()


# ============== 数据 Fixtures ==============

@pytest.fixture
def make_room(db_session):
    """房间工厂：make_room("R-101", beds=2)"""
    def _make(room_number: str = "101", beds: int = 2, capacity: int = None, floor: int = 1):
        return RoomService(db_session).create_room(RoomCreate(
            room_number=room_number,
            floor=floor,
            capacity=capacity if capacity is not None else max(beds, 1),
            bed_count=beds,
        ))
    return _make


@pytest.fixture
def booking_data():
    """预订请求工厂"""
    def _make(room_number: str = "101", check_in: date = date(2025, 5, 1),
              check_out: date = date(2025, 5, 5), first_name: str = "Anna",
              last_name: str = "Schmidt", email: str = None, phone: str = None,
              total_price: str = "120.00"):
        return BookingCreate(
            first_name=first_name,
            last_name=last_name,
            email=email if email is not None else f"{first_name.lower()}@example.com",
            phone=phone,
            room_number=room_number,
            check_in_date=check_in,
            check_out_date=check_out,
            total_price=Decimal(total_price),
        )
    return _make
