"""
顺序号服务测试
"""
import threading
import time
from datetime import date
from decimal import Decimal
from unittest.mock import Mock

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from hostel.database import init_db
from hostel.models.ontology import IdSequence, IdPrefix, Guest, Booking
from hostel.models.schemas import RoomCreate, BookingCreate
from hostel.services.booking_service import BookingService
from hostel.services.room_service import RoomService
from hostel.services.sequence_service import (
    SequenceService, next_sequential_id, max_sequence_number
)


class TestNextSequentialId:
    """纯函数：根据已有 id 计算下一个顺序号"""

    def test_takes_max_suffix(self):
        assert next_sequential_id("C", ["C1", "C3", "C7"]) == "C8"

    def test_empty_starts_at_one(self):
        assert next_sequential_id("C", []) == "C1"

    def test_malformed_ids_ignored(self):
        ids = ["C2", "CX", "C", "c9", "C3a", None, "", "BK99"]
        assert next_sequential_id("C", ids) == "C3"

    def test_numeric_not_lexicographic(self):
        assert next_sequential_id("BK", ["BK9", "BK10", "BK2"]) == "BK11"

    def test_prefix_must_match_exactly(self):
        """B 前缀不应匹配 BK / BN 开头的 id"""
        assert max_sequence_number("B", ["BK5", "BN7", "B2"]) == 2


class TestSequenceService:
    """存储计数器"""

    def test_first_use_seeds_from_existing_rows(self, db_session):
        db_session.add_all([
            Guest(id="C4", first_name="A", last_name="B"),
            Guest(id="C9", first_name="C", last_name="D"),
        ])
        db_session.commit()

        service = SequenceService(db_session)
        assert service.next_id(IdPrefix.GUEST) == "C10"
        db_session.commit()

        seq = db_session.query(IdSequence).filter(IdSequence.prefix == IdPrefix.GUEST).one()
        assert seq.last_value == 10

    def test_increments_without_rescanning(self, db_session):
        service = SequenceService(db_session)
        assert service.next_id(IdPrefix.BOOKING) == "BK1"
        assert service.next_id(IdPrefix.BOOKING) == "BK2"
        db_session.commit()

        # 计数器已播种，后插入的大号 id 不影响序列
        db_session.add(Guest(id="C50", first_name="X", last_name="Y"))
        db_session.commit()
        assert service.next_id(IdPrefix.BOOKING) == "BK3"

    def test_prefixes_are_independent(self, db_session):
        service = SequenceService(db_session)
        assert service.next_id(IdPrefix.PAYMENT) == "PY1"
        assert service.next_id(IdPrefix.NOTIFICATION) == "N1"
        assert service.next_id(IdPrefix.PAYMENT) == "PY2"

    def test_rollback_discards_increment(self, db_session):
        service = SequenceService(db_session)
        assert service.next_id(IdPrefix.ROOM) == "R1"
        db_session.commit()

        assert service.next_id(IdPrefix.ROOM) == "R2"
        db_session.rollback()

        assert service.next_id(IdPrefix.ROOM) == "R2"

    def test_increment_visible_in_session(self, db_session):
        service = SequenceService(db_session)
        service.next_id(IdPrefix.GUEST)
        seq = db_session.query(IdSequence).filter(IdSequence.prefix == IdPrefix.GUEST).one()
        assert service.next_id(IdPrefix.GUEST) == "C2"
        assert seq.last_value == 2


@pytest.fixture
def file_session_factory(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'sequence.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    init_db(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


class TestConcurrentSequence:
    """多个会话并发取号（文件数据库，每个线程独立会话）"""

    def test_open_transaction_blocks_second_writer(self, file_session_factory):
        setup = file_session_factory()
        assert SequenceService(setup).next_id(IdPrefix.BOOKING) == "BK1"
        setup.commit()
        setup.close()

        first_minted = threading.Event()
        minted = []

        def holder():
            db = file_session_factory()
            try:
                minted.append(SequenceService(db).next_id(IdPrefix.BOOKING))
                first_minted.set()
                # 事务保持打开，第二个写者必须等待
                time.sleep(0.5)
                db.commit()
            finally:
                db.close()

        def follower():
            db = file_session_factory()
            try:
                first_minted.wait(timeout=10)
                minted.append(SequenceService(db).next_id(IdPrefix.BOOKING))
                db.commit()
            finally:
                db.close()

        threads = [threading.Thread(target=holder), threading.Thread(target=follower)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=60)

        assert minted == ["BK2", "BK3"]

        check = file_session_factory()
        try:
            seq = check.query(IdSequence).filter(IdSequence.prefix == IdPrefix.BOOKING).one()
            assert seq.last_value == 3
        finally:
            check.close()

    def test_bookings_in_different_rooms_all_succeed(self, file_session_factory):
        workers = 8
        setup = file_session_factory()
        rooms = RoomService(setup)
        for n in range(workers):
            rooms.create_room(RoomCreate(room_number=f"{101 + n}", floor=1, capacity=4, bed_count=4))
        setup.close()

        barrier = threading.Barrier(workers)
        results, errors = [], []

        def worker(n):
            db = file_session_factory()
            try:
                barrier.wait()
                results.append(BookingService(db, event_publisher=Mock()).create_booking(BookingCreate(
                    first_name=f"Guest{n}",
                    last_name="Parallel",
                    email=f"guest{n}@example.com",
                    room_number=f"{101 + n}",
                    check_in_date=date(2025, 8, 1),
                    check_out_date=date(2025, 8, 3),
                    total_price=Decimal("60.00"),
                )))
            except Exception as e:
                errors.append(e)
            finally:
                db.close()

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(workers)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=120)

        assert errors == []
        assert len(results) == workers

        check = file_session_factory()
        try:
            booking_ids = [b.id for b in check.query(Booking).all()]
            guest_ids = [g.id for g in check.query(Guest).all()]
            assert sorted(booking_ids) == sorted(f"BK{n}" for n in range(1, workers + 1))
            assert len(set(guest_ids)) == workers
        finally:
            check.close()
