"""
预订服务测试 - 创建/取消/完成/删除/查询
"""
import pytest
from datetime import date
from decimal import Decimal
from unittest.mock import Mock, patch

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from hostel.models.ontology import (
    Booking, BookingStatus, Guest, Payment, PaymentMethod, Notification, BedNight
)
from hostel.models.events import EventType
from hostel.services.booking_service import BookingService, parse_booking_status
from hostel.services.errors import (
    NotFoundError, ConflictError, InvalidStateError, InternalError
)


def _counts(db_session):
    return (
        db_session.query(Guest).count(),
        db_session.query(Booking).count(),
        db_session.query(Payment).count(),
        db_session.query(Notification).count(),
    )


class TestCreateBooking:
    """创建预订"""

    def test_create_success(self, db_session, make_room, booking_data):
        room = make_room("101", beds=2)
        publisher = Mock()
        service = BookingService(db_session, event_publisher=publisher)

        summary = service.create_booking(booking_data())

        assert summary.booking_id == "BK1"
        assert summary.payment_id == "PY1"
        assert summary.guest_full_name == "Anna Schmidt"
        assert summary.room_number == "101"
        assert summary.bed_number == room.beds[0].bed_number
        assert summary.total_price == Decimal("120.00")

        booking = db_session.query(Booking).one()
        assert booking.status == BookingStatus.BOOKED
        assert booking.guest.room_id == room.id
        assert booking.guest.bed_id == booking.bed_id
        assert len(booking.nights) == 4

        payment = db_session.query(Payment).one()
        assert payment.booking_id == "BK1"
        assert payment.payment_method == PaymentMethod.CREDIT_CARD
        assert payment.amount == Decimal("120.00")

        notification = db_session.query(Notification).one()
        assert notification.title == "New Booking"
        assert notification.booking_id == "BK1"
        assert notification.guest_full_name == "Anna Schmidt"
        assert notification.is_read is False

        publisher.assert_called_once()
        event = publisher.call_args[0][0]
        assert event.event_type == EventType.BOOKING_CREATED.value
        assert event.data["booking_id"] == "BK1"
        assert event.data["guest_first_name"] == "Anna"

    def test_second_booking_takes_next_bed(self, db_session, make_room, booking_data):
        room = make_room("101", beds=2)
        service = BookingService(db_session, event_publisher=Mock())

        first = service.create_booking(booking_data(first_name="Anna"))
        second = service.create_booking(booking_data(first_name="Ben"))

        assert first.bed_number == room.beds[0].bed_number
        assert second.bed_number == room.beds[1].bed_number
        assert second.booking_id == "BK2"
        assert second.payment_id == "PY2"

    def test_existing_guest_reused_by_email(self, db_session, make_room, booking_data):
        make_room("101", beds=2)
        service = BookingService(db_session, event_publisher=Mock())

        service.create_booking(booking_data(email="anna@example.com"))
        service.create_booking(booking_data(email="ANNA@example.com",
                                            check_in=date(2025, 6, 1), check_out=date(2025, 6, 3)))

        assert db_session.query(Guest).count() == 1
        assert db_session.query(Booking).count() == 2

    def test_unknown_room(self, db_session, booking_data):
        service = BookingService(db_session, event_publisher=Mock())
        with pytest.raises(NotFoundError):
            service.create_booking(booking_data(room_number="404"))
        assert _counts(db_session) == (0, 0, 0, 0)

    def test_full_room_conflict_leaves_no_records(self, db_session, make_room, booking_data):
        make_room("101", beds=1)
        publisher = Mock()
        service = BookingService(db_session, event_publisher=publisher)
        service.create_booking(booking_data(first_name="Anna"))
        before = _counts(db_session)

        with pytest.raises(ConflictError):
            service.create_booking(booking_data(first_name="Ben", email="ben@example.com"))

        assert _counts(db_session) == before
        assert publisher.call_count == 1

    def test_invalid_interval(self, db_session, make_room, booking_data):
        make_room("101", beds=1)
        service = BookingService(db_session, event_publisher=Mock())
        with pytest.raises(InvalidStateError):
            service.create_booking(booking_data(check_in=date(2025, 5, 5), check_out=date(2025, 5, 5)))

    @pytest.mark.parametrize("turnover,should_succeed", [(True, True), (False, False)])
    def test_same_day_turnover(self, db_session, make_room, booking_data, turnover, should_succeed):
        make_room("101", beds=1)
        service = BookingService(db_session, event_publisher=Mock(), same_day_turnover=turnover)
        service.create_booking(booking_data(check_in=date(2025, 5, 1), check_out=date(2025, 5, 5)))

        follow_up = booking_data(first_name="Ben", email="ben@example.com",
                                 check_in=date(2025, 5, 5), check_out=date(2025, 5, 7))
        if should_succeed:
            assert service.create_booking(follow_up).booking_id == "BK2"
        else:
            with pytest.raises(ConflictError):
                service.create_booking(follow_up)

    def test_failure_mid_write_rolls_back(self, db_session, make_room, booking_data):
        """写入通知时失败：客人/预订/支付全部回滚"""
        make_room("101", beds=1)
        service = BookingService(db_session, event_publisher=Mock())
        original_next_id = service.sequences.next_id

        def failing_next_id(prefix):
            if prefix == "N":
                raise SQLAlchemyError("disk full")
            return original_next_id(prefix)

        with patch.object(service.sequences, "next_id", side_effect=failing_next_id):
            with pytest.raises(InternalError):
                service.create_booking(booking_data())

        assert _counts(db_session) == (0, 0, 0, 0)
        assert db_session.query(BedNight).count() == 0

    def test_lost_race_retries_then_conflict(self, db_session, make_room, booking_data):
        make_room("101", beds=1)
        service = BookingService(db_session, event_publisher=Mock(), max_retries=3)

        with patch.object(service, "_create_booking_once",
                          side_effect=IntegrityError("INSERT", {}, Exception("unique"))) as attempt:
            with pytest.raises(ConflictError):
                service.create_booking(booking_data())

        assert attempt.call_count == 3

    def test_lost_race_then_success(self, db_session, make_room, booking_data):
        make_room("101", beds=1)
        service = BookingService(db_session, event_publisher=Mock(), max_retries=3)
        real_attempt = service._create_booking_once
        calls = []

        def flaky(data):
            calls.append(data)
            if len(calls) == 1:
                raise IntegrityError("INSERT", {}, Exception("unique"))
            return real_attempt(data)

        with patch.object(service, "_create_booking_once", side_effect=flaky):
            summary = service.create_booking(booking_data())

        assert summary.booking_id == "BK1"
        assert len(calls) == 2

    def test_store_rejects_overlapping_nights(self, db_session, make_room, booking_data):
        """唯一约束兜底：绕过可用性检查时也不能重复占用同一晚"""
        room = make_room("101", beds=1)
        service = BookingService(db_session, event_publisher=Mock(), max_retries=2)
        service.create_booking(booking_data())

        with patch.object(service.availability, "first_available_bed", return_value=room.beds[0]), \
                patch.object(service.availability, "conflicting_bookings", return_value=[]):
            with pytest.raises(ConflictError):
                service.create_booking(booking_data(first_name="Ben", email="ben@example.com"))

        assert db_session.query(Booking).count() == 1


class TestBookingLifecycle:
    """取消/完成/删除"""

    @pytest.fixture
    def booked(self, db_session, make_room, booking_data):
        make_room("101", beds=1)
        service = BookingService(db_session, event_publisher=Mock())
        summary = service.create_booking(booking_data())
        return service, summary.booking_id

    def test_cancel(self, db_session, booked, booking_data):
        service, booking_id = booked

        booking = service.cancel_booking(booking_id)

        assert booking.status == BookingStatus.CANCELLED
        assert service.status_counts() == {"Booked": 0, "Cancelled": 1, "Completed": 0}
        assert db_session.query(BedNight).count() == 0
        guest = db_session.query(Guest).one()
        assert guest.bed_id is None
        assert guest.room_id is None
        # 床位释放后可以再次预订同一区间
        assert service.create_booking(booking_data(first_name="Ben", email="ben@example.com"))

    def test_cancel_twice_is_noop(self, booked):
        service, booking_id = booked
        service.cancel_booking(booking_id)
        assert service.cancel_booking(booking_id).status == BookingStatus.CANCELLED

    def test_cancel_unknown(self, booked):
        service, _ = booked
        with pytest.raises(NotFoundError):
            service.cancel_booking("BK999")

    def test_cancel_publishes_event(self, db_session, booked):
        service, booking_id = booked
        publisher = Mock()
        service._publish_event = publisher
        service.cancel_booking(booking_id)
        event = publisher.call_args[0][0]
        assert event.event_type == EventType.BOOKING_CANCELLED.value
        assert event.data["old_status"] == "Booked"
        assert event.data["new_status"] == "Cancelled"

    def test_complete(self, booked):
        service, booking_id = booked
        booking = service.complete_booking(booking_id)
        assert booking.status == BookingStatus.COMPLETED
        assert service.status_counts()["Completed"] == 1

    def test_cancel_completed_is_invalid(self, booked):
        service, booking_id = booked
        service.complete_booking(booking_id)
        with pytest.raises(InvalidStateError):
            service.cancel_booking(booking_id)

    def test_complete_cancelled_is_invalid(self, booked):
        service, booking_id = booked
        service.cancel_booking(booking_id)
        with pytest.raises(InvalidStateError):
            service.complete_booking(booking_id)

    def test_complete_twice_is_invalid(self, booked):
        """只有取消是幂等的，重复完成应报错"""
        service, booking_id = booked
        service.complete_booking(booking_id)
        with pytest.raises(InvalidStateError):
            service.complete_booking(booking_id)
        assert service.status_counts()["Completed"] == 1

    def test_delete_cascades_payment_keeps_notification(self, db_session, booked):
        service, booking_id = booked

        assert service.delete_booking(booking_id) is True

        assert db_session.query(Booking).count() == 0
        assert db_session.query(Payment).count() == 0
        assert db_session.query(BedNight).count() == 0
        assert db_session.query(Notification).filter(Notification.booking_id == booking_id).count() == 1

    def test_delete_unknown(self, booked):
        service, _ = booked
        with pytest.raises(NotFoundError):
            service.delete_booking("BK999")


class TestBookingQueries:
    """查询"""

    @pytest.fixture
    def three_bookings(self, db_session, make_room, booking_data):
        make_room("101", beds=3)
        service = BookingService(db_session, event_publisher=Mock())
        service.create_booking(booking_data(first_name="Anna", check_in=date(2025, 5, 1),
                                            check_out=date(2025, 5, 3)))
        service.create_booking(booking_data(first_name="Ben", check_in=date(2025, 5, 10),
                                            check_out=date(2025, 5, 12)))
        service.create_booking(booking_data(first_name="Cara", check_in=date(2025, 6, 1),
                                            check_out=date(2025, 6, 4)))
        return service

    def test_all_newest_first(self, three_bookings):
        assert [b.id for b in three_bookings.get_bookings()] == ["BK3", "BK2", "BK1"]

    def test_by_status(self, three_bookings):
        three_bookings.cancel_booking("BK2")
        assert [b.id for b in three_bookings.find_by_status("Cancelled")] == ["BK2"]
        assert len(three_bookings.find_by_status(BookingStatus.BOOKED)) == 2

    def test_invalid_status(self, three_bookings):
        with pytest.raises(InvalidStateError):
            three_bookings.find_by_status("Pending")

    def test_parse_status_is_exact(self):
        assert parse_booking_status("Booked") == BookingStatus.BOOKED
        with pytest.raises(InvalidStateError):
            parse_booking_status("booked")

    def test_check_in_range_inclusive(self, three_bookings):
        found = three_bookings.find_by_check_in_range(date(2025, 5, 1), date(2025, 5, 10))
        assert sorted(b.id for b in found) == ["BK1", "BK2"]

    def test_by_guest_name(self, three_bookings):
        found = three_bookings.find_by_guest_name("Ben", "Schmidt")
        assert [b.id for b in found] == ["BK2"]

    def test_latest(self, three_bookings):
        assert three_bookings.get_latest_booking().id == "BK3"

    def test_detail(self, three_bookings):
        detail = three_bookings.get_booking_detail("BK1")
        assert detail["guest_full_name"] == "Anna Schmidt"
        assert detail["guest_email"] == "anna@example.com"
        assert detail["room_number"] == "101"
        assert detail["bed_number"] is not None

    def test_detail_unknown(self, three_bookings):
        with pytest.raises(NotFoundError):
            three_bookings.get_booking_detail("BK404")

    def test_status_counts_empty(self, db_session):
        counts = BookingService(db_session).status_counts()
        assert counts == {"Booked": 0, "Cancelled": 0, "Completed": 0}
