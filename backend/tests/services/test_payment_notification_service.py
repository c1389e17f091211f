"""
支付查询与通知收件箱测试
"""
import pytest
from datetime import date, datetime, timedelta
from unittest.mock import Mock

from hostel.models.ontology import Payment, PaymentMethod
from hostel.services.booking_service import BookingService
from hostel.services.errors import NotFoundError, InvalidStateError
from hostel.services.notification_service import NotificationService
from hostel.services.payment_service import PaymentService


@pytest.fixture
def two_bookings(db_session, make_room, booking_data):
    make_room("101", beds=2)
    service = BookingService(db_session, event_publisher=Mock())
    service.create_booking(booking_data(first_name="Anna"))
    service.create_booking(booking_data(first_name="Ben"))
    return service


class TestPaymentService:

    def test_newest_first(self, db_session, two_bookings):
        assert [p.id for p in PaymentService(db_session).get_payments()] == ["PY2", "PY1"]

    def test_by_id_and_booking(self, db_session, two_bookings):
        service = PaymentService(db_session)
        assert service.get_payment("PY1").booking_id == "BK1"
        assert service.get_payment_by_booking("BK2").id == "PY2"

    def test_unknown(self, db_session, two_bookings):
        service = PaymentService(db_session)
        with pytest.raises(NotFoundError):
            service.get_payment("PY404")
        with pytest.raises(NotFoundError):
            service.get_payment_by_booking("BK404")

    def test_by_method(self, db_session, two_bookings):
        service = PaymentService(db_session)
        db_session.query(Payment).filter(Payment.id == "PY1").update(
            {Payment.payment_method: PaymentMethod.CASH}
        )
        db_session.commit()

        assert [p.id for p in service.find_by_method("cash")] == ["PY1"]
        assert [p.id for p in service.find_by_method(PaymentMethod.CREDIT_CARD)] == ["PY2"]

    def test_invalid_method(self, db_session, two_bookings):
        with pytest.raises(InvalidStateError):
            PaymentService(db_session).find_by_method("BITCOIN")

    def test_between(self, db_session, two_bookings):
        service = PaymentService(db_session)
        now = datetime.utcnow()
        assert len(service.find_between(now - timedelta(hours=1), now + timedelta(hours=1))) == 2
        assert service.find_between(now + timedelta(hours=1), now + timedelta(hours=2)) == []

    def test_between_reversed(self, db_session, two_bookings):
        now = datetime.utcnow()
        with pytest.raises(InvalidStateError):
            PaymentService(db_session).find_between(now, now - timedelta(days=1))


class TestNotificationService:

    def test_all_and_unread(self, db_session, two_bookings):
        service = NotificationService(db_session)
        assert [n.id for n in service.get_notifications()] == ["N2", "N1"]

        service.mark_as_read("N1")

        assert [n.id for n in service.get_unread()] == ["N2"]
        assert service.get_notification("N1").is_read is True

    def test_mark_as_read_twice(self, db_session, two_bookings):
        service = NotificationService(db_session)
        service.mark_as_read("N1")
        assert service.mark_as_read("N1").is_read is True

    def test_delete(self, db_session, two_bookings):
        service = NotificationService(db_session)
        assert service.delete_notification("N2") is True
        assert [n.id for n in service.get_notifications()] == ["N1"]

    def test_unknown(self, db_session):
        service = NotificationService(db_session)
        with pytest.raises(NotFoundError):
            service.mark_as_read("N404")
        with pytest.raises(NotFoundError):
            service.delete_notification("N404")

    def test_snapshot_survives_booking_delete(self, db_session, two_bookings):
        two_bookings.delete_booking("BK1")
        notification = NotificationService(db_session).get_notification("N1")
        assert notification.booking_id == "BK1"
        assert notification.guest_full_name == "Anna Schmidt"
        assert notification.room_number == "101"
