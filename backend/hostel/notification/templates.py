"""
预订确认消息模板
"""
from typing import Dict

from hostel.config import settings


def confirmation_subject(hostel_name: str = None) -> str:
    return f"Booking Confirmation - {hostel_name or settings.HOSTEL_NAME}"


def render_confirmation_email(data: Dict, hostel_name: str = None, currency: str = None) -> str:
    """确认邮件正文"""
    hostel_name = hostel_name or settings.HOSTEL_NAME
    currency = currency or settings.CURRENCY_SYMBOL
    return (
        f"Hello {data.get('guest_first_name', '')},\n\n"
        f"Your booking has been confirmed.\n\n"
        f"Details:\n"
        f"Room: {data.get('room_number')}\n"
        f"Bed: {data.get('bed_number')}\n"
        f"Check-In: {data.get('check_in_date')}\n"
        f"Check-Out: {data.get('check_out_date')}\n"
        f"Total Price: {currency}{float(data.get('total_price') or 0):.2f}\n\n"
        f"Thank you for choosing {hostel_name}!"
    )


def render_confirmation_sms(data: Dict, currency: str = None) -> str:
    """确认短信正文"""
    currency = currency or settings.CURRENCY_SYMBOL
    return (
        f"Hello {data.get('guest_first_name', '')}, your booking "
        f"(Room {data.get('room_number')}, Bed {data.get('bed_number')}) "
        f"from {data.get('check_in_date')} to {data.get('check_out_date')} is confirmed. "
        f"Total: {currency}{float(data.get('total_price') or 0):.2f}"
    )
