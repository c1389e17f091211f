"""
通知渠道实现 - 邮件 (SMTP) 与短信 (Twilio 兼容 REST 接口)
"""
from hostel.notification.email_channel import EmailChannel
from hostel.notification.sms_channel import SmsChannel

__all__ = ["EmailChannel", "SmsChannel"]
