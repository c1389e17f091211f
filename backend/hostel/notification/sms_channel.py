"""
短信通知渠道 - 通过 Twilio 兼容的 REST 接口发送短信
"""
import logging
from typing import Dict, Optional

import httpx

from hostel.core.notification.channel import ConfirmationMessage, INotificationChannel
from hostel.notification.templates import confirmation_subject, render_confirmation_sms

logger = logging.getLogger(__name__)


class SmsChannel(INotificationChannel):
    """短信通知渠道（HTTP 表单 POST + Basic 认证）"""

    def __init__(
        self,
        api_url: str = "",
        account_sid: Optional[str] = None,
        auth_token: Optional[str] = None,
        from_number: Optional[str] = None,
        timeout: float = 10.0,
    ):
        self.api_url = api_url
        self.account_sid = account_sid
        self.auth_token = auth_token
        self.from_number = from_number
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings) -> "SmsChannel":
        return cls(
            api_url=settings.SMS_API_URL,
            account_sid=settings.SMS_ACCOUNT_SID,
            auth_token=settings.SMS_AUTH_TOKEN,
            from_number=settings.SMS_FROM_NUMBER,
        )

    @property
    def endpoint(self) -> str:
        return self.api_url.format(account_sid=self.account_sid or "")

    def build_confirmation(self, booking: Dict) -> Optional[ConfirmationMessage]:
        recipient = booking.get("guest_phone")
        if not recipient:
            return None
        return ConfirmationMessage(
            recipient=recipient,
            subject=confirmation_subject(),
            content=render_confirmation_sms(booking),
        )

    def send(
        self,
        recipient: str,
        subject: str,
        content: str,
        extra: Optional[Dict] = None,
    ) -> bool:
        """发送短信

        Args:
            recipient: 手机号（E.164 格式，如 +4915112345678）
            subject: 忽略
            content: 短信正文
            extra: 可选参数 (from_number 覆盖默认发送号码)
        """
        if not recipient:
            logger.warning("SMS skipped: no recipient phone number")
            return False
        if not (self.api_url and self.account_sid and self.auth_token):
            logger.warning("SMS gateway is not configured")
            return False

        from_number = (extra or {}).get("from_number") or self.from_number
        try:
            with httpx.Client(timeout=self.timeout) as client:
                response = client.post(
                    self.endpoint,
                    data={"To": recipient, "From": from_number, "Body": content},
                    auth=(self.account_sid, self.auth_token),
                )
                response.raise_for_status()

            sid = response.json().get("sid") if response.content else None
            logger.info(f"SMS sent to {recipient} (sid={sid})")
            return True
        except Exception as e:
            logger.error(f"Failed to send SMS to {recipient}: {e}")
            return False

    def get_channel_type(self) -> str:
        return "sms"
