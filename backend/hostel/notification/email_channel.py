"""
邮件通知渠道 - SMTP 发送预订确认邮件
"""
import logging
import smtplib
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from typing import Dict, Optional

from hostel.core.notification.channel import ConfirmationMessage, INotificationChannel
from hostel.notification.templates import confirmation_subject, render_confirmation_email

logger = logging.getLogger(__name__)


class EmailChannel(INotificationChannel):
    """SMTP 邮件通知渠道"""

    def __init__(
        self,
        smtp_host: str = "localhost",
        smtp_port: int = 587,
        smtp_user: str = "",
        smtp_password: str = "",
        sender_email: str = "",
        sender_name: str = "",
        use_tls: bool = True,
    ):
        self.smtp_host = smtp_host
        self.smtp_port = smtp_port
        self.smtp_user = smtp_user
        self.smtp_password = smtp_password
        self.sender_email = sender_email or smtp_user
        self.sender_name = sender_name
        self.use_tls = use_tls

    @classmethod
    def from_settings(cls, settings) -> "EmailChannel":
        return cls(
            smtp_host=settings.SMTP_HOST,
            smtp_port=settings.SMTP_PORT,
            smtp_user=settings.SMTP_USER,
            smtp_password=settings.SMTP_PASSWORD,
            sender_email=settings.SMTP_SENDER,
            sender_name=f"{settings.HOSTEL_NAME} Booking",
            use_tls=settings.SMTP_USE_TLS,
        )

    def build_confirmation(self, booking: Dict) -> Optional[ConfirmationMessage]:
        recipient = booking.get("guest_email")
        if not recipient:
            return None
        return ConfirmationMessage(
            recipient=recipient,
            subject=confirmation_subject(),
            content=render_confirmation_email(booking),
            extra={"category": "Booking"},
        )

    def send(
        self,
        recipient: str,
        subject: str,
        content: str,
        extra: Optional[Dict] = None,
    ) -> bool:
        """发送邮件

        Args:
            recipient: 收件人邮箱地址
            subject: 邮件标题
            content: 邮件正文（纯文本）
            extra: 可选参数 (content_type: 'plain'|'html', category)
        """
        if not recipient:
            logger.warning(f"Email '{subject}' skipped: no recipient")
            return False
        try:
            extra = extra or {}
            content_type = extra.get("content_type", "plain")

            msg = MIMEMultipart()
            msg["From"] = (
                f"{self.sender_name} <{self.sender_email}>" if self.sender_name else self.sender_email
            )
            msg["To"] = recipient
            msg["Subject"] = subject
            if category := extra.get("category"):
                msg["X-Category"] = category
            msg.attach(MIMEText(content, content_type, "utf-8"))

            with smtplib.SMTP(self.smtp_host, self.smtp_port) as server:
                if self.use_tls:
                    server.starttls()
                if self.smtp_user:
                    server.login(self.smtp_user, self.smtp_password)
                server.send_message(msg)

            logger.info(f"Email sent to {recipient}: {subject}")
            return True
        except Exception as e:
            logger.error(f"Failed to send email to {recipient}: {e}")
            return False

    def get_channel_type(self) -> str:
        return "email"
