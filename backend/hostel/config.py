"""
应用配置
从环境变量读取配置，支持 .env 文件
"""
from typing import Optional
from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """应用设置"""

    # 应用基础配置
    APP_NAME: str = "Hostel Reservations"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # 数据库配置
    DATABASE_URL: str = "sqlite:///./hostel.db"

    # 预订分配配置
    # True: 半开区间 [check_in, check_out)，允许同日退房/入住
    # False: 闭区间比较，同日交接视为冲突
    SAME_DAY_TURNOVER: bool = True
    BOOKING_MAX_RETRIES: int = 3
    DEFAULT_PAYMENT_METHOD: str = "CREDIT_CARD"

    # 旅舍信息（用于确认消息）
    HOSTEL_NAME: str = "Inn Berlin Hostel"
    CURRENCY_SYMBOL: str = "€"

    # 定时任务
    SCHEDULER_ENABLED: bool = True
    LATEST_BOOKING_POLL_SECONDS: int = 10

    # 通知分发
    NOTIFY_ASYNC: bool = True

    # SMTP 邮件
    SMTP_ENABLED: bool = False
    SMTP_HOST: str = "localhost"
    SMTP_PORT: int = 587
    SMTP_USER: str = ""
    SMTP_PASSWORD: str = ""
    SMTP_SENDER: str = ""
    SMTP_USE_TLS: bool = True

    # 短信网关 (Twilio 兼容 REST 接口)
    SMS_ENABLED: bool = False
    SMS_API_URL: str = "https://api.twilio.com/2010-04-01/Accounts/{account_sid}/Messages.json"
    SMS_ACCOUNT_SID: Optional[str] = None
    SMS_AUTH_TOKEN: Optional[str] = None
    SMS_FROM_NUMBER: Optional[str] = None

    model_config = ConfigDict(env_file=".env", case_sensitive=True)


# 全局设置实例
settings = Settings()
