"""
旅舍预订系统主应用入口
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from hostel import __version__
from hostel.config import settings
from hostel.database import init_db
from hostel.routers import rooms, beds, bookings, guests, payments, notifications

logger = logging.getLogger(__name__)

LATEST_BOOKING_JOB_ID = "latest_booking_poll"


def register_notification_channels() -> None:
    """按配置登记邮件/短信渠道"""
    from hostel.core.notification import NotificationChannelRegistry
    from hostel.notification import EmailChannel, SmsChannel

    registry = NotificationChannelRegistry()
    if settings.SMTP_ENABLED:
        registry.register(EmailChannel.from_settings(settings))
    if settings.SMS_ENABLED:
        registry.register(SmsChannel.from_settings(settings))
    logger.info(f"Notification channels: {[c.get_channel_type() for c in registry.channels()]}")


def start_scheduler():
    """启动后台调度器并登记最新预订轮询任务"""
    from hostel.core.scheduler import SchedulerRegistry
    from hostel.services.booking_cache import latest_booking_cache, poll_latest_booking
    from hostel.services.scheduler_backend import APSchedulerBackend

    backend = APSchedulerBackend()
    backend.add_job(
        LATEST_BOOKING_JOB_ID,
        poll_latest_booking,
        "interval",
        seconds=settings.LATEST_BOOKING_POLL_SECONDS,
        args=[latest_booking_cache],
    )
    backend.start()
    SchedulerRegistry().set_backend(backend)
    return backend


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期管理"""
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    # 初始化数据库
    init_db()

    # 注册通知渠道与事件处理器
    register_notification_channels()
    from hostel.services.event_handlers import build_dispatcher
    dispatcher = build_dispatcher()
    dispatcher.register_handlers()

    scheduler = start_scheduler() if settings.SCHEDULER_ENABLED else None
    logger.info(f"{settings.APP_NAME} {__version__} started")

    yield

    # 关闭时执行
    if scheduler is not None:
        scheduler.shutdown()
    dispatcher.unregister_handlers()
    dispatcher.shutdown()


# 创建应用
app = FastAPI(
    title=settings.APP_NAME,
    description="旅舍床位预订分配服务",
    version=__version__,
    lifespan=lifespan
)

# CORS 配置
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# 注册路由
app.include_router(rooms.router)
app.include_router(beds.router)
app.include_router(bookings.router)
app.include_router(guests.router)
app.include_router(payments.router)
app.include_router(notifications.router)


@app.get("/")
def root():
    """根路径"""
    return {
        "name": settings.APP_NAME,
        "version": __version__,
        "hostel": settings.HOSTEL_NAME,
    }


@app.get("/health")
def health_check():
    """健康检查"""
    return {"status": "healthy"}
