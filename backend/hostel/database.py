"""
数据库配置 - SQLAlchemy 持久化层
所有写操作通过服务层的工作单元 (unit of work) 提交
"""
from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker, declarative_base

from hostel.config import settings

SQLALCHEMY_DATABASE_URL = settings.DATABASE_URL


def _connect_args(url: str) -> dict:
    if url.startswith("sqlite"):
        # 多个工作线程共享同一个数据库文件，写锁等待最多 30 秒
        return {"check_same_thread": False, "timeout": 30}
    return {}


engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args=_connect_args(SQLALCHEMY_DATABASE_URL)
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """依赖注入：获取数据库会话"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(bind=None):
    """初始化数据库表"""
    from hostel.models import ontology  # noqa
    bind = bind or engine
    Base.metadata.create_all(bind=bind)

    if bind.dialect.name == "sqlite" and bind.url.database not in (None, "", ":memory:"):
        # 启用 WAL 模式以提高并发读写性能
        with bind.connect() as conn:
            conn.execute(text("PRAGMA journal_mode=WAL"))
            conn.execute(text("PRAGMA synchronous=NORMAL"))
            conn.commit()
