"""
服务层异常 - 每类失败对应稳定的错误码
调用方据此区分“什么都没发生”与“尝试过但已回滚”
"""
from typing import Any, Dict, Optional


class HostelError(Exception):
    """服务层异常基类"""

    code = "internal"

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        self.message = message
        self.context = context or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message}


class NotFoundError(HostelError):
    """房间/床位/预订/客人/支付/通知不存在"""
    code = "not_found"


class ConflictError(HostelError):
    """无可用床位、房间已满、房间号/床位号重复、并发冲突"""
    code = "conflict"


class InvalidStateError(HostelError):
    """非法状态值或不允许的状态迁移、非法区间"""
    code = "invalid_state"


class InternalError(HostelError):
    """存储层意外失败"""
    code = "internal"
