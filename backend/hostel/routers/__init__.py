"""
HTTP 路由 - 服务层异常到 HTTP 状态码的转换
"""
from fastapi import HTTPException, status

from hostel.services.errors import HostelError

ERROR_STATUS = {
    "not_found": status.HTTP_404_NOT_FOUND,
    "conflict": status.HTTP_409_CONFLICT,
    "invalid_state": status.HTTP_400_BAD_REQUEST,
    "internal": status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def http_error(error: HostelError) -> HTTPException:
    """HostelError -> HTTPException，detail 为 {"code", "message"}"""
    return HTTPException(
        status_code=ERROR_STATUS.get(error.code, status.HTTP_500_INTERNAL_SERVER_ERROR),
        detail=error.to_dict(),
    )
