"""
File: app/core/exceptions.py
Description: 业务异常类与全局异常处理器

异常到响应的映射规则：
- AppException               -> 枚举自带的 HTTP 状态码 + 业务码
- RequestValidationError     -> 400 / system.invalid_params
- Starlette HTTPException    -> 原状态码 / system.not_found 或 system.http_error
- 其它未捕获异常              -> 500 / system.internal_error (不暴露内部细节)

所有失败响应都走 ResponseModel.fail()，并回填 request_id。

Author: jinmozhe
Created: 2025-11-24
Updated: 2026-10-19 (Shared failure envelope builder)
"""

from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import ORJSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.error_code import BaseErrorCode, SystemErrorCode
from app.core.logging import logger
from app.core.response import ResponseModel


class AppException(Exception):
    """
    应用基础异常类，携带一个错误码枚举。

    用法示例:
        raise AppException(AuthError.ACCOUNT_LOCKED)
        raise AppException(SystemErrorCode.UNAUTHORIZED, message="Refresh token 无效或已过期")
    """

    def __init__(self, error: BaseErrorCode, message: str = "", data: Any = None):
        self.http_status = error.http_status
        self.code = error.code
        self.message = message or error.msg
        self.data = data
        super().__init__(self.message)


class UnauthorizedException(AppException):
    """HTTP 401"""

    def __init__(self, message: str = "", data: Any = None):
        super().__init__(SystemErrorCode.UNAUTHORIZED, message=message, data=data)


class PermissionException(AppException):
    """HTTP 403"""

    def __init__(self, message: str = "", data: Any = None):
        super().__init__(SystemErrorCode.FORBIDDEN, message=message, data=data)


class NotFoundException(AppException):
    """HTTP 404"""

    def __init__(self, message: str = "", data: Any = None):
        super().__init__(SystemErrorCode.NOT_FOUND, message=message, data=data)


def _request_id(request: Request) -> str:
    return str(getattr(request.state, "request_id", "unknown"))


def _fail(
    request: Request,
    status_code: int,
    code: str,
    message: str,
    data: Any = None,
) -> ORJSONResponse:
    """构造失败信封"""
    envelope = ResponseModel.fail(
        code=code,
        message=message,
        data=data,
        request_id=_request_id(request),
    )
    return ORJSONResponse(status_code=status_code, content=envelope.model_dump())


async def app_exception_handler(request: Request, exc: AppException) -> ORJSONResponse:
    # 业务异常属于预期内分支，只记 warning，不打堆栈
    logger.bind(
        request_id=_request_id(request),
        code=exc.code,
        http_status=exc.http_status,
    ).warning("Business exception: {}", exc.message)

    return _fail(request, exc.http_status, exc.code, exc.message, exc.data)


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> ORJSONResponse:
    """
    FastAPI 默认返回 422，这里统一改为 400 / system.invalid_params。
    message 取第一个错误，形如 "id_token: Field required"。
    """
    errors = exc.errors()
    first = errors[0] if errors else {}
    loc = first.get("loc") or ()
    field = str(loc[-1]) if loc else "unknown"
    message = f"{field}: {first.get('msg', 'Invalid parameter')}"

    logger.bind(request_id=_request_id(request), errors=errors).warning(
        "Request validation failed: {}", message
    )

    # ctx 里可能有异常对象，orjson 无法序列化，只回传这三个字段
    safe_errors = [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg"), "type": err.get("type")}
        for err in errors
    ]
    return _fail(
        request,
        SystemErrorCode.INVALID_PARAMS.http_status,
        SystemErrorCode.INVALID_PARAMS.code,
        message,
        {"errors": safe_errors},
    )


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> ORJSONResponse:
    """路由未匹配 (404) / 方法不允许 (405) 等框架层异常"""
    if exc.status_code == 404:
        code = SystemErrorCode.NOT_FOUND.code
    else:
        code = "system.http_error"

    logger.bind(request_id=_request_id(request), status_code=exc.status_code).warning(
        "Framework HTTP exception: {}", exc.detail
    )

    return _fail(request, exc.status_code, code, str(exc.detail))


async def general_exception_handler(request: Request, exc: Exception) -> ORJSONResponse:
    logger.opt(exception=exc).bind(request_id=_request_id(request)).error(
        "Unhandled system exception occurred"
    )

    internal = SystemErrorCode.INTERNAL_ERROR
    return _fail(request, internal.http_status, internal.code, internal.msg)


def register_exception_handlers(app: FastAPI) -> None:
    """在 main.py 创建 app 后调用"""
    app.add_exception_handler(AppException, app_exception_handler)  # type: ignore
    app.add_exception_handler(RequestValidationError, validation_exception_handler)  # type: ignore
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)  # type: ignore
    app.add_exception_handler(Exception, general_exception_handler)
