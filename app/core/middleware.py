"""
File: app/core/middleware.py
Description: 中间件配置与实现

本模块负责：
1. 定义 RequestLogMiddleware：
   - 生成 UUID v7 request_id (或沿用网关透传的 X-Request-ID)
   - 绑定 Loguru 上下文
   - 记录访问日志 (Access Log，仅记录 path，不记录 query 与 body)
   - 添加 X-Request-ID 响应头
2. 提供 register_middlewares 函数：
   - 统一注册 CORS、RequestLogMiddleware 等

Author: jinmozhe
Created: 2025-11-24
Updated: 2026-10-19 (Honor upstream X-Request-ID)
"""

import time
from collections.abc import Awaitable, Callable

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from uuid6 import uuid7

from app.core.config import settings
from app.core.logging import logger

# 跳过详细日志的路径（健康检查等高频低价值请求）
SKIP_LOG_PATHS: set[str] = {"/health", "/health/", "/favicon.ico"}

REQUEST_ID_HEADER = "X-Request-ID"
MAX_REQUEST_ID_LENGTH = 64


def _resolve_request_id(request: Request) -> str:
    """优先沿用上游透传的 request id，长度异常时重新生成"""
    incoming = request.headers.get(REQUEST_ID_HEADER, "").strip()
    if incoming and len(incoming) <= MAX_REQUEST_ID_LENGTH:
        return incoming
    return str(uuid7())


class RequestLogMiddleware(BaseHTTPMiddleware):
    """
    全局请求日志中间件

    职责：
    1. 为每个请求确定唯一 Request ID
    2. 将 request_id 绑定到 Loguru 上下文，贯穿整个请求链路
    3. 记录请求处理耗时与最终状态码
    4. 在响应头中回传 X-Request-ID
    """

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        request_id = _resolve_request_id(request)
        request.state.request_id = request_id

        skip_log = request.url.path in SKIP_LOG_PATHS

        # 在此 with 块内，Router/Service/Repo 产生的所有日志都会自动携带 request_id
        with logger.contextualize(request_id=request_id):
            start_time = time.perf_counter()

            try:
                response = await call_next(request)
                response.headers[REQUEST_ID_HEADER] = request_id

                if not skip_log:
                    process_time = (time.perf_counter() - start_time) * 1000
                    logger.bind(
                        method=request.method,
                        path=request.url.path,
                        status_code=response.status_code,
                        duration_ms=round(process_time, 2),
                        client_ip=request.client.host if request.client else "unknown",
                    ).info("Request finished")

                return response

            except Exception as exc:
                # 异常处理器未能接住的错误，始终记录
                process_time = (time.perf_counter() - start_time) * 1000
                logger.bind(
                    method=request.method,
                    path=request.url.path,
                    duration_ms=round(process_time, 2),
                ).opt(exception=exc).error("Request failed with unhandled exception")
                raise


def register_middlewares(app: FastAPI) -> None:
    """
    统一注册所有中间件。
    注意：后注册的中间件先执行 (对于请求进入方向)。
    """
    if settings.BACKEND_CORS_ORIGINS:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=[str(origin) for origin in settings.BACKEND_CORS_ORIGINS],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    # Request Log & ID 最后注册，以便最先拦截请求
    app.add_middleware(RequestLogMiddleware)
