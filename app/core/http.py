"""
File: app/core/http.py
Description: 出站 HTTP 客户端管理 (httpx.AsyncClient)

本模块负责：
1. 创建全局共享的 httpx.AsyncClient (连接池复用)
2. 统一设置三方调用超时 (OAUTH_HTTP_TIMEOUT)，避免请求无限挂起
3. 管理连接生命周期 (应用关闭时释放)

调用方被取消 (CancelledError) 时，进行中的 httpx 请求会随之协作式取消。

Author: jinmozhe
Created: 2026-10-19
"""

import httpx

from app.core.config import settings

# ------------------------------------------------------------------------------
# 全局 httpx 客户端实例 (Singleton)
# ------------------------------------------------------------------------------
http_client: httpx.AsyncClient = httpx.AsyncClient(
    timeout=httpx.Timeout(settings.OAUTH_HTTP_TIMEOUT),
    headers={"User-Agent": f"{settings.PROJECT_NAME} (httpx)"},
    follow_redirects=False,
)


async def close_http_client() -> None:
    """
    关闭出站连接池。
    应在 FastAPI 应用的 lifespan shutdown 事件中调用。
    """
    await http_client.aclose()
