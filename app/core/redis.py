"""
File: app/core/redis.py
Description: Redis 客户端管理 (Async)

本模块负责：
1. 创建全局 Redis 连接池 (基于 redis-py 的 asyncio 扩展)
2. 提供依赖注入所需的 Redis 客户端生成器
3. 管理连接生命周期 (初始化与关闭)

Redis 在本服务中只承担 Refresh Token 存储 (会话签发的一部分)。
decode_responses=True，读取结果自动解码为 str。

Author: jinmozhe
Created: 2025-12-05
"""

from collections.abc import AsyncGenerator

from redis.asyncio import Redis, from_url

from app.core.config import settings

redis_client: Redis = from_url(
    settings.REDIS_URL,
    encoding="utf-8",
    decode_responses=True,
)


async def get_redis() -> AsyncGenerator[Redis, None]:
    """
    获取 Redis 客户端依赖。

    封装为依赖注入，测试中可以 override 为内存实现。
    """
    yield redis_client


async def close_redis() -> None:
    """
    关闭 Redis 连接池。
    应在 FastAPI 应用的 lifespan shutdown 事件中调用。
    """
    await redis_client.aclose()
