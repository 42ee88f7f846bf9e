"""
File: app/db/session.py
Description: 数据库会话管理 (Async SQLAlchemy)

本模块负责：
1. 创建全局唯一的 AsyncEngine (生产 postgresql+asyncpg，测试 sqlite+aiosqlite)
2. 配置连接池参数 (pool_pre_ping, pool_size 等)，从 Settings 读取
3. 创建 AsyncSession 工厂 (AsyncSessionLocal)
4. 集成 orjson 用于高性能 JSON 字段序列化
5. 提供引擎关闭函数用于优雅退出

事务隔离说明：
账号关联流程依赖 provider_links (provider, provider_user_id) 唯一约束 +
冲突后重读，不依赖 SERIALIZABLE，默认 READ COMMITTED 即可。

Author: jinmozhe
Created: 2025-11-24
Updated: 2026-10-19 (SQLite-aware engine options)
"""

from typing import Any

import orjson
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from app.core.config import settings


def _orjson_serializer(obj: Any) -> str:
    """
    使用 orjson 替代标准库 json.dumps。
    orjson 返回 bytes，SQLAlchemy 需要 str，因此需 decode。
    """
    return orjson.dumps(obj).decode("utf-8")


def _orjson_deserializer(obj: str | bytes) -> Any:
    """使用 orjson 替代标准库 json.loads。"""
    return orjson.loads(obj)


def build_engine_options(database_uri: str) -> dict[str, Any]:
    """
    根据数据库类型生成引擎参数。

    SQLite (aiosqlite) 不接受 pool_size / ssl 等参数，只保留通用项。
    """
    options: dict[str, Any] = {
        "echo": settings.DEBUG,
        "json_serializer": _orjson_serializer,
        "json_deserializer": _orjson_deserializer,
    }

    if database_uri.startswith("sqlite"):
        return options

    options.update(
        {
            "pool_pre_ping": settings.DB_POOL_PRE_PING,
            "pool_size": settings.DB_POOL_SIZE,
            "max_overflow": settings.DB_MAX_OVERFLOW,
            "pool_timeout": settings.DB_POOL_TIMEOUT,
            "pool_recycle": settings.DB_POOL_RECYCLE,
            "connect_args": {"ssl": False},
        }
    )
    return options


_database_uri = str(settings.SQLALCHEMY_DATABASE_URI)

# 1. 创建异步引擎
engine: AsyncEngine = create_async_engine(
    _database_uri, **build_engine_options(_database_uri)
)

# 2. 创建异步会话工厂
# expire_on_commit=False 是 AsyncSession 的强制要求
AsyncSessionLocal: async_sessionmaker[AsyncSession] = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    autoflush=False,
    expire_on_commit=False,
)


async def close_engine() -> None:
    """
    关闭数据库引擎，释放连接池资源。
    应在应用 shutdown 事件中调用。
    """
    await engine.dispose()
