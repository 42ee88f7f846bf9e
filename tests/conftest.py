"""
File: tests/conftest.py
Description: Pytest 全局 Fixtures 配置 (Async + 独立测试库)

说明：
1. 每个测试使用独立的 SQLite 文件库 (tmp_path)，互不干扰，可并发写入
   设置 TEST_DATABASE_URL 时改用该库 (例如 PostgreSQL)，每个测试前重建 Schema
2. Redis 使用内存实现 FakeRedis (只实现 get / setex / delete)
3. 所有 fixture 均为 function 级别，事件循环由 pytest-asyncio 管理

Author: jinmozhe
Created: 2025-11-26
Updated: 2026-10-19 (SQLite-per-test + in-memory Redis)
"""

import asyncio
import os
import sys
import time
from collections.abc import AsyncGenerator
from datetime import timedelta
from pathlib import Path
from typing import Any

# ------------------------------------------------------------------------------
# Windows 平台特定修复 (必须在任何 async 操作之前)
# ------------------------------------------------------------------------------
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

# ------------------------------------------------------------------------------
# 环境配置 (必须在导入 app 之前，Settings 在导入时即完成校验)
# ------------------------------------------------------------------------------
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-pytest-0123456789abcdef")
os.environ.setdefault("SQLALCHEMY_DATABASE_URI", "sqlite+aiosqlite:///:memory:")

import httpx
import pytest
import pytest_asyncio
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from httpx import ASGITransport, AsyncClient
from jose import jwk, jwt
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from app.api.deps import get_db
from app.core.redis import get_redis
from app.db.models import Base
from app.db.session import build_engine_options
from app.domains.auth.providers import (
    AppleKeyCache,
    AppleTokenVerifier,
    AppleVerifierConfig,
)
from app.main import app


class FakeRedis:
    """内存版 Redis，仅覆盖 Refresh Token 存储用到的命令"""

    def __init__(self) -> None:
        self.store: dict[str, Any] = {}
        self.ttls: dict[str, timedelta | int] = {}

    async def get(self, name: str) -> Any:
        return self.store.get(name)

    async def setex(self, name: str, time: timedelta | int, value: Any) -> bool:
        self.store[name] = value
        self.ttls[name] = time
        return True

    async def delete(self, *names: str) -> int:
        removed = 0
        for name in names:
            if self.store.pop(name, None) is not None:
                removed += 1
            self.ttls.pop(name, None)
        return removed


# ------------------------------------------------------------------------------
# 数据库 Fixtures
# ------------------------------------------------------------------------------


@pytest_asyncio.fixture
async def db_engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine, None]:
    """
    创建测试专用的数据库引擎并建表。
    """
    database_url = os.environ.get("TEST_DATABASE_URL") or (
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}"
    )
    engine = create_async_engine(database_url, **build_engine_options(database_url))

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def session_factory(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """
    获取测试用的数据库会话 (Function 级别)。
    """
    async with session_factory() as session:
        yield session


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


# ------------------------------------------------------------------------------
# HTTP Client
# ------------------------------------------------------------------------------


@pytest_asyncio.fixture
async def client(
    session_factory: async_sessionmaker[AsyncSession], fake_redis: FakeRedis
) -> AsyncGenerator[AsyncClient, None]:
    """
    获取异步 HTTP 客户端。
    每个请求使用独立的 Session，与生产环境的 get_db 行为一致。
    """

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    async def override_get_redis() -> AsyncGenerator[FakeRedis, None]:
        yield fake_redis

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_redis] = override_get_redis

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"  # type: ignore
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


# ------------------------------------------------------------------------------
# Apple 签名密钥 (RS256)
# ------------------------------------------------------------------------------

APPLE_TEST_JWKS_URL = "https://appleid.test/auth/keys"
APPLE_TEST_AUDIENCE = "com.example.app"


class SigningKey:
    """测试用 RSA 密钥对，可导出 JWK 公钥并签发 Apple 风格 ID Token"""

    def __init__(self, kid: str):
        self.kid = kid
        private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
        self.pem = private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        ).decode()

    @property
    def public_jwk(self) -> dict[str, Any]:
        data = jwk.construct(self.pem, "RS256").public_key().to_dict()
        return {**data, "kid": self.kid, "use": "sig", "alg": "RS256"}

    def sign(self, claims: dict[str, Any], kid: str | None = None) -> str:
        return jwt.encode(
            claims, self.pem, algorithm="RS256", headers={"kid": kid or self.kid}
        )


def _apple_claims(**overrides: Any) -> dict[str, Any]:
    """合法 Apple ID Token 声明 (可覆盖任意字段)"""
    now = int(time.time())
    claims: dict[str, Any] = {
        "iss": "https://appleid.apple.com",
        "aud": APPLE_TEST_AUDIENCE,
        "sub": "001234.a1b2c3d4e5f6.0789",
        "iat": now,
        "exp": now + 600,
        "email": "new@x.com",
        "email_verified": "true",
        "is_private_email": "false",
    }
    claims.update(overrides)
    return {key: value for key, value in claims.items() if value is not None}


@pytest.fixture
def apple_claims():
    """合法 Apple 声明工厂: apple_claims(aud=..., email=None)，值为 None 的字段会被移除"""
    return _apple_claims


@pytest.fixture
def apple_jwks_url() -> str:
    return APPLE_TEST_JWKS_URL


@pytest_asyncio.fixture
async def apple_verifier() -> AsyncGenerator[AppleTokenVerifier, None]:
    """独立出站客户端 + 空 JWKS 缓存 (出站请求由 httpx_mock 拦截)"""
    async with httpx.AsyncClient() as outbound:
        yield AppleTokenVerifier(
            AppleVerifierConfig(allowed_audiences=frozenset({APPLE_TEST_AUDIENCE})),
            AppleKeyCache(outbound, APPLE_TEST_JWKS_URL),
        )


@pytest.fixture(scope="session")
def apple_key() -> SigningKey:
    return SigningKey("apple-key-1")


@pytest.fixture(scope="session")
def rotated_apple_key() -> SigningKey:
    return SigningKey("apple-key-2")
