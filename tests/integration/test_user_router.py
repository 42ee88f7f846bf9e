"""
File: tests/integration/test_user_router.py
Description: 用户领域 HTTP 接口集成测试

本模块验证 GET /api/v1/users/me：
1. 统一响应信封结构 (ResponseModel) 与 X-Request-ID
2. Access Token 鉴权 (类型 / 过期 / 用户状态)

Author: jinmozhe
Created: 2025-11-26
Updated: 2026-10-19 (Profile endpoint only)
"""

from datetime import UTC, datetime, timedelta

import pytest
from httpx import AsyncClient
from jose import jwt
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.config import settings
from app.core.security import create_access_token
from app.db.models.user import User

ME_URL = f"{settings.API_V1_STR}/users/me"


async def seed_user(
    factory: async_sessionmaker[AsyncSession], **overrides
) -> User:
    fields = {
        "name": "Alice",
        "email": "alice@example.com",
        "email_verified_at": datetime.now(UTC),
        "hashed_password": "argon2-placeholder",
    }
    fields.update(overrides)
    async with factory() as session:
        user = User(**fields)
        session.add(user)
        await session.commit()
        return user


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.mark.asyncio
async def test_read_me(
    client: AsyncClient, session_factory: async_sessionmaker[AsyncSession]
) -> None:
    """
    测试：GET /users/me
    验证：
    1. 状态码 200，统一信封
    2. 响应头 X-Request-ID 与信封一致
    3. 不返回密码哈希
    """
    user = await seed_user(session_factory)

    response = await client.get(ME_URL, headers=bearer(create_access_token(user.id)))

    assert response.status_code == 200
    body = response.json()
    assert body["code"] == "success"
    assert response.headers.get("X-Request-ID") == body["request_id"]

    data = body["data"]
    assert data["id"] == str(user.id)
    assert data["email"] == "alice@example.com"
    assert data["is_active"] is True
    assert "hashed_password" not in data


@pytest.mark.asyncio
async def test_expired_token(
    client: AsyncClient, session_factory: async_sessionmaker[AsyncSession]
) -> None:
    user = await seed_user(session_factory)
    token = create_access_token(user.id, expires_delta=timedelta(seconds=-10))

    response = await client.get(ME_URL, headers=bearer(token))

    assert response.status_code == 401
    assert response.json()["code"] == "system.unauthorized"


@pytest.mark.asyncio
async def test_non_access_token_type(
    client: AsyncClient, session_factory: async_sessionmaker[AsyncSession]
) -> None:
    user = await seed_user(session_factory)
    token = jwt.encode(
        {
            "sub": str(user.id),
            "type": "refresh",
            "exp": datetime.now(UTC) + timedelta(minutes=5),
        },
        settings.SECRET_KEY,
        algorithm=settings.ALGORITHM,
    )

    response = await client.get(ME_URL, headers=bearer(token))

    assert response.status_code == 401


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "state", [{"is_active": False}, {"is_deleted": True}], ids=["inactive", "deleted"]
)
async def test_locked_user_cannot_read_profile(
    client: AsyncClient,
    session_factory: async_sessionmaker[AsyncSession],
    state: dict,
) -> None:
    user = await seed_user(session_factory, **state)

    response = await client.get(ME_URL, headers=bearer(create_access_token(user.id)))

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_wrong_scheme(client: AsyncClient) -> None:
    response = await client.get(ME_URL, headers={"Authorization": "Basic abc"})

    assert response.status_code == 401
