"""
File: tests/integration/test_social_auth_router.py
Description: 三方登录 HTTP 接口集成测试

本模块测试 /api/v1/auth/* 与 /api/v1/users/me 的端到端链路：
真实的校验器 + AccountLinker + 会话签发，出站请求由 pytest-httpx 拦截，
Redis 使用内存实现。

Author: jinmozhe
Created: 2026-10-19
"""

from collections.abc import AsyncGenerator
from typing import Any

import httpx
import pytest
import pytest_asyncio
from httpx import AsyncClient
from pytest_httpx import HTTPXMock
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.config import settings
from app.db.models.provider_link import ProviderLink
from app.db.models.user import User
from app.domains.auth.dependencies import get_provider_verifiers
from app.domains.auth.providers import (
    AppleTokenVerifier,
    GoogleTokenVerifier,
    GoogleVerifierConfig,
    ProviderVerifiers,
)
from app.main import app

API = settings.API_V1_STR
TOKENINFO_URL = "https://oauth2.googleapis.test/tokeninfo"
GOOGLE_CLIENT_ID = "web-client.apps.googleusercontent.com"


def tokeninfo(**overrides: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "iss": "https://accounts.google.com",
        "aud": GOOGLE_CLIENT_ID,
        "sub": "110248495921238986420",
        "email": "alice@example.com",
        "email_verified": "true",
        "name": "Alice",
    }
    payload.update(overrides)
    return payload


@pytest_asyncio.fixture(autouse=True)
async def provider_verifiers(
    apple_verifier: AppleTokenVerifier,
) -> AsyncGenerator[ProviderVerifiers, None]:
    """用测试配置的校验器替换进程内单例"""
    async with httpx.AsyncClient() as outbound:
        verifiers = ProviderVerifiers(
            google=GoogleTokenVerifier(
                GoogleVerifierConfig(
                    allowed_audiences=frozenset({GOOGLE_CLIENT_ID}),
                    tokeninfo_url=TOKENINFO_URL,
                ),
                outbound,
            ),
            apple=apple_verifier,
        )

        async def override_get_provider_verifiers() -> ProviderVerifiers:
            return verifiers

        app.dependency_overrides[get_provider_verifiers] = (
            override_get_provider_verifiers
        )
        yield verifiers
        app.dependency_overrides.pop(get_provider_verifiers, None)


async def count(factory: async_sessionmaker[AsyncSession], model: type) -> int:
    async with factory() as session:
        return await session.scalar(select(func.count()).select_from(model))


# ------------------------------------------------------------------------------
# 1. 登录成功
# ------------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_google_first_sign_in_then_repeat(
    client: AsyncClient, httpx_mock: HTTPXMock
) -> None:
    """
    测试：Google 首登 -> 注册并登录；再次登录 -> 同一账号
    """
    httpx_mock.add_response(json=tokeninfo())
    httpx_mock.add_response(json=tokeninfo())

    first = await client.post(
        f"{API}/auth/social/google", json={"id_token": "google-token-1"}
    )
    assert first.status_code == 200
    body = first.json()
    assert body["code"] == "success"
    assert body["message"] == "注册并登录成功"
    assert body["data"]["is_new_user"] is True
    assert body["data"]["user"]["email"] == "alice@example.com"
    assert body["data"]["user"]["name"] == "Alice"
    assert body["data"]["token"]["token_type"] == "bearer"
    assert "hashed_password" not in body["data"]["user"]

    second = await client.post(
        f"{API}/auth/social/google", json={"id_token": "google-token-2"}
    )
    assert second.status_code == 200
    assert second.json()["message"] == "登录成功"
    assert second.json()["data"]["is_new_user"] is False
    assert second.json()["data"]["user"]["id"] == body["data"]["user"]["id"]


@pytest.mark.asyncio
async def test_apple_sign_in_and_read_profile(
    client: AsyncClient,
    httpx_mock: HTTPXMock,
    apple_key,
    apple_claims,
    apple_jwks_url: str,
) -> None:
    """测试：Apple 首登后，使用签发的 Access Token 访问 /users/me"""
    httpx_mock.add_response(url=apple_jwks_url, json={"keys": [apple_key.public_jwk]})
    token = apple_key.sign(apple_claims())

    response = await client.post(f"{API}/auth/social/apple", json={"id_token": token})
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["is_new_user"] is True
    assert data["user"]["email"] == "new@x.com"
    assert data["user"]["email_verified_at"] is not None

    me = await client.get(
        f"{API}/users/me",
        headers={"Authorization": f"Bearer {data['token']['access_token']}"},
    )
    assert me.status_code == 200
    assert me.json()["data"]["id"] == data["user"]["id"]


@pytest.mark.asyncio
async def test_provider_name_is_case_insensitive(
    client: AsyncClient, httpx_mock: HTTPXMock
) -> None:
    httpx_mock.add_response(json=tokeninfo())

    response = await client.post(
        f"{API}/auth/social/Google", json={"id_token": "google-token"}
    )

    assert response.status_code == 200


# ------------------------------------------------------------------------------
# 2. 登录失败 (统一文案 + 区分业务码，且不落库)
# ------------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_unsupported_provider(
    client: AsyncClient, session_factory: async_sessionmaker[AsyncSession]
) -> None:
    response = await client.post(
        f"{API}/auth/social/facebook", json={"id_token": "anything"}
    )

    assert response.status_code == 401
    body = response.json()
    assert body["code"] == "auth.unsupported_provider"
    assert body["message"] == "身份认证失败"
    assert body["request_id"]
    assert await count(session_factory, User) == 0


@pytest.mark.asyncio
async def test_apple_wrong_audience_creates_nothing(
    client: AsyncClient,
    httpx_mock: HTTPXMock,
    session_factory: async_sessionmaker[AsyncSession],
    apple_key,
    apple_claims,
    apple_jwks_url: str,
) -> None:
    """测试：签名正确但 aud 错误 -> 401，User / ProviderLink 均未创建"""
    httpx_mock.add_response(url=apple_jwks_url, json={"keys": [apple_key.public_jwk]})
    token = apple_key.sign(apple_claims(aud="com.attacker.app"))

    response = await client.post(f"{API}/auth/social/apple", json={"id_token": token})

    assert response.status_code == 401
    assert response.json()["code"] == "auth.audience_mismatch"
    assert response.json()["message"] == "身份认证失败"
    assert await count(session_factory, User) == 0
    assert await count(session_factory, ProviderLink) == 0


@pytest.mark.asyncio
async def test_google_outage_does_not_leak_provider_error(
    client: AsyncClient, httpx_mock: HTTPXMock
) -> None:
    httpx_mock.add_response(
        status_code=503, json={"error": "backendError", "detail": "internal"}
    )

    response = await client.post(
        f"{API}/auth/social/google", json={"id_token": "google-token"}
    )

    assert response.status_code == 401
    body = response.json()
    assert body["code"] == "auth.verification_failed"
    assert body["message"] == "身份认证失败"
    assert body["data"] is None
    assert "backendError" not in response.text


@pytest.mark.asyncio
async def test_missing_id_token_is_rejected(client: AsyncClient) -> None:
    response = await client.post(f"{API}/auth/social/google", json={})

    assert response.status_code == 400
    assert response.json()["code"] == "system.invalid_params"


@pytest.mark.asyncio
async def test_locked_account_is_refused(
    client: AsyncClient,
    httpx_mock: HTTPXMock,
    session_factory: async_sessionmaker[AsyncSession],
) -> None:
    httpx_mock.add_response(json=tokeninfo())
    httpx_mock.add_response(json=tokeninfo())

    first = await client.post(
        f"{API}/auth/social/google", json={"id_token": "google-token"}
    )
    assert first.status_code == 200

    async with session_factory() as session:
        await session.execute(update(User).values(is_active=False))
        await session.commit()

    second = await client.post(
        f"{API}/auth/social/google", json={"id_token": "google-token"}
    )

    assert second.status_code == 403
    assert second.json()["code"] == "auth.account_locked"


# ------------------------------------------------------------------------------
# 3. 会话续期与登出
# ------------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_refresh_rotates_and_logout_revokes(
    client: AsyncClient, httpx_mock: HTTPXMock
) -> None:
    httpx_mock.add_response(json=tokeninfo())
    login = await client.post(
        f"{API}/auth/social/google", json={"id_token": "google-token"}
    )
    refresh_token = login.json()["data"]["token"]["refresh_token"]

    # 1. 刷新成功，返回新的一对 Token
    refreshed = await client.post(
        f"{API}/auth/refresh", json={"refresh_token": refresh_token}
    )
    assert refreshed.status_code == 200
    assert refreshed.json()["message"] == "令牌刷新成功"
    new_refresh_token = refreshed.json()["data"]["refresh_token"]
    assert new_refresh_token != refresh_token

    # 2. 旧 Token 已失效 (一次性使用)
    replay = await client.post(
        f"{API}/auth/refresh", json={"refresh_token": refresh_token}
    )
    assert replay.status_code == 401
    assert replay.json()["code"] == "system.unauthorized"

    # 3. 登出后新 Token 也失效
    logout = await client.post(
        f"{API}/auth/logout", json={"refresh_token": new_refresh_token}
    )
    assert logout.status_code == 200
    assert logout.json()["message"] == "已安全退出"

    after_logout = await client.post(
        f"{API}/auth/refresh", json={"refresh_token": new_refresh_token}
    )
    assert after_logout.status_code == 401


@pytest.mark.asyncio
async def test_users_me_requires_bearer_token(client: AsyncClient) -> None:
    response = await client.get(f"{API}/users/me")

    assert response.status_code == 401
    assert response.json()["code"] == "system.unauthorized"
