"""
File: app/domains/auth/dependencies.py
Description: 认证领域依赖注入 (DI)

本模块负责定义和组装认证领域的依赖项：
1. get_provider_verifiers: 进程内单例 (AppleKeyCache 必须跨请求共享)
2. get_account_linker: 注入 DB 会话，实例化 AccountLinker
3. get_auth_service: 组装 AuthService

依赖链：
DBSession → AccountLinker ┐
ProviderVerifiers ────────┼→ AuthService → AuthServiceDep
Redis ────────────────────┘

测试中通过 app.dependency_overrides 替换 get_provider_verifiers / get_redis / get_db。

Author: jinmozhe
Created: 2026-10-19
"""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends
from redis.asyncio import Redis

from app.api.deps import DBSession
from app.core.config import settings
from app.core.http import http_client
from app.core.redis import get_redis
from app.domains.auth.linker import AccountLinker
from app.domains.auth.providers import ProviderVerifiers, build_provider_verifiers
from app.domains.auth.service import AuthService


@lru_cache
def _build_verifiers() -> ProviderVerifiers:
    return build_provider_verifiers(settings, http_client)


async def get_provider_verifiers() -> ProviderVerifiers:
    """
    获取三方校验器 (进程内单例)。
    """
    return _build_verifiers()


async def get_account_linker(session: DBSession) -> AccountLinker:
    return AccountLinker(session, email_policy=settings.OAUTH_LINK_EMAIL_POLICY)


async def get_auth_service(
    verifiers: Annotated[ProviderVerifiers, Depends(get_provider_verifiers)],
    linker: Annotated[AccountLinker, Depends(get_account_linker)],
    redis: Annotated[Redis, Depends(get_redis)],
) -> AuthService:
    """
    构造 AuthService 实例。
    """
    return AuthService(verifiers=verifiers, linker=linker, redis=redis)


# Router 中只需写: service: AuthServiceDep
AuthServiceDep = Annotated[AuthService, Depends(get_auth_service)]
