"""
File: app/domains/auth/service.py
Description: 认证领域服务 (Service)

本模块封装认证核心业务逻辑：
1. 三方登录: provider 解析 -> 凭证校验 -> 账号解析 -> 状态检查 -> 签发双 Token
2. 刷新令牌: 验证 Redis 中的 Refresh Token，执行旋转策略 (Rotation)
3. 用户登出: 销毁 Refresh Token
4. 依赖注入: 依赖 ProviderVerifiers (三方校验)、AccountLinker (账号) 和 Redis (存 Token)

Author: jinmozhe
Created: 2025-12-05
Updated: 2026-10-19 (Federated sign-in replaces password login)
"""

import secrets
import uuid
from datetime import timedelta

from loguru import logger
from redis.asyncio import Redis

from app.core.config import settings
from app.core.exceptions import AppException, UnauthorizedException
from app.core.security import create_access_token
from app.db.models.user import User
from app.domains.auth.constants import AuthError
from app.domains.auth.exceptions import SocialAuthError
from app.domains.auth.linker import AccountLinker
from app.domains.auth.providers import ProviderVerifiers, SocialProvider
from app.domains.auth.schemas import SocialLoginResult, Token
from app.domains.users.schemas import UserRead
from app.utils.masking import mask_identifier

REFRESH_TOKEN_KEY_PREFIX = "refresh_token:"


class AuthService:
    """
    认证服务类。
    """

    def __init__(
        self, verifiers: ProviderVerifiers, linker: AccountLinker, redis: Redis
    ):
        self.verifiers = verifiers
        self.linker = linker
        self.redis = redis

    async def social_login(self, provider_name: str, id_token: str) -> SocialLoginResult:
        """
        三方登录流程。

        流程:
        1. 解析 provider (封闭枚举)
        2. 校验三方凭证，得到 VerifiedIdentity
        3. AccountLinker 解析/创建本地账号 (已 commit)
        4. 检查账号状态 (冻结 / 注销)
        5. 签发 Access Token (JWT) + Refresh Token (Redis)

        任何失败都不会签发会话。
        """
        try:
            provider = SocialProvider.parse(provider_name)
            identity = await self.verifiers.verify(provider, id_token)
            result = await self.linker.resolve(identity)
        except SocialAuthError as exc:
            # detail 只进日志，响应体只有通用文案 + 业务码
            logger.bind(
                provider=provider_name, code=exc.code, detail=exc.detail
            ).warning("Social sign-in rejected")
            raise

        user = result.user
        self._ensure_can_login(user)

        token = await self._create_tokens(user_id=str(user.id))

        logger.bind(
            provider=provider.value,
            sub=mask_identifier(identity.provider_user_id),
            user_id=str(user.id),
            is_new_user=result.is_new_user,
        ).info("Social sign-in succeeded")

        return SocialLoginResult(
            user=UserRead.model_validate(user),
            token=token,
            is_new_user=result.is_new_user,
        )

    async def refresh_token(self, refresh_token: str) -> Token:
        """
        使用 Refresh Token 换取新 Token (Token Rotation)。

        流程:
        1. 查 Redis 确认 token 有效性
        2. 若无效/过期，抛出 401
        3. 确认用户仍可登录 (未冻结 / 未注销)
        4. 销毁旧 Token (防重放)，签发全新的一对 Token
        """
        redis_key = f"{REFRESH_TOKEN_KEY_PREFIX}{refresh_token}"
        user_id = await self.redis.get(redis_key)

        if not user_id:
            raise UnauthorizedException(message="Refresh token 无效或已过期")

        if isinstance(user_id, bytes):
            user_id = user_id.decode()

        user = await self.linker.user_repo.get(uuid.UUID(user_id))
        if user is None:
            await self.redis.delete(redis_key)
            raise UnauthorizedException(message="Refresh token 无效或已过期")
        self._ensure_can_login(user)

        # 销毁旧 Token (一次性使用策略)
        await self.redis.delete(redis_key)

        return await self._create_tokens(user_id=user_id)

    async def logout(self, refresh_token: str) -> None:
        """
        用户登出。
        直接从 Redis 删除对应的 Refresh Token。
        """
        await self.redis.delete(f"{REFRESH_TOKEN_KEY_PREFIX}{refresh_token}")

    @staticmethod
    def _ensure_can_login(user: User) -> None:
        if user.is_deleted or not user.is_active:
            logger.bind(user_id=str(user.id)).warning(
                "Sign-in refused for locked account"
            )
            raise AppException(AuthError.ACCOUNT_LOCKED)

    async def _create_tokens(self, user_id: str) -> Token:
        """
        [内部方法] 构造 Token 响应并持久化 Refresh Token。
        """
        access_token = create_access_token(subject=user_id)

        # 高熵随机串 (32 字节，约 43 字符)
        refresh_token = secrets.token_urlsafe(32)

        # Key: refresh_token:xyz... -> Value: user_id
        await self.redis.setex(
            f"{REFRESH_TOKEN_KEY_PREFIX}{refresh_token}",
            timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS),
            user_id,
        )

        return Token(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_in=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
            token_type="bearer",
        )
