"""
File: app/domains/auth/providers/__init__.py
Description: 三方凭证校验入口 (按 provider 分派)

分派基于封闭枚举 + 穷尽 match：新增 SocialProvider 成员而未补充分支时，
类型检查会在 assert_never 处报错。

Author: jinmozhe
Created: 2026-10-19
"""

from dataclasses import dataclass
from typing import assert_never

import httpx

from app.core.config import Settings
from app.domains.auth.providers.apple import AppleTokenVerifier, AppleVerifierConfig
from app.domains.auth.providers.base import SocialProvider, VerifiedIdentity
from app.domains.auth.providers.google import GoogleTokenVerifier, GoogleVerifierConfig
from app.domains.auth.providers.jwks import AppleKeyCache

__all__ = [
    "AppleKeyCache",
    "AppleTokenVerifier",
    "AppleVerifierConfig",
    "GoogleTokenVerifier",
    "GoogleVerifierConfig",
    "ProviderVerifiers",
    "SocialProvider",
    "VerifiedIdentity",
    "build_provider_verifiers",
]


@dataclass(frozen=True)
class ProviderVerifiers:
    google: GoogleTokenVerifier
    apple: AppleTokenVerifier

    async def verify(self, provider: SocialProvider, token: str) -> VerifiedIdentity:
        """校验 token 并返回统一的 VerifiedIdentity，失败时抛 SocialAuthError 子类"""
        match provider:
            case SocialProvider.GOOGLE:
                return await self.google.verify(token)
            case SocialProvider.APPLE:
                return await self.apple.verify(token)
            case _:
                assert_never(provider)


def build_provider_verifiers(
    settings: Settings, http_client: httpx.AsyncClient
) -> ProviderVerifiers:
    """根据全局配置组装校验器 (进程内单例，AppleKeyCache 随之共享)"""
    key_cache = AppleKeyCache(http_client, settings.APPLE_JWKS_URL)
    return ProviderVerifiers(
        google=GoogleTokenVerifier(
            GoogleVerifierConfig.from_settings(settings), http_client
        ),
        apple=AppleTokenVerifier(AppleVerifierConfig.from_settings(settings), key_cache),
    )
