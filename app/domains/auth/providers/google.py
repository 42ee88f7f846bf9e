"""
File: app/domains/auth/providers/google.py
Description: Google ID Token 校验 (tokeninfo 远程 introspection)

流程:
1. GET tokeninfo?id_token=...，签名与有效期由 Google 端校验
2. 任何网络错误 / 非 2xx / 非 JSON 对象 -> VerificationFailedError (调用方可整体重试)
3. aud 必须命中白名单 (Web / iOS / Android client id)，否则 AudienceMismatchError
4. iss 如果存在必须是 Google
5. sub 缺失 -> InvalidTokenError
6. 映射为 VerifiedIdentity (email_verified 为字符串 "true")

本模块不做任何持久化，也不做自动重试。

Author: jinmozhe
Created: 2026-10-19
"""

from typing import Any

import httpx
from pydantic import BaseModel, ConfigDict

from app.core.config import Settings
from app.domains.auth.exceptions import (
    AudienceMismatchError,
    InvalidTokenError,
    VerificationFailedError,
)
from app.domains.auth.providers.base import (
    SocialProvider,
    VerifiedIdentity,
    normalize_email,
    optional_str,
    parse_bool_claim,
)

# 额外写入绑定快照的声明
SNAPSHOT_CLAIMS: tuple[str, ...] = ("locale", "hd", "given_name", "family_name")


class GoogleVerifierConfig(BaseModel):
    """Google 校验参数 (构造时显式传入，不读取全局配置)"""

    model_config = ConfigDict(frozen=True)

    allowed_audiences: frozenset[str]
    tokeninfo_url: str = "https://oauth2.googleapis.com/tokeninfo"
    issuers: frozenset[str] = frozenset(
        {"https://accounts.google.com", "accounts.google.com"}
    )

    @classmethod
    def from_settings(cls, settings: Settings) -> "GoogleVerifierConfig":
        return cls(
            allowed_audiences=frozenset(settings.GOOGLE_ALLOWED_AUDIENCES),
            tokeninfo_url=settings.GOOGLE_TOKENINFO_URL,
            issuers=frozenset(settings.GOOGLE_ISSUERS),
        )


class GoogleTokenVerifier:
    """Google 登录凭证校验器"""

    provider = SocialProvider.GOOGLE

    def __init__(self, config: GoogleVerifierConfig, http_client: httpx.AsyncClient):
        self.config = config
        self.http_client = http_client

    async def verify(self, id_token: str) -> VerifiedIdentity:
        claims = await self._introspect(id_token)

        audience = claims.get("aud")
        if audience not in self.config.allowed_audiences:
            raise AudienceMismatchError(f"google aud {audience!r} not allowed")

        issuer = claims.get("iss")
        if issuer is not None and issuer not in self.config.issuers:
            raise InvalidTokenError(f"google iss {issuer!r} not recognised")

        subject = optional_str(claims.get("sub"))
        if subject is None:
            raise InvalidTokenError("google tokeninfo response has no sub")

        email = normalize_email(claims.get("email"))

        return VerifiedIdentity(
            provider=self.provider,
            provider_user_id=subject,
            email=email,
            email_verified=email is not None
            and parse_bool_claim(claims.get("email_verified")),
            display_name=optional_str(claims.get("name")),
            avatar_url=optional_str(claims.get("picture")),
            attributes={
                name: claims[name]
                for name in SNAPSHOT_CLAIMS
                if optional_str(claims.get(name)) is not None
            },
        )

    async def _introspect(self, id_token: str) -> dict[str, Any]:
        try:
            response = await self.http_client.get(
                self.config.tokeninfo_url, params={"id_token": id_token}
            )
        except httpx.HTTPError as exc:
            # 不把异常对象本身写入 detail：其中的 request url 带着 id_token
            raise VerificationFailedError(
                f"tokeninfo request failed: {type(exc).__name__}"
            ) from None

        if not response.is_success:
            raise VerificationFailedError(
                f"tokeninfo returned HTTP {response.status_code}"
            )

        try:
            claims = response.json()
        except ValueError:
            raise VerificationFailedError("tokeninfo response is not JSON") from None

        if not isinstance(claims, dict):
            raise VerificationFailedError("tokeninfo response is not an object")
        return claims
