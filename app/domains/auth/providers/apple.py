"""
File: app/domains/auth/providers/apple.py
Description: Apple ID Token 校验 (本地 RS256 验签)

流程:
1. 读取未验签的 header，取出 kid (缺失 / 非 RS256 直接拒绝)
2. 通过 AppleKeyCache 获取公钥 (未命中时最多刷新一次 JWKS)
3. 验签 + 校验 iss / exp (允许少量时钟偏差)
4. aud 必须与白名单有交集
5. 映射为 VerifiedIdentity

Apple 不下发姓名与头像 (仅首次授权时由客户端单独拿到)，
重复登录时 email 也可能缺失，这是正常情况。

Author: jinmozhe
Created: 2026-10-19
"""

from typing import Any

from jose import jwt
from jose.exceptions import ExpiredSignatureError, JWTClaimsError, JWTError
from pydantic import BaseModel, ConfigDict

from app.core.config import Settings
from app.domains.auth.exceptions import AudienceMismatchError, InvalidTokenError
from app.domains.auth.providers.base import (
    SocialProvider,
    VerifiedIdentity,
    normalize_email,
    optional_str,
    parse_bool_claim,
)
from app.domains.auth.providers.jwks import AppleKeyCache

SIGNING_ALGORITHM = "RS256"


class AppleVerifierConfig(BaseModel):
    """Apple 校验参数"""

    model_config = ConfigDict(frozen=True)

    allowed_audiences: frozenset[str]
    issuer: str = "https://appleid.apple.com"
    clock_skew_seconds: int = 60

    @classmethod
    def from_settings(cls, settings: Settings) -> "AppleVerifierConfig":
        return cls(
            allowed_audiences=frozenset(settings.APPLE_ALLOWED_AUDIENCES),
            issuer=settings.APPLE_ISSUER,
            clock_skew_seconds=settings.OAUTH_CLOCK_SKEW_SECONDS,
        )


class AppleTokenVerifier:
    """Apple 登录凭证校验器"""

    provider = SocialProvider.APPLE

    def __init__(self, config: AppleVerifierConfig, key_cache: AppleKeyCache):
        self.config = config
        self.key_cache = key_cache

    async def verify(self, id_token: str) -> VerifiedIdentity:
        kid = self._read_key_id(id_token)
        key = await self.key_cache.get_or_refresh(kid)
        claims = self._decode(id_token, key)

        audiences = claims.get("aud")
        if isinstance(audiences, str):
            audiences = [audiences]
        if not isinstance(audiences, list) or not self.config.allowed_audiences.intersection(
            a for a in audiences if isinstance(a, str)
        ):
            raise AudienceMismatchError(f"apple aud {claims.get('aud')!r} not allowed")

        subject = optional_str(claims.get("sub"))
        if subject is None:
            raise InvalidTokenError("apple token has no sub")

        email = normalize_email(claims.get("email"))
        attributes: dict[str, Any] = {}
        if "is_private_email" in claims:
            attributes["is_private_email"] = parse_bool_claim(
                claims["is_private_email"]
            )

        return VerifiedIdentity(
            provider=self.provider,
            provider_user_id=subject,
            email=email,
            email_verified=email is not None
            and parse_bool_claim(claims.get("email_verified")),
            attributes=attributes,
        )

    @staticmethod
    def _read_key_id(id_token: str) -> str:
        try:
            header = jwt.get_unverified_header(id_token)
        except JWTError:
            raise InvalidTokenError("malformed apple token header") from None

        if header.get("alg") != SIGNING_ALGORITHM:
            raise InvalidTokenError(f"unexpected alg {header.get('alg')!r}")

        kid = header.get("kid")
        if not isinstance(kid, str) or not kid:
            raise InvalidTokenError("apple token header has no kid")
        return kid

    def _decode(self, id_token: str, key: dict[str, Any]) -> dict[str, Any]:
        try:
            return jwt.decode(
                id_token,
                key,
                algorithms=[SIGNING_ALGORITHM],
                issuer=self.config.issuer,
                options={
                    # aud 可能是列表，白名单交集在外层校验
                    "verify_aud": False,
                    "require_exp": True,
                    "require_iss": True,
                    "require_sub": True,
                    "leeway": self.config.clock_skew_seconds,
                },
            )
        except ExpiredSignatureError:
            raise InvalidTokenError("apple token expired") from None
        except JWTClaimsError as exc:
            raise InvalidTokenError(f"apple token claims rejected: {exc}") from None
        except JWTError as exc:
            raise InvalidTokenError(f"apple token signature rejected: {exc}") from None
