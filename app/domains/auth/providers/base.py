"""
File: app/domains/auth/providers/base.py
Description: 三方身份的统一输出结构

1. SocialProvider: 封闭的 provider 枚举 (google / apple)，新增 provider 只能新增成员
2. VerifiedIdentity: 校验通过后的三方身份，只在单次请求内存在，从不落库
3. 声明解析小工具 (邮箱归一化 / "true" 字符串布尔)

两个 provider 的信任模型不同 (远程 introspection vs 本地验签)，
只在输出结构上统一，不抽象统一的 verify 流程。

Author: jinmozhe
Created: 2026-10-19
"""

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from app.domains.auth.exceptions import UnsupportedProviderError

# 与 users.email / provider_links.email 列宽一致
MAX_EMAIL_LENGTH = 255


class SocialProvider(StrEnum):
    """支持的三方登录渠道"""

    GOOGLE = "google"
    APPLE = "apple"

    @classmethod
    def parse(cls, name: str) -> "SocialProvider":
        """路径参数 -> 枚举；未知渠道抛 UnsupportedProviderError"""
        try:
            return cls(name.strip().lower())
        except ValueError:
            raise UnsupportedProviderError(f"unsupported provider: {name!r}") from None


class VerifiedIdentity(BaseModel):
    """
    校验通过的三方身份。

    provider_user_id (sub) 是唯一的关联主键；email 只是辅助信息，
    Apple 重复登录时可能不再下发。
    """

    model_config = ConfigDict(frozen=True)

    provider: SocialProvider
    provider_user_id: str = Field(..., min_length=1)
    email: str | None = None
    email_verified: bool = False
    display_name: str | None = None
    avatar_url: str | None = None

    # 其余值得保存到绑定快照的声明 (locale / hd / is_private_email ...)
    attributes: dict[str, Any] = Field(default_factory=dict)

    def snapshot(self) -> dict[str, Any]:
        """
        生成 ProviderLink.extra_data 快照，只包含本次实际下发的字段。
        """
        data: dict[str, Any] = {
            "name": self.display_name,
            "avatar": self.avatar_url,
        }
        if self.email is not None:
            data["email_verified"] = self.email_verified
        data.update(self.attributes)
        return {key: value for key, value in data.items() if value is not None}


def normalize_email(value: Any) -> str | None:
    """去除空白并转小写；空字符串或超出列宽的邮箱视为未提供"""
    if not isinstance(value, str):
        return None
    email = value.strip().lower()
    if not email or len(email) > MAX_EMAIL_LENGTH:
        return None
    return email


def parse_bool_claim(value: Any) -> bool:
    """三方布尔声明可能是 true 或 "true"，其余一律视为 False"""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return False


def optional_str(value: Any) -> str | None:
    """非空字符串原样返回，其余返回 None"""
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None
