"""
File: app/domains/auth/schemas.py
Description: 认证领域 Pydantic 模型 (Schema)

本模块定义了认证相关的输入/输出数据结构：
1. Token: 登录/刷新成功后返回的双 Token 结构
2. SocialLoginRequest: 三方登录请求参数 (客户端拿到的 id_token)
3. RefreshRequest: 刷新 / 登出请求参数
4. SocialLoginResult: 三方登录响应 (用户 + Token + 是否新注册)
5. ProviderLinkCreate: 三方绑定写入参数 (仅 AccountLinker 使用)

Author: jinmozhe
Created: 2025-12-05
Updated: 2026-10-19 (Federated sign-in payloads)
"""

import uuid
from typing import Any

from pydantic import BaseModel, Field

from app.domains.users.schemas import UserRead


class Token(BaseModel):
    """
    双 Token 响应结构 (Access + Refresh)。
    """

    access_token: str = Field(..., description="访问令牌 (JWT, 短效)")
    refresh_token: str = Field(..., description="刷新令牌 (随机串, 长效, 用于续期)")
    token_type: str = Field(default="bearer", description="令牌类型 (通常为 bearer)")
    expires_in: int = Field(..., description="Access Token 有效期 (秒)")


class SocialLoginRequest(BaseModel):
    """
    三方登录请求参数。
    """

    id_token: str = Field(
        ...,
        min_length=1,
        description="Google / Apple 客户端 SDK 返回的 ID Token",
    )


class RefreshRequest(BaseModel):
    """
    刷新 Token 请求参数。
    """

    refresh_token: str = Field(..., description="有效的刷新令牌")


class SocialLoginResult(BaseModel):
    user: UserRead
    token: Token
    is_new_user: bool = Field(..., description="本次登录是否新建了账号")


class ProviderLinkCreate(BaseModel):
    user_id: uuid.UUID
    provider: str
    provider_user_id: str = Field(..., min_length=1, max_length=255)
    email: str | None = Field(default=None, max_length=255)
    extra_data: dict[str, Any] | None = None
