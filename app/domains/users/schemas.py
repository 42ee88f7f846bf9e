"""
File: app/domains/users/schemas.py
Description: 用户领域 Pydantic 模型 (Schema)

本模块定义了用户相关的输入/输出数据结构：
1. OAuthUserCreate: 三方首登自动创建账号时的写入参数 (仅 AccountLinker 使用)
2. UserRead: 用户信息响应 (屏蔽密码哈希)

Author: jinmozhe
Created: 2025-11-25
Updated: 2026-10-19 (Federated account fields)
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.db.models.user import DEFAULT_USER_NAME

# ------------------------------------------------------------------------------
# Input Schemas (输入模型)
# ------------------------------------------------------------------------------


class OAuthUserCreate(BaseModel):
    """
    三方登录自动建号参数。
    不接受外部请求直接构造，由 AccountLinker 根据 VerifiedIdentity 生成。
    """

    name: str = Field(default=DEFAULT_USER_NAME, min_length=1, max_length=100)
    email: str | None = Field(default=None, max_length=255)
    email_verified_at: datetime | None = None
    avatar: str | None = Field(default=None, max_length=1024)
    hashed_password: str = Field(..., min_length=1)


# ------------------------------------------------------------------------------
# Output Schemas (输出/响应模型)
# ------------------------------------------------------------------------------


class UserRead(BaseModel):
    """
    用户读取模型 (响应)。
    """

    id: UUID = Field(..., description="用户 ID (UUID v7)")
    name: str = Field(..., description="展示名")
    email: str | None = Field(default=None, description="邮箱")
    email_verified_at: datetime | None = Field(
        default=None, description="邮箱验证时间 (UTC)"
    )
    avatar: str | None = Field(default=None, description="头像URL")
    is_active: bool = Field(..., description="账号状态")
    created_at: datetime = Field(..., description="创建时间 (UTC)")
    updated_at: datetime = Field(..., description="更新时间 (UTC)")

    # 允许从 ORM 对象读取数据
    model_config = ConfigDict(from_attributes=True)
