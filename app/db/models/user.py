"""
File: app/db/models/user.py
Description: 用户核心账号模型

继承自 UUIDModel 和 SoftDeleteMixin，自动拥有：
1. UUID v7 主键
2. created_at / updated_at (UTC)
3. is_deleted / deleted_at (软删除支持)

账号关联规则相关字段：
- email: 可为空，非空时全局唯一
- email_verified_at: 仅当创建时三方明确声明邮箱已验证才写入；
  为空的账号永远不会被"按邮箱合并"命中 (防止抢注邮箱劫持账号)
- hashed_password: 纯三方账号写入不可用的随机哈希

Author: jinmozhe
Created: 2025-11-25
Updated: 2026-10-19 (Federated accounts: name / email_verified_at)
"""

from datetime import datetime

from sqlalchemy import Boolean, CheckConstraint, DateTime, String, text
from sqlalchemy.orm import Mapped, mapped_column

from app.db.models.base import SoftDeleteMixin, UUIDModel

# 三方未提供昵称时的默认展示名
DEFAULT_USER_NAME = "User"


class User(UUIDModel, SoftDeleteMixin):
    """
    用户模型 (账号域)
    """

    __tablename__ = "users"

    # --------------------------------------------------------------------------
    # 数据库级约束 (Constraints)
    # --------------------------------------------------------------------------
    __table_args__ = (
        CheckConstraint("length(trim(name)) > 0", name="name_not_empty"),
        CheckConstraint("length(hashed_password) > 0", name="password_not_empty"),
    )

    # --------------------------------------------------------------------------
    # 基础资料
    # --------------------------------------------------------------------------

    name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        default=DEFAULT_USER_NAME,
        comment="展示名 (三方未提供时为 User)",
    )

    avatar: Mapped[str | None] = mapped_column(
        String(1024), nullable=True, comment="头像URL"
    )

    # --------------------------------------------------------------------------
    # 凭证
    # --------------------------------------------------------------------------

    email: Mapped[str | None] = mapped_column(
        String(255), unique=True, nullable=True, comment="用户邮箱 (非空时唯一)"
    )

    email_verified_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="邮箱验证时间 (为空则不可作为账号合并依据)",
    )

    hashed_password: Mapped[str] = mapped_column(
        String(255), nullable=False, comment="密码哈希值 (纯三方账号为不可用哈希)"
    )

    # --------------------------------------------------------------------------
    # 状态
    # --------------------------------------------------------------------------

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        server_default=text("true"),
        nullable=False,
        comment="是否激活",
    )
