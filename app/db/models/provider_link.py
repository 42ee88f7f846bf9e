"""
File: app/db/models/provider_link.py
Description: 三方身份绑定模型 (Google / Apple)

一条记录表示"某个三方身份 (provider, provider_user_id) 属于某个用户"。
一个 User 可以绑定多个三方身份 (每个 provider 至多一个)。

不变量：
(provider, provider_user_id) 在数据库层唯一，同一三方身份永远只指向一个用户。
(user_id, provider) 同样唯一，一个用户在同一 provider 下只有一个身份。
并发首登时依靠该唯一约束发现冲突 (见 AccountLinker)。

注意：
采用 "No-Relationship" 模式，不显式定义 ORM relationship，
User 与 ProviderLink 的关联仅通过 user_id 外键物理约束。
绑定记录只会被创建和更新，本服务从不删除。

Author: jinmozhe
Created: 2025-12-02
Updated: 2026-10-19 (Composite identity key + snapshot fields)
"""

import uuid
from typing import Any

from sqlalchemy import ForeignKey, Index, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.db.models.base import JSONType, UUIDModel


class ProviderLink(UUIDModel):
    """
    三方身份绑定表 (N:1 User)
    """

    __tablename__ = "provider_links"

    __table_args__ = (
        UniqueConstraint(
            "provider",
            "provider_user_id",
            name="uq_provider_links_provider_identity",
        ),
        # 每个用户在同一 provider 下至多一个绑定
        UniqueConstraint("user_id", "provider", name="uq_provider_links_user_provider"),
        Index("ix_provider_links_provider_email", "provider", "email"),
    )

    # --------------------------------------------------------------------------
    # 外键关联
    # --------------------------------------------------------------------------

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        # 严禁 ondelete="CASCADE"：用户仅软删除，绑定关系必须保留
        ForeignKey("users.id"),
        nullable=False,
        index=True,
        comment="关联用户ID",
    )

    # --------------------------------------------------------------------------
    # 三方身份 (复合唯一键)
    # --------------------------------------------------------------------------

    provider: Mapped[str] = mapped_column(
        String(20), nullable=False, comment="三方标识: google / apple"
    )

    provider_user_id: Mapped[str] = mapped_column(
        String(255), nullable=False, comment="三方唯一ID (sub)"
    )

    # --------------------------------------------------------------------------
    # 最近一次登录的快照
    # --------------------------------------------------------------------------

    email: Mapped[str | None] = mapped_column(
        String(255), nullable=True, comment="三方最近一次下发的邮箱"
    )

    # avatar / name / locale / email_verified / is_private_email 等
    extra_data: Mapped[dict[str, Any] | None] = mapped_column(
        JSONType, nullable=True, comment="三方资料快照"
    )
