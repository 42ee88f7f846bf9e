"""
File: app/db/models/base.py
Description: ORM 模型基类与组件化定义

本模块采用"组件化组合" (Mixin) 模式：
1. UUIDBase: [基础] 提供 UUID v7 主键 + update 方法
2. TimestampMixin: [组件] 提供 created_at, updated_at (UTC, TIMESTAMPTZ)
3. SoftDeleteMixin: [组件] 提供 is_deleted, deleted_at
4. UUIDModel: [标准] 聚合了 UUIDBase + TimestampMixin

类型选择：
- 主键使用 SQLAlchemy 通用 Uuid 类型 (PostgreSQL 下为原生 UUID)
- JSON 字段使用 JSONType (PostgreSQL 下为 JSONB，其他方言退化为 JSON)
以便同一套模型既能跑在 PostgreSQL，也能跑在测试用的 SQLite 上。

Author: jinmozhe
Created: 2025-11-25
Updated: 2026-10-19 (Dialect-portable column types)
"""

import uuid
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, MetaData, Uuid, func, text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from uuid6 import uuid7

# 约束命名约定 (Alembic 迁移依赖稳定的约束名)
POSTGRES_INDEXES_NAMING_CONVENTION = {
    "ix": "ix_%(table_name)s_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

# PostgreSQL 使用 JSONB，其他方言 (SQLite) 使用通用 JSON
JSONType = JSON().with_variant(JSONB(), "postgresql")


class Base(DeclarativeBase):
    """SQLAlchemy 声明式元类"""

    metadata = MetaData(naming_convention=POSTGRES_INDEXES_NAMING_CONVENTION)


# ==============================================================================
# 1. 功能组件 (Mixins)
# ==============================================================================


class TimestampMixin:
    """
    [组件] 时间戳混入类

    规范：强制使用 UTC 时间存储 (TIMESTAMPTZ)，展示时再转本地时间。
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        server_default=func.now(),
        nullable=False,
        comment="创建时间 (UTC)",
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        server_default=func.now(),
        onupdate=lambda: datetime.now(UTC),
        nullable=False,
        comment="更新时间 (UTC)",
    )


class SoftDeleteMixin:
    """
    [组件] 软删除混入类

    本服务从不删除用户；软删除由其他模块 (账号注销) 写入，
    登录时被软删除的账号会被拒绝。
    """

    is_deleted: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        server_default=text("false"),
        nullable=False,
        comment="是否软删除",
    )

    deleted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), default=None, nullable=True, comment="删除时间 (UTC)"
    )


# ==============================================================================
# 2. 基础模型 (Base Models)
# ==============================================================================


class UUIDBase(Base):
    """
    [纯净版] 仅包含 ID 和 基础工具方法。
    """

    __abstract__ = True

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=uuid7, comment="主键 (UUID v7)"
    )

    def update(self, **kwargs: Any) -> None:
        """
        [工具方法] 动态更新模型属性

        用法:
        link.update(email=..., extra_data=...)
        """
        for key, value in kwargs.items():
            if hasattr(self, key):
                setattr(self, key, value)


class UUIDModel(UUIDBase, TimestampMixin):
    """
    [标准版] 全站通用的业务模型基类。

    组合了 UUIDBase (ID + Update) 与 TimestampMixin (UTC 创建/更新时间)。
    """

    __abstract__ = True
