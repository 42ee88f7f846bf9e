"""
File: app/db/models/__init__.py
Description: ORM 模型注册表

本模块负责：
1. 导入所有业务模型 (User, ProviderLink)
2. 导入基类 (Base, UUIDModel, Mixins)
3. 导出它们供 Alembic (env.py) 与测试 (create_all) 发现 metadata

注意：
每当新增一个 Model 文件，必须在此处导入，
否则 Alembic autogenerate 无法检测到新表。

Author: jinmozhe
Created: 2025-11-25
"""

from app.db.models.base import (
    Base,
    SoftDeleteMixin,
    TimestampMixin,
    UUIDBase,
    UUIDModel,
)
from app.db.models.provider_link import ProviderLink
from app.db.models.user import User

__all__ = [
    # 基类
    "Base",
    "UUIDBase",
    "UUIDModel",
    "TimestampMixin",
    "SoftDeleteMixin",
    # 业务模型
    "User",
    "ProviderLink",
]
