"""
File: app/db/repositories/base.py
Description: 通用异步 Repository 基类

本模块定义了 BaseRepository，封装了通用的读写操作。
所有领域的 Repository 应继承此类，以减少样板代码。

特性：
- 泛型支持: BaseRepository[ModelType, CreateSchemaType]
- 纯异步: 基于 sqlalchemy.ext.asyncio
- 只 flush 不 commit：事务边界由 Service / AccountLinker 控制
- 安全增强: update 操作自动过滤核心系统字段 (id, created_at)

Author: jinmozhe
Created: 2025-11-25
Updated: 2026-10-19
"""

from typing import Any, ClassVar, Generic, TypeVar

from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.base import Base

ModelType = TypeVar("ModelType", bound=Base)
CreateSchemaType = TypeVar("CreateSchemaType", bound=BaseModel)


class BaseRepository(Generic[ModelType, CreateSchemaType]):
    """
    通用仓储基类。

    参数:
    - ModelType: SQLAlchemy 模型类 (如 User)
    - CreateSchemaType: 创建数据的 Pydantic 模型 (如 OAuthUserCreate)
    """

    # 受保护的字段，禁止通过通用 update 方法修改
    PROTECTED_FIELDS: ClassVar[set[str]] = {"id", "created_at", "updated_at"}

    def __init__(self, model: type[ModelType], session: AsyncSession):
        self.model = model
        self.session = session

    async def get(self, id: Any) -> ModelType | None:
        """根据主键 ID 查询单条记录"""
        return await self.session.get(self.model, id)

    async def create(self, obj_in: CreateSchemaType) -> ModelType:
        """
        创建新记录。

        flush 到数据库以尽早触发唯一约束，但不会 commit。
        唯一约束冲突会以 IntegrityError 的形式从这里抛出。
        """
        db_obj = self.model(**obj_in.model_dump())

        self.session.add(db_obj)
        await self.session.flush()
        await self.session.refresh(db_obj)

        return db_obj

    async def update(self, db_obj: ModelType, obj_in: dict[str, Any]) -> ModelType:
        """
        更新现有记录。

        会自动过滤 PROTECTED_FIELDS 中的敏感字段(如 id, created_at)。
        """
        safe_data = {k: v for k, v in obj_in.items() if k not in self.PROTECTED_FIELDS}

        if hasattr(db_obj, "update"):
            db_obj.update(**safe_data)  # type: ignore[union-attr]
        else:
            for field, value in safe_data.items():
                if hasattr(db_obj, field):
                    setattr(db_obj, field, value)

        self.session.add(db_obj)
        await self.session.flush()
        await self.session.refresh(db_obj)

        return db_obj
