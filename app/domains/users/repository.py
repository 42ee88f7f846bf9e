"""
File: app/domains/users/repository.py
Description: 用户领域仓储层 (Repository)

本模块负责用户数据的数据库访问，继承自通用 BaseRepository。
扩展功能：
1. email_exists: 邮箱是否已被任意账号占用 (含软删除账号，与唯一约束一致)
2. get_by_verified_email: 只查询邮箱已验证的有效用户 (账号合并唯一入口)

邮箱比较统一使用小写，VerifiedIdentity 中的邮箱在校验阶段已归一化。

Author: jinmozhe
Created: 2025-11-25
Updated: 2026-10-19 (Verified-email lookup for account linking)
"""

from sqlalchemy import func, select

from app.db.models.user import User
from app.db.repositories.base import BaseRepository
from app.domains.users.schemas import OAuthUserCreate


class UserRepository(BaseRepository[User, OAuthUserCreate]):
    """
    用户仓储类。

    注意：
    用于账号合并的查询会过滤掉软删除的数据 (is_deleted=True)。
    """

    async def email_exists(self, email: str) -> bool:
        """
        邮箱是否已被占用。

        users.email 的唯一约束同样覆盖软删除账号，因此这里不过滤 is_deleted。
        """
        stmt = select(User.id).where(func.lower(User.email) == email.lower()).limit(1)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none() is not None

    async def get_by_verified_email(self, email: str) -> User | None:
        """
        根据邮箱查询"邮箱已验证"的有效用户。

        email_verified_at 为空的账号绝不能作为合并目标：
        否则攻击者可以先用受害者邮箱注册未验证账号，再等待受害者三方登录被并入。
        """
        stmt = select(User).where(
            func.lower(User.email) == email.lower(),
            User.email_verified_at.is_not(None),
            User.is_deleted.is_(False),
        )
        result = await self.session.execute(stmt)
        return result.scalars().first()
