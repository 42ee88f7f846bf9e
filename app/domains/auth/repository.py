"""
File: app/domains/auth/repository.py
Description: 三方绑定仓储层 (ProviderLink Repository)

Author: jinmozhe
Created: 2026-10-19
"""

import uuid

from sqlalchemy import select

from app.db.models.provider_link import ProviderLink
from app.db.repositories.base import BaseRepository
from app.domains.auth.schemas import ProviderLinkCreate


class ProviderLinkRepository(BaseRepository[ProviderLink, ProviderLinkCreate]):
    async def get_by_identity(
        self, provider: str, provider_user_id: str
    ) -> ProviderLink | None:
        """按 (provider, provider_user_id) 复合键精确查询"""
        stmt = select(ProviderLink).where(
            ProviderLink.provider == provider,
            ProviderLink.provider_user_id == provider_user_id,
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_user_and_provider(
        self, user_id: uuid.UUID, provider: str
    ) -> ProviderLink | None:
        """某用户在指定 provider 下的绑定 (至多一条)"""
        stmt = select(ProviderLink).where(
            ProviderLink.user_id == user_id,
            ProviderLink.provider == provider,
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()
