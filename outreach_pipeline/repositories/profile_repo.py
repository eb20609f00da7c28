"""
Profile repository.
"""
from typing import List

from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from sqlalchemy.orm import selectinload

from outreach_pipeline.models.profile import Profile
from outreach_pipeline.repositories.base import BaseRepository


class ProfileRepository(BaseRepository[Profile]):
    """Repository for Profile operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(Profile, session)

    async def list_with_templates(self) -> List[Profile]:
        """All profiles with their templates loaded, oldest first."""
        query = select(Profile).options(
            selectinload(Profile.templates)
        ).order_by(Profile.created_at)
        result = await self.session.exec(query)
        return result.all()
