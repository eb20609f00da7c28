"""
Message template repository.
"""
import uuid
from typing import List, Optional

from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from outreach_pipeline.models.template import MessageTemplate, TemplateKind
from outreach_pipeline.repositories.base import BaseRepository


class MessageTemplateRepository(BaseRepository[MessageTemplate]):
    """Repository for MessageTemplate operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(MessageTemplate, session)

    async def search(
        self,
        profile_id: Optional[uuid.UUID] = None,
        kind: Optional[TemplateKind] = None,
        current_only: bool = False
    ) -> List[MessageTemplate]:
        """Templates filtered by profile, kind and current flag, newest first."""
        query = select(MessageTemplate)
        if profile_id:
            query = query.where(MessageTemplate.profile_id == profile_id)
        if kind:
            query = query.where(MessageTemplate.kind == kind)
        if current_only:
            query = query.where(MessageTemplate.is_current == True)
        query = query.order_by(MessageTemplate.created_at.desc())
        result = await self.session.exec(query)
        return result.all()
