"""
Outreach repository for outreach events and messages.
"""
import uuid
from typing import List
from datetime import datetime

from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from sqlalchemy import update

from outreach_pipeline.models.outreach import OutreachEvent, Message, OutreachAction, Outcome
from outreach_pipeline.repositories.base import BaseRepository


class OutreachEventRepository(BaseRepository[OutreachEvent]):
    """Repository for OutreachEvent operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(OutreachEvent, session)

    async def get_by_contact(self, contact_id: uuid.UUID) -> List[OutreachEvent]:
        """Events for one contact, newest first."""
        query = select(OutreachEvent).where(
            OutreachEvent.contact_id == contact_id
        ).order_by(OutreachEvent.created_at.desc())
        result = await self.session.exec(query)
        return result.all()

    async def get_by_contacts(self, contact_ids: List[uuid.UUID]) -> List[OutreachEvent]:
        if not contact_ids:
            return []
        query = select(OutreachEvent).where(
            OutreachEvent.contact_id.in_(contact_ids)
        ).order_by(OutreachEvent.created_at.desc())
        result = await self.session.exec(query)
        return result.all()

    async def get_with_template(self) -> List[OutreachEvent]:
        """Events sent from a template, for per-template stats."""
        query = select(OutreachEvent).where(OutreachEvent.template_id != None)
        result = await self.session.exec(query)
        return result.all()

    async def advance_outcome(
        self,
        event_id: uuid.UUID,
        target: Outcome,
        allowed_from: List[Outcome]
    ) -> bool:
        """
        Compare-and-set the outcome.

        The row only changes while its outcome is still one of `allowed_from`,
        so concurrent forward writes can never move it backward. Does not
        commit. Returns True when the row changed.
        """
        if not allowed_from:
            return False
        statement = (
            update(OutreachEvent)
            .where(
                OutreachEvent.id == event_id,
                OutreachEvent.outcome.in_(allowed_from)
            )
            .values(outcome=target, updated_at=datetime.utcnow())
        )
        result = await self.session.execute(statement)
        return result.rowcount == 1

    async def get_sent_since(self, since: datetime) -> List[OutreachEvent]:
        """note_sent events created at or after `since`."""
        query = select(OutreachEvent).where(
            OutreachEvent.action == OutreachAction.NOTE_SENT,
            OutreachEvent.created_at >= since
        )
        result = await self.session.exec(query)
        return result.all()


class MessageRepository(BaseRepository[Message]):
    """Repository for Message operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(Message, session)

    async def get_by_contact(self, contact_id: uuid.UUID) -> List[Message]:
        """Conversation with one contact, oldest first."""
        query = select(Message).where(
            Message.contact_id == contact_id
        ).order_by(Message.created_at)
        result = await self.session.exec(query)
        return result.all()
