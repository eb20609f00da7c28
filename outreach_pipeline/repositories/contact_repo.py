"""
Contact and company repositories.
"""
import uuid
from datetime import datetime
from typing import List, Optional

from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from outreach_pipeline.models.contact import Contact, Company
from outreach_pipeline.repositories.base import BaseRepository


class ContactRepository(BaseRepository[Contact]):
    """Repository for Contact operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(Contact, session)

    async def get_by_company(self, company_id: uuid.UUID) -> List[Contact]:
        """Get all contacts working at a company."""
        query = select(Contact).where(
            Contact.company_id == company_id
        ).order_by(Contact.name)
        result = await self.session.exec(query)
        return result.all()


class CompanyRepository(BaseRepository[Company]):
    """Repository for Company operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(Company, session)

    async def get_for_contact(self, contact: Contact) -> Optional[Company]:
        if not contact.company_id:
            return None
        return await self.get(contact.company_id)

    async def get_created_since(self, since: datetime) -> List[Company]:
        query = select(Company).where(Company.created_at >= since)
        result = await self.session.exec(query)
        return result.all()
