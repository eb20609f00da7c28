"""
Template service - template CRUD, versioning and stats.
"""
import logging
import uuid
from typing import Optional, List, Tuple

from sqlmodel.ext.asyncio.session import AsyncSession

from outreach_pipeline.core.exceptions import raise_not_found, raise_validation_error, InvalidSequenceNumber
from outreach_pipeline.repositories.template_repo import MessageTemplateRepository
from outreach_pipeline.repositories.profile_repo import ProfileRepository
from outreach_pipeline.repositories.outreach_repo import OutreachEventRepository
from outreach_pipeline.models.template import MessageTemplate, TemplateKind
from outreach_pipeline.schemas.template import TemplateCreate, TemplateUpdate
from outreach_pipeline.services import template_versioner
from outreach_pipeline.services.engagement import template_stats, TemplateStats

logger = logging.getLogger(__name__)


class TemplateService:
    """Service for template operations."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.template_repo = MessageTemplateRepository(session)
        self.profile_repo = ProfileRepository(session)
        self.event_repo = OutreachEventRepository(session)

    async def create(self, template_data: TemplateCreate) -> MessageTemplate:
        """Create a template; follow-ups must carry a sequence number."""
        profile = await self.profile_repo.get(template_data.profile_id)
        if not profile:
            raise_not_found("Profile", str(template_data.profile_id))

        try:
            template_versioner.validate_sequence_number(template_data.kind, template_data.sequence_number)
        except InvalidSequenceNumber as e:
            raise_validation_error(e.message)

        return await self.template_repo.create(template_data.model_dump())

    async def list(
        self,
        profile_id: Optional[uuid.UUID] = None,
        kind: Optional[TemplateKind] = None,
        current_only: bool = False
    ) -> List[MessageTemplate]:
        """List templates, newest first."""
        return await self.template_repo.search(profile_id, kind, current_only)

    async def get(self, template_id: uuid.UUID) -> MessageTemplate:
        """Get a template by ID."""
        template = await self.template_repo.get(template_id)
        if not template:
            raise_not_found("Template", str(template_id))
        return template

    async def update(self, template_id: uuid.UUID, template_data: TemplateUpdate) -> MessageTemplate:
        """Edit a template in place; identity is kept."""
        await self.get(template_id)
        update_data = template_data.model_dump(exclude_unset=True)
        return await self.template_repo.update(template_id, update_data)

    async def iterate(self, template_id: uuid.UUID) -> Tuple[MessageTemplate, MessageTemplate]:
        """Retire a template and create its next version in one commit."""
        template = await self.get(template_id)
        original, created = template_versioner.iterate(template)

        self.session.add(original)
        self.session.add(created)
        await self.session.commit()
        await self.session.refresh(original)
        await self.session.refresh(created)
        return original, created

    async def toggle_current(self, template_id: uuid.UUID) -> MessageTemplate:
        """Flip a template's current flag without touching its siblings."""
        template = await self.get(template_id)
        template_versioner.toggle_current(template)
        template = await self.template_repo.save(template)
        logger.info(f"Template '{template.name}' is_current={template.is_current}")
        return template

    async def stats(self) -> List[TemplateStats]:
        """Per-template outcome counts and rates."""
        events = await self.event_repo.get_with_template()
        return template_stats(events)
