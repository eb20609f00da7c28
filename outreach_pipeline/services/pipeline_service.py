"""
Pipeline service - drafting next messages, one contact or a whole company.
"""
import asyncio
import logging
import uuid
from collections import defaultdict
from typing import Optional, List, Dict

from sqlmodel.ext.asyncio.session import AsyncSession

from outreach_pipeline.config import settings
from outreach_pipeline.core.exceptions import raise_not_found, PersonalizationFailed
from outreach_pipeline.repositories.contact_repo import ContactRepository, CompanyRepository
from outreach_pipeline.repositories.profile_repo import ProfileRepository
from outreach_pipeline.repositories.outreach_repo import OutreachEventRepository
from outreach_pipeline.models.contact import Contact, Company
from outreach_pipeline.models.template import TemplateKind
from outreach_pipeline.services.engagement import follow_up_count
from outreach_pipeline.services.personalization_service import personalization_service
from outreach_pipeline.services.pipeline import DraftResult, draft_message
from outreach_pipeline.services.role_matcher import override_for

logger = logging.getLogger(__name__)


def contact_context(contact: Contact, company: Optional[Company]) -> dict:
    return {
        "name": contact.name,
        "title": contact.title,
        "company": {
            "name": (company.name if company else None) or contact.company_name or "Unknown Company",
            "website": company.website if company else None,
            "industry": company.industry if company else None,
            "employee_count": company.employee_count if company else None,
            "description": company.description if company else None,
            "location": company.location if company else None,
        },
    }


class PipelineService:
    """Service for drafting outreach."""

    def __init__(self, session: AsyncSession, personalizer=None):
        self.session = session
        self.personalizer = personalizer or personalization_service
        self.contact_repo = ContactRepository(session)
        self.company_repo = CompanyRepository(session)
        self.profile_repo = ProfileRepository(session)
        self.event_repo = OutreachEventRepository(session)

    async def draft(
        self,
        contact_id: uuid.UUID,
        kind: TemplateKind,
        override_profile_id: Optional[uuid.UUID] = None,
        personalize: bool = False,
        model: Optional[str] = None,
        note: Optional[str] = None
    ) -> DraftResult:
        """Draft the next message for one contact."""
        contact = await self.contact_repo.get(contact_id)
        if not contact:
            raise_not_found("Contact", str(contact_id))

        profiles = await self.profile_repo.list_with_templates()
        completed = 0
        if TemplateKind(kind) == TemplateKind.FOLLOW_UP:
            completed = follow_up_count(await self.event_repo.get_by_contact(contact_id))

        result = draft_message(contact, kind, profiles, override_profile_id, completed)
        if personalize and result.ok:
            company = await self.company_repo.get_for_contact(contact)
            await self.personalize(result, company, model, note)
        return result

    async def personalize(
        self,
        result: DraftResult,
        company: Optional[Company] = None,
        model: Optional[str] = None,
        note: Optional[str] = None
    ) -> DraftResult:
        """
        Rewrite a draft for its contact. On failure the raw template content
        stays in the draft and the failure is recorded on it.
        """
        profile_context = {
            "roles": result.profile.roles,
            "pain_points": result.profile.pain_points,
            "industry": result.profile.industry,
        }
        loop = asyncio.get_running_loop()

        # Sync SDK clients, kept off the event loop
        def _generate():
            return self.personalizer.generate(
                result.template.content,
                contact_context(result.contact, company),
                profile_context,
                result.max_chars,
                model,
                note or "",
            )

        try:
            text = await loop.run_in_executor(None, _generate)
        except PersonalizationFailed as e:
            logger.error(f"Personalization failed for contact {result.contact.id}: {e.message}")
            result.personalization_error = PersonalizationFailed.reason
            return result

        result.content = text
        result.personalized = True
        return result

    async def draft_batch(
        self,
        company_id: uuid.UUID,
        kind: TemplateKind,
        overrides: Optional[Dict] = None,
        personalize: bool = True,
        model: Optional[str] = None,
        notes: Optional[Dict] = None
    ) -> List[DraftResult]:
        """
        Draft for every contact at a company.

        Personalization fans out concurrently; one contact failing never
        aborts the others.
        """
        company = await self.company_repo.get(company_id)
        if not company:
            raise_not_found("Company", str(company_id))

        contacts = await self.contact_repo.get_by_company(company_id)
        profiles = await self.profile_repo.list_with_templates()

        completed: Dict[str, int] = defaultdict(int)
        if TemplateKind(kind) == TemplateKind.FOLLOW_UP:
            events = await self.event_repo.get_by_contacts([c.id for c in contacts])
            by_contact = defaultdict(list)
            for event in events:
                by_contact[str(event.contact_id)].append(event)
            for contact_key, contact_events in by_contact.items():
                completed[contact_key] = follow_up_count(contact_events)

        results = [
            draft_message(
                contact,
                kind,
                profiles,
                override_for(overrides, contact.id),
                completed[str(contact.id)],
            )
            for contact in contacts
        ]

        if personalize:
            semaphore = asyncio.Semaphore(settings.BATCH_CONCURRENCY)

            async def run(result: DraftResult):
                async with semaphore:
                    try:
                        note = (notes or {}).get(result.contact.id) or (notes or {}).get(str(result.contact.id))
                        await self.personalize(result, company, model, note)
                    except Exception as e:
                        logger.error(f"Batch drafting failed for contact {result.contact.id}: {e}")
                        result.personalization_error = PersonalizationFailed.reason

            await asyncio.gather(*(run(r) for r in results if r.ok))

        drafted = sum(1 for r in results if r.ok)
        logger.info(f"Drafted {drafted}/{len(results)} {TemplateKind(kind).value} messages for company {company_id}")
        return results
