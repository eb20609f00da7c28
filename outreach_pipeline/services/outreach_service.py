"""
Outreach service - sends, outcomes, messages and engagement queues.
"""
import logging
import uuid
from datetime import datetime, timedelta
from typing import Optional, List, Dict, Tuple

from sqlmodel.ext.asyncio.session import AsyncSession

from outreach_pipeline.core.exceptions import raise_not_found, InvalidOutcomeTransition
from outreach_pipeline.repositories.outreach_repo import OutreachEventRepository, MessageRepository
from outreach_pipeline.repositories.contact_repo import ContactRepository, CompanyRepository
from outreach_pipeline.repositories.profile_repo import ProfileRepository
from outreach_pipeline.models.contact import Contact, ContactStatus
from outreach_pipeline.models.outreach import OutreachEvent, Message, OutreachAction, Outcome
from outreach_pipeline.models.template import TemplateKind
from outreach_pipeline.schemas.outreach import SendCreate, MessageCreate
from outreach_pipeline.services import engagement
from outreach_pipeline.services.pipeline import record_send

logger = logging.getLogger(__name__)


class OutreachService:
    """Service for outreach operations."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.event_repo = OutreachEventRepository(session)
        self.message_repo = MessageRepository(session)
        self.contact_repo = ContactRepository(session)
        self.company_repo = CompanyRepository(session)
        self.profile_repo = ProfileRepository(session)

    async def _get_contact(self, contact_id: uuid.UUID) -> Contact:
        contact = await self.contact_repo.get(contact_id)
        if not contact:
            raise_not_found("Contact", str(contact_id))
        return contact

    async def record_send(self, send_data: SendCreate) -> engagement.SentRecord:
        """
        Mark a message as sent: log the event, advance the contact's status
        and flag the company as contacted, all in one commit.
        """
        contact = await self._get_contact(send_data.contact_id)

        sent = record_send(contact, send_data.kind, send_data.template_id, send_data.content)
        self.session.add(sent.event)
        if sent.message is not None:
            self.session.add(sent.message)
        self.session.add(contact)

        if sent.event.action == OutreachAction.NOTE_SENT:
            company = await self.company_repo.get_for_contact(contact)
            if company and not company.is_contacted:
                company.is_contacted = True
                self.session.add(company)

        await self.session.commit()
        await self.session.refresh(sent.event)
        return sent

    async def list_events(self, contact_id: Optional[uuid.UUID] = None) -> List[OutreachEvent]:
        """List outreach events, newest first."""
        return await self.event_repo.list(filters={"contact_id": contact_id})

    async def get_event(self, event_id: uuid.UUID) -> OutreachEvent:
        event = await self.event_repo.get(event_id)
        if not event:
            raise_not_found("Outreach event", str(event_id))
        return event

    async def update_outcome(self, event_id: uuid.UUID, outcome: Outcome) -> Tuple[OutreachEvent, bool]:
        """
        Move an event's outcome forward.

        Backward moves are logged and reported as unchanged. The write itself
        is conditional on the stored outcome, so a concurrent forward write
        is never undone.
        """
        event = await self.get_event(event_id)

        try:
            if not engagement.check_transition(event.outcome, outcome):
                return event, False
        except InvalidOutcomeTransition as e:
            logger.warning(f"Ignoring outcome change for event {event_id}: {e.message}")
            return event, False

        changed = await self.event_repo.advance_outcome(
            event_id, Outcome(outcome), engagement.predecessors_of(outcome)
        )
        await self.session.commit()
        await self.session.refresh(event)

        if changed:
            logger.info(f"Outreach event {event_id} outcome -> {event.outcome.value}")
        else:
            logger.warning(f"Outreach event {event_id} moved on concurrently, now {event.outcome.value}")
        return event, changed

    async def mark_accepted(self, event_id: uuid.UUID) -> Tuple[OutreachEvent, bool]:
        return await self.update_outcome(event_id, Outcome.ACCEPTED)

    async def record_message(self, message_data: MessageCreate) -> Tuple[Message, Optional[OutreachEvent]]:
        """
        Record a conversational turn.

        A received message also resolves the contact's latest open connection
        note. Both writes share one commit, so the contact leaves the
        follow-up queue and the event reads replied at the same moment.
        """
        await self._get_contact(message_data.contact_id)

        message = Message(**message_data.model_dump())
        self.session.add(message)

        replied_event = None
        events = await self.event_repo.get_by_contact(message.contact_id)
        target = engagement.select_reply_target(events, message)
        if target is not None:
            changed = await self.event_repo.advance_outcome(
                target.id, Outcome.REPLIED, engagement.predecessors_of(Outcome.REPLIED)
            )
            if changed:
                replied_event = target

        await self.session.commit()
        await self.session.refresh(message)
        if replied_event is not None:
            await self.session.refresh(replied_event)
            logger.info(f"Inbound message from contact {message.contact_id} resolved event {replied_event.id}")
        return message, replied_event

    async def list_messages(self, contact_id: Optional[uuid.UUID] = None) -> List[Message]:
        """List messages, oldest first."""
        return await self.message_repo.list(
            filters={"contact_id": contact_id}, order_desc=False
        )

    async def get_engagement(self, contact_id: uuid.UUID) -> engagement.EngagementSnapshot:
        """Derived engagement state of one contact."""
        contact = await self._get_contact(contact_id)
        events = await self.event_repo.get_by_contact(contact_id)
        messages = await self.message_repo.get_by_contact(contact_id)
        return engagement.derive_state(contact, events, messages)

    async def follow_up_queue(self) -> List[engagement.FollowUpCandidate]:
        """Contacts with an accepted connection and no reply yet."""
        contacts = await self.contact_repo.list()
        events = await self.event_repo.list()
        messages = await self.message_repo.list()
        return engagement.follow_up_queue(contacts, events, messages)

    async def to_message_queue(
        self,
        kind: TemplateKind = TemplateKind.CONNECTION_NOTE,
        overrides: Optional[Dict] = None
    ) -> List[engagement.CompanyGroup]:
        """Saved contacts grouped per company, each with its draft readiness."""
        contacts = await self.contact_repo.list(
            filters={"status": ContactStatus.SAVED}, order_by="name", order_desc=False
        )
        companies = await self.company_repo.list()
        profiles = await self.profile_repo.list_with_templates()
        return engagement.to_message_queue(contacts, profiles, kind, companies, overrides)

    async def conversations_queue(self, min_messages: int = 0) -> List[engagement.ConversationItem]:
        """Contacted contacts with their message counts."""
        contacts = await self.contact_repo.list(order_by="updated_at")
        messages = await self.message_repo.list()
        return engagement.conversations_queue(contacts, messages, min_messages)

    async def metrics(self, now: Optional[datetime] = None) -> engagement.OutreachMetrics:
        now = now or datetime.utcnow()
        week_start = now.replace(hour=0, minute=0, second=0, microsecond=0) - timedelta(days=7)
        events = await self.event_repo.get_sent_since(week_start)
        companies = await self.company_repo.get_created_since(week_start)
        return engagement.outreach_metrics(events, companies, now)
