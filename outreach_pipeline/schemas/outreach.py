"""
Outreach schemas - drafting, sending, outcomes and messages.
"""
import uuid
from typing import Optional, List, Dict, Any
from datetime import datetime
from pydantic import BaseModel

from outreach_pipeline.models.contact import ContactStatus
from outreach_pipeline.models.outreach import OutreachAction, Outcome, Direction, Channel
from outreach_pipeline.models.template import TemplateKind
from outreach_pipeline.services.engagement import EngagementState


class DraftRequest(BaseModel):
    """Draft the next message for one contact."""
    contact_id: uuid.UUID
    kind: TemplateKind
    override_profile_id: Optional[uuid.UUID] = None
    personalize: bool = False
    model: Optional[str] = None
    note: Optional[str] = None


class BatchDraftRequest(BaseModel):
    """Draft the next message for everyone at a company."""
    company_id: uuid.UUID
    kind: TemplateKind
    overrides: Dict[uuid.UUID, uuid.UUID] = {}  # contact_id -> profile_id
    personalize: bool = True
    model: Optional[str] = None
    notes: Dict[uuid.UUID, str] = {}


class DraftResponse(BaseModel):
    """A drafted message, or the reason there is none."""
    contact_id: uuid.UUID
    kind: TemplateKind
    ok: bool
    failure: Optional[str] = None
    profile_id: Optional[uuid.UUID] = None
    matched_role: Optional[str] = None
    is_override: bool = False
    template_id: Optional[uuid.UUID] = None
    template_name: Optional[str] = None
    content: Optional[str] = None
    max_chars: int
    over_budget: bool = False
    personalized: bool = False
    personalization_error: Optional[str] = None

    @classmethod
    def from_result(cls, result) -> "DraftResponse":
        return cls(
            contact_id=result.contact.id,
            kind=result.kind,
            ok=result.ok,
            failure=result.failure,
            profile_id=result.profile.id if result.profile else None,
            matched_role=result.matched_role,
            is_override=result.is_override,
            template_id=result.template.id if result.template else None,
            template_name=result.template.name if result.template else None,
            content=result.content,
            max_chars=result.max_chars,
            over_budget=result.over_budget,
            personalized=result.personalized,
            personalization_error=result.personalization_error,
        )


class SendCreate(BaseModel):
    """Mark a message as sent."""
    contact_id: uuid.UUID
    kind: TemplateKind
    content: str
    template_id: Optional[uuid.UUID] = None

    class Config:
        json_schema_extra = {
            "example": {
                "contact_id": "550e8400-e29b-41d4-a716-446655440000",
                "kind": "connection_note",
                "content": "Hi Jane, I noticed your work at TechCorp...",
                "template_id": None
            }
        }


class OutreachEventResponse(BaseModel):
    """Outreach event response."""
    id: uuid.UUID
    contact_id: uuid.UUID
    template_id: Optional[uuid.UUID]
    action: OutreachAction
    outcome: Outcome
    details: Dict[str, Any]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class SendResponse(BaseModel):
    event: OutreachEventResponse
    status: ContactStatus


class OutcomeUpdate(BaseModel):
    """Move an event's outcome forward."""
    outcome: Outcome


class OutcomeUpdateResponse(BaseModel):
    event: OutreachEventResponse
    changed: bool


class MessageCreate(BaseModel):
    """Record a conversational turn."""
    contact_id: uuid.UUID
    direction: Direction
    channel: Channel = Channel.LINKEDIN
    subject: Optional[str] = None  # For email
    content: str


class MessageResponse(BaseModel):
    """Message response."""
    id: uuid.UUID
    contact_id: uuid.UUID
    direction: Direction
    channel: Channel
    subject: Optional[str]
    content: str
    created_at: datetime

    class Config:
        from_attributes = True


class MessageCreateResponse(BaseModel):
    message: MessageResponse
    replied_event_id: Optional[uuid.UUID] = None


class EngagementResponse(BaseModel):
    """Derived engagement for one contact."""
    contact_id: uuid.UUID
    state: EngagementState
    follow_up_eligible: bool
    follow_up_count: int
    accepted_at: Optional[datetime] = None
    warm_intro_requested: bool = False
    warm_intro_referrer: Optional[str] = None

    class Config:
        from_attributes = True


class FollowUpItem(BaseModel):
    """A contact in the needs-follow-up queue."""
    contact_id: uuid.UUID
    name: str
    title: Optional[str]
    company_name: Optional[str]
    follow_up_count: int
    next_sequence_number: int
    accepted_at: Optional[datetime]


class FollowUpQueueResponse(BaseModel):
    items: List[FollowUpItem]
    total: int


class ToMessageItem(BaseModel):
    """A saved contact with its draft readiness."""
    contact_id: uuid.UUID
    name: str
    title: Optional[str]
    ready: bool
    reason: Optional[str] = None
    status_message: Optional[str] = None
    profile_id: Optional[uuid.UUID] = None
    matched_role: Optional[str] = None
    is_override: bool = False
    template_id: Optional[uuid.UUID] = None

    @classmethod
    def from_item(cls, item) -> "ToMessageItem":
        return cls(
            contact_id=item.contact.id,
            name=item.contact.name,
            title=item.contact.title,
            ready=item.ready,
            reason=item.failure,
            status_message=item.status_message,
            profile_id=item.profile.id if item.profile else None,
            matched_role=item.matched_role,
            is_override=item.is_override,
            template_id=item.template.id if item.template else None,
        )


class CompanyGroupResponse(BaseModel):
    company_id: Optional[uuid.UUID]
    company_name: str
    contacts: List[ToMessageItem]
    ready_count: int


class ToMessageQueueResponse(BaseModel):
    kind: TemplateKind
    companies: List[CompanyGroupResponse]
    total: int


class ConversationItem(BaseModel):
    """A contacted contact and how many messages the conversation holds."""
    contact_id: uuid.UUID
    name: str
    title: Optional[str]
    company_name: Optional[str]
    status: ContactStatus
    message_count: int


class ConversationsResponse(BaseModel):
    items: List[ConversationItem]
    total: int


class MetricsResponse(BaseModel):
    messages_today: int
    connections_week: int
    companies_today: int

    class Config:
        from_attributes = True
