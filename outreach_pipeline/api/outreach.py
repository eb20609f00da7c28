"""
Outreach API routes - drafting, sending, outcomes, messages and queues.
"""
import uuid
from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlmodel.ext.asyncio.session import AsyncSession

from outreach_pipeline.config import settings
from outreach_pipeline.database import get_session
from outreach_pipeline.models.template import TemplateKind
from outreach_pipeline.services.outreach_service import OutreachService
from outreach_pipeline.services.pipeline_service import PipelineService
from outreach_pipeline.schemas.outreach import (
    DraftRequest, BatchDraftRequest, DraftResponse,
    SendCreate, SendResponse, OutreachEventResponse,
    OutcomeUpdate, OutcomeUpdateResponse,
    MessageCreate, MessageCreateResponse, MessageResponse,
    EngagementResponse, FollowUpItem, FollowUpQueueResponse,
    ToMessageItem, CompanyGroupResponse, ToMessageQueueResponse,
    ConversationItem, ConversationsResponse, MetricsResponse
)
from outreach_pipeline.api.deps import require_api_key

router = APIRouter(
    prefix=f"{settings.API_PREFIX}/outreach",
    tags=["outreach"],
    dependencies=[Depends(require_api_key)]
)


@router.post("/draft", response_model=DraftResponse)
async def draft_message(
    draft_data: DraftRequest,
    session: AsyncSession = Depends(get_session)
):
    """Draft the next message for a contact. Failures come back as a reason."""
    pipeline_service = PipelineService(session)
    result = await pipeline_service.draft(
        draft_data.contact_id,
        draft_data.kind,
        draft_data.override_profile_id,
        draft_data.personalize,
        draft_data.model,
        draft_data.note
    )
    return DraftResponse.from_result(result)


@router.post("/draft/batch")
async def draft_batch(
    batch_data: BatchDraftRequest,
    session: AsyncSession = Depends(get_session)
):
    """Draft for everyone at a company."""
    pipeline_service = PipelineService(session)
    results = await pipeline_service.draft_batch(
        batch_data.company_id,
        batch_data.kind,
        batch_data.overrides,
        batch_data.personalize,
        batch_data.model,
        batch_data.notes
    )
    items = [DraftResponse.from_result(r) for r in results]
    return {"items": items, "total": len(items)}


@router.post("/send", response_model=SendResponse, status_code=201)
async def record_send(
    send_data: SendCreate,
    session: AsyncSession = Depends(get_session)
):
    """Mark a message as sent."""
    outreach_service = OutreachService(session)
    sent = await outreach_service.record_send(send_data)
    return SendResponse(
        event=OutreachEventResponse.model_validate(sent.event),
        status=sent.status
    )


@router.get("/events")
async def list_events(
    contact_id: Optional[uuid.UUID] = None,
    session: AsyncSession = Depends(get_session)
):
    """List outreach events, newest first."""
    outreach_service = OutreachService(session)
    events = await outreach_service.list_events(contact_id)
    return {"items": events, "total": len(events)}


@router.put("/events/{event_id}/outcome", response_model=OutcomeUpdateResponse)
async def update_outcome(
    event_id: uuid.UUID,
    outcome_data: OutcomeUpdate,
    session: AsyncSession = Depends(get_session)
):
    """Move an event's outcome forward; backward moves leave it unchanged."""
    outreach_service = OutreachService(session)
    event, changed = await outreach_service.update_outcome(event_id, outcome_data.outcome)
    return OutcomeUpdateResponse(
        event=OutreachEventResponse.model_validate(event),
        changed=changed
    )


@router.post("/messages", response_model=MessageCreateResponse, status_code=201)
async def record_message(
    message_data: MessageCreate,
    session: AsyncSession = Depends(get_session)
):
    """Record a message; a received one resolves the open connection note."""
    outreach_service = OutreachService(session)
    message, replied_event = await outreach_service.record_message(message_data)
    return MessageCreateResponse(
        message=MessageResponse.model_validate(message),
        replied_event_id=replied_event.id if replied_event else None
    )


@router.get("/messages")
async def list_messages(
    contact_id: Optional[uuid.UUID] = None,
    session: AsyncSession = Depends(get_session)
):
    """List messages, oldest first."""
    outreach_service = OutreachService(session)
    messages = await outreach_service.list_messages(contact_id)
    return {"items": messages, "total": len(messages)}


@router.get("/follow-ups", response_model=FollowUpQueueResponse)
async def follow_up_queue(session: AsyncSession = Depends(get_session)):
    """Contacts with an accepted connection and no reply yet."""
    outreach_service = OutreachService(session)
    queue = await outreach_service.follow_up_queue()
    items = [
        FollowUpItem(
            contact_id=c.contact.id,
            name=c.contact.name,
            title=c.contact.title,
            company_name=c.contact.company_name,
            follow_up_count=c.follow_up_count,
            next_sequence_number=c.follow_up_count + 1,
            accepted_at=c.accepted_at
        )
        for c in queue
    ]
    return FollowUpQueueResponse(items=items, total=len(items))


@router.get("/to-message", response_model=ToMessageQueueResponse)
async def to_message_queue(
    kind: TemplateKind = TemplateKind.CONNECTION_NOTE,
    session: AsyncSession = Depends(get_session)
):
    """Saved contacts grouped per company, with why any of them cannot be drafted yet."""
    outreach_service = OutreachService(session)
    groups = await outreach_service.to_message_queue(kind)
    companies = []
    for group in groups:
        contacts = [ToMessageItem.from_item(item) for item in group.items]
        companies.append(CompanyGroupResponse(
            company_id=group.company_id,
            company_name=group.company_name,
            contacts=contacts,
            ready_count=sum(1 for c in contacts if c.ready)
        ))
    return ToMessageQueueResponse(
        kind=kind,
        companies=companies,
        total=sum(len(g.contacts) for g in companies)
    )


@router.get("/conversations", response_model=ConversationsResponse)
async def conversations_queue(
    min_messages: int = Query(0, ge=0),
    session: AsyncSession = Depends(get_session)
):
    """Contacted contacts; `min_messages=2` keeps only real conversations."""
    outreach_service = OutreachService(session)
    queue = await outreach_service.conversations_queue(min_messages)
    items = [
        ConversationItem(
            contact_id=c.contact.id,
            name=c.contact.name,
            title=c.contact.title,
            company_name=c.contact.company_name,
            status=c.contact.status,
            message_count=c.message_count
        )
        for c in queue
    ]
    return ConversationsResponse(items=items, total=len(items))


@router.get("/metrics", response_model=MetricsResponse)
async def outreach_metrics(session: AsyncSession = Depends(get_session)):
    outreach_service = OutreachService(session)
    return await outreach_service.metrics()


@router.get("/contacts/{contact_id}/engagement", response_model=EngagementResponse)
async def contact_engagement(
    contact_id: uuid.UUID,
    session: AsyncSession = Depends(get_session)
):
    """Engagement state rebuilt from the contact's events and messages."""
    outreach_service = OutreachService(session)
    snapshot = await outreach_service.get_engagement(contact_id)
    return EngagementResponse.model_validate(snapshot)
