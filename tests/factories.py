"""Builders for pipeline records used across the tests."""
import uuid
from datetime import datetime, timedelta

from outreach_pipeline.models import (
    Contact, Company, ContactStatus, Profile, MessageTemplate, TemplateKind,
    OutreachEvent, OutreachAction, Outcome, Message, Direction
)

BASE_TIME = datetime(2026, 1, 5, 9, 0, 0)


def at(minutes: int) -> datetime:
    return BASE_TIME + timedelta(minutes=minutes)


def make_profile(roles, pain_points=None, industry=None) -> Profile:
    return Profile(roles=list(roles), pain_points=list(pain_points or []), industry=industry)


def add_template(
    profile: Profile,
    kind: TemplateKind,
    content: str = "Hi there",
    name: str = None,
    is_current: bool = True,
    sequence_number: int = None,
    created_at: datetime = BASE_TIME,
) -> MessageTemplate:
    template = MessageTemplate(
        profile_id=profile.id,
        name=name or f"{kind.value} template",
        kind=kind,
        content=content,
        is_current=is_current,
        sequence_number=sequence_number,
        created_at=created_at,
        updated_at=created_at,
    )
    profile.templates.append(template)
    return template


def make_contact(title=None, name="Jane Doe", status=ContactStatus.SAVED, company=None, warm_intro_referrer=None) -> Contact:
    return Contact(
        name=name,
        title=title,
        status=status,
        company_id=company.id if company else None,
        company_name=company.name if company else None,
        warm_intro_referrer=warm_intro_referrer,
    )


def make_company(name="Acme Corp", **kwargs) -> Company:
    return Company(name=name, **kwargs)


def make_event(
    contact: Contact,
    action: OutreachAction = OutreachAction.NOTE_SENT,
    outcome: Outcome = Outcome.PENDING,
    created_at: datetime = BASE_TIME,
    updated_at: datetime = None,
    template_id: uuid.UUID = None,
    details: dict = None,
) -> OutreachEvent:
    return OutreachEvent(
        contact_id=contact.id,
        action=action,
        outcome=outcome,
        template_id=template_id,
        details=details or {},
        created_at=created_at,
        updated_at=updated_at or created_at,
    )


def make_message(contact: Contact, direction: Direction = Direction.RECEIVED, content="Thanks!", created_at=BASE_TIME) -> Message:
    return Message(contact_id=contact.id, direction=direction, content=content, created_at=created_at)
