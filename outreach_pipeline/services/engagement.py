"""
Engagement state machine.

A contact's stored status is set by hand at send time and goes stale, so the
real pipeline position is rebuilt from two append-only streams: outreach
events and conversation messages. Outcomes only ever move forward.
"""
import logging
import math
import uuid
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional, List, Dict, Iterable, Set

from outreach_pipeline.core.exceptions import InvalidOutcomeTransition, NoProfileMatch, NoTemplateForKind
from outreach_pipeline.models.contact import Contact, Company, ContactStatus
from outreach_pipeline.models.profile import Profile
from outreach_pipeline.models.outreach import (
    OutreachEvent, Message, OutreachAction, Outcome, Direction, Channel
)
from outreach_pipeline.models.template import MessageTemplate, TemplateKind
from outreach_pipeline.services.role_matcher import resolve_profile, override_for
from outreach_pipeline.services.template_resolver import resolve_for_kind

logger = logging.getLogger(__name__)


class EngagementState(str, Enum):
    NOT_CONTACTED = "not_contacted"
    CONNECTION_SENT = "connection_sent"
    CONNECTION_ACCEPTED_AWAITING_REPLY = "connection_accepted_awaiting_reply"
    ENGAGED = "engaged"
    # Side branch, read from the stored status only
    WARM_INTRO_REQUESTED = "warm_intro_requested"


# Forward-only transition table
OUTCOME_TRANSITIONS: Dict[Outcome, Set[Outcome]] = {
    Outcome.PENDING: {Outcome.ACCEPTED, Outcome.REPLIED},
    Outcome.ACCEPTED: {Outcome.REPLIED},
    Outcome.REPLIED: set(),
}

ACTION_FOR_KIND = {
    TemplateKind.CONNECTION_NOTE: OutreachAction.NOTE_SENT,
    TemplateKind.MESSAGE: OutreachAction.NOTE_SENT,
    TemplateKind.INMAIL: OutreachAction.NOTE_SENT,
    TemplateKind.FOLLOW_UP: OutreachAction.FOLLOW_UP_SENT,
}

STATUS_FOR_KIND = {
    TemplateKind.CONNECTION_NOTE: ContactStatus.REQUESTED,
    TemplateKind.MESSAGE: ContactStatus.MESSAGED,
    TemplateKind.INMAIL: ContactStatus.MESSAGED,
    TemplateKind.FOLLOW_UP: ContactStatus.MESSAGED,
}


def coerce_outcome(value) -> Outcome:
    """Outcome from a stored value; missing outcomes count as pending."""
    if value is None:
        return Outcome.PENDING
    try:
        return Outcome(value)
    except ValueError:
        raise InvalidOutcomeTransition(str(value), str(value))


def predecessors_of(target: Outcome) -> List[Outcome]:
    """Outcomes allowed to move to `target`."""
    target = Outcome(target)
    return [current for current, nexts in OUTCOME_TRANSITIONS.items() if target in nexts]


def check_transition(current, target) -> bool:
    """
    True when current -> target moves forward, False when nothing changes.
    Raises InvalidOutcomeTransition for backward or unknown moves.
    """
    current_outcome = coerce_outcome(current)
    try:
        target_outcome = Outcome(target)
    except ValueError:
        raise InvalidOutcomeTransition(current_outcome.value, str(target))

    if current_outcome == target_outcome:
        return False
    if target_outcome not in OUTCOME_TRANSITIONS[current_outcome]:
        raise InvalidOutcomeTransition(current_outcome.value, target_outcome.value)
    return True


def advance_outcome(event: OutreachEvent, target, now: Optional[datetime] = None) -> bool:
    """
    Move an event's outcome forward.

    Returns True when the outcome changed. A backward move is logged and
    leaves the event untouched; callers treat it as "state unchanged".
    """
    try:
        if not check_transition(event.outcome, target):
            return False
    except InvalidOutcomeTransition as e:
        logger.warning(f"Ignoring outcome change for event {event.id}: {e.message}")
        return False

    previous = coerce_outcome(event.outcome)
    event.outcome = Outcome(target)
    event.updated_at = now or datetime.utcnow()
    logger.info(f"Outreach event {event.id} outcome {previous.value} -> {event.outcome.value}")
    return True


def mark_accepted(event: OutreachEvent, now: Optional[datetime] = None) -> bool:
    """pending -> accepted; a no-op for every other outcome."""
    return advance_outcome(event, Outcome.ACCEPTED, now)


@dataclass
class SentRecord:
    """Everything produced by marking a message as sent."""
    event: OutreachEvent
    message: Optional[Message]
    previous_status: Optional[ContactStatus]
    status: ContactStatus


def mark_sent(
    contact: Contact,
    kind: TemplateKind,
    content: str,
    template_id: Optional[uuid.UUID] = None,
    now: Optional[datetime] = None
) -> SentRecord:
    """
    Log an outbound attempt and advance the contact's stored status.

    This is the only place the pipeline writes `contact.status`. Follow-ups
    are also logged as a sent message so they show up in the conversation.
    """
    kind = TemplateKind(kind)
    now = now or datetime.utcnow()

    event = OutreachEvent(
        contact_id=contact.id,
        template_id=template_id,
        action=ACTION_FOR_KIND[kind],
        outcome=Outcome.PENDING,
        details={"message_content": content, "message_type": kind.value},
        created_at=now,
        updated_at=now,
    )

    message = None
    if kind == TemplateKind.FOLLOW_UP:
        message = Message(
            contact_id=contact.id,
            direction=Direction.SENT,
            channel=Channel.SALES_NAVIGATOR,
            content=content,
            created_at=now,
        )

    previous_status = contact.status
    contact.status = STATUS_FOR_KIND[kind]
    contact.updated_at = now

    logger.info(f"Recorded {event.action.value} for contact {contact.id} (status -> {contact.status.value})")
    return SentRecord(event=event, message=message, previous_status=previous_status, status=contact.status)


def _newest_first(events: Iterable[OutreachEvent]) -> List[OutreachEvent]:
    return sorted(events, key=lambda e: (e.created_at or datetime.min, str(e.id)), reverse=True)


def _for_contact(records: Iterable, contact_id) -> List:
    if contact_id is None:
        return list(records)
    return [r for r in records if str(r.contact_id) == str(contact_id)]


def select_reply_target(
    events: Iterable[OutreachEvent],
    message: Message
) -> Optional[OutreachEvent]:
    """
    The event a received message resolves: the contact's most recent
    note_sent event that is still pending or accepted. Pure lookup.
    """
    if Direction(message.direction) != Direction.RECEIVED:
        return None

    open_outcomes = (Outcome.PENDING, Outcome.ACCEPTED)
    for event in _newest_first(_for_contact(events, message.contact_id)):
        if event.action != OutreachAction.NOTE_SENT:
            continue
        if coerce_outcome(event.outcome) in open_outcomes:
            return event
    return None


def on_inbound_message(
    events: Iterable[OutreachEvent],
    message: Message,
    now: Optional[datetime] = None
) -> Optional[OutreachEvent]:
    """
    A received message moves the contact's latest open connection note to
    replied and returns it. At most one event changes; no candidate is a
    no-op.
    """
    event = select_reply_target(events, message)
    if event is not None and advance_outcome(event, Outcome.REPLIED, now):
        return event
    return None


def has_received_message(messages: Iterable[Message]) -> bool:
    return any(m.direction == Direction.RECEIVED for m in messages)


def follow_up_count(events: Iterable[OutreachEvent]) -> int:
    """Follow-ups sent so far, whatever their outcome."""
    return sum(1 for e in events if e.action == OutreachAction.FOLLOW_UP_SENT)


def accepted_at(events: Iterable[OutreachEvent]) -> Optional[datetime]:
    """When the latest accepted event was marked accepted."""
    for event in _newest_first(events):
        if coerce_outcome(event.outcome) == Outcome.ACCEPTED:
            return event.updated_at
    return None


def is_follow_up_eligible(events: Iterable[OutreachEvent], messages: Iterable[Message]) -> bool:
    """Accepted at least once and never replied to."""
    accepted = any(coerce_outcome(e.outcome) == Outcome.ACCEPTED for e in events)
    return accepted and not has_received_message(messages)


@dataclass
class EngagementSnapshot:
    contact_id: uuid.UUID
    state: EngagementState
    follow_up_eligible: bool
    follow_up_count: int
    accepted_at: Optional[datetime] = None
    warm_intro_requested: bool = False
    warm_intro_referrer: Optional[str] = None


def chain_state(events: List[OutreachEvent], messages: List[Message]) -> EngagementState:
    outcomes = {coerce_outcome(e.outcome) for e in events}
    if Outcome.REPLIED in outcomes or has_received_message(messages):
        return EngagementState.ENGAGED
    if Outcome.ACCEPTED in outcomes:
        return EngagementState.CONNECTION_ACCEPTED_AWAITING_REPLY
    if events:
        return EngagementState.CONNECTION_SENT
    return EngagementState.NOT_CONTACTED


def derive_state(
    contact: Contact,
    events: Iterable[OutreachEvent],
    messages: Iterable[Message]
) -> EngagementSnapshot:
    """Rebuild a contact's engagement from its events and messages."""
    events = _for_contact(events, contact.id)
    messages = _for_contact(messages, contact.id)

    return EngagementSnapshot(
        contact_id=contact.id,
        state=chain_state(events, messages),
        follow_up_eligible=is_follow_up_eligible(events, messages),
        follow_up_count=follow_up_count(events),
        accepted_at=accepted_at(events),
        warm_intro_requested=contact.status == ContactStatus.ASKED_FOR_INTRO,
        warm_intro_referrer=contact.warm_intro_referrer,
    )


@dataclass
class FollowUpCandidate:
    contact: Contact
    follow_up_count: int
    accepted_at: Optional[datetime]


def follow_up_queue(
    contacts: Iterable[Contact],
    events: Iterable[OutreachEvent],
    messages: Iterable[Message]
) -> List[FollowUpCandidate]:
    """Contacts due for a follow-up, most recently accepted first."""
    events_by_contact = defaultdict(list)
    for event in events:
        events_by_contact[str(event.contact_id)].append(event)
    messages_by_contact = defaultdict(list)
    for message in messages:
        messages_by_contact[str(message.contact_id)].append(message)

    queue = []
    for contact in contacts:
        contact_events = events_by_contact[str(contact.id)]
        if not is_follow_up_eligible(contact_events, messages_by_contact[str(contact.id)]):
            continue
        queue.append(FollowUpCandidate(
            contact=contact,
            follow_up_count=follow_up_count(contact_events),
            accepted_at=accepted_at(contact_events),
        ))

    queue.sort(key=lambda c: c.accepted_at or datetime.min, reverse=True)
    return queue


@dataclass
class TemplateStats:
    template_id: uuid.UUID
    total_sent: int = 0
    pending: int = 0
    accepted: int = 0
    replied: int = 0
    acceptance_rate: int = 0
    reply_rate: int = 0


def _percent(part: int, total: int) -> int:
    return int(math.floor(part * 100 / total + 0.5))


def template_stats(events: Iterable[OutreachEvent]) -> List[TemplateStats]:
    """
    Outcome counts per template.
    Acceptance counts replies too, since a reply implies acceptance.
    """
    stats: Dict[str, TemplateStats] = {}
    for event in events:
        if not event.template_id:
            continue
        entry = stats.setdefault(str(event.template_id), TemplateStats(template_id=event.template_id))
        entry.total_sent += 1

        outcome = coerce_outcome(event.outcome)
        if outcome == Outcome.PENDING:
            entry.pending += 1
        elif outcome == Outcome.ACCEPTED:
            entry.accepted += 1
        else:
            entry.replied += 1

    for entry in stats.values():
        entry.acceptance_rate = _percent(entry.accepted + entry.replied, entry.total_sent)
        entry.reply_rate = _percent(entry.replied, entry.total_sent)

    return list(stats.values())


@dataclass
class ToMessageItem:
    """A saved contact and whether a draft can be produced for them."""
    contact: Contact
    profile: Optional[Profile] = None
    matched_role: Optional[str] = None
    is_override: bool = False
    template: Optional[MessageTemplate] = None
    failure: Optional[str] = None
    status_message: Optional[str] = None

    @property
    def ready(self) -> bool:
        return self.failure is None


@dataclass
class CompanyGroup:
    company_id: Optional[uuid.UUID]
    company_name: str
    items: List[ToMessageItem]


def _readiness(contact: Contact, kind: TemplateKind, profiles: List[Profile], override_profile_id) -> ToMessageItem:
    item = ToMessageItem(contact=contact)
    match = resolve_profile(contact.title, profiles, override_profile_id)
    if match is None:
        item.failure = NoProfileMatch.reason
        item.status_message = f"No profile for title: {contact.title or 'No title'}"
        return item

    item.profile = match.profile
    item.matched_role = match.matched_role
    item.is_override = match.is_override
    item.template = resolve_for_kind(match.profile, kind)
    if item.template is None:
        roles = ", ".join(r for r in (match.profile.roles or []) if r)
        item.failure = NoTemplateForKind.reason
        item.status_message = f"No current {kind.value} template for: {roles}"
    return item


def to_message_queue(
    contacts: Iterable[Contact],
    profiles: List[Profile],
    kind: TemplateKind,
    companies: Optional[Iterable[Company]] = None,
    overrides: Optional[Dict] = None
) -> List[CompanyGroup]:
    """
    Saved contacts waiting for a first message, grouped per company in the
    order contacts arrive. Each carries its draft readiness or the reason
    there is nothing to send yet.
    """
    kind = TemplateKind(kind)
    names = {str(c.id): c.name for c in (companies or [])}

    groups: Dict[str, CompanyGroup] = {}
    for contact in contacts:
        if contact.status != ContactStatus.SAVED:
            continue
        key = str(contact.company_id) if contact.company_id else (contact.company_name or "")
        group = groups.get(key)
        if group is None:
            name = names.get(str(contact.company_id)) or contact.company_name or "Unknown Company"
            group = groups[key] = CompanyGroup(company_id=contact.company_id, company_name=name, items=[])
        group.items.append(_readiness(contact, kind, profiles, override_for(overrides, contact.id)))

    return list(groups.values())


def message_counts(messages: Iterable[Message]) -> Dict[str, int]:
    """Messages per contact, both directions."""
    counts: Dict[str, int] = defaultdict(int)
    for message in messages:
        counts[str(message.contact_id)] += 1
    return dict(counts)


@dataclass
class ConversationItem:
    contact: Contact
    message_count: int


def conversations_queue(
    contacts: Iterable[Contact],
    messages: Iterable[Message],
    min_messages: int = 0
) -> List[ConversationItem]:
    """Contacts reached at least once (status past saved) with their message counts."""
    counts = message_counts(messages)
    queue = []
    for contact in contacts:
        if not contact.status or contact.status == ContactStatus.SAVED:
            continue
        count = counts.get(str(contact.id), 0)
        if count >= min_messages:
            queue.append(ConversationItem(contact=contact, message_count=count))
    return queue


@dataclass
class OutreachMetrics:
    messages_today: int = 0
    connections_week: int = 0
    companies_today: int = 0


def outreach_metrics(
    events: Iterable[OutreachEvent],
    companies: Iterable[Company] = (),
    now: Optional[datetime] = None
) -> OutreachMetrics:
    """
    Activity counters. "Today" starts at midnight; the week window starts at
    midnight seven days ago. Only note_sent events count, and the week
    counter only their connection notes.
    """
    now = now or datetime.utcnow()
    today_start = now.replace(hour=0, minute=0, second=0, microsecond=0)
    week_start = today_start - timedelta(days=7)

    metrics = OutreachMetrics()
    for event in events:
        if event.action != OutreachAction.NOTE_SENT or event.created_at is None:
            continue
        if event.created_at >= today_start:
            metrics.messages_today += 1
        message_type = (event.details or {}).get("message_type")
        if event.created_at >= week_start and message_type == TemplateKind.CONNECTION_NOTE.value:
            metrics.connections_week += 1

    metrics.companies_today = sum(
        1 for c in companies if c.created_at is not None and c.created_at >= today_start
    )
    return metrics
