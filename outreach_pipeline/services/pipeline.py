"""
Pipeline orchestrator - what to send next, and recording that it was sent.

Drafting runs matcher -> resolver; sending runs through the engagement
state machine. Nothing here touches the store.
"""
import uuid
from dataclasses import dataclass
from typing import Optional, List

from outreach_pipeline.config import settings
from outreach_pipeline.core.exceptions import NoProfileMatch, NoTemplateForKind
from outreach_pipeline.models.contact import Contact
from outreach_pipeline.models.profile import Profile
from outreach_pipeline.models.template import MessageTemplate, TemplateKind
from outreach_pipeline.services import engagement
from outreach_pipeline.services.role_matcher import resolve_profile
from outreach_pipeline.services.template_resolver import resolve_for_kind

NO_PROFILE_MATCH = NoProfileMatch.reason
NO_TEMPLATE_FOR_KIND = NoTemplateForKind.reason


def max_chars_for(kind: TemplateKind) -> int:
    """Character budget for a kind of outreach."""
    return {
        TemplateKind.CONNECTION_NOTE: settings.CONNECTION_NOTE_MAX_CHARS,
        TemplateKind.MESSAGE: settings.MESSAGE_MAX_CHARS,
        TemplateKind.INMAIL: settings.INMAIL_MAX_CHARS,
        TemplateKind.FOLLOW_UP: settings.FOLLOW_UP_MAX_CHARS,
    }[TemplateKind(kind)]


@dataclass
class DraftResult:
    contact: Contact
    kind: TemplateKind
    profile: Optional[Profile] = None
    matched_role: Optional[str] = None
    is_override: bool = False
    template: Optional[MessageTemplate] = None
    content: Optional[str] = None
    failure: Optional[str] = None
    personalized: bool = False
    personalization_error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.failure is None

    @property
    def max_chars(self) -> int:
        return max_chars_for(self.kind)

    @property
    def over_budget(self) -> bool:
        return bool(self.content) and len(self.content) > self.max_chars

    def raise_for_failure(self) -> "DraftResult":
        if self.failure == NO_PROFILE_MATCH:
            raise NoProfileMatch(self.contact.title)
        if self.failure == NO_TEMPLATE_FOR_KIND:
            raise NoTemplateForKind(self.kind.value, self.profile.roles if self.profile else None)
        return self


def draft_message(
    contact: Contact,
    kind: TemplateKind,
    profiles: List[Profile],
    override_profile_id: Optional[uuid.UUID] = None,
    completed_follow_up_count: int = 0
) -> DraftResult:
    """
    Pick the profile and template for a contact's next message.
    Failures come back as a reason; nothing is mutated.
    """
    kind = TemplateKind(kind)
    result = DraftResult(contact=contact, kind=kind)

    match = resolve_profile(contact.title, profiles, override_profile_id)
    if match is None:
        result.failure = NO_PROFILE_MATCH
        return result

    result.profile = match.profile
    result.matched_role = match.matched_role
    result.is_override = match.is_override

    template = resolve_for_kind(match.profile, kind, completed_follow_up_count)
    if template is None:
        result.failure = NO_TEMPLATE_FOR_KIND
        return result

    result.template = template
    result.content = template.content
    return result


def record_send(
    contact: Contact,
    kind: TemplateKind,
    template_id: Optional[uuid.UUID],
    content: str
) -> engagement.SentRecord:
    """Mark a drafted message as sent."""
    return engagement.mark_sent(contact, kind, content, template_id=template_id)
