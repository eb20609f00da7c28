"""
Template resolver - picks the template to send for a profile and kind.
"""
from datetime import datetime
from typing import Optional, List, Iterable

from outreach_pipeline.models.profile import Profile
from outreach_pipeline.models.template import MessageTemplate, TemplateKind


def _templates_of(profile: Profile, templates: Optional[Iterable[MessageTemplate]]) -> List[MessageTemplate]:
    if templates is None:
        return list(profile.templates or [])
    return [t for t in templates if str(t.profile_id) == str(profile.id)]


def _newest_first_key(template: MessageTemplate):
    # More than one template may be current; newest wins, id breaks exact ties.
    return (template.created_at or datetime.min, str(template.id))


def current_templates(
    profile: Profile,
    kind: TemplateKind,
    templates: Optional[Iterable[MessageTemplate]] = None
) -> List[MessageTemplate]:
    """All current templates of a kind, newest first."""
    matching = [
        t for t in _templates_of(profile, templates)
        if t.is_current and t.kind == kind
    ]
    return sorted(matching, key=_newest_first_key, reverse=True)


def resolve_current(
    profile: Profile,
    kind: TemplateKind,
    templates: Optional[Iterable[MessageTemplate]] = None
) -> Optional[MessageTemplate]:
    """The current template of `kind` for a profile, or None."""
    candidates = current_templates(profile, kind, templates)
    return candidates[0] if candidates else None


def resolve_follow_up(
    profile: Profile,
    completed_follow_up_count: int,
    templates: Optional[Iterable[MessageTemplate]] = None
) -> Optional[MessageTemplate]:
    """
    Pick the follow-up for the next step in the sequence.

    The next step is completed_follow_up_count + 1. When the sequence is
    shorter than that, the last defined step is reused, so a 2-step sequence
    keeps sending step 2.
    """
    target = completed_follow_up_count + 1
    follow_ups = [
        t for t in current_templates(profile, TemplateKind.FOLLOW_UP, templates)
        if t.sequence_number is not None
    ]

    for template in follow_ups:
        if template.sequence_number == target:
            return template

    earlier = [t for t in follow_ups if t.sequence_number <= target]
    if not earlier:
        return None
    # max() keeps the first maximal element, which is the newest one
    return max(earlier, key=lambda t: t.sequence_number)


def resolve_for_kind(
    profile: Profile,
    kind: TemplateKind,
    completed_follow_up_count: int = 0,
    templates: Optional[Iterable[MessageTemplate]] = None
) -> Optional[MessageTemplate]:
    """Dispatch to the follow-up sequence or the current template of a kind."""
    if kind == TemplateKind.FOLLOW_UP:
        return resolve_follow_up(profile, completed_follow_up_count, templates)
    return resolve_current(profile, kind, templates)
