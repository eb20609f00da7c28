import uuid

import pytest

from outreach_pipeline.core.exceptions import NoProfileMatch, NoTemplateForKind
from outreach_pipeline.models import ContactStatus, OutreachAction, TemplateKind
from outreach_pipeline.services.pipeline import draft_message, record_send, max_chars_for
from factories import make_profile, add_template, make_contact


@pytest.fixture
def ceo_profile():
    profile = make_profile(["CEO"], pain_points=["hiring"])
    add_template(profile, TemplateKind.FOLLOW_UP, "Hi", sequence_number=1)
    add_template(profile, TemplateKind.FOLLOW_UP, "Still there?", sequence_number=2)
    return profile


def test_follow_up_drafted_through_alias_match(ceo_profile):
    contact = make_contact("Chief Executive Officer")

    result = draft_message(contact, TemplateKind.FOLLOW_UP, [ceo_profile], completed_follow_up_count=0)

    assert result.ok
    assert result.profile is ceo_profile
    assert result.matched_role == "CEO"
    assert result.is_override is False
    assert result.template.sequence_number == 1
    assert result.content == "Hi"


def test_follow_up_advances_with_completed_count(ceo_profile):
    contact = make_contact("CEO")

    assert draft_message(contact, "follow_up", [ceo_profile], completed_follow_up_count=1).content == "Still there?"
    assert draft_message(contact, "follow_up", [ceo_profile], completed_follow_up_count=4).content == "Still there?"


def test_no_profile_match(ceo_profile):
    contact = make_contact("Head of Marketing")

    result = draft_message(contact, TemplateKind.FOLLOW_UP, [ceo_profile])

    assert not result.ok
    assert result.failure == "no_profile_match"
    assert result.profile is None
    assert result.content is None
    with pytest.raises(NoProfileMatch):
        result.raise_for_failure()


def test_no_template_for_kind(ceo_profile):
    contact = make_contact("CEO")

    result = draft_message(contact, TemplateKind.CONNECTION_NOTE, [ceo_profile])

    assert result.failure == "no_template_for_kind"
    assert result.profile is ceo_profile
    assert result.matched_role == "CEO"
    with pytest.raises(NoTemplateForKind) as exc_info:
        result.raise_for_failure()
    assert "connection_note" in exc_info.value.message


def test_override_bypasses_matching(ceo_profile):
    founders = make_profile(["Founder"])
    note = add_template(founders, TemplateKind.CONNECTION_NOTE, "Hi founder")
    contact = make_contact("CEO")

    result = draft_message(contact, TemplateKind.CONNECTION_NOTE, [ceo_profile, founders], founders.id)

    assert result.is_override is True
    assert result.matched_role == "Founder"
    assert result.template is note


def test_stale_override_auto_matches(ceo_profile):
    contact = make_contact("CEO")

    result = draft_message(contact, TemplateKind.FOLLOW_UP, [ceo_profile], uuid.uuid4())

    assert result.is_override is False
    assert result.profile is ceo_profile


def test_draft_does_not_touch_contact(ceo_profile):
    contact = make_contact("CEO")

    draft_message(contact, TemplateKind.FOLLOW_UP, [ceo_profile])

    assert contact.status == ContactStatus.SAVED


def test_over_budget_connection_note():
    profile = make_profile(["CEO"])
    add_template(profile, TemplateKind.CONNECTION_NOTE, "x" * 301)

    result = draft_message(make_contact("CEO"), TemplateKind.CONNECTION_NOTE, [profile])

    assert result.max_chars == 300
    assert result.over_budget is True


def test_character_budgets():
    assert max_chars_for(TemplateKind.CONNECTION_NOTE) == 300
    assert max_chars_for("message") == 8000
    assert max_chars_for(TemplateKind.FOLLOW_UP) == 8000


def test_record_send_advances_status():
    contact = make_contact("CEO")
    template_id = uuid.uuid4()

    sent = record_send(contact, TemplateKind.CONNECTION_NOTE, template_id, "Hi Jane")

    assert sent.event.action == OutreachAction.NOTE_SENT
    assert sent.event.template_id == template_id
    assert contact.status == ContactStatus.REQUESTED
