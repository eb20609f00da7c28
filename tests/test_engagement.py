import uuid
from datetime import timedelta

import pytest

from outreach_pipeline.core.exceptions import InvalidOutcomeTransition
from outreach_pipeline.models import (
    ContactStatus, OutreachAction, Outcome, Direction, Channel, TemplateKind
)
from outreach_pipeline.services import engagement
from outreach_pipeline.services.engagement import EngagementState
from factories import (
    make_profile, add_template, make_contact, make_company, make_event, make_message, at, BASE_TIME
)


@pytest.fixture
def contact():
    return make_contact("CEO")


class TestOutcomeTransitions:

    @pytest.mark.parametrize("current,target", [
        (Outcome.PENDING, Outcome.ACCEPTED),
        (Outcome.PENDING, Outcome.REPLIED),
        (Outcome.ACCEPTED, Outcome.REPLIED),
        (None, Outcome.ACCEPTED),
        ("pending", "replied"),
    ])
    def test_forward_moves(self, current, target):
        assert engagement.check_transition(current, target) is True

    @pytest.mark.parametrize("current,target", [
        (Outcome.ACCEPTED, Outcome.PENDING),
        (Outcome.REPLIED, Outcome.PENDING),
        (Outcome.REPLIED, Outcome.ACCEPTED),
        (Outcome.PENDING, "ignored"),
    ])
    def test_backward_or_unknown_moves_raise(self, current, target):
        with pytest.raises(InvalidOutcomeTransition):
            engagement.check_transition(current, target)

    def test_same_outcome_is_unchanged(self):
        assert engagement.check_transition(Outcome.ACCEPTED, Outcome.ACCEPTED) is False

    def test_predecessors(self):
        assert engagement.predecessors_of(Outcome.REPLIED) == [Outcome.PENDING, Outcome.ACCEPTED]
        assert engagement.predecessors_of(Outcome.ACCEPTED) == [Outcome.PENDING]
        assert engagement.predecessors_of(Outcome.PENDING) == []

    def test_mark_accepted_is_idempotent(self, contact):
        event = make_event(contact)

        assert engagement.mark_accepted(event, at(5)) is True
        assert event.outcome == Outcome.ACCEPTED
        assert event.updated_at == at(5)

        assert engagement.mark_accepted(event, at(10)) is False
        assert event.outcome == Outcome.ACCEPTED
        assert event.updated_at == at(5)

    def test_backward_advance_leaves_event_untouched(self, contact):
        event = make_event(contact, outcome=Outcome.ACCEPTED)

        assert engagement.advance_outcome(event, Outcome.PENDING, at(5)) is False
        assert event.outcome == Outcome.ACCEPTED
        assert event.updated_at == event.created_at

    def test_mark_accepted_on_replied_event_is_noop(self, contact):
        event = make_event(contact, outcome=Outcome.REPLIED)

        assert engagement.mark_accepted(event) is False
        assert event.outcome == Outcome.REPLIED


class TestMarkSent:

    @pytest.mark.parametrize("kind,action,status", [
        (TemplateKind.CONNECTION_NOTE, OutreachAction.NOTE_SENT, ContactStatus.REQUESTED),
        (TemplateKind.MESSAGE, OutreachAction.NOTE_SENT, ContactStatus.MESSAGED),
        (TemplateKind.INMAIL, OutreachAction.NOTE_SENT, ContactStatus.MESSAGED),
        (TemplateKind.FOLLOW_UP, OutreachAction.FOLLOW_UP_SENT, ContactStatus.MESSAGED),
    ])
    def test_action_and_status_per_kind(self, contact, kind, action, status):
        sent = engagement.mark_sent(contact, kind, "Hi Jane", now=at(1))

        assert sent.event.action == action
        assert sent.event.outcome == Outcome.PENDING
        assert sent.event.contact_id == contact.id
        assert sent.event.details == {"message_content": "Hi Jane", "message_type": kind.value}
        assert sent.previous_status == ContactStatus.SAVED
        assert contact.status == status
        assert sent.status == status

    def test_only_follow_ups_log_a_sent_message(self, contact):
        note = engagement.mark_sent(contact, TemplateKind.CONNECTION_NOTE, "Hi")
        follow_up = engagement.mark_sent(contact, "follow_up", "Still there?", now=at(3))

        assert note.message is None
        assert follow_up.message.direction == Direction.SENT
        assert follow_up.message.channel == Channel.SALES_NAVIGATOR
        assert follow_up.message.content == "Still there?"
        assert follow_up.message.created_at == at(3)

    def test_template_reference_is_kept(self, contact):
        template_id = uuid.uuid4()

        sent = engagement.mark_sent(contact, TemplateKind.MESSAGE, "Hi", template_id=template_id)

        assert sent.event.template_id == template_id


class TestInboundMessages:

    def test_reply_resolves_latest_open_note(self, contact):
        older = make_event(contact, outcome=Outcome.ACCEPTED, created_at=at(0))
        latest = make_event(contact, created_at=at(10))
        follow_up = make_event(contact, action=OutreachAction.FOLLOW_UP_SENT, created_at=at(20))

        replied = engagement.on_inbound_message(
            [older, latest, follow_up], make_message(contact, created_at=at(30)), at(30)
        )

        assert replied is latest
        assert latest.outcome == Outcome.REPLIED
        assert older.outcome == Outcome.ACCEPTED
        assert follow_up.outcome == Outcome.PENDING

    def test_already_replied_notes_are_skipped(self, contact):
        open_note = make_event(contact, outcome=Outcome.ACCEPTED, created_at=at(0))
        events = [open_note, make_event(contact, outcome=Outcome.REPLIED, created_at=at(10))]

        assert engagement.select_reply_target(events, make_message(contact)) is open_note

    def test_sent_messages_never_resolve(self, contact):
        event = make_event(contact)

        assert engagement.on_inbound_message([event], make_message(contact, Direction.SENT)) is None
        assert event.outcome == Outcome.PENDING

    def test_no_candidate_is_noop(self, contact):
        other = make_contact("CTO")
        event = make_event(other)

        assert engagement.on_inbound_message([event], make_message(contact)) is None
        assert event.outcome == Outcome.PENDING


class TestDerivedState:

    def test_not_contacted(self, contact):
        snapshot = engagement.derive_state(contact, [], [])

        assert snapshot.state == EngagementState.NOT_CONTACTED
        assert snapshot.follow_up_eligible is False
        assert snapshot.follow_up_count == 0

    def test_connection_sent(self, contact):
        snapshot = engagement.derive_state(contact, [make_event(contact)], [])

        assert snapshot.state == EngagementState.CONNECTION_SENT

    def test_accepted_awaiting_reply_is_eligible(self, contact):
        event = make_event(contact, outcome=Outcome.ACCEPTED, updated_at=at(15))

        snapshot = engagement.derive_state(contact, [event], [])

        assert snapshot.state == EngagementState.CONNECTION_ACCEPTED_AWAITING_REPLY
        assert snapshot.follow_up_eligible is True
        assert snapshot.accepted_at == at(15)

    def test_received_message_ends_eligibility_and_resolves_event(self, contact):
        event = make_event(contact, outcome=Outcome.ACCEPTED)
        events, messages = [event], []
        assert engagement.is_follow_up_eligible(events, messages) is True

        message = make_message(contact, created_at=at(30))
        messages.append(message)
        engagement.on_inbound_message(events, message, at(30))

        assert engagement.is_follow_up_eligible(events, messages) is False
        assert event.outcome == Outcome.REPLIED
        assert engagement.derive_state(contact, events, messages).state == EngagementState.ENGAGED

    def test_received_message_alone_means_engaged(self, contact):
        snapshot = engagement.derive_state(contact, [make_event(contact)], [make_message(contact)])

        assert snapshot.state == EngagementState.ENGAGED

    def test_follow_ups_counted_regardless_of_outcome(self, contact):
        events = [
            make_event(contact, outcome=Outcome.ACCEPTED),
            make_event(contact, action=OutreachAction.FOLLOW_UP_SENT, created_at=at(5)),
            make_event(contact, action=OutreachAction.FOLLOW_UP_SENT, outcome=Outcome.REPLIED, created_at=at(9)),
        ]

        assert engagement.follow_up_count(events) == 2

    def test_records_of_other_contacts_are_ignored(self, contact):
        other = make_contact("CTO")

        snapshot = engagement.derive_state(
            contact, [make_event(other, outcome=Outcome.ACCEPTED)], [make_message(other)]
        )

        assert snapshot.state == EngagementState.NOT_CONTACTED

    def test_warm_intro_flag(self):
        contact = make_contact("CEO", status=ContactStatus.ASKED_FOR_INTRO, warm_intro_referrer="Sam Lee")

        snapshot = engagement.derive_state(contact, [make_event(contact)], [])

        assert snapshot.warm_intro_requested is True
        assert snapshot.warm_intro_referrer == "Sam Lee"
        assert snapshot.state == EngagementState.CONNECTION_SENT


def test_follow_up_queue_orders_by_acceptance():
    early = make_contact("CEO", name="Early")
    late = make_contact("CFO", name="Late")
    replied = make_contact("CTO", name="Replied")
    pending = make_contact("COO", name="Pending")

    events = [
        make_event(early, outcome=Outcome.ACCEPTED, updated_at=at(10)),
        make_event(late, outcome=Outcome.ACCEPTED, updated_at=at(50)),
        make_event(late, action=OutreachAction.FOLLOW_UP_SENT, created_at=at(60)),
        make_event(replied, outcome=Outcome.ACCEPTED, updated_at=at(30)),
        make_event(pending),
    ]
    messages = [make_message(replied, created_at=at(40))]

    queue = engagement.follow_up_queue([early, late, replied, pending], events, messages)

    assert [c.contact.name for c in queue] == ["Late", "Early"]
    assert queue[0].follow_up_count == 1
    assert queue[0].accepted_at == at(50)


def test_template_stats():
    contact = make_contact("CEO")
    template_a = uuid.uuid4()
    template_b = uuid.uuid4()

    events = [
        make_event(contact, outcome=Outcome.PENDING, template_id=template_a),
        make_event(contact, outcome=Outcome.ACCEPTED, template_id=template_a),
        make_event(contact, outcome=Outcome.REPLIED, template_id=template_a),
        make_event(contact, outcome=Outcome.REPLIED, template_id=template_b),
        make_event(contact, outcome=Outcome.PENDING, template_id=template_b),
        make_event(contact, outcome=Outcome.ACCEPTED),
    ]

    stats = {s.template_id: s for s in engagement.template_stats(events)}

    assert len(stats) == 2
    a = stats[template_a]
    assert (a.total_sent, a.pending, a.accepted, a.replied) == (3, 1, 1, 1)
    assert a.acceptance_rate == 67
    assert a.reply_rate == 33
    b = stats[template_b]
    assert b.acceptance_rate == 50
    assert b.reply_rate == 50


class TestToMessageQueue:

    @pytest.fixture
    def profiles(self):
        ceo = make_profile(["CEO"])
        add_template(ceo, TemplateKind.CONNECTION_NOTE, "Hi {{name}}")
        cfo = make_profile(["CFO"])
        add_template(cfo, TemplateKind.MESSAGE, "Hello")
        return [ceo, cfo]

    def test_groups_saved_contacts_per_company(self, profiles):
        acme = make_company("Acme Corp")
        globex = make_company("Globex")
        contacts = [
            make_contact("CEO", name="Ann", company=acme),
            make_contact("CEO", name="Bob", company=globex),
            make_contact("CFO", name="Cat", company=acme),
            make_contact("CEO", name="Dan", company=acme, status=ContactStatus.REQUESTED),
        ]

        groups = engagement.to_message_queue(contacts, profiles, TemplateKind.CONNECTION_NOTE, [acme, globex])

        assert [g.company_name for g in groups] == ["Acme Corp", "Globex"]
        assert [i.contact.name for i in groups[0].items] == ["Ann", "Cat"]
        assert [i.contact.name for i in groups[1].items] == ["Bob"]

    def test_readiness_and_reasons(self, profiles):
        contacts = [
            make_contact("CEO", name="Ready"),
            make_contact("CFO", name="No Note"),
            make_contact("Head of Sales", name="Unmatched"),
            make_contact(None, name="Untitled"),
        ]

        groups = engagement.to_message_queue(contacts, profiles, "connection_note")
        items = {i.contact.name: i for g in groups for i in g.items}

        assert items["Ready"].ready is True
        assert items["Ready"].matched_role == "CEO"
        assert items["Ready"].template is profiles[0].templates[0]

        assert items["No Note"].ready is False
        assert items["No Note"].failure == "no_template_for_kind"
        assert items["No Note"].status_message == "No current connection_note template for: CFO"

        assert items["Unmatched"].failure == "no_profile_match"
        assert items["Unmatched"].status_message == "No profile for title: Head of Sales"
        assert items["Untitled"].status_message == "No profile for title: No title"

    def test_override_wins_over_title(self, profiles):
        contact = make_contact("Head of Sales")

        groups = engagement.to_message_queue(
            [contact], profiles, TemplateKind.CONNECTION_NOTE, overrides={str(contact.id): profiles[0].id}
        )
        item = groups[0].items[0]

        assert item.ready is True
        assert item.is_override is True

    def test_contacts_without_company_fall_back_to_name(self, profiles):
        contact = make_contact("CEO")
        contact.company_name = "Initech"

        groups = engagement.to_message_queue([contact, make_contact("CFO")], profiles, TemplateKind.MESSAGE)

        assert [g.company_name for g in groups] == ["Initech", "Unknown Company"]


class TestConversationsQueue:

    def test_counts_and_skips_saved(self):
        talking = make_contact("CEO", name="Talking", status=ContactStatus.MESSAGED)
        quiet = make_contact("CFO", name="Quiet", status=ContactStatus.REQUESTED)
        saved = make_contact("CTO", name="Saved")
        messages = [
            make_message(talking, direction=Direction.SENT),
            make_message(talking),
            make_message(saved),
        ]

        queue = engagement.conversations_queue([talking, quiet, saved], messages)

        assert [(c.contact.name, c.message_count) for c in queue] == [("Talking", 2), ("Quiet", 0)]

    def test_min_messages_filter(self):
        talking = make_contact("CEO", name="Talking", status=ContactStatus.REPLIED)
        once = make_contact("CFO", name="Once", status=ContactStatus.MESSAGED)
        messages = [make_message(talking), make_message(talking), make_message(once)]

        queue = engagement.conversations_queue([talking, once], messages, min_messages=2)

        assert [c.contact.name for c in queue] == ["Talking"]


def test_message_counts():
    a = make_contact("CEO")
    b = make_contact("CFO")

    counts = engagement.message_counts([make_message(a), make_message(b), make_message(a)])

    assert counts == {str(a.id): 2, str(b.id): 1}


def test_outreach_metrics_windows():
    contact = make_contact("CEO")
    now = BASE_TIME
    note = {"message_type": "connection_note"}
    events = [
        make_event(contact, created_at=now.replace(hour=1), details=note),
        make_event(contact, created_at=now - timedelta(days=3), details=note),
        make_event(contact, created_at=now - timedelta(days=6), details={"message_type": "message"}),
        make_event(contact, created_at=now.replace(hour=0) - timedelta(days=7), details=note),
        make_event(contact, created_at=now - timedelta(days=8), details=note),
        make_event(contact, action=OutreachAction.FOLLOW_UP_SENT, created_at=now, details={"message_type": "follow_up"}),
    ]
    companies = [
        make_company("Today", created_at=now.replace(hour=2)),
        make_company("Yesterday", created_at=now - timedelta(days=1)),
    ]

    metrics = engagement.outreach_metrics(events, companies, now)

    assert metrics.messages_today == 1
    assert metrics.connections_week == 3
    assert metrics.companies_today == 1


def test_sent_connection_note_counts_toward_week():
    contact = make_contact("CEO")
    sent = engagement.mark_sent(contact, TemplateKind.CONNECTION_NOTE, "Hi", now=BASE_TIME)

    metrics = engagement.outreach_metrics([sent.event], [], BASE_TIME)

    assert (metrics.messages_today, metrics.connections_week) == (1, 1)
