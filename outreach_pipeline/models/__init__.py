# Models package - pipeline records owned by the store
from outreach_pipeline.models.contact import Contact, Company, ContactStatus
from outreach_pipeline.models.profile import Profile
from outreach_pipeline.models.template import MessageTemplate, TemplateKind
from outreach_pipeline.models.outreach import (
    OutreachEvent, Message, OutreachAction, Outcome, Direction, Channel
)
