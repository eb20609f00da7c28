"""
Template versioner - current-flag toggling and version spawning.
"""
import logging
import re
from datetime import datetime
from typing import Optional, Tuple

from outreach_pipeline.core.exceptions import InvalidSequenceNumber
from outreach_pipeline.models.template import MessageTemplate, TemplateKind

logger = logging.getLogger(__name__)

VERSION_SUFFIX = re.compile(r"^(.+?)\s*\bv(\d+)$", re.IGNORECASE)


def increment_version_name(name: str) -> str:
    """
    "CEO Intro"    -> "CEO Intro v2"
    "CEO Intro v2" -> "CEO Intro v3"
    """
    name = name.strip()
    match = VERSION_SUFFIX.match(name)
    if match:
        base_name = match.group(1).strip()
        version = int(match.group(2))
        return f"{base_name} v{version + 1}"
    return f"{name} v2"


def validate_sequence_number(kind: TemplateKind, sequence_number: Optional[int]) -> None:
    """Follow-ups need a sequence number >= 1; every other kind must not have one."""
    if kind == TemplateKind.FOLLOW_UP:
        if sequence_number is None:
            raise InvalidSequenceNumber("follow_up templates require a sequence_number")
        if sequence_number < 1:
            raise InvalidSequenceNumber("sequence_number must be >= 1")
    elif sequence_number is not None:
        raise InvalidSequenceNumber(f"{TemplateKind(kind).value} templates cannot have a sequence_number")


def iterate(template: MessageTemplate) -> Tuple[MessageTemplate, MessageTemplate]:
    """
    Retire a template and spawn its next version.

    The original stops being current; the copy keeps profile, kind,
    sequence number, content and notes, and becomes current.
    """
    now = datetime.utcnow()
    template.is_current = False
    template.updated_at = now

    created = MessageTemplate(
        profile_id=template.profile_id,
        name=increment_version_name(template.name),
        kind=template.kind,
        content=template.content,
        notes=template.notes,
        sequence_number=template.sequence_number,
        is_current=True,
        created_at=now,
        updated_at=now,
    )
    logger.info(f"Iterated template '{template.name}' -> '{created.name}'")
    return template, created


def toggle_current(template: MessageTemplate) -> MessageTemplate:
    """Flip is_current. Sibling templates are left alone."""
    template.is_current = not template.is_current
    return template
