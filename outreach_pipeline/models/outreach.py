"""
Outreach models - outreach events and conversation messages.
Both are append-only logs; engagement state is derived from them.
"""
import uuid
from datetime import datetime
from enum import Enum
from typing import Optional, Dict, Any

from sqlmodel import SQLModel, Field
from sqlalchemy import Column
from sqlalchemy.dialects.postgresql import JSONB


class OutreachAction(str, Enum):
    NOTE_SENT = "note_sent"  # Connection note, message or InMail
    FOLLOW_UP_SENT = "follow_up_sent"


class Outcome(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"  # Connection accepted, no reply yet
    REPLIED = "replied"


class Direction(str, Enum):
    SENT = "sent"
    RECEIVED = "received"


class Channel(str, Enum):
    LINKEDIN = "linkedin"
    SALES_NAVIGATOR = "sales_navigator"
    EMAIL = "email"


class OutreachEvent(SQLModel, table=True):
    """
    One outbound attempt to a contact.
    Never deleted; only `outcome` and `updated_at` change after creation.
    """
    __tablename__ = "outreach_event"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    contact_id: uuid.UUID = Field(foreign_key="contact.id", index=True)
    template_id: Optional[uuid.UUID] = Field(default=None, foreign_key="message_template.id", index=True)

    action: OutreachAction = Field(index=True)
    outcome: Outcome = Field(default=Outcome.PENDING, index=True)

    # Snapshot of what was sent
    details: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSONB))
    # Example: {"message_content": "Hi Jane...", "message_type": "connection_note"}

    # Timestamps
    created_at: datetime = Field(default_factory=datetime.utcnow, index=True)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class Message(SQLModel, table=True):
    """
    A conversational turn with a contact, in either direction.
    """
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    contact_id: uuid.UUID = Field(foreign_key="contact.id", index=True)

    direction: Direction = Field(index=True)
    channel: Channel = Field(default=Channel.LINKEDIN)
    subject: Optional[str] = None  # For email
    content: str

    created_at: datetime = Field(default_factory=datetime.utcnow, index=True)
