"""
Message template model.
Templates belong to a profile and are versioned by iteration.
"""
import uuid
from datetime import datetime
from enum import Enum
from typing import Optional, TYPE_CHECKING

from sqlmodel import SQLModel, Field, Relationship

if TYPE_CHECKING:
    from outreach_pipeline.models.profile import Profile


class TemplateKind(str, Enum):
    CONNECTION_NOTE = "connection_note"
    MESSAGE = "message"
    INMAIL = "inmail"
    FOLLOW_UP = "follow_up"


class MessageTemplate(SQLModel, table=True):
    """
    Reusable message text for one outreach kind.
    Follow-up templates carry their position in the sequence (1, 2, 3...).
    """
    __tablename__ = "message_template"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    profile_id: uuid.UUID = Field(foreign_key="profile.id", index=True)

    # Template info
    name: str = Field(index=True)
    kind: TemplateKind = Field(index=True)
    content: str
    notes: Optional[str] = None

    # Versioning
    is_current: bool = Field(default=False, index=True)
    sequence_number: Optional[int] = None  # Only for follow_up templates

    profile: Optional["Profile"] = Relationship(back_populates="templates")

    # Timestamps
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
