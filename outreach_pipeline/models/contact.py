"""
Contact and company models.
Records arrive from the browser extension; the pipeline only reads them,
except for the status advance performed when a message is marked sent.
"""
import uuid
from datetime import datetime
from enum import Enum
from typing import Optional

from sqlmodel import SQLModel, Field


class ContactStatus(str, Enum):
    """Stored pipeline status, set by the operator at send time."""
    SAVED = "saved"
    REQUESTED = "requested"
    ACCEPTED = "accepted"
    MESSAGED = "messaged"
    REPLIED = "replied"
    ASKED_FOR_INTRO = "asked_for_intro"


class Company(SQLModel, table=True):
    """
    Company a contact works for.
    Used as personalization context and to flag accounts already contacted.
    """
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)

    name: str = Field(index=True)
    linkedin_url: Optional[str] = None
    website: Optional[str] = None
    industry: Optional[str] = None
    employee_count: Optional[str] = None
    description: Optional[str] = None
    location: Optional[str] = None

    # Flipped the first time a connection note or message goes out to anyone here
    is_contacted: bool = Field(default=False)

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class Contact(SQLModel, table=True):
    """
    A person we reach out to.
    `status` can be stale; the engagement engine derives the real state
    from outreach events and messages.
    """
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    company_id: Optional[uuid.UUID] = Field(default=None, foreign_key="company.id", index=True)

    # Basic info
    name: str = Field(index=True)
    title: Optional[str] = None
    company_name: Optional[str] = None
    linkedin_url: Optional[str] = None

    # Pipeline
    status: ContactStatus = Field(default=ContactStatus.SAVED, index=True)
    warm_intro_referrer: Optional[str] = None  # Name or LinkedIn URL of the referrer

    # Timestamps
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
