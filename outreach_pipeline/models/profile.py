"""
Profile model - outreach targeting definition.
A profile groups the roles it targets with the templates used to reach them.
"""
import uuid
from datetime import datetime
from typing import Optional, List, TYPE_CHECKING

from sqlmodel import SQLModel, Field, Relationship
from sqlalchemy import Column
from sqlalchemy.dialects.postgresql import JSONB

if TYPE_CHECKING:
    from outreach_pipeline.models.template import MessageTemplate


class Profile(SQLModel, table=True):
    """
    Targeting definition: roles + industry, with pain points for prompt context.
    """
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)

    # Ordered role list, e.g. ["CEO", "Founder", "Managing Director"]
    roles: List[str] = Field(default_factory=list, sa_column=Column(JSONB))
    industry: Optional[str] = Field(default=None, index=True)
    pain_points: List[str] = Field(default_factory=list, sa_column=Column(JSONB))
    notes: Optional[str] = None

    templates: List["MessageTemplate"] = Relationship(back_populates="profile")

    # Timestamps
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
