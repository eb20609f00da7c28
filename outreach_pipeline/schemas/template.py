"""
Template schemas.
"""
import uuid
from typing import Optional
from datetime import datetime
from pydantic import BaseModel, model_validator

from outreach_pipeline.core.exceptions import InvalidSequenceNumber
from outreach_pipeline.models.template import TemplateKind
from outreach_pipeline.services.template_versioner import validate_sequence_number


class TemplateCreate(BaseModel):
    """Create a message template."""
    profile_id: uuid.UUID
    name: str
    kind: TemplateKind
    content: str
    notes: Optional[str] = None
    is_current: bool = False
    sequence_number: Optional[int] = None  # Required for follow_up, forbidden otherwise

    @model_validator(mode="after")
    def check_sequence_number(self):
        try:
            validate_sequence_number(self.kind, self.sequence_number)
        except InvalidSequenceNumber as e:
            raise ValueError(e.message)
        return self

    class Config:
        json_schema_extra = {
            "example": {
                "profile_id": "550e8400-e29b-41d4-a716-446655440000",
                "name": "CEO Follow-up",
                "kind": "follow_up",
                "content": "Hi {{first_name}}, just bumping this up...",
                "is_current": True,
                "sequence_number": 1
            }
        }


class TemplateUpdate(BaseModel):
    """Edit a template in place. Kind and sequence position are fixed."""
    name: Optional[str] = None
    content: Optional[str] = None
    notes: Optional[str] = None
    is_current: Optional[bool] = None


class TemplateResponse(BaseModel):
    """Message template response."""
    id: uuid.UUID
    profile_id: uuid.UUID
    name: str
    kind: TemplateKind
    content: str
    notes: Optional[str]
    is_current: bool
    sequence_number: Optional[int]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class TemplateIterateResponse(BaseModel):
    """Result of spawning a new template version."""
    original: TemplateResponse
    new: TemplateResponse


class TemplateStatsResponse(BaseModel):
    """Outcome counts and rates for one template."""
    template_id: uuid.UUID
    total_sent: int
    pending: int
    accepted: int
    replied: int
    acceptance_rate: int
    reply_rate: int

    class Config:
        from_attributes = True
