"""
Participant API Schemas (Pydantic)
"""
from typing import List, Optional
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from scorekeeper.orm import Gender, ParticipantType


class ParticipantReplace(BaseModel):
    """Request schema for replacing a participant's personal data."""
    name: str = Field(..., min_length=1, max_length=255)
    document: str = Field(..., min_length=1, max_length=20)
    gender: Gender
    type: ParticipantType

    @field_validator("name")
    @classmethod
    def strip_name(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("name must not be blank")
        return v


class ParticipantCreate(ParticipantReplace):
    """Request schema for creating a participant in the current edition."""
    team_id: int


class ParticipantStatusUpdate(BaseModel):
    is_active: bool


class ParticipantResponse(BaseModel):
    id: int
    name: str
    document: str
    gender: Gender
    type: ParticipantType
    is_active: bool

    model_config = ConfigDict(from_attributes=True)


class EditionRegistrationResponse(BaseModel):
    id: int
    participant_id: int
    team_id: int
    edition_id: int
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class EventRegistrationResponse(BaseModel):
    id: int
    participant_id: int
    team_id: int
    event_id: int
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ParticipantDetailResponse(BaseModel):
    """Participant with its current edition and event registrations."""
    participant: ParticipantResponse
    edition_registrations: List[EditionRegistrationResponse] = []
    event_registrations: List[EventRegistrationResponse] = []

    model_config = ConfigDict(from_attributes=True)


class ParticipantPage(BaseModel):
    items: List[ParticipantResponse]
    total: int
    page: int
    size: int
