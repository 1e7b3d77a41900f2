"""
Registration API Schemas (Pydantic)
"""
from typing import List

from pydantic import BaseModel, Field

from scorekeeper.schemas.participant import ParticipantResponse


class EditionRegistrationRequest(BaseModel):
    edition_id: int
    team_id: int


class EventRegistrationRequest(BaseModel):
    """One (participant, team) pair of an event enrollment."""
    participant_id: int
    team_id: int


class SingleEventRegistrationRequest(BaseModel):
    event_id: int
    team_id: int


class BulkRegistrationRequest(BaseModel):
    registrations: List[EventRegistrationRequest] = Field(..., min_length=1)


class BulkRegistrationFailureResponse(BaseModel):
    participant_id: int
    team_id: int
    code: str
    reason: str


class BulkRegistrationResponse(BaseModel):
    registered: List[ParticipantResponse]
    failures: List[BulkRegistrationFailureResponse] = []


class BulkRemovalRequest(BaseModel):
    registration_ids: List[int] = Field(..., min_length=1)


class BulkRemovalResponse(BaseModel):
    event_id: int
    removed: int
