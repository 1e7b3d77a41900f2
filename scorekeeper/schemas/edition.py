"""
Edition and Event API Schemas (Pydantic)
"""
from typing import Optional
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from scorekeeper.orm import Status


class EditionOpenRequest(BaseModel):
    """Year defaults to the current calendar year."""
    year: Optional[int] = Field(default=None, ge=1900, le=9999)


class StatusUpdate(BaseModel):
    status: Status

    @field_validator("status", mode="before")
    @classmethod
    def loose_status(cls, v):
        if isinstance(v, str):
            return Status.find_status_like(v)
        return v


class EditionResponse(BaseModel):
    id: int
    year: int
    status: Status
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class EventCreate(BaseModel):
    edition_id: int
    name: str = Field(..., min_length=1, max_length=255)
    max_participants_per_team: Optional[int] = Field(default=None, ge=1)


class EventResponse(BaseModel):
    id: int
    edition_id: int
    name: str
    status: Status
    max_participants_per_team: Optional[int] = None

    model_config = ConfigDict(from_attributes=True)


class TeamScoreResponse(BaseModel):
    team_id: int
    edition_id: int
    points: int

    model_config = ConfigDict(from_attributes=True)
