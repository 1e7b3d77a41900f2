"""
Team API Schemas (Pydantic)
"""
from pydantic import BaseModel, ConfigDict, Field


class TeamRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    logo: str = Field(..., min_length=1, max_length=255)


class TeamStatusUpdate(BaseModel):
    is_active: bool


class TeamResponse(BaseModel):
    id: int
    name: str
    logo: str
    is_active: bool

    model_config = ConfigDict(from_attributes=True)
