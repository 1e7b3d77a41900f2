"""
CSV Report Schemas (Pydantic)

Per-row outcome of a CSV upload. Failures carry the original row fields so
they can be exported back as a problem CSV.
"""
from typing import Dict, List, Optional

from pydantic import BaseModel


class RowFailure(BaseModel):
    row: int
    code: str
    reason: str
    fields: Dict[str, Optional[str]] = {}


class RegisteredRow(BaseModel):
    row: int
    participant_id: int
    document: str
    team_id: int


class ParticipantRegistrationReport(BaseModel):
    total: int = 0
    registered: List[RegisteredRow] = []
    failures: List[RowFailure] = []


class InactivatedRow(BaseModel):
    row: int
    participant_id: int
    document: str


class ParticipantInactivationReport(BaseModel):
    total: int = 0
    inactivated: List[InactivatedRow] = []
    failures: List[RowFailure] = []
