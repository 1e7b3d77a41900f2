"""
scorekeeper/orm/edition.py
Edition model: one yearly instance of the tournament.
"""
from sqlalchemy import Column, Integer, Enum as SQLEnum
from enum import Enum as PyEnum
from scorekeeper.orm.base import BaseModel


class Status(str, PyEnum):
    """Lifecycle status shared by editions and events"""
    SCHEDULED = "SCHEDULED"
    IN_PROGRESS = "IN_PROGRESS"
    ENDED = "ENDED"
    CANCELED = "CANCELED"

    @classmethod
    def find_status_like(cls, value: str) -> "Status":
        """Resolve a loosely formatted status ("in-progress", "ended") to a member."""
        normalized = value.strip().upper().replace("-", "_").replace(" ", "_")
        return cls(normalized)


# Editions in these statuses are still open for participants
OPEN_STATUSES = (Status.SCHEDULED, Status.IN_PROGRESS)


class Edition(BaseModel):
    """
    A seasonal instance of the tournament.
    The year is unique; the status drives whether registration changes are permitted.
    """
    __tablename__ = "editions"
    
    year = Column(Integer, nullable=False, unique=True, index=True)
    status = Column(SQLEnum(Status), default=Status.SCHEDULED, nullable=False, index=True)
    
    def __repr__(self):
        return f"<Edition(id={self.id}, year={self.year}, status={self.status})>"
