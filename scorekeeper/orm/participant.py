"""
scorekeeper/orm/participant.py
Participant model. The national document id is the natural key.
"""
from sqlalchemy import Column, String, Boolean, Enum as SQLEnum
from enum import Enum as PyEnum
from scorekeeper.orm.base import BaseModel


class Gender(str, PyEnum):
    MALE = "MALE"
    FEMALE = "FEMALE"


class ParticipantType(str, PyEnum):
    """Participant category"""
    STUDENT = "STUDENT"
    TEACHER = "TEACHER"
    STAFF = "STAFF"


class Participant(BaseModel):
    """
    Tournament participant.
    Registrations are not mapped here; they are read through the registration
    tables by participant_id whenever an aggregate is needed.
    """
    __tablename__ = "participants"
    
    name = Column(String(255), nullable=False, index=True)
    document = Column(String(11), nullable=False, unique=True, index=True)
    gender = Column(SQLEnum(Gender), nullable=False)
    type = Column(SQLEnum(ParticipantType), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    
    def __repr__(self):
        return f"<Participant(id={self.id}, name='{self.name}', active={self.is_active})>"
