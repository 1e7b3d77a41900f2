"""
scorekeeper/orm/registration.py
Edition and event registrations.

EditionRegistration: "this participant plays for this team in this edition".
EventRegistration: enrollment of a participant, under a team, in one event.
Both are created and deleted only by the registration engine, never edited.
"""
from sqlalchemy import Column, Integer, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from scorekeeper.orm.base import BaseModel


class EditionRegistration(BaseModel):
    __tablename__ = "edition_registrations"
    __table_args__ = (
        UniqueConstraint("participant_id", "edition_id", name="uq_edition_registration_participant_edition"),
    )
    
    participant_id = Column(Integer, ForeignKey("participants.id", ondelete="CASCADE"), nullable=False, index=True)
    team_id = Column(Integer, ForeignKey("teams.id", ondelete="CASCADE"), nullable=False, index=True)
    edition_id = Column(Integer, ForeignKey("editions.id", ondelete="CASCADE"), nullable=False, index=True)
    
    team = relationship("Team", lazy="selectin")
    edition = relationship("Edition", lazy="selectin")
    
    def __repr__(self):
        return (
            f"<EditionRegistration(participant={self.participant_id}, "
            f"team={self.team_id}, edition={self.edition_id})>"
        )


class EventRegistration(BaseModel):
    __tablename__ = "event_registrations"
    __table_args__ = (
        UniqueConstraint("participant_id", "event_id", name="uq_event_registration_participant_event"),
    )
    
    participant_id = Column(Integer, ForeignKey("participants.id", ondelete="CASCADE"), nullable=False, index=True)
    team_id = Column(Integer, ForeignKey("teams.id", ondelete="CASCADE"), nullable=False, index=True)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    
    team = relationship("Team", lazy="selectin")
    event = relationship("Event", lazy="selectin")
    
    def __repr__(self):
        return (
            f"<EventRegistration(participant={self.participant_id}, "
            f"team={self.team_id}, event={self.event_id})>"
        )
