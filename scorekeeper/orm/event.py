"""
scorekeeper/orm/event.py
Event model: a single competitive activity inside an edition.
"""
from sqlalchemy import Column, Integer, String, ForeignKey, Enum as SQLEnum
from sqlalchemy.orm import relationship
from scorekeeper.orm.base import BaseModel
from scorekeeper.orm.edition import Status


class Event(BaseModel):
    """
    Event belonging to exactly one edition.
    max_participants_per_team caps EventRegistrations per team; None means unlimited.
    """
    __tablename__ = "events"
    
    edition_id = Column(
        Integer,
        ForeignKey("editions.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    
    name = Column(String(255), nullable=False)
    status = Column(SQLEnum(Status), default=Status.SCHEDULED, nullable=False, index=True)
    max_participants_per_team = Column(Integer, nullable=True)
    
    edition = relationship("Edition", lazy="selectin")
    
    def __repr__(self):
        return f"<Event(id={self.id}, name='{self.name}', edition={self.edition_id})>"
