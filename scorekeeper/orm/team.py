"""
scorekeeper/orm/team.py
Team model plus the per-edition and per-event score records.
"""
from sqlalchemy import Column, Integer, String, Boolean, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from scorekeeper.orm.base import BaseModel


class Team(BaseModel):
    """
    Team competing across editions.
    Name and logo are both unique.
    """
    __tablename__ = "teams"
    
    name = Column(String(255), nullable=False, unique=True, index=True)
    logo = Column(String(255), nullable=False, unique=True)
    is_active = Column(Boolean, default=True, nullable=False)
    
    def __repr__(self):
        return f"<Team(id={self.id}, name='{self.name}', active={self.is_active})>"


class TeamScore(BaseModel):
    """
    Aggregate points of a team within one edition
    """
    __tablename__ = "team_scores"
    __table_args__ = (
        UniqueConstraint("team_id", "edition_id", name="uq_team_score_team_edition"),
    )
    
    team_id = Column(Integer, ForeignKey("teams.id", ondelete="CASCADE"), nullable=False, index=True)
    edition_id = Column(Integer, ForeignKey("editions.id", ondelete="CASCADE"), nullable=False, index=True)
    points = Column(Integer, default=0, nullable=False)
    
    team = relationship("Team", lazy="selectin")
    edition = relationship("Edition", lazy="selectin")


class EventScore(BaseModel):
    """
    Aggregate points of a team within one event
    """
    __tablename__ = "event_scores"
    __table_args__ = (
        UniqueConstraint("team_id", "event_id", name="uq_event_score_team_event"),
    )
    
    team_id = Column(Integer, ForeignKey("teams.id", ondelete="CASCADE"), nullable=False, index=True)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    points = Column(Integer, default=0, nullable=False)
