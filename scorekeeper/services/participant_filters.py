"""
Composable participant filters.

Each clause turns one optional criterion into a SQL predicate; clauses whose
value is None contribute nothing, and the remaining predicates are combined
conjunctively.
"""
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from sqlalchemy import select, func, exists, and_

from scorekeeper.orm import (
    Participant,
    Gender,
    ParticipantType,
    EditionRegistration,
    EventRegistration,
)


@dataclass
class NameContains:
    value: Optional[str] = None

    def predicate(self):
        if not self.value:
            return None
        return func.upper(Participant.name).contains(self.value.strip().upper())


@dataclass
class FromEdition:
    edition_id: Optional[int] = None

    def predicate(self):
        if self.edition_id is None:
            return None
        return exists().where(
            EditionRegistration.participant_id == Participant.id,
            EditionRegistration.edition_id == self.edition_id
        )


@dataclass
class FromEvent:
    event_id: Optional[int] = None

    def predicate(self):
        if self.event_id is None:
            return None
        return exists().where(
            EventRegistration.participant_id == Participant.id,
            EventRegistration.event_id == self.event_id
        )


@dataclass
class NotFromEvent:
    event_id: Optional[int] = None

    def predicate(self):
        if self.event_id is None:
            return None
        return ~FromEvent(self.event_id).predicate()


@dataclass
class FromTeam:
    """Participants playing for a team, optionally restricted to one edition."""
    team_id: Optional[int] = None
    edition_id: Optional[int] = None

    def predicate(self):
        if self.team_id is None:
            return None
        conditions = [
            EditionRegistration.participant_id == Participant.id,
            EditionRegistration.team_id == self.team_id,
        ]
        if self.edition_id is not None:
            conditions.append(EditionRegistration.edition_id == self.edition_id)
        return exists().where(and_(*conditions))


@dataclass
class HasGender:
    gender: Optional[Gender] = None

    def predicate(self):
        if self.gender is None:
            return None
        return Participant.gender == self.gender


@dataclass
class HasType:
    type: Optional[ParticipantType] = None

    def predicate(self):
        if self.type is None:
            return None
        return Participant.type == self.type


@dataclass
class HasStatus:
    is_active: Optional[bool] = None

    def predicate(self):
        if self.is_active is None:
            return None
        return Participant.is_active == self.is_active


@dataclass
class WithoutIds:
    ids: Optional[Iterable[int]] = None

    def predicate(self):
        if not self.ids:
            return None
        return Participant.id.not_in(list(self.ids))


@dataclass
class ParticipantFilter:
    clauses: List = field(default_factory=list)

    @classmethod
    def of(cls, *clauses) -> "ParticipantFilter":
        return cls(list(clauses))

    def predicates(self) -> list:
        return [p for p in (clause.predicate() for clause in self.clauses) if p is not None]


ORDERINGS = {
    "a-z": Participant.name.asc(),
    "z-a": Participant.name.desc(),
}


def build_participant_query(participant_filter: Optional[ParticipantFilter], order: Optional[str] = None):
    """Select statement for the filtered participants, ordered (default newest id first)."""
    predicates = participant_filter.predicates() if participant_filter else []
    query = select(Participant).where(*predicates)
    ordering = ORDERINGS.get((order or "").lower())
    if ordering is not None:
        return query.order_by(ordering, Participant.id.desc())
    return query.order_by(Participant.id.desc())


def build_participant_count(participant_filter: Optional[ParticipantFilter]):
    predicates = participant_filter.predicates() if participant_filter else []
    return select(func.count(Participant.id)).where(*predicates)
