"""
Edition Lifecycle Service

Edition lookups, the "current edition" resolution used when new participants
arrive, opening a new edition, status transitions and standings.

State Machine:
    SCHEDULED → IN_PROGRESS → ENDED
        ↓            ↓
     CANCELED     CANCELED
"""
import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from scorekeeper.database import transaction
from scorekeeper.errors import (
    ConflictError,
    ErrorCode,
    InvalidStateTransitionError,
    LifecycleViolationError,
    NotFoundError,
)
from scorekeeper.orm import (
    Edition,
    Event,
    Status,
    Team,
    TeamScore,
    EventScore,
    EditionRegistration,
    EventRegistration,
)
from scorekeeper.orm.edition import OPEN_STATUSES
from scorekeeper.services.entity_store import EntityStore

logger = logging.getLogger(__name__)


class EditionService:

    # Shared by editions and events
    VALID_TRANSITIONS = {
        Status.SCHEDULED: [Status.IN_PROGRESS, Status.CANCELED],
        Status.IN_PROGRESS: [Status.ENDED, Status.CANCELED],
        Status.ENDED: [],
        Status.CANCELED: [],
    }

    @staticmethod
    def is_valid_transition(current: Status, target: Status) -> bool:
        return target in EditionService.VALID_TRANSITIONS.get(current, [])

    def __init__(self, db: AsyncSession):
        self.db = db
        self.store = EntityStore(db)

    async def find_all_editions(self) -> List[Edition]:
        return await self.store.find_by(Edition, order_by=Edition.year.desc())

    async def find_edition_by_id(self, edition_id: int) -> Edition:
        return await self.store.get(Edition, edition_id)

    async def find_edition_by_year(self, year: int) -> Edition:
        edition = await self.store.find_one(Edition, Edition.year == year)
        if edition is None:
            raise NotFoundError("Edition", year, code=ErrorCode.EDITION_NOT_FOUND)
        return edition

    async def find_current_edition(self) -> Edition:
        """
        The single edition that is neither ENDED nor CANCELED.

        Raises:
            LifecycleViolationError: no open edition
            ConflictError: more than one open edition
        """
        editions = await self.store.find_by(Edition, Edition.status.in_(OPEN_STATUSES))
        if not editions:
            raise LifecycleViolationError(
                "There is no scheduled or in-progress edition to register participants in",
                code=ErrorCode.NO_OPEN_EDITION
            )
        if len(editions) > 1:
            raise ConflictError(
                f"{len(editions)} editions are open at the same time; the current edition is ambiguous",
                code=ErrorCode.AMBIGUOUS_CURRENT_EDITION,
                details={"edition_ids": [e.id for e in editions]}
            )
        return editions[0]

    async def open_new_edition(self, year: Optional[int] = None) -> Edition:
        """
        Create a SCHEDULED edition and a zero TeamScore for every active team.

        Refused while another edition is still open or when the year is taken.
        """
        year = year or datetime.utcnow().year

        async with transaction(self.db):
            open_editions = await self.store.find_by(Edition, Edition.status.in_(OPEN_STATUSES))
            if open_editions:
                raise ConflictError(
                    f"Edition {open_editions[0].year} is still open",
                    code=ErrorCode.EDITION_ALREADY_OPEN,
                    details={"edition_id": open_editions[0].id}
                )
            if await self.store.find_one(Edition, Edition.year == year) is not None:
                raise ConflictError(
                    f"An edition for {year} already exists",
                    code=ErrorCode.YEAR_IN_USE,
                    details={"year": year}
                )

            edition = await self.store.save(Edition(year=year, status=Status.SCHEDULED))

            teams = await self.store.find_by(Team, Team.is_active.is_(True))
            await self.store.save_all([
                TeamScore(team_id=team.id, edition_id=edition.id, points=0) for team in teams
            ])

        logger.info(f"[EDITION OPEN] year={year} id={edition.id} teams={len(teams)}")
        return edition

    async def update_edition_status(self, edition_id: int, target: Status) -> Edition:
        async with transaction(self.db):
            edition = await self.store.get(Edition, edition_id, lock=True)
            if not self.is_valid_transition(edition.status, target):
                raise InvalidStateTransitionError("Edition", edition.status.value, target.value)

            previous = edition.status
            edition.status = target
            await self.store.save(edition)

        logger.info(f"[EDITION STATUS] {edition_id}: {previous.value} -> {target.value}")
        return edition

    async def delete_edition(self, edition_id: int) -> None:
        """Only a SCHEDULED edition can be deleted; its events, registrations and scores go with it."""
        async with transaction(self.db):
            edition = await self.store.get(Edition, edition_id, lock=True)
            if edition.status != Status.SCHEDULED:
                raise LifecycleViolationError(
                    f"Edition {edition.id} cannot be deleted: edition is {edition.status.value}",
                    details={"edition_id": edition.id, "edition_status": edition.status.value}
                )

            event_ids = select(Event.id).where(Event.edition_id == edition.id)
            await self.store.delete_where(EventRegistration, EventRegistration.event_id.in_(event_ids))
            await self.store.delete_where(EventScore, EventScore.event_id.in_(event_ids))
            await self.store.delete_where(Event, Event.edition_id == edition.id)
            await self.store.delete_where(EditionRegistration, EditionRegistration.edition_id == edition.id)
            await self.store.delete_where(TeamScore, TeamScore.edition_id == edition.id)
            await self.store.delete(edition)

        logger.info(f"[EDITION DELETE] {edition_id}")

    async def find_edition_standings(self, edition_id: int) -> List[TeamScore]:
        await self.store.get(Edition, edition_id)
        return await self.store.find_by(
            TeamScore,
            TeamScore.edition_id == edition_id,
            order_by=TeamScore.points.desc()
        )
