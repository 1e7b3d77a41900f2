"""
Event Service

Event creation inside an open edition, lookups and status transitions.
Bulk registration and removal live in the registration engine.
"""
import logging
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from scorekeeper.database import transaction
from scorekeeper.errors import BadRequestError, InvalidStateTransitionError, LifecycleViolationError
from scorekeeper.orm import Edition, Event, EventScore, Status, Team
from scorekeeper.orm.edition import OPEN_STATUSES
from scorekeeper.services.edition_service import EditionService
from scorekeeper.services.entity_store import EntityStore

logger = logging.getLogger(__name__)


class EventService:

    def __init__(self, db: AsyncSession):
        self.db = db
        self.store = EntityStore(db)

    async def create_event(self, edition_id: int, name: str, max_participants_per_team: Optional[int] = None) -> Event:
        """Create a SCHEDULED event and a zero EventScore for every active team."""
        if max_participants_per_team is not None and max_participants_per_team < 1:
            raise BadRequestError(
                "max_participants_per_team must be at least 1",
                details={"max_participants_per_team": max_participants_per_team}
            )

        async with transaction(self.db):
            edition = await self.store.get(Edition, edition_id)
            if edition.status not in OPEN_STATUSES:
                raise LifecycleViolationError(
                    f"Events cannot be added to edition {edition.id}: edition is {edition.status.value}",
                    details={"edition_id": edition.id, "edition_status": edition.status.value}
                )

            event = await self.store.save(Event(
                edition_id=edition.id,
                name=name.strip(),
                status=Status.SCHEDULED,
                max_participants_per_team=max_participants_per_team
            ))

            teams = await self.store.find_by(Team, Team.is_active.is_(True))
            await self.store.save_all([
                EventScore(team_id=team.id, event_id=event.id, points=0) for team in teams
            ])

        logger.info(f"[EVENT CREATE] '{event.name}' id={event.id} edition={edition_id}")
        return event

    async def find_event_by_id(self, event_id: int) -> Event:
        return await self.store.get(Event, event_id)

    async def find_events_by_edition(self, edition_id: int) -> List[Event]:
        await self.store.get(Edition, edition_id)
        return await self.store.find_by(Event, Event.edition_id == edition_id)

    async def update_event_status(self, event_id: int, target: Status) -> Event:
        async with transaction(self.db):
            event = await self.store.get(Event, event_id, lock=True)
            if not EditionService.is_valid_transition(event.status, target):
                raise InvalidStateTransitionError("Event", event.status.value, target.value)

            previous = event.status
            event.status = target
            await self.store.save(event)

        logger.info(f"[EVENT STATUS] {event_id}: {previous.value} -> {target.value}")
        return event
