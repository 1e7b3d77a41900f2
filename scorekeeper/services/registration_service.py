"""
Registration Engine

Single-item and bulk registration / de-registration of participants into
editions and events. Every public operation is one transaction: all reads,
rule evaluations and writes of a call are applied together or not at all.

Core Principles:
- Rules are evaluated by the eligibility validator over snapshots loaded here
- Capacity is checked against live counts, never against cached aggregates
- Bulk mode resolves every referenced entity before any mutation
- Participant registration sets are re-read after each mutation
"""
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Sequence, Set

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from scorekeeper.database import transaction
from scorekeeper.errors import (
    RuleViolationError,
    DuplicateRegistrationError,
    LifecycleViolationError,
)
from scorekeeper.orm import (
    Participant,
    Team,
    Edition,
    Event,
    EditionRegistration,
    EventRegistration,
    Status,
)
from scorekeeper.services import eligibility_validator as rules
from scorekeeper.services.entity_store import EntityStore, not_found
from scorekeeper.services.status_oracle import StatusOracle

logger = logging.getLogger(__name__)


@dataclass
class ParticipantAggregate:
    """A participant together with its current registration sets."""
    participant: Participant
    edition_registrations: List[EditionRegistration] = field(default_factory=list)
    event_registrations: List[EventRegistration] = field(default_factory=list)


@dataclass
class BulkRegistrationFailure:
    participant_id: int
    team_id: int
    code: str
    reason: str


@dataclass
class BulkRegistrationResult:
    registered: List[Participant] = field(default_factory=list)
    failures: List[BulkRegistrationFailure] = field(default_factory=list)


class RegistrationService:
    """
    Orchestrates registrations against the entity store.

    Enforces the edition overwrite semantic, per-team event capacity and the
    lifecycle gating of removals.
    """

    def __init__(self, db: AsyncSession):
        self.db = db
        self.store = EntityStore(db)
        self.oracle = StatusOracle(db)

    # ==========================================================================
    # Aggregate view
    # ==========================================================================

    async def load_aggregate(self, participant: Participant) -> ParticipantAggregate:
        """Re-read the participant's registration sets from the store."""
        edition_registrations = await self.store.find_by(
            EditionRegistration, EditionRegistration.participant_id == participant.id
        )
        event_registrations = await self.store.find_by(
            EventRegistration, EventRegistration.participant_id == participant.id
        )
        return ParticipantAggregate(participant, edition_registrations, event_registrations)

    # ==========================================================================
    # Edition registration
    # ==========================================================================

    async def register_in_edition(self, participant_id: int, edition_id: int, team_id: int) -> ParticipantAggregate:
        """
        Register a participant for a team in an edition.

        A prior registration of the participant in the same edition is
        replaced; the delete and the insert commit together. When the team
        changes, the participant's enrollments in that edition's events under
        the old team are removed as well.
        """
        async with transaction(self.db):
            participant = await self.store.get(Participant, participant_id)
            await self.register_participant_in_edition(participant, edition_id, team_id)

        return await self.load_aggregate(participant)

    async def register_participant_in_edition(
        self,
        participant: Participant,
        edition_id: int,
        team_id: int
    ) -> EditionRegistration:
        """Registration step without a transaction of its own; the caller owns it."""
        edition = await self.store.get(Edition, edition_id)
        team = await self.store.get(Team, team_id)

        rules.validate_participant_and_team_active(participant, team)

        current = await self.store.find_by(
            EditionRegistration, EditionRegistration.participant_id == participant.id
        )
        existing = rules.find_registration_to_replace(current, edition.id)
        if existing is not None:
            logger.info(
                f"[REGISTRATION] Replacing edition registration {existing.id} "
                f"participant={participant.id} edition={edition.id} team {existing.team_id} -> {team.id}"
            )
            if existing.team_id != team.id:
                # Enrollments under the old team would no longer match the edition team
                stale = await self.store.delete_where(
                    EventRegistration,
                    EventRegistration.participant_id == participant.id,
                    EventRegistration.team_id == existing.team_id,
                    EventRegistration.event_id.in_(
                        select(Event.id).where(Event.edition_id == edition.id)
                    )
                )
                if stale:
                    logger.info(
                        f"[REGISTRATION] Dropped {stale} event registration(s) of participant "
                        f"{participant.id} under team {existing.team_id}"
                    )
            # Flushed before the insert so the (participant, edition) slot is free
            await self.store.delete(existing)

        registration = EditionRegistration(
            participant_id=participant.id,
            team_id=team.id,
            edition_id=edition.id
        )
        await self.store.save(registration)

        logger.info(f"[REGISTRATION] participant={participant.id} edition={edition.id} team={team.id}")
        return registration

    async def delete_edition_registration(self, participant_id: int, registration_id: int) -> ParticipantAggregate:
        async with transaction(self.db):
            participant = await self.store.get(Participant, participant_id)
            registration = await self.store.get(EditionRegistration, registration_id)
            if registration.participant_id != participant.id:
                raise not_found(EditionRegistration, registration_id)

            edition_status = await self.oracle.edition_status(registration.edition_id)
            edition_event_registrations = await self.store.find_by(
                EventRegistration,
                EventRegistration.participant_id == participant.id,
                EventRegistration.event_id.in_(
                    select(Event.id).where(Event.edition_id == registration.edition_id)
                )
            )
            rules.validate_edition_registration_removal(registration, edition_status, edition_event_registrations)

            await self.store.delete(registration)
            logger.info(f"[DEREGISTRATION] edition registration {registration_id} of participant {participant_id}")

        return await self.load_aggregate(participant)

    # ==========================================================================
    # Event registration
    # ==========================================================================

    async def register_in_event(self, participant_id: int, event_id: int, team_id: int) -> ParticipantAggregate:
        """
        Enroll a participant in an event under a team.

        The (team, event) count is computed fresh inside the transaction and
        the event row is locked so concurrent enrollments serialize.
        """
        async with transaction(self.db):
            participant = await self.store.get(Participant, participant_id)
            event = await self.store.get(Event, event_id, lock=True)
            team = await self.store.get(Team, team_id)

            rules.validate_participant_and_team_active(participant, team)

            edition_registrations = await self.store.find_by(
                EditionRegistration,
                EditionRegistration.participant_id == participant.id,
                EditionRegistration.edition_id == event.edition_id
            )
            rules.validate_team_for_event(participant.id, edition_registrations, team.id, event)

            enrolled = await self._enrolled_participant_ids(event.id, [participant.id])
            rules.validate_not_already_in_event(participant.id, event.id, enrolled)

            registered_count = await self.store.count(
                EventRegistration,
                EventRegistration.team_id == team.id,
                EventRegistration.event_id == event.id
            )
            rules.validate_event_capacity(team.id, event, registered_count)

            await self.store.save(EventRegistration(
                participant_id=participant.id,
                team_id=team.id,
                event_id=event.id
            ))
            logger.info(
                f"[REGISTRATION] participant={participant.id} event={event.id} team={team.id} "
                f"({registered_count + 1}/{event.max_participants_per_team or 'unlimited'})"
            )

        return await self.load_aggregate(participant)

    async def register_all_participants_in_event(self, requests: Sequence, event_id: int) -> BulkRegistrationResult:
        """
        Bulk-enroll (participant_id, team_id) pairs in one event.

        Query count does not depend on the number of requests: participants
        and teams are resolved in two batched lookups and the persisted
        (team, event) counts are grouped once. Each team then keeps a running
        counter, incremented only on acceptance, so items of the same batch
        never observe the same stale count.

        Unknown participant or team ids abort the whole batch before any
        write. Rule rejections of single items are reported and the rest of
        the batch proceeds.
        """
        result = BulkRegistrationResult()

        async with transaction(self.db):
            event = await self.store.get(Event, event_id, lock=True)

            participants = await self.store.get_many(Participant, (r.participant_id for r in requests))
            teams = await self.store.get_many(Team, (r.team_id for r in requests))
            groups = self._group_by_team(requests, participants, teams)

            counts = await self._registration_counts_by_team(event.id)
            edition_registrations = await self._edition_registrations_by_participant(
                participants.keys(), event.edition_id
            )
            enrolled = await self._enrolled_participant_ids(event.id, participants.keys())

            accepted: List[EventRegistration] = []
            for team_id, members in groups.items():
                team = teams[team_id]
                running_count = counts.get(team_id, 0)

                for participant in members:
                    try:
                        rules.validate_participant_and_team_active(participant, team)
                        rules.validate_team_for_event(
                            participant.id, edition_registrations.get(participant.id, []), team.id, event
                        )
                        rules.validate_not_already_in_event(participant.id, event.id, enrolled)
                        rules.validate_event_capacity(team.id, event, running_count)
                    except (RuleViolationError, DuplicateRegistrationError) as e:
                        logger.warning(
                            f"[BULK REGISTRATION] rejected participant={participant.id} "
                            f"team={team.id} event={event.id}: {e.code}"
                        )
                        result.failures.append(BulkRegistrationFailure(
                            participant_id=participant.id,
                            team_id=team.id,
                            code=e.code,
                            reason=e.message
                        ))
                        continue

                    running_count += 1
                    enrolled.add(participant.id)
                    accepted.append(EventRegistration(
                        participant_id=participant.id,
                        team_id=team.id,
                        event_id=event.id
                    ))
                    result.registered.append(participant)

            await self.store.save_all(accepted)

        logger.info(
            f"[BULK REGISTRATION] event={event_id} requested={len(requests)} "
            f"registered={len(result.registered)} rejected={len(result.failures)}"
        )
        return result

    async def delete_event_registration(self, participant_id: int, registration_id: int) -> ParticipantAggregate:
        async with transaction(self.db):
            participant = await self.store.get(Participant, participant_id)
            registration = await self.store.get(EventRegistration, registration_id)
            if registration.participant_id != participant.id:
                raise not_found(EventRegistration, registration_id)

            event_status = await self.oracle.event_status(registration.event_id)
            rules.validate_event_registration_removal(registration, event_status)

            await self.store.delete(registration)
            logger.info(f"[DEREGISTRATION] event registration {registration_id} of participant {participant_id}")

        return await self.load_aggregate(participant)

    async def delete_all_event_registrations(self, event_id: int, registration_ids: Iterable[int]) -> int:
        """
        Remove many registrations of one event at once.

        Only allowed while the event is SCHEDULED. Ids that are unknown or
        belong to another event abort the call.
        """
        registration_ids = set(registration_ids)

        async with transaction(self.db):
            event = await self.store.get(Event, event_id, lock=True)
            if event.status != Status.SCHEDULED:
                raise LifecycleViolationError(
                    f"No participant can be removed from event {event.id}: event is {event.status.value}",
                    details={"event_id": event.id, "event_status": event.status.value}
                )

            registrations = await self.store.get_many(EventRegistration, registration_ids)
            for registration_id in sorted(registration_ids):
                registration = registrations.get(registration_id)
                if registration is None or registration.event_id != event.id:
                    raise not_found(EventRegistration, registration_id)

            deleted = await self.store.delete_where(
                EventRegistration, EventRegistration.id.in_(registration_ids)
            )

        logger.info(f"[DEREGISTRATION] removed {deleted} registrations from event {event_id}")
        return deleted

    # ==========================================================================
    # Batched lookups
    # ==========================================================================

    @staticmethod
    def _group_by_team(requests: Sequence, participants: Dict[int, Participant], teams: Dict[int, Team]) -> Dict[int, List[Participant]]:
        """
        Group requested participants by team, preserving input order both
        across groups (first appearance of a team) and within a group.
        """
        groups: Dict[int, List[Participant]] = {}
        for request in requests:
            if request.team_id not in teams:
                raise not_found(Team, request.team_id)
            if request.participant_id not in participants:
                raise not_found(Participant, request.participant_id)
            groups.setdefault(request.team_id, []).append(participants[request.participant_id])
        return groups

    async def _registration_counts_by_team(self, event_id: int) -> Dict[int, int]:
        result = await self.db.execute(
            select(EventRegistration.team_id, func.count(EventRegistration.id))
            .where(EventRegistration.event_id == event_id)
            .group_by(EventRegistration.team_id)
        )
        return {team_id: count for team_id, count in result.all()}

    async def _edition_registrations_by_participant(self, participant_ids: Iterable[int], edition_id: int) -> Dict[int, List[EditionRegistration]]:
        registrations = await self.store.find_by(
            EditionRegistration,
            EditionRegistration.participant_id.in_(set(participant_ids)),
            EditionRegistration.edition_id == edition_id
        )
        by_participant: Dict[int, List[EditionRegistration]] = defaultdict(list)
        for registration in registrations:
            by_participant[registration.participant_id].append(registration)
        return by_participant

    async def _enrolled_participant_ids(self, event_id: int, participant_ids: Iterable[int]) -> Set[int]:
        result = await self.db.execute(
            select(EventRegistration.participant_id).where(
                EventRegistration.event_id == event_id,
                EventRegistration.participant_id.in_(set(participant_ids))
            )
        )
        return set(result.scalars().all())
