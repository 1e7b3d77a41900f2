"""
Integration tests for the registration engine.

Tests for:
- Edition overwrite semantics
- Per-team event capacity (single and bulk)
- Bulk partial failures vs. whole-batch abort on unknown ids
- Lifecycle gating of removals
- Store conflicts rolling back the whole call
"""
from types import SimpleNamespace

import pytest
import pytest_asyncio
from sqlalchemy.exc import IntegrityError

from scorekeeper.errors import (
    CapacityExceededError,
    ConflictError,
    DuplicateRegistrationError,
    ErrorCode,
    InactiveEntityError,
    LifecycleViolationError,
    NotFoundError,
    TeamMismatchError,
)
from scorekeeper.orm import EditionRegistration, EventRegistration, Status
from scorekeeper.services.edition_service import EditionService
from scorekeeper.services.entity_store import EntityStore
from scorekeeper.services.event_service import EventService
from scorekeeper.services.registration_service import RegistrationService
from scorekeeper.tests.factories import (
    count_rows,
    enroll,
    make_edition,
    make_event,
    make_participant,
    make_team,
    register,
)

pytestmark = pytest.mark.asyncio


def pair(participant_id, team_id):
    return SimpleNamespace(participant_id=participant_id, team_id=team_id)


@pytest_asyncio.fixture
async def world(db):
    """
    One SCHEDULED edition with Event X (capacity 2) and an uncapped event.
    P1-P3 play for Team A, P4-P5 for Team B; r[i] is the edition registration of p[i].
    """
    edition = await make_edition(db, 2024)
    team_a = await make_team(db, "TEAM A")
    team_b = await make_team(db, "TEAM B")
    event_x = await make_event(db, edition, "EVENT X", capacity=2)
    open_event = await make_event(db, edition, "OPEN EVENT")

    participants, registrations = [], []
    for seed, team in [(1, team_a), (2, team_a), (3, team_a), (4, team_b), (5, team_b)]:
        participant = await make_participant(db, seed)
        registration = await register(db, participant, team, edition)
        participants.append(participant.id)
        registrations.append(registration.id)

    return SimpleNamespace(
        edition=edition.id,
        team_a=team_a.id,
        team_b=team_b.id,
        event_x=event_x.id,
        open_event=open_event.id,
        p=[None] + participants,
        r=[None] + registrations,
    )


class TestRegisterInEdition:
    """Edition registration with overwrite-on-conflict."""

    async def test_reregistering_replaces_team(self, db, world):
        service = RegistrationService(db)

        aggregate = await service.register_in_edition(world.p[1], world.edition, world.team_b)

        assert [r.team_id for r in aggregate.edition_registrations] == [world.team_b]
        assert await count_rows(
            db, EditionRegistration,
            EditionRegistration.participant_id == world.p[1],
            EditionRegistration.edition_id == world.edition
        ) == 1

    async def test_registration_in_second_edition_is_added(self, db, world):
        other = await make_edition(db, 2025)
        other_id = other.id
        service = RegistrationService(db)

        aggregate = await service.register_in_edition(world.p[1], other_id, world.team_a)

        assert sorted(r.edition_id for r in aggregate.edition_registrations) == sorted([world.edition, other_id])

    async def test_inactive_team_keeps_prior_registration(self, db, world):
        team = await make_team(db, "RETIRED", is_active=False)
        team_id = team.id
        service = RegistrationService(db)

        with pytest.raises(InactiveEntityError):
            await service.register_in_edition(world.p[1], world.edition, team_id)

        registrations = await count_rows(
            db, EditionRegistration,
            EditionRegistration.participant_id == world.p[1],
            EditionRegistration.team_id == world.team_a
        )
        assert registrations == 1

    async def test_unknown_edition(self, db, world):
        with pytest.raises(NotFoundError) as exc_info:
            await RegistrationService(db).register_in_edition(world.p[1], 999, world.team_a)
        assert exc_info.value.code == ErrorCode.EDITION_NOT_FOUND

    async def test_team_change_drops_enrollments_under_old_team(self, db, world):
        participant, team_a = SimpleNamespace(id=world.p[1]), SimpleNamespace(id=world.team_a)
        await enroll(db, participant, team_a, SimpleNamespace(id=world.event_x))
        await enroll(db, participant, team_a, SimpleNamespace(id=world.open_event))

        aggregate = await RegistrationService(db).register_in_edition(world.p[1], world.edition, world.team_b)

        assert aggregate.event_registrations == []
        assert await count_rows(db, EventRegistration, EventRegistration.participant_id == world.p[1]) == 0

    async def test_same_team_keeps_enrollments(self, db, world):
        await enroll(db, SimpleNamespace(id=world.p[1]), SimpleNamespace(id=world.team_a), SimpleNamespace(id=world.event_x))

        aggregate = await RegistrationService(db).register_in_edition(world.p[1], world.edition, world.team_a)

        assert [r.event_id for r in aggregate.event_registrations] == [world.event_x]

    async def test_store_conflict_keeps_prior_registration(self, db, world, monkeypatch):
        original_save = EntityStore.save

        async def save_after_concurrent_insert(store, entity):
            if isinstance(entity, EditionRegistration):
                # Another writer takes the same (participant, edition) slot first
                store.db.add(EditionRegistration(
                    participant_id=entity.participant_id,
                    team_id=world.team_a,
                    edition_id=entity.edition_id
                ))
            return await original_save(store, entity)

        monkeypatch.setattr(EntityStore, "save", save_after_concurrent_insert)

        with pytest.raises(ConflictError) as exc_info:
            await RegistrationService(db).register_in_edition(world.p[1], world.edition, world.team_b)

        assert exc_info.value.code == ErrorCode.CONFLICT
        assert await count_rows(
            db, EditionRegistration,
            EditionRegistration.participant_id == world.p[1],
            EditionRegistration.team_id == world.team_a
        ) == 1
        assert await count_rows(db, EditionRegistration, EditionRegistration.participant_id == world.p[1]) == 1

    async def test_conflict_at_commit_rolls_back_overwrite(self, db, world, monkeypatch):
        async def conflicting_commit():
            raise IntegrityError(
                "INSERT INTO edition_registrations", {}, Exception("UNIQUE constraint failed")
            )

        monkeypatch.setattr(db, "commit", conflicting_commit)

        with pytest.raises(ConflictError) as exc_info:
            await RegistrationService(db).register_in_edition(world.p[1], world.edition, world.team_b)

        assert exc_info.value.code == ErrorCode.CONFLICT
        assert await count_rows(
            db, EditionRegistration,
            EditionRegistration.participant_id == world.p[1],
            EditionRegistration.team_id == world.team_a
        ) == 1
        assert await count_rows(
            db, EditionRegistration,
            EditionRegistration.participant_id == world.p[1],
            EditionRegistration.team_id == world.team_b
        ) == 0


class TestRegisterInEvent:
    """Single enrollment: rules 2, 4, 5."""

    async def test_capacity_is_per_team(self, db, world):
        service = RegistrationService(db)
        await service.register_in_event(world.p[1], world.event_x, world.team_a)
        await service.register_in_event(world.p[2], world.event_x, world.team_a)

        with pytest.raises(CapacityExceededError):
            await service.register_in_event(world.p[3], world.event_x, world.team_a)

        # Moving P3 to Team B makes the Team B slot available to them
        await service.register_in_edition(world.p[3], world.edition, world.team_b)
        aggregate = await service.register_in_event(world.p[3], world.event_x, world.team_b)

        assert [r.event_id for r in aggregate.event_registrations] == [world.event_x]
        assert await count_rows(
            db, EventRegistration,
            EventRegistration.event_id == world.event_x,
            EventRegistration.team_id == world.team_a
        ) == 2

    async def test_team_must_match_edition_registration(self, db, world):
        with pytest.raises(TeamMismatchError):
            await RegistrationService(db).register_in_event(world.p[1], world.event_x, world.team_b)

    async def test_inactive_participant_rejected(self, db, world):
        participant = await make_participant(db, 9, is_active=False)
        participant_id = participant.id

        with pytest.raises(InactiveEntityError) as exc_info:
            await RegistrationService(db).register_in_event(participant_id, world.event_x, world.team_a)
        assert exc_info.value.entity == "participant"

    async def test_duplicate_enrollment_is_conflict(self, db, world):
        service = RegistrationService(db)
        await service.register_in_event(world.p[1], world.open_event, world.team_a)

        with pytest.raises(DuplicateRegistrationError):
            await service.register_in_event(world.p[1], world.open_event, world.team_a)

    async def test_uncapped_event(self, db, world):
        service = RegistrationService(db)
        for index in (1, 2, 3):
            await service.register_in_event(world.p[index], world.open_event, world.team_a)

        assert await count_rows(db, EventRegistration, EventRegistration.event_id == world.open_event) == 3


class TestBulkRegistration:
    """register_all_participants_in_event"""

    async def test_over_capacity_item_is_reported_rest_committed(self, db, world):
        requests = [
            pair(world.p[1], world.team_a),
            pair(world.p[2], world.team_a),
            pair(world.p[3], world.team_a),
            pair(world.p[4], world.team_b),
        ]

        result = await RegistrationService(db).register_all_participants_in_event(requests, world.event_x)

        assert [p.id for p in result.registered] == [world.p[1], world.p[2], world.p[4]]
        assert len(result.failures) == 1
        assert result.failures[0].participant_id == world.p[3]
        assert result.failures[0].code == ErrorCode.CAPACITY_EXCEEDED
        assert await count_rows(
            db, EventRegistration,
            EventRegistration.event_id == world.event_x,
            EventRegistration.team_id == world.team_a
        ) == 2

    async def test_running_counter_seeded_from_existing_registrations(self, db, world):
        await RegistrationService(db).register_in_event(world.p[1], world.event_x, world.team_a)

        result = await RegistrationService(db).register_all_participants_in_event(
            [pair(world.p[2], world.team_a), pair(world.p[3], world.team_a)], world.event_x
        )

        assert [p.id for p in result.registered] == [world.p[2]]
        assert [f.participant_id for f in result.failures] == [world.p[3]]

    async def test_unknown_participant_aborts_whole_batch(self, db, world):
        requests = [pair(world.p[1], world.team_a), pair(9999, world.team_a)]

        with pytest.raises(NotFoundError) as exc_info:
            await RegistrationService(db).register_all_participants_in_event(requests, world.event_x)

        assert exc_info.value.code == ErrorCode.PARTICIPANT_NOT_FOUND
        assert await count_rows(db, EventRegistration) == 0

    async def test_unknown_team_aborts_whole_batch(self, db, world):
        requests = [pair(world.p[1], world.team_a), pair(world.p[4], 9999)]

        with pytest.raises(NotFoundError) as exc_info:
            await RegistrationService(db).register_all_participants_in_event(requests, world.event_x)

        assert exc_info.value.code == ErrorCode.TEAM_NOT_FOUND
        assert await count_rows(db, EventRegistration) == 0

    async def test_duplicate_pair_in_batch_is_reported(self, db, world):
        requests = [pair(world.p[1], world.team_a), pair(world.p[1], world.team_a)]

        result = await RegistrationService(db).register_all_participants_in_event(requests, world.open_event)

        assert [p.id for p in result.registered] == [world.p[1]]
        assert [f.code for f in result.failures] == [ErrorCode.DUPLICATE_REGISTRATION]

    async def test_team_mismatch_is_per_item(self, db, world):
        requests = [pair(world.p[1], world.team_b), pair(world.p[4], world.team_b)]

        result = await RegistrationService(db).register_all_participants_in_event(requests, world.open_event)

        assert [p.id for p in result.registered] == [world.p[4]]
        assert [f.code for f in result.failures] == [ErrorCode.TEAM_MISMATCH]

    async def test_result_follows_team_group_order(self, db, world):
        requests = [
            pair(world.p[4], world.team_b),
            pair(world.p[1], world.team_a),
            pair(world.p[5], world.team_b),
        ]

        result = await RegistrationService(db).register_all_participants_in_event(requests, world.open_event)

        assert [p.id for p in result.registered] == [world.p[4], world.p[5], world.p[1]]



async def _enrollment_ids(db, event_id):
    registrations = await EntityStore(db).find_by(EventRegistration, EventRegistration.event_id == event_id)
    return [r.id for r in registrations]


class TestRemovals:
    """Lifecycle gating of registration removal."""

    async def test_remove_edition_registration_while_scheduled(self, db, world):
        aggregate = await RegistrationService(db).delete_edition_registration(world.p[1], world.r[1])

        assert aggregate.edition_registrations == []
        assert await count_rows(db, EditionRegistration, EditionRegistration.id == world.r[1]) == 0

    async def test_dependent_enrollment_blocks_removal(self, db, world):
        service = RegistrationService(db)
        await service.register_in_event(world.p[1], world.open_event, world.team_a)

        with pytest.raises(LifecycleViolationError) as exc_info:
            await service.delete_edition_registration(world.p[1], world.r[1])

        assert len(exc_info.value.details["dependent_registration_ids"]) == 1
        assert await count_rows(db, EditionRegistration, EditionRegistration.id == world.r[1]) == 1

    async def test_registration_of_other_participant_is_not_found(self, db, world):
        with pytest.raises(NotFoundError):
            await RegistrationService(db).delete_edition_registration(world.p[2], world.r[1])

    async def test_edition_in_progress_blocks_removal(self, db, world):
        await EditionService(db).update_edition_status(world.edition, Status.IN_PROGRESS)

        with pytest.raises(LifecycleViolationError):
            await RegistrationService(db).delete_edition_registration(world.p[1], world.r[1])

        assert await count_rows(db, EditionRegistration, EditionRegistration.id == world.r[1]) == 1

    async def test_remove_event_registration(self, db, world):
        aggregate = await RegistrationService(db).register_in_event(world.p[1], world.event_x, world.team_a)
        registration_id = aggregate.event_registrations[0].id

        aggregate = await RegistrationService(db).delete_event_registration(world.p[1], registration_id)

        assert aggregate.event_registrations == []

    async def test_started_event_blocks_event_registration_removal(self, db, world):
        aggregate = await RegistrationService(db).register_in_event(world.p[1], world.event_x, world.team_a)
        registration_id = aggregate.event_registrations[0].id
        await EventService(db).update_event_status(world.event_x, Status.IN_PROGRESS)

        with pytest.raises(LifecycleViolationError):
            await RegistrationService(db).delete_event_registration(world.p[1], registration_id)

        assert await count_rows(db, EventRegistration, EventRegistration.id == registration_id) == 1


class TestBulkRemoval:
    """delete_all_event_registrations"""

    async def test_removes_all_while_scheduled(self, db, world):
        await RegistrationService(db).register_all_participants_in_event(
            [pair(world.p[1], world.team_a), pair(world.p[4], world.team_b)], world.open_event
        )
        ids = await _enrollment_ids(db, world.open_event)

        removed = await RegistrationService(db).delete_all_event_registrations(world.open_event, ids)

        assert removed == 2
        assert await count_rows(db, EventRegistration, EventRegistration.event_id == world.open_event) == 0

    async def test_refused_once_event_started(self, db, world):
        await RegistrationService(db).register_in_event(world.p[1], world.event_x, world.team_a)
        ids = await _enrollment_ids(db, world.event_x)
        await EventService(db).update_event_status(world.event_x, Status.IN_PROGRESS)

        with pytest.raises(LifecycleViolationError):
            await RegistrationService(db).delete_all_event_registrations(world.event_x, ids)

        assert await count_rows(db, EventRegistration, EventRegistration.event_id == world.event_x) == 1

    async def test_registration_of_other_event_is_not_found(self, db, world):
        await RegistrationService(db).register_in_event(world.p[1], world.event_x, world.team_a)
        foreign_ids = await _enrollment_ids(db, world.event_x)

        with pytest.raises(NotFoundError):
            await RegistrationService(db).delete_all_event_registrations(world.open_event, foreign_ids)

        assert await count_rows(db, EventRegistration) == 1
