"""
Participant Service

Participant CRUD around the registration engine. A newly saved participant
is registered in the current edition in the same transaction, so a rejected
registration leaves no participant row behind.
"""
import logging
from typing import List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from scorekeeper.config import settings
from scorekeeper.database import transaction
from scorekeeper.errors import DocumentInUseError, ErrorCode, NotFoundError
from scorekeeper.orm import Participant, EditionRegistration, EventRegistration
from scorekeeper.services import eligibility_validator as rules
from scorekeeper.services.edition_service import EditionService
from scorekeeper.services.entity_store import EntityStore
from scorekeeper.services.participant_filters import (
    ParticipantFilter,
    build_participant_query,
    build_participant_count,
)
from scorekeeper.services.registration_service import RegistrationService, ParticipantAggregate
from scorekeeper.services.status_oracle import StatusOracle

logger = logging.getLogger(__name__)


class ParticipantService:

    def __init__(self, db: AsyncSession):
        self.db = db
        self.store = EntityStore(db)
        self.oracle = StatusOracle(db)
        self.registrations = RegistrationService(db)
        self.editions = EditionService(db)

    # ==========================================================================
    # Reads
    # ==========================================================================

    async def find_all_participants(
        self,
        participant_filter: Optional[ParticipantFilter] = None,
        page: int = 0,
        size: Optional[int] = None,
        order: Optional[str] = None
    ) -> Tuple[List[Participant], int]:
        """
        One page of filtered participants plus the total match count.
        Pages are zero-based; size is capped at MAX_PAGE_SIZE.
        """
        size = min(size or settings.DEFAULT_PAGE_SIZE, settings.MAX_PAGE_SIZE)
        page = max(page, 0)

        total = (await self.db.execute(build_participant_count(participant_filter))).scalar() or 0
        result = await self.db.execute(
            build_participant_query(participant_filter, order).offset(page * size).limit(size)
        )
        return list(result.scalars().all()), total

    async def find_participant_by_id(self, participant_id: int) -> Participant:
        return await self.store.get(Participant, participant_id)

    async def find_participant_by_document(self, document: str) -> Participant:
        document = rules.validate_document(document)
        participant = await self.store.find_one(Participant, Participant.document == document)
        if participant is None:
            raise NotFoundError("Participant", document, code=ErrorCode.PARTICIPANT_NOT_FOUND)
        return participant

    async def get_aggregate(self, participant_id: int) -> ParticipantAggregate:
        participant = await self.store.get(Participant, participant_id)
        return await self.registrations.load_aggregate(participant)

    # ==========================================================================
    # Writes
    # ==========================================================================

    async def save_participant(self, data) -> ParticipantAggregate:
        """
        Create a participant and register it for data.team_id in the current edition.

        Raises:
            InvalidDocumentError: document fails the checksum
            DocumentInUseError: another participant holds the document
            LifecycleViolationError: no open edition
            NotFoundError / InactiveEntityError: team unknown or inactive
        """
        document = rules.validate_document(data.document)

        async with transaction(self.db):
            if await self.store.find_one(Participant, Participant.document == document) is not None:
                logger.warning(f"[PARTICIPANT CREATE] document already in use: {document}")
                raise DocumentInUseError(document)

            edition = await self.editions.find_current_edition()

            participant = await self.store.save(Participant(
                name=data.name.strip().upper(),
                document=document,
                gender=data.gender,
                type=data.type,
                is_active=True
            ))
            await self.registrations.register_participant_in_edition(participant, edition.id, data.team_id)

        logger.info(f"[PARTICIPANT CREATE] id={participant.id} edition={edition.id} team={data.team_id}")
        return await self.registrations.load_aggregate(participant)

    async def replace_participant(self, participant_id: int, data) -> ParticipantAggregate:
        """Replace personal data; the active flag and registrations are kept."""
        document = rules.validate_document(data.document)

        async with transaction(self.db):
            participant = await self.store.get(Participant, participant_id)
            holder = await self.store.find_one(Participant, Participant.document == document)
            if holder is not None and holder.id != participant.id:
                raise DocumentInUseError(document)

            participant.name = data.name.strip().upper()
            participant.document = document
            participant.gender = data.gender
            participant.type = data.type
            await self.store.save(participant)

        return await self.registrations.load_aggregate(participant)

    async def delete_participant(self, participant_id: int) -> None:
        """
        Remove a participant with its registrations.

        Allowed for a participant with no edition registration, or with exactly
        one whose edition is still SCHEDULED.
        """
        async with transaction(self.db):
            participant = await self.store.get(Participant, participant_id, lock=True)
            edition_registrations = await self.store.find_by(
                EditionRegistration, EditionRegistration.participant_id == participant.id
            )
            statuses = await self.oracle.edition_statuses(r.edition_id for r in edition_registrations)
            rules.validate_participant_removal(participant, edition_registrations, statuses)

            await self.store.delete_where(EventRegistration, EventRegistration.participant_id == participant.id)
            await self.store.delete_where(EditionRegistration, EditionRegistration.participant_id == participant.id)
            await self.store.delete(participant)

        logger.info(f"[PARTICIPANT DELETE] {participant_id}")

    async def set_participant_active(self, participant_id: int, is_active: bool) -> Participant:
        """Setting the current value is a no-op."""
        async with transaction(self.db):
            participant = await self.store.get(Participant, participant_id, lock=True)
            if participant.is_active == is_active:
                return participant

            if not is_active:
                edition_registrations = await self.store.find_by(
                    EditionRegistration, EditionRegistration.participant_id == participant.id
                )
                statuses = await self.oracle.edition_statuses(r.edition_id for r in edition_registrations)
                rules.validate_participant_deactivation(participant, edition_registrations, statuses)

            participant.is_active = is_active
            await self.store.save(participant)

        logger.info(f"[PARTICIPANT STATUS] {participant_id} active={is_active}")
        return participant
