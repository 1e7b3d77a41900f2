"""
scorekeeper/routes/events.py
Event API Routes

Event creation and lifecycle plus bulk enrollment and bulk removal of
participants.
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from scorekeeper.database import get_db
from scorekeeper.schemas.edition import EventCreate, EventResponse, StatusUpdate
from scorekeeper.schemas.participant import ParticipantResponse
from scorekeeper.schemas.registration import (
    BulkRegistrationRequest,
    BulkRegistrationResponse,
    BulkRegistrationFailureResponse,
    BulkRemovalRequest,
    BulkRemovalResponse,
)
from scorekeeper.services.event_service import EventService
from scorekeeper.services.registration_service import RegistrationService

router = APIRouter(prefix="/events", tags=["Events"])


@router.post("", response_model=EventResponse, status_code=status.HTTP_201_CREATED)
async def create_event(data: EventCreate, db: AsyncSession = Depends(get_db)):
    return await EventService(db).create_event(data.edition_id, data.name, data.max_participants_per_team)


@router.get("/{event_id}", response_model=EventResponse)
async def get_event(event_id: int, db: AsyncSession = Depends(get_db)):
    return await EventService(db).find_event_by_id(event_id)


@router.patch("/{event_id}/status", response_model=EventResponse)
async def update_event_status(event_id: int, data: StatusUpdate, db: AsyncSession = Depends(get_db)):
    return await EventService(db).update_event_status(event_id, data.status)


@router.post("/{event_id}/registrations", response_model=BulkRegistrationResponse)
async def register_participants(event_id: int, data: BulkRegistrationRequest, db: AsyncSession = Depends(get_db)):
    """
    Enroll many (participant, team) pairs. Unknown ids reject the whole
    request; rule rejections of single pairs are listed in failures.
    """
    result = await RegistrationService(db).register_all_participants_in_event(data.registrations, event_id)
    return BulkRegistrationResponse(
        registered=[ParticipantResponse.model_validate(p) for p in result.registered],
        failures=[
            BulkRegistrationFailureResponse(
                participant_id=f.participant_id, team_id=f.team_id, code=f.code, reason=f.reason
            )
            for f in result.failures
        ]
    )


@router.post("/{event_id}/registrations/remove", response_model=BulkRemovalResponse)
async def remove_registrations(event_id: int, data: BulkRemovalRequest, db: AsyncSession = Depends(get_db)):
    removed = await RegistrationService(db).delete_all_event_registrations(event_id, data.registration_ids)
    return BulkRemovalResponse(event_id=event_id, removed=removed)
