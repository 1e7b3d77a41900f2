"""
scorekeeper/routes/editions.py
Edition API Routes
"""
from typing import List

from fastapi import APIRouter, Depends, status
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from scorekeeper.database import get_db
from scorekeeper.schemas.edition import (
    EditionOpenRequest,
    EditionResponse,
    EventResponse,
    StatusUpdate,
    TeamScoreResponse,
)
from scorekeeper.services.edition_service import EditionService
from scorekeeper.services.event_service import EventService

router = APIRouter(prefix="/editions", tags=["Editions"])


@router.get("", response_model=List[EditionResponse])
async def list_editions(db: AsyncSession = Depends(get_db)):
    return await EditionService(db).find_all_editions()


@router.get("/current", response_model=EditionResponse)
async def get_current_edition(db: AsyncSession = Depends(get_db)):
    return await EditionService(db).find_current_edition()


@router.get("/year/{year}", response_model=EditionResponse)
async def get_edition_by_year(year: int, db: AsyncSession = Depends(get_db)):
    return await EditionService(db).find_edition_by_year(year)


@router.post("", response_model=EditionResponse, status_code=status.HTTP_201_CREATED)
async def open_edition(data: EditionOpenRequest, db: AsyncSession = Depends(get_db)):
    return await EditionService(db).open_new_edition(data.year)


@router.get("/{edition_id}", response_model=EditionResponse)
async def get_edition(edition_id: int, db: AsyncSession = Depends(get_db)):
    return await EditionService(db).find_edition_by_id(edition_id)


@router.patch("/{edition_id}/status", response_model=EditionResponse)
async def update_edition_status(edition_id: int, data: StatusUpdate, db: AsyncSession = Depends(get_db)):
    return await EditionService(db).update_edition_status(edition_id, data.status)


@router.delete("/{edition_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_edition(edition_id: int, db: AsyncSession = Depends(get_db)):
    await EditionService(db).delete_edition(edition_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{edition_id}/events", response_model=List[EventResponse])
async def list_edition_events(edition_id: int, db: AsyncSession = Depends(get_db)):
    return await EventService(db).find_events_by_edition(edition_id)


@router.get("/{edition_id}/standings", response_model=List[TeamScoreResponse])
async def get_edition_standings(edition_id: int, db: AsyncSession = Depends(get_db)):
    return await EditionService(db).find_edition_standings(edition_id)
