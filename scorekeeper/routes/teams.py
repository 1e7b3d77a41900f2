"""
scorekeeper/routes/teams.py
Team API Routes
"""
from typing import List

from fastapi import APIRouter, Depends, status
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from scorekeeper.database import get_db
from scorekeeper.schemas.team import TeamRequest, TeamResponse, TeamStatusUpdate
from scorekeeper.services.team_service import TeamService

router = APIRouter(prefix="/teams", tags=["Teams"])


@router.get("", response_model=List[TeamResponse])
async def list_teams(active_only: bool = False, db: AsyncSession = Depends(get_db)):
    service = TeamService(db)
    if active_only:
        return await service.find_all_active_teams()
    return await service.find_all_teams()


@router.get("/{team_id}", response_model=TeamResponse)
async def get_team(team_id: int, db: AsyncSession = Depends(get_db)):
    return await TeamService(db).find_team_by_id(team_id)


@router.post("", response_model=TeamResponse, status_code=status.HTTP_201_CREATED)
async def create_team(data: TeamRequest, db: AsyncSession = Depends(get_db)):
    return await TeamService(db).save_team(data.name, data.logo)


@router.put("/{team_id}", response_model=TeamResponse)
async def replace_team(team_id: int, data: TeamRequest, db: AsyncSession = Depends(get_db)):
    return await TeamService(db).replace_team(team_id, data.name, data.logo)


@router.delete("/{team_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_team(team_id: int, db: AsyncSession = Depends(get_db)):
    """Only teams without any score record can be deleted."""
    await TeamService(db).delete_team(team_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.patch("/{team_id}/status", response_model=TeamResponse)
async def set_team_status(team_id: int, data: TeamStatusUpdate, db: AsyncSession = Depends(get_db)):
    return await TeamService(db).set_team_active(team_id, data.is_active)
