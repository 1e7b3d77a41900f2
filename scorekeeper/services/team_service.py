"""
Team Service

Team CRUD with name / logo uniqueness and the removal rules for teams that
already hold score records or registrations.
"""
import logging
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from scorekeeper.database import transaction
from scorekeeper.errors import ConflictError, ErrorCode
from scorekeeper.orm import Team, TeamScore, EventScore, EditionRegistration, EventRegistration
from scorekeeper.services import eligibility_validator as rules
from scorekeeper.services.entity_store import EntityStore
from scorekeeper.services.status_oracle import StatusOracle

logger = logging.getLogger(__name__)


class TeamService:

    def __init__(self, db: AsyncSession):
        self.db = db
        self.store = EntityStore(db)
        self.oracle = StatusOracle(db)

    async def find_all_teams(self) -> List[Team]:
        return await self.store.find_by(Team, order_by=Team.name)

    async def find_all_active_teams(self) -> List[Team]:
        return await self.store.find_by(Team, Team.is_active.is_(True), order_by=Team.name)

    async def find_team_by_id(self, team_id: int) -> Team:
        return await self.store.get(Team, team_id)

    async def save_team(self, name: str, logo: str) -> Team:
        async with transaction(self.db):
            await self._check_unique(name, logo)
            team = await self.store.save(Team(name=name.strip(), logo=logo.strip(), is_active=True))

        logger.info(f"[TEAM CREATE] '{team.name}' id={team.id}")
        return team

    async def replace_team(self, team_id: int, name: str, logo: str) -> Team:
        """Replace name and logo; the active flag is kept."""
        async with transaction(self.db):
            team = await self.store.get(Team, team_id)
            await self._check_unique(
                name if name.strip() != team.name else None,
                logo if logo.strip() != team.logo else None,
            )
            team.name = name.strip()
            team.logo = logo.strip()
            await self.store.save(team)

        return team

    async def delete_team(self, team_id: int) -> None:
        async with transaction(self.db):
            team = await self.store.get(Team, team_id)
            score_count = (
                await self.store.count(TeamScore, TeamScore.team_id == team.id)
                + await self.store.count(EventScore, EventScore.team_id == team.id)
            )
            registration_count = (
                await self.store.count(EditionRegistration, EditionRegistration.team_id == team.id)
                + await self.store.count(EventRegistration, EventRegistration.team_id == team.id)
            )
            rules.validate_team_removal(team, score_count, registration_count)
            await self.store.delete(team)

        logger.info(f"[TEAM DELETE] {team_id}")

    async def set_team_active(self, team_id: int, is_active: bool) -> Team:
        """
        Activate or deactivate a team. Setting the current value is a no-op.
        Deactivation is refused while the team holds a score in an edition
        that is in progress.
        """
        async with transaction(self.db):
            team = await self.store.get(Team, team_id, lock=True)
            if team.is_active == is_active:
                return team

            if not is_active:
                scores = await self.store.find_by(TeamScore, TeamScore.team_id == team.id)
                statuses = await self.oracle.edition_statuses(s.edition_id for s in scores)
                rules.validate_team_deactivation(team, scores, statuses)

            team.is_active = is_active
            await self.store.save(team)

        logger.info(f"[TEAM STATUS] {team_id} active={is_active}")
        return team

    async def _check_unique(self, name: Optional[str], logo: Optional[str]) -> None:
        if name is not None and await self.store.find_one(Team, Team.name == name.strip()):
            raise ConflictError(
                f"Team name '{name.strip()}' is already in use",
                code=ErrorCode.NAME_IN_USE,
                details={"name": name.strip()}
            )
        if logo is not None and await self.store.find_one(Team, Team.logo == logo.strip()):
            raise ConflictError(
                f"Team logo '{logo.strip()}' is already in use",
                code=ErrorCode.LOGO_IN_USE,
                details={"logo": logo.strip()}
            )
