"""
Status Oracle

Reports the current lifecycle status of editions and events. Status is read
from the stored lifecycle column only, never inferred from dates.
"""
from typing import Dict, Iterable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from scorekeeper.orm import Edition, Event, Status
from scorekeeper.services.entity_store import not_found


class StatusOracle:
    
    def __init__(self, db: AsyncSession):
        self.db = db
    
    async def edition_status(self, edition_id: int) -> Status:
        statuses = await self.edition_statuses([edition_id])
        if edition_id not in statuses:
            raise not_found(Edition, edition_id)
        return statuses[edition_id]
    
    async def edition_statuses(self, edition_ids: Iterable[int]) -> Dict[int, Status]:
        """Statuses for many editions in one query."""
        return await self._statuses(Edition, edition_ids)
    
    async def event_status(self, event_id: int) -> Status:
        statuses = await self._statuses(Event, [event_id])
        if event_id not in statuses:
            raise not_found(Event, event_id)
        return statuses[event_id]
    
    async def _statuses(self, model, ids: Iterable[int]) -> Dict[int, Status]:
        ids = set(ids)
        if not ids:
            return {}
        result = await self.db.execute(
            select(model.id, model.status).where(model.id.in_(ids))
        )
        return {row.id: row.status for row in result.all()}
