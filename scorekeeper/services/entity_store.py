"""
Entity Store

Thin persistence boundary over an AsyncSession: read-by-id, batched
read-by-ids, read-by-predicate, write and delete. Uniqueness is enforced by
the database constraints declared on the models; a violation detected while
flushing surfaces as ConflictError.
"""
import logging
from typing import Any, Dict, Iterable, List, Optional, Type

from sqlalchemy import select, func, delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from scorekeeper.errors import NotFoundError, ConflictError, ErrorCode
from scorekeeper.orm import (
    Participant,
    Team,
    Edition,
    Event,
    EditionRegistration,
    EventRegistration,
)

logger = logging.getLogger(__name__)

# Human-readable resource names and codes for NotFoundError
RESOURCES = {
    Participant: ("Participant", ErrorCode.PARTICIPANT_NOT_FOUND),
    Team: ("Team", ErrorCode.TEAM_NOT_FOUND),
    Edition: ("Edition", ErrorCode.EDITION_NOT_FOUND),
    Event: ("Event", ErrorCode.EVENT_NOT_FOUND),
    EditionRegistration: ("Edition registration", ErrorCode.REGISTRATION_NOT_FOUND),
    EventRegistration: ("Event registration", ErrorCode.REGISTRATION_NOT_FOUND),
}


def not_found(model: Type, identifier: Any) -> NotFoundError:
    resource, code = RESOURCES.get(model, (model.__name__, ErrorCode.NOT_FOUND))
    return NotFoundError(resource, identifier, code=code)


class EntityStore:
    """Repository operations shared by every service."""
    
    def __init__(self, db: AsyncSession):
        self.db = db
    
    async def get(self, model: Type, entity_id: Any, lock: bool = False):
        """
        Get entity by id or raise NotFoundError.
        
        Args:
            model: ORM class
            entity_id: Primary key
            lock: Whether to use FOR UPDATE locking
        """
        query = select(model).where(model.id == entity_id)
        if lock:
            query = query.with_for_update()
        
        result = await self.db.execute(query)
        entity = result.scalar_one_or_none()
        if entity is None:
            raise not_found(model, entity_id)
        return entity
    
    async def get_many(self, model: Type, ids: Iterable[Any]) -> Dict[Any, Any]:
        """Resolve many ids in one query. Missing ids are simply absent from the map."""
        ids = set(ids)
        if not ids:
            return {}
        result = await self.db.execute(select(model).where(model.id.in_(ids)))
        return {entity.id: entity for entity in result.scalars().all()}
    
    async def find_by(self, model: Type, *predicates, order_by=None) -> List[Any]:
        query = select(model).where(*predicates)
        query = query.order_by(order_by if order_by is not None else model.id)
        result = await self.db.execute(query)
        return list(result.scalars().all())
    
    async def find_one(self, model: Type, *predicates) -> Optional[Any]:
        result = await self.db.execute(select(model).where(*predicates).limit(1))
        return result.scalar_one_or_none()
    
    async def count(self, model: Type, *predicates) -> int:
        result = await self.db.execute(
            select(func.count(model.id)).where(*predicates)
        )
        return result.scalar() or 0
    
    async def save(self, entity):
        self.db.add(entity)
        await self._flush()
        return entity
    
    async def save_all(self, entities: List[Any]) -> List[Any]:
        if not entities:
            return entities
        self.db.add_all(entities)
        await self._flush()
        return entities
    
    async def delete(self, entity) -> None:
        await self.db.delete(entity)
        await self._flush()
    
    async def delete_where(self, model: Type, *predicates) -> int:
        result = await self.db.execute(
            delete(model).where(*predicates).execution_options(synchronize_session="fetch")
        )
        return result.rowcount or 0
    
    async def _flush(self) -> None:
        try:
            await self.db.flush()
        except IntegrityError as e:
            logger.warning(f"[CONFLICT] {e.orig}")
            raise ConflictError(
                "A uniqueness constraint was violated by a concurrent change. Please try again.",
                code=ErrorCode.CONFLICT
            ) from e
