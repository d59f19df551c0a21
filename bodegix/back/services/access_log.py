# bodegix/back/services/access_log.py
from typing import List, Optional, Protocol

from sqlalchemy import desc, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.access_event import AccessEvent, AccessEventCreate, AccessEventORM


class AccessEventLog(Protocol):
    async def append(self, event: AccessEventCreate) -> AccessEvent: ...

    async def recent(
        self,
        tenant_id: int,
        locker_id: Optional[int] = None,
        limit: int = 50,
    ) -> List[AccessEvent]: ...


class InMemoryAccessEventLog:
    def __init__(self) -> None:
        self.events: List[AccessEvent] = []

    async def append(self, event: AccessEventCreate) -> AccessEvent:
        stored = AccessEvent(id=len(self.events) + 1, **event.model_dump())
        self.events.append(stored)
        return stored

    async def recent(self, tenant_id: int, locker_id: Optional[int] = None, limit: int = 50) -> List[AccessEvent]:
        rows = [
            e for e in self.events
            if e.tenant_id == tenant_id and (locker_id is None or e.locker_id == locker_id)
        ]
        rows.sort(key=lambda e: (e.occurred_at, e.id), reverse=True)
        return rows[:limit]


class SqlAccessEventLog:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def append(self, event: AccessEventCreate) -> AccessEvent:
        row = AccessEventORM(
            tenant_id=event.tenant_id,
            locker_id=event.locker_id,
            user_id=event.user_id,
            reader_id=event.reader_id,
            code=event.code,
            action=event.action.value,
            outcome=event.outcome.value,
            status=event.status,
            unlock_ok=event.unlock_ok,
            occurred_at=event.occurred_at,
        )
        self.db.add(row)
        await self.db.commit()
        await self.db.refresh(row)
        return AccessEvent.model_validate(row)

    async def recent(self, tenant_id: int, locker_id: Optional[int] = None, limit: int = 50) -> List[AccessEvent]:
        stmt = select(AccessEventORM).where(AccessEventORM.tenant_id == tenant_id)
        if locker_id is not None:
            stmt = stmt.where(AccessEventORM.locker_id == locker_id)
        stmt = stmt.order_by(desc(AccessEventORM.occurred_at), desc(AccessEventORM.id)).limit(limit)

        result = await self.db.execute(stmt)
        return [AccessEvent.model_validate(r) for r in result.scalars().all()]
