# bodegix/back/services/locker_service.py
from typing import List, Optional, Protocol

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..models.tenant import Locker
from ..schemas.locker import LockerRef


class LockerDirectory(Protocol):
    """Read-only view of locker/tenant master data used at issue time."""

    async def get_locker(self, locker_id: int) -> Optional[LockerRef]: ...


async def get_by_id(db: AsyncSession, locker_id: int) -> Optional[Locker]:
    result = await db.execute(
        select(Locker)
        .options(selectinload(Locker.tenant))
        .where(Locker.id == locker_id)
    )
    return result.scalar_one_or_none()


async def list_assigned(db: AsyncSession, user_id: int) -> List[Locker]:
    result = await db.execute(
        select(Locker)
        .where(Locker.user_id == user_id, Locker.status == "activo")
        .order_by(Locker.identifier)
    )
    return list(result.scalars().all())


def to_ref(locker: Locker) -> LockerRef:
    return LockerRef(
        id=locker.id,
        tenant_id=locker.tenant_id,
        user_id=locker.user_id,
        is_active=locker.is_active,
        tenant_is_active=bool(locker.tenant and locker.tenant.is_active),
    )


class SqlLockerDirectory:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def get_locker(self, locker_id: int) -> Optional[LockerRef]:
        locker = await get_by_id(self.db, locker_id)
        if not locker:
            return None
        return to_ref(locker)
