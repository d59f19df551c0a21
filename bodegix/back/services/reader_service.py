# bodegix/back/services/reader_service.py
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.security import ReaderContext, hash_secret, verify_secret
from ..models.tenant import Reader


async def get_by_id(db: AsyncSession, reader_id: int) -> Optional[Reader]:
    result = await db.execute(select(Reader).where(Reader.id == reader_id))
    return result.scalar_one_or_none()


async def register_reader(
    db: AsyncSession,
    name: str,
    tenant_id: int,
    api_key: str,
    locker_id: Optional[int] = None,
) -> Reader:
    reader = Reader(
        name=name,
        tenant_id=tenant_id,
        locker_id=locker_id,
        api_key_hash=hash_secret(api_key),
        is_active=True,
    )
    db.add(reader)
    await db.commit()
    await db.refresh(reader)
    return reader


async def authenticate(
    db: AsyncSession,
    reader_id: int,
    api_key: str,
) -> Optional[ReaderContext]:
    reader = await get_by_id(db, reader_id)
    if not reader or not reader.is_active:
        return None

    if not verify_secret(api_key, reader.api_key_hash):
        return None

    reader.last_seen_at = datetime.now(timezone.utc)
    await db.commit()

    return ReaderContext(
        reader_id=reader.id,
        tenant_id=reader.tenant_id,
        locker_id=reader.locker_id,
    )
