# bodegix/back/services/qr_session_store.py
"""
Storage for issued QR sessions.

Both stores expose the same async interface. The only write that needs
mutual exclusion is mark_used: it is a single conditional transition
(compare-and-set on status + expiry) so two readers scanning the same code
cannot both get it.
"""
from datetime import datetime
import threading
from typing import Dict, Protocol

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import AlreadyUsed, ConflictError, Expired, UnknownCode
from ..models.qr_session import QrSession, QrSessionORM, QrSessionStatus


class QrSessionStore(Protocol):
    async def create(self, session: QrSession) -> QrSession: ...

    async def get(self, code: str) -> QrSession: ...

    async def mark_used(self, code: str, now: datetime) -> QrSession: ...

    async def mark_expired(self, code: str, now: datetime) -> bool: ...


def _rejection(session: QrSession, now: datetime) -> Exception:
    """Why a pending->used transition was refused."""
    if session.effective_status(now) == QrSessionStatus.USED:
        return AlreadyUsed(code=session.code)
    return Expired(code=session.code)


class InMemoryQrSessionStore:
    """Process-local store for tests and single-process setups."""

    def __init__(self) -> None:
        self._sessions: Dict[str, QrSession] = {}
        # no awaits inside the critical sections, the lock covers threads too
        self._lock = threading.Lock()

    async def create(self, session: QrSession) -> QrSession:
        with self._lock:
            if session.code in self._sessions:
                raise ConflictError(code=session.code)
            self._sessions[session.code] = session
        return session

    async def get(self, code: str) -> QrSession:
        session = self._sessions.get(code)
        if session is None:
            raise UnknownCode(code=code)
        return session

    async def mark_used(self, code: str, now: datetime) -> QrSession:
        with self._lock:
            session = self._sessions.get(code)
            if session is None:
                raise UnknownCode(code=code)
            if session.status != QrSessionStatus.PENDING or session.is_past_expiry(now):
                raise _rejection(session, now)
            self._sessions[code] = session.model_copy(
                update={"status": QrSessionStatus.USED, "used_at": now}
            )
        return session

    async def mark_expired(self, code: str, now: datetime) -> bool:
        with self._lock:
            session = self._sessions.get(code)
            if session is None:
                raise UnknownCode(code=code)
            if session.status != QrSessionStatus.PENDING or not session.is_past_expiry(now):
                return False
            self._sessions[code] = session.model_copy(update={"status": QrSessionStatus.EXPIRED})
        return True


class SqlQrSessionStore:
    """qr_sessions table. Every method commits its own transaction."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def create(self, session: QrSession) -> QrSession:
        row = QrSessionORM(**session.model_dump())
        self.db.add(row)
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise ConflictError(code=session.code)
        return session

    async def _load(self, code: str) -> QrSessionORM:
        row = await self.db.scalar(
            select(QrSessionORM)
            .where(QrSessionORM.code == code)
            .execution_options(populate_existing=True)
        )
        if row is None:
            raise UnknownCode(code=code)
        return row

    async def get(self, code: str) -> QrSession:
        return QrSession.model_validate(await self._load(code))

    async def mark_used(self, code: str, now: datetime) -> QrSession:
        result = await self.db.execute(
            update(QrSessionORM)
            .where(
                QrSessionORM.code == code,
                QrSessionORM.status == QrSessionStatus.PENDING,
                QrSessionORM.expires_at > now,
            )
            .values(status=QrSessionStatus.USED, used_at=now)
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()

        if result.rowcount == 1:
            prior = await self.get(code)
            return prior.model_copy(update={"status": QrSessionStatus.PENDING, "used_at": None})

        # lost the race or the code was never valid: report why
        raise _rejection(await self.get(code), now)

    async def mark_expired(self, code: str, now: datetime) -> bool:
        result = await self.db.execute(
            update(QrSessionORM)
            .where(
                QrSessionORM.code == code,
                QrSessionORM.status == QrSessionStatus.PENDING,
                QrSessionORM.expires_at <= now,
            )
            .values(status=QrSessionStatus.EXPIRED)
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        return result.rowcount == 1
