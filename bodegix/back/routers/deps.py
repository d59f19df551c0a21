# bodegix/back/routers/deps.py
"""
FastAPI dependencies shared by the API routers.

Everything the QR routes touch is reachable through one of these, so tests
swap stores and collaborators with app.dependency_overrides.
"""
from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import settings
from ..core.db import get_db
from ..core.security import AuthContext, ReaderContext, decode_access_token
from ..services import reader_service
from ..services.access_log import AccessEventLog, SqlAccessEventLog
from ..services.access_notifier import AccessNotifier
from ..services.locker_service import LockerDirectory, SqlLockerDirectory
from ..services.qr_session_service import QrSessionService
from ..services.qr_session_store import QrSessionStore, SqlQrSessionStore
from ..services.unlock_service import UnlockActuator, build_actuator


# =============================
# callers
# =============================

async def get_current_user(authorization: Optional[str] = Header(default=None)) -> AuthContext:
    if not authorization or not authorization.lower().startswith("bearer "):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing bearer token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    ctx = decode_access_token(authorization[7:].strip())
    if ctx is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return ctx


async def get_current_admin(current: AuthContext = Depends(get_current_user)) -> AuthContext:
    if not current.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin role required")
    return current


async def get_reader_context(
    db: AsyncSession = Depends(get_db),
    x_reader_id: Optional[int] = Header(default=None),
    x_reader_api_key: Optional[str] = Header(default=None),
) -> ReaderContext:
    if x_reader_id is None or not x_reader_api_key:
        raise HTTPException(status_code=401, detail="Missing reader credentials")

    ctx = await reader_service.authenticate(db, x_reader_id, x_reader_api_key)
    if ctx is None:
        raise HTTPException(status_code=401, detail="Invalid reader credentials")
    return ctx


# =============================
# stores / collaborators
# =============================

def get_session_store(db: AsyncSession = Depends(get_db)) -> QrSessionStore:
    return SqlQrSessionStore(db)


def get_locker_directory(db: AsyncSession = Depends(get_db)) -> LockerDirectory:
    return SqlLockerDirectory(db)


def get_access_log(db: AsyncSession = Depends(get_db)) -> AccessEventLog:
    return SqlAccessEventLog(db)


def get_unlock_actuator() -> UnlockActuator:
    return build_actuator(settings.LOCKER_CONTROLLER_URL, timeout=settings.LOCKER_CONTROLLER_TIMEOUT)


# =============================
# services
# =============================

def get_qr_session_service(
    store: QrSessionStore = Depends(get_session_store),
    lockers: LockerDirectory = Depends(get_locker_directory),
) -> QrSessionService:
    return QrSessionService(
        store=store,
        lockers=lockers,
        default_ttl=settings.QR_TTL_SECONDS,
        code_bytes=settings.QR_CODE_BYTES,
        max_attempts=settings.QR_CODE_MAX_ATTEMPTS,
        payload_prefix=settings.QR_PAYLOAD_PREFIX,
        public_base_url=settings.QR_PUBLIC_BASE_URL,
    )


def get_access_notifier(
    sessions: QrSessionService = Depends(get_qr_session_service),
    events: AccessEventLog = Depends(get_access_log),
    actuator: UnlockActuator = Depends(get_unlock_actuator),
) -> AccessNotifier:
    return AccessNotifier(sessions=sessions, events=events, actuator=actuator)
