# bodegix/back/routers/api_lockers.py
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.db import get_db
from ..core.security import AuthContext
from .deps import get_current_user
from ..schemas.locker import AssignedLockersResponse, LockerRead
from ..services import locker_service

router = APIRouter(prefix="/api/lockers", tags=["lockers"])


@router.get("/assigned", response_model=AssignedLockersResponse)
async def list_assigned_lockers(
    current: AuthContext = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Lockers the app can generate a QR for."""
    lockers = await locker_service.list_assigned(db, current.user_id)
    return AssignedLockersResponse(
        lockers=[LockerRead.model_validate(locker) for locker in lockers],
    )
