# bodegix/back/routers/api_access.py
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from ..core.security import AuthContext
from .deps import get_access_notifier, get_current_admin
from ..schemas.qr_session import AccessEventList, AccessEventRead
from ..services.access_notifier import AccessNotifier

router = APIRouter(prefix="/api/access-events", tags=["access"])


@router.get("", response_model=AccessEventList)
async def list_access_events(
    locker_id: Optional[int] = Query(default=None),
    tenant_id: Optional[int] = Query(default=None),
    limit: int = Query(default=50, ge=1, le=500),
    current: AuthContext = Depends(get_current_admin),
    notifier: AccessNotifier = Depends(get_access_notifier),
):
    """
    Access history for the admin's tenant (every attempt, granted or not).
    Superadmins pick the tenant with ?tenant_id=.
    """
    scope = tenant_id if current.is_superadmin and tenant_id is not None else current.tenant_id
    if scope is None:
        raise HTTPException(status_code=400, detail="tenant_id is required")

    events = await notifier.history(scope, locker_id=locker_id, limit=limit)
    return AccessEventList(events=[AccessEventRead.model_validate(e) for e in events])
