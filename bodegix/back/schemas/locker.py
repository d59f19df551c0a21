# bodegix/back/schemas/locker.py
from typing import List, Optional

from pydantic import BaseModel, ConfigDict


class LockerRef(BaseModel):
    """What issuance needs to know about a locker."""
    id: int
    tenant_id: int
    user_id: Optional[int] = None
    is_active: bool = True
    tenant_is_active: bool = True


class LockerRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    identifier: str
    location: Optional[str] = None
    kind: str
    tenant_id: int


class AssignedLockersResponse(BaseModel):
    lockers: List[LockerRead]
