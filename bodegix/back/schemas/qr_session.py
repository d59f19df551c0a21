# bodegix/back/schemas/qr_session.py
from datetime import datetime
from typing import List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from bodegix.back.models.access_event import AccessAction, AccessOutcome


class QrSessionCreateRequest(BaseModel):
    """
    Mobile app asks for a code for one of its lockers.
    The tenant field is tenant_id; the app's older empresa_id name is accepted too.
    """
    model_config = ConfigDict(populate_by_name=True)

    locker_id: int = Field(validation_alias=AliasChoices("locker_id", "lockerId"))
    tenant_id: Optional[int] = Field(
        default=None,
        validation_alias=AliasChoices("tenant_id", "tenantId", "empresa_id", "empresaId"),
    )
    ttl_seconds: Optional[int] = Field(
        default=None,
        ge=1,
        le=300,
        validation_alias=AliasChoices("ttl_seconds", "ttlSeconds"),
    )
    as_url: bool = Field(default=False, validation_alias=AliasChoices("as_url", "asUrl"))


class QrSessionCreateResponse(BaseModel):
    """
    - code: value the reader sends back
    - payload: what goes inside the QR image (structured or URL form)
    """
    code: str
    expires_at: datetime
    ttl_seconds: int
    payload: str


class QrSessionStatusResponse(BaseModel):
    """Polled by the app every ~1.5 s while the QR is on screen."""
    status: str            # pending / used / expired / unknown
    expires_at: Optional[datetime] = None


class QrScanRequest(BaseModel):
    code: str = Field(min_length=1, max_length=512)


class QrScanResponse(BaseModel):
    outcome: str
    locker_id: int
    tenant_id: int
    user_id: int
    unlocked: bool


class AccessEventRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    tenant_id: Optional[int] = None
    locker_id: Optional[int] = None
    user_id: Optional[int] = None
    reader_id: Optional[int] = None
    action: AccessAction
    outcome: AccessOutcome
    status: str
    unlock_ok: Optional[bool] = None
    occurred_at: datetime


class AccessEventList(BaseModel):
    events: List[AccessEventRead]
