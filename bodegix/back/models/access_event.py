# bodegix/back/models/access_event.py
from datetime import datetime
import enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, Integer, String

from bodegix.back.core.db import Base
from bodegix.back.models.qr_session import as_utc


class AccessOutcome(str, enum.Enum):
    GRANTED = "granted"
    INVALID_CODE = "invalid_code"
    UNKNOWN_CODE = "unknown_code"
    ALREADY_USED = "already_used"
    EXPIRED = "expired"
    UNAUTHORIZED = "unauthorized"


class AccessAction(str, enum.Enum):
    OPEN = "OPEN"
    CLOSE = "CLOSE"


# ===== SQLAlchemy =====

class AccessEventORM(Base):
    """Append-only: one row per validation attempt."""
    __tablename__ = "accesos"

    id = Column(Integer, primary_key=True, index=True)

    tenant_id = Column(Integer, ForeignKey("empresas.id"), nullable=True)
    locker_id = Column(Integer, ForeignKey("lockers.id"), nullable=True)
    user_id = Column(Integer, ForeignKey("usuarios.id"), nullable=True)
    reader_id = Column(Integer, ForeignKey("readers.id"), nullable=True)

    code = Column(String(64), nullable=True)
    action = Column(String(10), nullable=False, default=AccessAction.OPEN.value)
    outcome = Column(String(20), nullable=False)
    status = Column(String(10), nullable=False)  # exitoso / fallido
    unlock_ok = Column(Boolean, nullable=True)

    occurred_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("idx_accesos_tenant_occurred", "tenant_id", "occurred_at"),
        Index("idx_accesos_locker", "locker_id"),
    )


# ===== Pydantic =====

class AccessEventCreate(BaseModel):
    tenant_id: Optional[int] = None
    locker_id: Optional[int] = None
    user_id: Optional[int] = None
    reader_id: Optional[int] = None
    code: Optional[str] = None
    action: AccessAction = AccessAction.OPEN
    outcome: AccessOutcome
    unlock_ok: Optional[bool] = None
    occurred_at: datetime

    @property
    def status(self) -> str:
        return "exitoso" if self.outcome == AccessOutcome.GRANTED else "fallido"


class AccessEvent(AccessEventCreate):
    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: int

    @field_validator("occurred_at")
    @classmethod
    def _attach_utc(cls, value):
        return as_utc(value)
