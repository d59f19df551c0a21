# bodegix/back/models/qr_session.py
from datetime import datetime, timezone
import enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator
from sqlalchemy import Column, DateTime, Enum, ForeignKey, Integer, String

from bodegix.back.core.db import Base


class QrSessionStatus(str, enum.Enum):
    PENDING = "pending"
    USED = "used"
    EXPIRED = "expired"


# ===== SQLAlchemy =====

class QrSessionORM(Base):
    __tablename__ = "qr_sessions"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String(64), nullable=False, unique=True, index=True)

    locker_id = Column(Integer, ForeignKey("lockers.id"), nullable=False, index=True)
    tenant_id = Column(Integer, ForeignKey("empresas.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("usuarios.id"), nullable=False)

    status = Column(
        Enum(QrSessionStatus, native_enum=False, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=QrSessionStatus.PENDING,
    )

    ttl_seconds = Column(Integer, nullable=False)
    issued_at = Column(DateTime(timezone=True), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    used_at = Column(DateTime(timezone=True), nullable=True)


# ===== Pydantic =====

def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # sqlite hands back naive datetimes; everything stored here is UTC
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class QrSession(BaseModel):
    """Snapshot of one issued code. Stores hand these out, never live rows."""
    model_config = ConfigDict(from_attributes=True, frozen=True)

    code: str
    locker_id: int
    tenant_id: int
    user_id: int
    status: QrSessionStatus = QrSessionStatus.PENDING
    ttl_seconds: int
    issued_at: datetime
    expires_at: datetime
    used_at: Optional[datetime] = None

    @field_validator("issued_at", "expires_at", "used_at")
    @classmethod
    def _attach_utc(cls, value):
        return as_utc(value)

    def is_past_expiry(self, now: datetime) -> bool:
        return now >= self.expires_at

    def effective_status(self, now: datetime) -> QrSessionStatus:
        """
        used wins over time; a pending code past expires_at reads as expired
        even if nobody has written that yet.
        """
        if self.status == QrSessionStatus.PENDING and self.is_past_expiry(now):
            return QrSessionStatus.EXPIRED
        return self.status
