# bodegix/back/models/tenant.py
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from bodegix.back.core.db import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Tenant(Base):
    """A business ("empresa") that owns lockers and users."""
    __tablename__ = "empresas"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(150), nullable=False)
    status = Column(String(20), nullable=False, default="activa")  # activa / inactiva

    created_at = Column(DateTime(timezone=True), default=_utcnow)

    lockers = relationship("Locker", back_populates="tenant")
    readers = relationship("Reader", back_populates="tenant")

    @property
    def is_active(self) -> bool:
        return self.status == "activa"


class User(Base):
    __tablename__ = "usuarios"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(120), nullable=False)
    email = Column(String(150), nullable=False, unique=True)
    role_id = Column(Integer, nullable=False, default=3)  # 1 superadmin, 2 admin, 3 client
    tenant_id = Column(Integer, ForeignKey("empresas.id"), nullable=True, index=True)
    status = Column(String(20), nullable=False, default="activo")  # activo / inactivo

    created_at = Column(DateTime(timezone=True), default=_utcnow)


class Locker(Base):
    __tablename__ = "lockers"

    id = Column(Integer, primary_key=True, index=True)
    identifier = Column(String(50), nullable=False)  # "001", "LKR-..."
    location = Column(String(150), nullable=True)
    status = Column(String(20), nullable=False, default="activo")  # activo / inactivo
    kind = Column(String(20), nullable=False, default="no_perecederos")

    tenant_id = Column(Integer, ForeignKey("empresas.id"), nullable=False, index=True)
    # client the locker is assigned to
    user_id = Column(Integer, ForeignKey("usuarios.id"), nullable=True, index=True)

    created_at = Column(DateTime(timezone=True), default=_utcnow)

    tenant = relationship("Tenant", back_populates="lockers")

    __table_args__ = (
        UniqueConstraint("tenant_id", "identifier", name="unq_empresa_identificador"),
    )

    @property
    def is_active(self) -> bool:
        return self.status == "activo"


class Reader(Base):
    """Physical QR reader registered to a tenant, optionally mounted on one locker."""
    __tablename__ = "readers"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    tenant_id = Column(Integer, ForeignKey("empresas.id"), nullable=False, index=True)
    locker_id = Column(Integer, ForeignKey("lockers.id"), nullable=True)

    api_key_hash = Column(String(255), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    last_seen_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), default=_utcnow)

    tenant = relationship("Tenant", back_populates="readers")
