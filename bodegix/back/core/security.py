# bodegix/back/core/security.py
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from passlib.context import CryptContext

from bodegix.back.core.config import settings

# pbkdf2_sha256: no length limit, no native deps
pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


ROLE_SUPERADMIN = 1
ROLE_ADMIN = 2
ROLE_CLIENT = 3


@dataclass(frozen=True)
class AuthContext:
    """Verified caller identity taken from a bearer token."""
    user_id: int
    tenant_id: Optional[int]
    role_id: int
    email: Optional[str] = None

    @property
    def is_superadmin(self) -> bool:
        return self.role_id == ROLE_SUPERADMIN

    @property
    def is_admin(self) -> bool:
        return self.role_id in (ROLE_SUPERADMIN, ROLE_ADMIN)


@dataclass(frozen=True)
class ReaderContext:
    """An authenticated physical reader and the scope it may open."""
    reader_id: int
    tenant_id: int
    locker_id: Optional[int] = None


def hash_secret(secret: str) -> str:
    """Hash a reader API key (or any other shared secret) for storage."""
    return pwd_context.hash(secret)


def verify_secret(plain_secret: str, hashed_secret: str) -> bool:
    return pwd_context.verify(plain_secret, hashed_secret)


def create_access_token(
    user_id: int,
    tenant_id: Optional[int],
    role_id: int,
    email: Optional[str] = None,
    secret_key: Optional[str] = None,
    expires_in: Optional[int] = None,
) -> str:
    """
    Signs the same HS256 JWT the login service hands out
    ({id, email, rol_id, empresa_id} + exp). Used by tooling and tests.
    """
    payload = {"id": user_id, "email": email, "rol_id": role_id, "empresa_id": tenant_id}

    seconds = settings.ACCESS_TOKEN_EXPIRE_SECONDS if expires_in is None else expires_in
    if seconds:
        payload["exp"] = datetime.now(timezone.utc) + timedelta(seconds=seconds)

    return jwt.encode(payload, secret_key or settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str, secret_key: Optional[str] = None) -> Optional[AuthContext]:
    """
    Returns None for a tampered, expired or malformed token.
    Tokens without exp are accepted, the login service only sets it when configured to.
    """
    try:
        payload = jwt.decode(
            token,
            secret_key or settings.SECRET_KEY,
            algorithms=[settings.JWT_ALGORITHM],
        )
    except jwt.PyJWTError:
        return None

    if "id" not in payload or "rol_id" not in payload:
        return None

    return AuthContext(
        user_id=int(payload["id"]),
        tenant_id=payload.get("empresa_id"),
        role_id=int(payload["rol_id"]),
        email=payload.get("email"),
    )
