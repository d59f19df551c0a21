# bodegix/back/services/qr_session_service.py
"""
Issue / validate / status for single-use QR access codes.

    issue()  -> pending
    validate() on a fresh pending code -> used (terminal)
    time passes expires_at while pending -> expired (terminal, evaluated lazily)
    scope mismatch -> AuthorizationError, no transition
"""
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
import logging
import secrets
from typing import Callable, Optional

from ..core.exceptions import (
    AlreadyUsed,
    AuthorizationError,
    CodeGenerationError,
    ConflictError,
    Expired,
    UnknownCode,
    UnknownLocker,
)
from ..core.security import ROLE_CLIENT, AuthContext, ReaderContext
from ..models.qr_session import QrSession, QrSessionStatus
from .locker_service import LockerDirectory
from .qr_session_store import QrSessionStore

logger = logging.getLogger(__name__)

UNKNOWN_STATUS = "unknown"
OPEN_ACTION = "OPEN"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class IssuedSession:
    code: str
    expires_at: datetime
    ttl_seconds: int
    payload: str


@dataclass(frozen=True)
class ValidationResult:
    outcome: str
    code: str
    locker_id: int
    tenant_id: int
    user_id: int


class QrSessionService:
    def __init__(
        self,
        store: QrSessionStore,
        lockers: LockerDirectory,
        default_ttl: int = 15,
        code_bytes: int = 16,
        max_attempts: int = 5,
        payload_prefix: str = "BODEGIX",
        public_base_url: str = "https://bodegix.app",
        clock: Callable[[], datetime] = utcnow,
        token_factory: Callable[[int], str] = secrets.token_hex,
    ) -> None:
        if not 8 <= code_bytes <= 32:
            # extractor only recognises 16..64 hex chars
            raise ValueError("code_bytes must be between 8 and 32")
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

        self.store = store
        self.lockers = lockers
        self.default_ttl = default_ttl
        self.code_bytes = code_bytes
        self.max_attempts = max_attempts
        self.payload_prefix = payload_prefix
        self.public_base_url = public_base_url.rstrip("/")
        self.clock = clock
        self.token_factory = token_factory

    # =============================
    # issue
    # =============================

    def build_payload(self, code: str, as_url: bool = False) -> str:
        if as_url:
            return f"{self.public_base_url}/open?c={code}"
        return f"{self.payload_prefix}|{OPEN_ACTION}|{code}"

    async def _check_issue_scope(
        self,
        locker_id: int,
        tenant_id: int,
        user_id: int,
        caller: Optional[AuthContext],
    ) -> None:
        locker = await self.lockers.get_locker(locker_id)
        if locker is None:
            raise UnknownLocker(f"Locker {locker_id} not found")

        if locker.tenant_id != tenant_id:
            raise AuthorizationError("Locker does not belong to this tenant")
        if not locker.is_active or not locker.tenant_is_active:
            raise AuthorizationError("Locker or tenant is inactive")

        if caller is None or caller.is_superadmin:
            return
        if caller.tenant_id != tenant_id:
            raise AuthorizationError("Caller belongs to another tenant")
        if caller.role_id == ROLE_CLIENT and locker.user_id != user_id:
            raise AuthorizationError("Locker is not assigned to this user")

    async def issue(
        self,
        locker_id: int,
        tenant_id: int,
        user_id: int,
        ttl_seconds: Optional[int] = None,
        as_url: bool = False,
        caller: Optional[AuthContext] = None,
    ) -> IssuedSession:
        ttl = self.default_ttl if ttl_seconds is None else ttl_seconds
        if ttl <= 0:
            raise ValueError("ttl_seconds must be positive")

        await self._check_issue_scope(locker_id, tenant_id, user_id, caller)

        for attempt in range(1, self.max_attempts + 1):
            issued_at = self.clock()
            session = QrSession(
                code=self.token_factory(self.code_bytes),
                locker_id=locker_id,
                tenant_id=tenant_id,
                user_id=user_id,
                status=QrSessionStatus.PENDING,
                ttl_seconds=ttl,
                issued_at=issued_at,
                expires_at=issued_at + timedelta(seconds=ttl),
            )
            try:
                await self.store.create(session)
            except ConflictError:
                logger.warning(
                    "QR code collision (attempt %s/%s) locker=%s",
                    attempt, self.max_attempts, locker_id,
                )
                continue

            logger.info(
                "QR session issued locker=%s tenant=%s user=%s ttl=%ss",
                locker_id, tenant_id, user_id, ttl,
            )
            return IssuedSession(
                code=session.code,
                expires_at=session.expires_at,
                ttl_seconds=ttl,
                payload=self.build_payload(session.code, as_url=as_url),
            )

        logger.error("QR code generation failed after %s attempts locker=%s", self.max_attempts, locker_id)
        raise CodeGenerationError()

    # =============================
    # validate
    # =============================

    @staticmethod
    def _check_scan_scope(session: QrSession, context: ReaderContext) -> None:
        if session.tenant_id != context.tenant_id:
            raise AuthorizationError(code=session.code)
        if context.locker_id is not None and session.locker_id != context.locker_id:
            raise AuthorizationError("Code is for another locker", code=session.code)

    async def validate(self, code: str, context: Optional[ReaderContext] = None) -> ValidationResult:
        """
        Redeems a code. Raises UnknownCode, AuthorizationError, Expired or
        AlreadyUsed; returning means the caller may unlock.
        """
        now = self.clock()
        session = await self.store.get(code)

        if context is not None:
            self._check_scan_scope(session, context)

        status = session.effective_status(now)
        if status == QrSessionStatus.EXPIRED:
            if session.status == QrSessionStatus.PENDING:
                await self.store.mark_expired(code, now)
            raise Expired(code=code)
        if status == QrSessionStatus.USED:
            raise AlreadyUsed(code=code)

        # atomic pending -> used; a concurrent scan that got here first wins
        await self.store.mark_used(code, now)

        return ValidationResult(
            outcome="granted",
            code=code,
            locker_id=session.locker_id,
            tenant_id=session.tenant_id,
            user_id=session.user_id,
        )

    # =============================
    # status (read only)
    # =============================

    async def find(self, code: str) -> Optional[QrSession]:
        try:
            return await self.store.get(code)
        except UnknownCode:
            return None

    def status_for(self, session: Optional[QrSession]) -> str:
        if session is None:
            return UNKNOWN_STATUS
        return session.effective_status(self.clock()).value

    async def status_of(self, code: str) -> str:
        """pending / used / expired / unknown. Never writes."""
        return self.status_for(await self.find(code))
