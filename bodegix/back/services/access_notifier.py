# bodegix/back/services/access_notifier.py
from dataclasses import dataclass
import logging
from typing import List, Optional

from bodegix.reader.extractor import extract_code

from ..core.exceptions import InvalidCode, QrAccessError
from ..core.security import ReaderContext
from ..models.access_event import AccessEvent, AccessEventCreate, AccessOutcome
from ..models.qr_session import QrSession
from .access_log import AccessEventLog
from .qr_session_service import QrSessionService, ValidationResult
from .unlock_service import UnlockActuator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScanResult:
    validation: ValidationResult
    unlocked: bool
    event: AccessEvent


class AccessNotifier:
    """
    Front door for reader scans: validate, write one access event per
    attempt, and fire the unlock on success. Also answers status polls.
    """

    def __init__(
        self,
        sessions: QrSessionService,
        events: AccessEventLog,
        actuator: UnlockActuator,
    ) -> None:
        self.sessions = sessions
        self.events = events
        self.actuator = actuator

    async def _record(
        self,
        outcome: AccessOutcome,
        code: Optional[str],
        reader: Optional[ReaderContext],
        session: Optional[QrSession] = None,
        unlock_ok: Optional[bool] = None,
    ) -> AccessEvent:
        tenant_id = reader.tenant_id if reader else (session.tenant_id if session else None)

        # never copy another tenant's locker/user into this tenant's log
        same_tenant = session is not None and session.tenant_id == tenant_id

        return await self.events.append(
            AccessEventCreate(
                tenant_id=tenant_id,
                locker_id=session.locker_id if same_tenant else None,
                user_id=session.user_id if same_tenant else None,
                reader_id=reader.reader_id if reader else None,
                code=code,
                outcome=outcome,
                unlock_ok=unlock_ok,
                occurred_at=self.sessions.clock(),
            )
        )

    async def scan(self, raw_code: str, reader: Optional[ReaderContext] = None) -> ScanResult:
        code = extract_code(raw_code)
        if not code:
            await self._record(AccessOutcome.INVALID_CODE, None, reader)
            logger.warning("scan rejected: no code in payload reader=%s", reader.reader_id if reader else None)
            raise InvalidCode()

        try:
            result = await self.sessions.validate(code, reader)
        except QrAccessError as e:
            session = await self.sessions.find(code)
            await self._record(AccessOutcome(e.outcome), code, reader, session)
            logger.warning(
                "scan rejected: %s reader=%s",
                e.outcome, reader.reader_id if reader else None,
            )
            raise

        unlocked = await self.actuator.unlock(result.locker_id)
        session = await self.sessions.find(code)
        event = await self._record(AccessOutcome.GRANTED, code, reader, session, unlock_ok=unlocked)

        logger.info(
            "access granted locker=%s tenant=%s user=%s unlocked=%s",
            result.locker_id, result.tenant_id, result.user_id, unlocked,
        )
        return ScanResult(validation=result, unlocked=unlocked, event=event)

    async def status(self, code: str) -> str:
        return await self.sessions.status_of(code)

    async def history(
        self,
        tenant_id: int,
        locker_id: Optional[int] = None,
        limit: int = 50,
    ) -> List[AccessEvent]:
        return await self.events.recent(tenant_id, locker_id=locker_id, limit=limit)
