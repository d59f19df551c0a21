"""
Tests for QrSessionService: issue, validate, status_of.
"""
import asyncio
from datetime import timedelta

import pytest

from bodegix.back.core.exceptions import (
    AlreadyUsed,
    AuthorizationError,
    CodeGenerationError,
    Expired,
    UnknownCode,
    UnknownLocker,
)
from bodegix.back.core.security import AuthContext, ReaderContext
from bodegix.back.models.qr_session import QrSessionStatus
from bodegix.back.services.qr_session_service import QrSessionService
from bodegix.back.services.qr_session_store import InMemoryQrSessionStore
from bodegix.reader.extractor import extract_code

from conftest import LOCKER_ID, TENANT_ID, USER_ID


def issue(service, **kwargs):
    params = {"locker_id": LOCKER_ID, "tenant_id": TENANT_ID, "user_id": USER_ID}
    params.update(kwargs)
    return asyncio.run(service.issue(**params))


# ===== issue =====

def test_issue_returns_pending_code_with_expiry(service, store, clock):
    issued = issue(service, ttl_seconds=15)

    assert len(issued.code) == 32
    int(issued.code, 16)  # hex
    assert issued.ttl_seconds == 15
    assert issued.expires_at == clock.now + timedelta(seconds=15)

    stored = asyncio.run(store.get(issued.code))
    assert stored.status == QrSessionStatus.PENDING
    assert (stored.locker_id, stored.tenant_id, stored.user_id) == (LOCKER_ID, TENANT_ID, USER_ID)


def test_issue_uses_default_ttl(service):
    assert issue(service).ttl_seconds == 15


def test_issue_codes_are_unique(service):
    codes = {issue(service).code for _ in range(50)}
    assert len(codes) == 50


def test_payload_forms_are_both_extractable(service):
    plain = issue(service)
    url = issue(service, as_url=True)

    assert plain.payload == f"BODEGIX|OPEN|{plain.code}"
    assert url.payload == f"https://bodegix.app/open?c={url.code}"
    assert extract_code(plain.payload) == plain.code
    assert extract_code(url.payload) == url.code


def test_issue_retries_on_collision(store, lockers, clock):
    codes = iter(["a" * 32, "a" * 32, "b" * 32])
    service = QrSessionService(store, lockers, clock=clock, token_factory=lambda n: next(codes))

    first = issue(service)
    second = issue(service)

    assert first.code == "a" * 32
    assert second.code == "b" * 32


def test_issue_gives_up_after_max_attempts(store, lockers, clock):
    calls = []

    def same_code(n):
        calls.append(n)
        return "c" * 32

    service = QrSessionService(store, lockers, clock=clock, max_attempts=3, token_factory=same_code)
    issue(service)

    with pytest.raises(CodeGenerationError):
        issue(service)
    # 1 for the first issue, 3 failed attempts for the second
    assert len(calls) == 4
    # existing session was not overwritten
    assert asyncio.run(store.get("c" * 32)).status == QrSessionStatus.PENDING


def test_issue_unknown_locker(service):
    with pytest.raises(UnknownLocker):
        issue(service, locker_id=999)


def test_issue_locker_of_other_tenant(service):
    with pytest.raises(AuthorizationError):
        issue(service, locker_id=20)


def test_issue_inactive_locker(service):
    with pytest.raises(AuthorizationError):
        issue(service, locker_id=9)


def test_client_can_only_issue_for_assigned_locker(service):
    client = AuthContext(user_id=USER_ID, tenant_id=TENANT_ID, role_id=3)

    issue(service, caller=client)
    with pytest.raises(AuthorizationError):
        issue(service, locker_id=8, caller=client)


def test_admin_can_issue_for_any_locker_in_tenant(service):
    admin = AuthContext(user_id=2, tenant_id=TENANT_ID, role_id=2)
    issued = issue(service, locker_id=8, user_id=2, caller=admin)
    assert issued.code


def test_caller_from_other_tenant_is_refused(service):
    outsider = AuthContext(user_id=40, tenant_id=4, role_id=2)
    with pytest.raises(AuthorizationError):
        issue(service, user_id=40, caller=outsider)


def test_rejects_bad_configuration(store, lockers):
    with pytest.raises(ValueError):
        QrSessionService(store, lockers, code_bytes=4)
    with pytest.raises(ValueError):
        QrSessionService(store, lockers, max_attempts=0)


def test_ttl_is_copied_at_issue(service, clock):
    issued = issue(service)
    service.default_ttl = 300

    clock.advance(16)
    with pytest.raises(Expired):
        asyncio.run(service.validate(issued.code))


# ===== validate =====

def test_issue_then_validate_once(service):
    issued = issue(service, ttl_seconds=15)
    reader = ReaderContext(reader_id=1, tenant_id=TENANT_ID)

    result = asyncio.run(service.validate(issued.code, reader))
    assert result.outcome == "granted"
    assert result.locker_id == LOCKER_ID
    assert result.tenant_id == TENANT_ID
    assert result.user_id == USER_ID

    with pytest.raises(AlreadyUsed):
        asyncio.run(service.validate(issued.code, reader))


def test_every_later_validate_is_already_used(service):
    issued = issue(service)
    asyncio.run(service.validate(issued.code))
    for _ in range(5):
        with pytest.raises(AlreadyUsed):
            asyncio.run(service.validate(issued.code))


def test_validate_unknown_code(service):
    with pytest.raises(UnknownCode):
        asyncio.run(service.validate("f" * 32))


def test_validate_after_expiry_flips_to_expired(service, store, clock):
    issued = issue(service, ttl_seconds=1)
    clock.advance(2)

    with pytest.raises(Expired):
        asyncio.run(service.validate(issued.code))
    assert asyncio.run(store.get(issued.code)).status == QrSessionStatus.EXPIRED

    # terminal: stays expired
    with pytest.raises(Expired):
        asyncio.run(service.validate(issued.code))


def test_validate_exactly_at_expiry_is_expired(service, clock):
    issued = issue(service, ttl_seconds=15)
    clock.advance(15)
    with pytest.raises(Expired):
        asyncio.run(service.validate(issued.code))


def test_used_takes_precedence_over_expiry(service, clock):
    issued = issue(service, ttl_seconds=15)
    clock.advance(14)
    asyncio.run(service.validate(issued.code))

    clock.advance(60)
    assert asyncio.run(service.status_of(issued.code)) == "used"
    with pytest.raises(AlreadyUsed):
        asyncio.run(service.validate(issued.code))


def test_other_tenant_reader_is_refused_without_transition(service, store):
    issued = issue(service)
    foreign = ReaderContext(reader_id=5, tenant_id=99)

    with pytest.raises(AuthorizationError):
        asyncio.run(service.validate(issued.code, foreign))
    assert asyncio.run(store.get(issued.code)).status == QrSessionStatus.PENDING

    # the right reader can still use it
    result = asyncio.run(service.validate(issued.code, ReaderContext(reader_id=1, tenant_id=TENANT_ID)))
    assert result.locker_id == LOCKER_ID


def test_locker_bound_reader_must_match_locker(service, store):
    issued = issue(service)
    wrong_locker = ReaderContext(reader_id=2, tenant_id=TENANT_ID, locker_id=8)

    with pytest.raises(AuthorizationError):
        asyncio.run(service.validate(issued.code, wrong_locker))
    assert asyncio.run(store.get(issued.code)).status == QrSessionStatus.PENDING

    right_locker = ReaderContext(reader_id=3, tenant_id=TENANT_ID, locker_id=LOCKER_ID)
    assert asyncio.run(service.validate(issued.code, right_locker)).outcome == "granted"


class YieldingStore(InMemoryQrSessionStore):
    """Suspends after every read, the way a database round trip does."""

    def __init__(self) -> None:
        super().__init__()
        self.pending_reads = 0

    async def get(self, code):
        session = await super().get(code)
        if session.status == QrSessionStatus.PENDING:
            self.pending_reads += 1
        await asyncio.sleep(0)
        return session


def test_concurrent_validates_have_a_single_winner(lockers, clock):
    store = YieldingStore()
    service = QrSessionService(store, lockers, clock=clock)
    issued = issue(service)

    async def attempt():
        try:
            await service.validate(issued.code)
            return "granted"
        except (AlreadyUsed, Expired) as e:
            return e.outcome

    async def scenario():
        return await asyncio.gather(*(attempt() for _ in range(1000)))

    outcomes = asyncio.run(scenario())
    # every attempt passed the status check before anyone redeemed
    assert store.pending_reads == 1000
    assert outcomes.count("granted") == 1
    assert outcomes.count("already_used") == 999


# ===== status =====

def test_status_of_lifecycle(service, store, clock):
    issued = issue(service, ttl_seconds=5)
    assert asyncio.run(service.status_of(issued.code)) == "pending"

    clock.advance(6)
    assert asyncio.run(service.status_of(issued.code)) == "expired"
    # read only: nothing written
    assert asyncio.run(store.get(issued.code)).status == QrSessionStatus.PENDING


def test_status_of_unknown(service):
    assert asyncio.run(service.status_of("0" * 32)) == "unknown"
