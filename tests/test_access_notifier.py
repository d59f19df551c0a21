"""
Tests for AccessNotifier: event per attempt, unlock on success only.
"""
import asyncio

import pytest

from bodegix.back.core.exceptions import AlreadyUsed, AuthorizationError, Expired, InvalidCode, UnknownCode
from bodegix.back.core.security import ReaderContext
from bodegix.back.models.access_event import AccessOutcome
from bodegix.back.services.access_notifier import AccessNotifier

from conftest import LOCKER_ID, TENANT_ID, USER_ID, RecordingActuator

READER = ReaderContext(reader_id=1, tenant_id=TENANT_ID)


@pytest.fixture
def notifier(service, events, actuator):
    return AccessNotifier(sessions=service, events=events, actuator=actuator)


def issue_code(service, **kwargs):
    issued = asyncio.run(service.issue(locker_id=LOCKER_ID, tenant_id=TENANT_ID, user_id=USER_ID, **kwargs))
    return issued


def test_successful_scan_unlocks_and_records(notifier, service, events, actuator):
    issued = issue_code(service)

    result = asyncio.run(notifier.scan(issued.payload, READER))

    assert result.validation.locker_id == LOCKER_ID
    assert result.unlocked is True
    assert actuator.calls == [LOCKER_ID]

    [event] = events.events
    assert event.outcome == AccessOutcome.GRANTED
    assert event.status == "exitoso"
    assert (event.tenant_id, event.locker_id, event.user_id, event.reader_id) == (TENANT_ID, LOCKER_ID, USER_ID, 1)
    assert event.unlock_ok is True
    assert event.code == issued.code


def test_url_payload_is_accepted(notifier, service):
    issued = issue_code(service, as_url=True)
    assert asyncio.run(notifier.scan(issued.payload, READER)).validation.outcome == "granted"


def test_second_scan_is_recorded_as_failure_without_unlock(notifier, service, events, actuator):
    issued = issue_code(service)
    asyncio.run(notifier.scan(issued.code, READER))

    with pytest.raises(AlreadyUsed):
        asyncio.run(notifier.scan(issued.code, READER))

    assert actuator.calls == [LOCKER_ID]
    assert [e.outcome for e in events.events] == [AccessOutcome.GRANTED, AccessOutcome.ALREADY_USED]
    assert events.events[1].status == "fallido"
    assert events.events[1].unlock_ok is None


def test_expired_scan(notifier, service, events, actuator, clock):
    issued = issue_code(service, ttl_seconds=1)
    clock.advance(2)

    with pytest.raises(Expired):
        asyncio.run(notifier.scan(issued.code, READER))
    assert actuator.calls == []
    assert events.events[-1].outcome == AccessOutcome.EXPIRED
    assert events.events[-1].locker_id == LOCKER_ID


def test_unknown_code_recorded_under_reader_tenant(notifier, events):
    with pytest.raises(UnknownCode):
        asyncio.run(notifier.scan("e" * 32, READER))

    [event] = events.events
    assert event.outcome == AccessOutcome.UNKNOWN_CODE
    assert event.tenant_id == TENANT_ID
    assert event.locker_id is None


def test_garbage_payload_never_reaches_validation(notifier, events, actuator):
    with pytest.raises(InvalidCode):
        asyncio.run(notifier.scan("no-code-here", READER))

    assert actuator.calls == []
    assert events.events[0].outcome == AccessOutcome.INVALID_CODE


def test_foreign_reader_does_not_leak_session_details(notifier, service, events):
    issued = issue_code(service)
    foreign = ReaderContext(reader_id=9, tenant_id=99)

    with pytest.raises(AuthorizationError):
        asyncio.run(notifier.scan(issued.code, foreign))

    [event] = events.events
    assert event.outcome == AccessOutcome.UNAUTHORIZED
    assert event.tenant_id == 99
    assert event.locker_id is None
    assert event.user_id is None
    assert asyncio.run(notifier.status(issued.code)) == "pending"


def test_failed_unlock_is_reported_but_code_is_spent(service, events):
    notifier = AccessNotifier(sessions=service, events=events, actuator=RecordingActuator(result=False))
    issued = issue_code(service)

    result = asyncio.run(notifier.scan(issued.code, READER))

    assert result.unlocked is False
    assert events.events[0].unlock_ok is False
    assert asyncio.run(notifier.status(issued.code)) == "used"


def test_history_is_newest_first_and_tenant_scoped(notifier, service, clock):
    first = issue_code(service)
    asyncio.run(notifier.scan(first.code, READER))
    clock.advance(5)
    second = issue_code(service)
    asyncio.run(notifier.scan(second.code, READER))
    with pytest.raises(UnknownCode):
        asyncio.run(notifier.scan("d" * 32, ReaderContext(reader_id=9, tenant_id=99)))

    history = asyncio.run(notifier.history(TENANT_ID))
    assert [e.code for e in history] == [second.code, first.code]
    assert asyncio.run(notifier.history(TENANT_ID, locker_id=8)) == []
    assert len(asyncio.run(notifier.history(99))) == 1
