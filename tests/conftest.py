import os

# settings are read at import time
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key-with-enough-bytes-for-hs256")
os.environ.setdefault("LOCKER_CONTROLLER_URL", "")

from datetime import datetime, timedelta, timezone  # noqa: E402
from typing import Dict, List, Optional  # noqa: E402

import pytest  # noqa: E402
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from bodegix.back.core.db import Base  # noqa: E402
from bodegix.back.models import access_event, qr_session, tenant  # noqa: E402,F401
from bodegix.back.schemas.locker import LockerRef  # noqa: E402
from bodegix.back.services.access_log import InMemoryAccessEventLog  # noqa: E402
from bodegix.back.services.qr_session_service import QrSessionService  # noqa: E402
from bodegix.back.services.qr_session_store import InMemoryQrSessionStore  # noqa: E402

LOCKER_ID = 7
TENANT_ID = 3
USER_ID = 11


class FakeClock:
    def __init__(self, start: Optional[datetime] = None) -> None:
        self.now = start or datetime(2025, 3, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)


class FakeLockerDirectory:
    def __init__(self, *lockers: LockerRef) -> None:
        self.lockers: Dict[int, LockerRef] = {locker.id: locker for locker in lockers}

    async def get_locker(self, locker_id: int) -> Optional[LockerRef]:
        return self.lockers.get(locker_id)


class RecordingActuator:
    def __init__(self, result: bool = True) -> None:
        self.result = result
        self.calls: List[int] = []

    async def unlock(self, locker_id: int) -> bool:
        self.calls.append(locker_id)
        return self.result


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return InMemoryQrSessionStore()


@pytest.fixture
def lockers():
    return FakeLockerDirectory(
        LockerRef(id=LOCKER_ID, tenant_id=TENANT_ID, user_id=USER_ID),
        LockerRef(id=8, tenant_id=TENANT_ID, user_id=12),
        LockerRef(id=9, tenant_id=TENANT_ID, user_id=USER_ID, is_active=False),
        LockerRef(id=20, tenant_id=4, user_id=40),
    )


@pytest.fixture
def events():
    return InMemoryAccessEventLog()


@pytest.fixture
def actuator():
    return RecordingActuator()


@pytest.fixture
def service(store, lockers, clock):
    return QrSessionService(store=store, lockers=lockers, default_ttl=15, clock=clock)


@pytest.fixture
def run_with_db():
    """
    Runs `fn(db)` against a fresh in-memory sqlite database, all inside one
    event loop.
    """
    async def _run(fn):
        engine = create_async_engine(
            "sqlite+aiosqlite://",
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        maker = async_sessionmaker(engine, expire_on_commit=False)
        try:
            async with maker() as db:
                return await fn(db)
        finally:
            await engine.dispose()

    return _run
