from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Generator

import pytest
from fastapi import Depends
from fastapi.testclient import TestClient
from sqlalchemy.engine import Engine
from sqlmodel import Session

from app.core.auth import current_user
from app.core.db import build_engine, get_session, init_db
from app.core.errors import ApiError, ErrorCode
from app.core.rate_limit import RateLimiter, get_rate_limiter
from app.core.services import get_xp_awarder, get_xp_ledger
from app.core.xp_engine import XPAwarder
from app.core.xp_ledger import DaySnapshot, SqlXPLedger, StaleBalanceError
from app.core.xp_rules import XPActionType
from app.main import app
from app.models.users import User, UserRole
from app.models.xp import XPEvent


class FrozenClock:
    """Callable clock returning a fixed, manually advanced UTC instant."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class InMemoryXPLedger:
    """Ledger double keeping events and balance versions in memory.

    ``conflicts`` makes the next N commits report a stale balance; ``error``
    is raised from every read.
    """

    def __init__(self) -> None:
        self.events: list[XPEvent] = []
        self.totals: dict[int, int] = {}
        self.versions: dict[int, int] = {}
        self.conflicts = 0
        self.error: Exception | None = None
        self.commits = 0

    def load_day(self, user_id: int, since: datetime) -> DaySnapshot:
        if self.error is not None:
            raise self.error
        return DaySnapshot(
            version=self.versions.get(user_id),
            events=tuple(
                event
                for event in self.events
                if event.user_id == user_id and event.created_at >= since
            ),
        )

    def commit_award(
        self,
        user_id: int,
        action_type: XPActionType,
        amount: int,
        *,
        expected_version: int | None,
        reference_id: str | None = None,
        description: str | None = None,
        created_at: datetime | None = None,
    ) -> int:
        if self.conflicts:
            self.conflicts -= 1
            raise StaleBalanceError("simulated conflict")
        if self.versions.get(user_id) != expected_version:
            raise StaleBalanceError("version mismatch")

        self.events.append(
            XPEvent(
                user_id=user_id,
                action_type=action_type.value,
                amount=amount,
                reference_id=reference_id,
                description=description,
                created_at=created_at or datetime.utcnow(),
            )
        )
        self.versions[user_id] = (expected_version or 0) + 1
        self.totals[user_id] = self.totals.get(user_id, 0) + amount
        self.commits += 1
        return self.totals[user_id]


class Actor:
    """Holds the user id the test client is signed in as."""

    def __init__(self) -> None:
        self.user_id: int | None = None

    def login(self, user: User) -> None:
        self.user_id = user.id

    def logout(self) -> None:
        self.user_id = None


@pytest.fixture()
def clock() -> FrozenClock:
    return FrozenClock(datetime(2026, 3, 14, 15, 0, tzinfo=timezone.utc))


@pytest.fixture()
def ledger() -> InMemoryXPLedger:
    return InMemoryXPLedger()


@pytest.fixture()
def awarder(ledger: InMemoryXPLedger, clock: FrozenClock) -> XPAwarder:
    return XPAwarder(ledger, clock=clock)


@pytest.fixture()
def engine(tmp_path) -> Generator[Engine, None, None]:
    engine = build_engine(
        f"sqlite:///{tmp_path / 'greenhouse-test.db'}", connect_args={"timeout": 30}
    )
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session(engine: Engine) -> Generator[Session, None, None]:
    with Session(engine) as session:
        yield session


def _create_user(session: Session, username: str, role: UserRole = UserRole.USER) -> User:
    user = User(username=username, display_name=username.title(), role=role)
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


@pytest.fixture()
def user(session: Session) -> User:
    return _create_user(session, "fern")


@pytest.fixture()
def other_user(session: Session) -> User:
    return _create_user(session, "basil")


@pytest.fixture()
def admin(session: Session) -> User:
    return _create_user(session, "gardener", UserRole.ADMIN)


@pytest.fixture()
def sql_ledger(engine: Engine) -> SqlXPLedger:
    return SqlXPLedger(engine)


@pytest.fixture()
def sql_awarder(sql_ledger: SqlXPLedger, clock: FrozenClock) -> XPAwarder:
    return XPAwarder(sql_ledger, clock=clock)


@pytest.fixture()
def limiter() -> RateLimiter:
    return RateLimiter()


@pytest.fixture()
def actor() -> Actor:
    return Actor()


@pytest.fixture()
def client(
    engine: Engine,
    sql_ledger: SqlXPLedger,
    sql_awarder: XPAwarder,
    limiter: RateLimiter,
    actor: Actor,
) -> Generator[TestClient, None, None]:
    def get_session_override() -> Generator[Session, None, None]:
        with Session(engine) as session:
            yield session

    def current_user_override(session: Session = Depends(get_session)) -> User:
        user = session.get(User, actor.user_id) if actor.user_id is not None else None
        if user is None:
            raise ApiError(ErrorCode.UNAUTHORIZED, "Not signed in", status_code=401).to_http()
        return user

    app.dependency_overrides[get_session] = get_session_override
    app.dependency_overrides[current_user] = current_user_override
    app.dependency_overrides[get_xp_ledger] = lambda: sql_ledger
    app.dependency_overrides[get_xp_awarder] = lambda: sql_awarder
    app.dependency_overrides[get_rate_limiter] = lambda: limiter
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()
