from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta

import pytest
from sqlmodel import Session, select

from app.core.xp_engine import RejectionReason, XPAwarder
from app.core.xp_ledger import SqlXPLedger, StaleBalanceError
from app.core.xp_rules import XPActionType
from app.models.xp import XPBalance, XPEvent

SINCE = datetime(2026, 3, 14)


def test_first_award_creates_balance(engine, user):
    ledger = SqlXPLedger(engine)

    snapshot = ledger.load_day(user.id, SINCE)
    assert snapshot.version is None
    assert snapshot.events == ()

    total = ledger.commit_award(
        user.id,
        XPActionType.POT_LINK,
        50,
        expected_version=None,
        reference_id="TEST001",
        created_at=SINCE + timedelta(hours=9),
    )

    assert total == 50
    snapshot = ledger.load_day(user.id, SINCE)
    assert snapshot.version == 1
    assert [event.reference_id for event in snapshot.events] == ["TEST001"]
    assert ledger.get_balance(user.id) == 50


def test_commit_with_stale_version_is_rejected(engine, user):
    ledger = SqlXPLedger(engine)
    ledger.commit_award(user.id, XPActionType.POST_CREATE, 3, expected_version=None)
    ledger.commit_award(user.id, XPActionType.POST_CREATE, 3, expected_version=1)

    with pytest.raises(StaleBalanceError):
        ledger.commit_award(user.id, XPActionType.POST_CREATE, 3, expected_version=1)

    with Session(engine) as session:
        events = session.exec(select(XPEvent).where(XPEvent.user_id == user.id)).all()
        balance = session.get(XPBalance, user.id)
    assert len(events) == 2
    assert balance.total_xp == 6
    assert balance.version == 2


def test_concurrent_first_insert_is_rejected(engine, user):
    ledger = SqlXPLedger(engine)
    ledger.commit_award(user.id, XPActionType.POST_CREATE, 3, expected_version=None)

    with pytest.raises(StaleBalanceError):
        ledger.commit_award(user.id, XPActionType.POST_CREATE, 3, expected_version=None)

    assert ledger.get_balance(user.id) == 3


def test_load_day_excludes_earlier_events(engine, user):
    ledger = SqlXPLedger(engine)
    ledger.commit_award(
        user.id, XPActionType.POST_CREATE, 3, expected_version=None, created_at=SINCE - timedelta(minutes=1)
    )
    ledger.commit_award(
        user.id, XPActionType.COMMENT_CREATE, 2, expected_version=1, created_at=SINCE
    )

    snapshot = ledger.load_day(user.id, SINCE)

    assert [event.action_type for event in snapshot.events] == ["comment_create"]
    assert snapshot.version == 2


def test_history_is_newest_first(engine, user):
    ledger = SqlXPLedger(engine)
    for offset, action in enumerate(
        [XPActionType.POST_CREATE, XPActionType.COMMENT_CREATE, XPActionType.POT_LINK]
    ):
        ledger.commit_award(
            user.id,
            action,
            1,
            expected_version=offset or None,
            created_at=SINCE + timedelta(minutes=offset),
        )

    history = ledger.history(user.id, limit=2)

    assert [event.action_type for event in history] == ["pot_link", "comment_create"]


def test_recompute_balance_rebuilds_from_events(engine, user):
    ledger = SqlXPLedger(engine)
    ledger.commit_award(user.id, XPActionType.POT_LINK, 50, expected_version=None)
    ledger.commit_award(user.id, XPActionType.ADMIN_ADJUST, -5, expected_version=1)

    with Session(engine) as session:
        balance = session.get(XPBalance, user.id)
        balance.total_xp = 999
        session.add(balance)
        session.commit()

    assert ledger.recompute_balance(user.id) == 45
    assert ledger.get_balance(user.id) == 45
    assert ledger.load_day(user.id, SINCE).version == 3


def test_get_balance_defaults_to_zero(engine, user):
    assert SqlXPLedger(engine).get_balance(user.id) == 0


def test_concurrent_awards_respect_action_cap(engine, user, clock):
    awarder = XPAwarder(SqlXPLedger(engine), clock=clock, max_attempts=10)

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(
            pool.map(
                lambda _: awarder.evaluate_and_award(user.id, XPActionType.POST_CREATE),
                range(8),
            )
        )

    successes = [result for result in results if result.success]
    failures = [result for result in results if not result.success]

    assert len(successes) == 5
    assert {result.reason for result in failures} == {RejectionReason.DAILY_ACTION_CAP_REACHED}
    assert sorted(result.new_total for result in successes) == [3, 6, 9, 12, 15]

    ledger = SqlXPLedger(engine)
    assert ledger.get_balance(user.id) == 15
    assert len(ledger.history(user.id)) == 5
