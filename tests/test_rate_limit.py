import pytest

from app.core.errors import ApiError, ErrorCode
from app.core.rate_limit import RateLimiter, RateLimitPolicy, RateLimits, allow, enforce


class ManualClock:
    def __init__(self) -> None:
        self.now = 1_000_000.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture()
def manual_clock() -> ManualClock:
    return ManualClock()


@pytest.fixture()
def limiter(manual_clock: ManualClock) -> RateLimiter:
    return RateLimiter(clock=manual_clock)


def test_allows_requests_up_to_limit(limiter: RateLimiter):
    results = [limiter.check("test-key", 5, 60_000) for _ in range(6)]

    assert results == [True, True, True, True, True, False]


def test_reset_allows_again(limiter: RateLimiter):
    for _ in range(5):
        limiter.check("test-key", 5, 60_000)
    assert limiter.check("test-key", 5, 60_000) is False

    limiter.reset("test-key")

    assert limiter.check("test-key", 5, 60_000) is True


def test_keys_are_isolated(limiter: RateLimiter):
    for _ in range(5):
        limiter.check("key-a", 5, 60_000)

    assert limiter.check("key-a", 5, 60_000) is False
    assert limiter.check("key-b", 5, 60_000) is True


def test_window_expiry_starts_new_window(limiter: RateLimiter, manual_clock: ManualClock):
    for _ in range(3):
        limiter.check("test-key", 3, 1_000)
    assert limiter.check("test-key", 3, 1_000) is False

    manual_clock.now += 1_000

    assert limiter.check("test-key", 3, 1_000) is True
    assert limiter.get_status("test-key").remaining == 2


def test_get_status_reports_remaining(limiter: RateLimiter, manual_clock: ManualClock):
    limiter.check("test-key", 5, 60_000)
    limiter.check("test-key", 5, 60_000)

    status = limiter.get_status("test-key")

    assert status.remaining == 3
    assert status.limit == 5
    assert status.reset_at_ms == manual_clock.now + 60_000


def test_get_status_for_unknown_key(limiter: RateLimiter, manual_clock: ManualClock):
    status = limiter.get_status("missing")

    assert status.remaining == 0
    assert status.limit == 0
    assert status.reset_at_ms == manual_clock.now


def test_sweep_removes_only_expired_windows(limiter: RateLimiter, manual_clock: ManualClock):
    limiter.check("short", 5, 1_000)
    limiter.check("long", 5, 60_000)

    manual_clock.now += 5_000

    assert limiter.sweep() == 1
    assert len(limiter) == 1
    assert limiter.get_status("long").remaining == 4


def test_sweeper_thread_starts_and_stops(limiter: RateLimiter):
    limiter.start_sweeper(interval_seconds=60)
    limiter.start_sweeper(interval_seconds=60)

    limiter.close()
    limiter.close()


def test_policy_keys_are_prefixed():
    assert RateLimits.CLAIM_TOKEN.key("203.0.113.9") == "claim-token:203.0.113.9"
    assert RateLimits.CLAIM_EXECUTION.limit == 3


def test_allow_uses_the_given_empty_limiter(limiter: RateLimiter):
    policy = RateLimitPolicy("unit", 1, 60_000, "Slow down.")

    assert allow(policy, "someone", limiter) is True
    assert allow(policy, "someone", limiter) is False
    assert len(limiter) == 1


def test_enforce_raises_rate_limit_error(limiter: RateLimiter):
    policy = RateLimitPolicy("unit", 1, 60_000, "Slow down.")
    enforce(policy, "someone", limiter)

    with pytest.raises(ApiError) as excinfo:
        enforce(policy, "someone", limiter)

    assert excinfo.value.status_code == 429
    assert excinfo.value.code == ErrorCode.RATE_LIMIT
    assert excinfo.value.detail == {"code": "RATE_LIMIT", "message": "Slow down."}
