"""Process-wide service instances exposed as FastAPI dependencies."""

from __future__ import annotations

from functools import lru_cache

from app.core.config import settings
from app.core.db import engine
from app.core.xp_engine import XPAwarder
from app.core.xp_ledger import SqlXPLedger


@lru_cache(maxsize=1)
def get_xp_ledger() -> SqlXPLedger:
    return SqlXPLedger(engine)


@lru_cache(maxsize=1)
def get_xp_awarder() -> XPAwarder:
    """Return the shared awarder built from application settings."""

    return XPAwarder(
        get_xp_ledger(),
        day_timezone=settings.xp_day_timezone,
        max_attempts=settings.xp_award_max_attempts,
    )
