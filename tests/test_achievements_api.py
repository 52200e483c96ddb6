from fastapi.testclient import TestClient
from sqlmodel import Session

from app.core.achievements import (
    DEFAULT_ACHIEVEMENTS,
    UserStats,
    progress_percent,
    seed_default_achievements,
)


def _by_key(body: dict) -> dict[str, dict]:
    return {row["key"]: row for row in body["achievements"]}


def test_progress_percent_rounds_and_caps():
    assert progress_percent(0, 5) == 0
    assert progress_percent(1, 3) == 33
    assert progress_percent(2, 3) == 67
    assert progress_percent(40, 25) == 100
    assert progress_percent(3, 0) == 100


def test_user_stats_unknown_requirement_reads_zero():
    stats = UserStats(total_xp=250, level=3, posts=2)

    assert stats.value_for("xp_total") == 250
    assert stats.value_for("level") == 3
    assert stats.value_for("pots_claimed") == 0


def test_seeding_is_idempotent(session: Session):
    assert seed_default_achievements(session) == 0


def test_list_requires_login(client: TestClient):
    assert client.get("/api/achievements").status_code == 401


def test_list_reports_progress_from_activity(client: TestClient, actor, user, sql_awarder):
    for article in ("soil", "light", "soil", "water"):
        sql_awarder.evaluate_and_award(user.id, "learn_read", reference_id=article)
    actor.login(user)
    client.post("/api/posts", json={"group_slug": "ferns", "content": "Fronds unfurling"})

    body = client.get("/api/achievements").json()

    rows = _by_key(body)
    assert len(rows) == len(DEFAULT_ACHIEVEMENTS)
    assert rows["first_sprout"]["current_value"] == 1
    assert rows["first_sprout"]["progress"] == 100
    assert rows["first_sprout"]["earned"] is False
    assert rows["curious_mind"]["current_value"] == 3
    assert rows["curious_mind"]["progress"] == 60
    assert rows["first_reply"]["progress"] == 0
    values = [row["requirement_value"] for row in body["achievements"]]
    assert values == sorted(values)
    assert {row["key"] for row in body["grouped"]["learning"]} == {"curious_mind", "botanist"}
    assert body["stats"] == {
        "total": len(DEFAULT_ACHIEVEMENTS),
        "earned": 0,
        "total_xp": 6,
        "level": 1,
        "posts": 1,
        "comments": 0,
        "articles": 3,
    }


def test_check_unlocks_once(client: TestClient, actor, user, sql_awarder):
    sql_awarder.evaluate_and_award(user.id, "admin_adjust", amount=100)
    actor.login(user)

    first = client.post("/api/achievements/check").json()
    second = client.post("/api/achievements/check").json()

    assert [row["key"] for row in first["newly_earned"]] == ["seedling"]
    assert second["newly_earned"] == []
    rows = _by_key(client.get("/api/achievements").json())
    assert rows["seedling"]["earned"] is True
    assert rows["seedling"]["earned_at"] is not None
    assert rows["in_bloom"]["progress"] == 10
    assert rows["level_five"]["current_value"] == 2


def test_achievements_are_per_user(client: TestClient, actor, user, other_user, sql_awarder):
    sql_awarder.evaluate_and_award(user.id, "admin_adjust", amount=100)
    actor.login(user)
    client.post("/api/achievements/check")

    actor.login(other_user)
    body = client.get("/api/achievements").json()

    assert body["stats"]["earned"] == 0
    assert client.post("/api/achievements/check").json()["newly_earned"] == []
