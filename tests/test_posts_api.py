from fastapi.testclient import TestClient
from sqlmodel import Session

from app.models.posts import Post


def _publish(client: TestClient, content: str = "My monstera has a new leaf!", group: str = "monstera"):
    return client.post("/api/posts", json={"group_slug": group, "content": content})


def test_create_post_awards_xp(client: TestClient, actor, user):
    actor.login(user)

    response = _publish(client)

    assert response.status_code == 201
    body = response.json()
    assert body["post"]["author_id"] == user.id
    assert body["post"]["group_slug"] == "monstera"
    assert body["xp_awarded"] == 3
    assert body["xp_message"] is None


def test_sixth_post_is_published_without_xp(client: TestClient, actor, user):
    actor.login(user)

    awarded = [_publish(client, f"Update {index}").json()["xp_awarded"] for index in range(6)]

    assert awarded == [3, 3, 3, 3, 3, 0]
    sixth = _publish(client, "One more").json()
    assert sixth["xp_message"] == "You've already earned the maximum XP for this today."
    assert len(client.get("/api/posts").json()["posts"]) == 7


def test_create_post_requires_login(client: TestClient):
    assert _publish(client).status_code == 401


def test_create_post_validates_content(client: TestClient, actor, user):
    actor.login(user)

    response = client.post("/api/posts", json={"group_slug": "monstera", "content": ""})

    assert response.status_code == 422


def test_blank_post_is_rejected_without_xp(client: TestClient, actor, user):
    actor.login(user)

    response = _publish(client, "   ")

    assert response.status_code == 400
    assert response.json()["detail"]["code"] == "VALIDATION_ERROR"
    assert client.get("/api/posts").json()["posts"] == []
    assert client.get("/api/xp/me").json()["total_xp"] == 0


def test_blank_comment_is_rejected(client: TestClient, actor, user):
    actor.login(user)
    post_id = _publish(client).json()["post"]["id"]

    response = client.post(f"/api/posts/{post_id}/comments", json={"content": " \n\t "})

    assert response.status_code == 400
    assert response.json()["detail"]["code"] == "VALIDATION_ERROR"


def test_post_creation_is_rate_limited(client: TestClient, actor, user):
    actor.login(user)

    statuses = [_publish(client, f"Post {index}").status_code for index in range(11)]

    assert statuses == [201] * 10 + [429]


def test_list_posts_filters_groups_and_hides_hidden(client: TestClient, actor, user, session: Session):
    session.add(Post(author_id=user.id, group_slug="monstera", content="Hidden", hidden=True))
    session.commit()
    actor.login(user)
    _publish(client, "Monstera post", "monstera")
    _publish(client, "Cactus post", "cactus")

    monstera = client.get("/api/posts", params={"group_slug": "monstera"}).json()["posts"]
    everything = client.get("/api/posts").json()["posts"]

    assert [post["content"] for post in monstera] == ["Monstera post"]
    assert [post["content"] for post in everything] == ["Cactus post", "Monstera post"]


def test_comment_awards_xp_and_counts(client: TestClient, actor, user, other_user):
    actor.login(user)
    post_id = _publish(client).json()["post"]["id"]

    actor.login(other_user)
    response = client.post(f"/api/posts/{post_id}/comments", json={"content": "Beautiful!"})

    assert response.status_code == 201
    assert response.json()["xp_awarded"] == 2
    assert response.json()["comment"]["post_id"] == post_id

    listed = client.get("/api/posts").json()["posts"][0]
    assert listed["comment_count"] == 1


def test_comment_on_missing_or_hidden_post(client: TestClient, actor, user, session: Session):
    hidden = Post(author_id=user.id, group_slug="monstera", content="Hidden", hidden=True)
    session.add(hidden)
    session.commit()
    session.refresh(hidden)
    actor.login(user)

    missing = client.post("/api/posts/9999/comments", json={"content": "Hello"})
    on_hidden = client.post(f"/api/posts/{hidden.id}/comments", json={"content": "Hello"})

    assert missing.status_code == 404
    assert missing.json()["detail"]["code"] == "NOT_FOUND"
    assert on_hidden.status_code == 404


def test_like_toggles(client: TestClient, actor, user, other_user):
    actor.login(user)
    post_id = _publish(client).json()["post"]["id"]

    first = client.post(f"/api/posts/{post_id}/like").json()
    actor.login(other_user)
    second = client.post(f"/api/posts/{post_id}/like").json()
    undo = client.post(f"/api/posts/{post_id}/like").json()

    assert (first["liked"], first["like_count"]) == (True, 1)
    assert (second["liked"], second["like_count"]) == (True, 2)
    assert (undo["liked"], undo["like_count"]) == (False, 1)
    assert client.get("/api/posts").json()["posts"][0]["like_count"] == 1
