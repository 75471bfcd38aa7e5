"""Tests for the follow / unfollow API and its notification side effects."""

import pytest
from sqlalchemy import func, select

from devconnect.errors import AlreadyFollowing, CannotFollowSelf, NotFollowing, NotFound
from devconnect.models import Follow, Notification, User
from devconnect.services import follows


# =============================================================================
# HTTP
# =============================================================================


def test_follow_then_unfollow(client, make_user):
    alice, bob = make_user("Alice"), make_user("Bob")

    r = client.post("/api/follows", json={"userId": bob["id"]}, headers=alice["headers"])
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["message"] == "User followed successfully"
    assert body["isFollowing"] is True
    assert body["followerCount"] == 1

    r = client.get(f"/api/follows/status/{bob['id']}", headers=alice["headers"])
    assert r.json() == {"isFollowing": True}

    r = client.delete(f"/api/follows/{bob['id']}", headers=alice["headers"])
    assert r.status_code == 200
    assert r.json()["isFollowing"] is False
    assert r.json()["followerCount"] == 0

    r = client.get(f"/api/follows/status/{bob['id']}", headers=alice["headers"])
    assert r.json() == {"isFollowing": False}


def test_second_follow_is_rejected(client, make_user):
    alice, bob = make_user("Alice"), make_user("Bob")
    client.post("/api/follows", json={"userId": bob["id"]}, headers=alice["headers"])

    r = client.post("/api/follows", json={"userId": bob["id"]}, headers=alice["headers"])
    assert r.status_code == 400
    assert r.json() == {"error": "Already following this user"}


def test_second_unfollow_is_rejected(client, make_user):
    alice, bob = make_user("Alice"), make_user("Bob")
    client.post("/api/follows", json={"userId": bob["id"]}, headers=alice["headers"])
    client.delete(f"/api/follows/{bob['id']}", headers=alice["headers"])

    r = client.delete(f"/api/follows/{bob['id']}", headers=alice["headers"])
    assert r.status_code == 400
    assert r.json() == {"error": "You are not following this user"}


def test_self_follow_is_rejected(client, make_user):
    alice = make_user("Alice")

    r = client.post("/api/follows", json={"userId": alice["id"]}, headers=alice["headers"])
    assert r.status_code == 400
    assert r.json() == {"error": "You cannot follow yourself"}

    r = client.get(f"/api/follows/followers/{alice['id']}", headers=alice["headers"])
    assert r.json() == []


def test_follow_unknown_user(client, make_user):
    alice = make_user("Alice")
    r = client.post("/api/follows", json={"userId": 9999}, headers=alice["headers"])
    assert r.status_code == 404


def test_follow_requires_authentication(client, make_user):
    bob = make_user("Bob")
    assert client.post("/api/follows", json={"userId": bob["id"]}).status_code == 401
    assert client.delete(f"/api/follows/{bob['id']}").status_code == 401

    r = client.post(
        "/api/follows",
        json={"userId": bob["id"]},
        headers={"Authorization": "Bearer not-a-token"},
    )
    assert r.status_code == 401
    assert r.json() == {"error": "Invalid token"}


def test_follow_requires_user_id(client, make_user):
    alice = make_user("Alice")
    r = client.post("/api/follows", json={}, headers=alice["headers"])
    assert r.status_code == 422


def test_followers_and_following_lists(client, make_user):
    alice, bob, carol = make_user("Alice"), make_user("Bob"), make_user("Carol")
    client.post("/api/follows", json={"userId": bob["id"]}, headers=alice["headers"])
    client.post("/api/follows", json={"userId": bob["id"]}, headers=carol["headers"])
    client.post("/api/follows", json={"userId": carol["id"]}, headers=alice["headers"])

    r = client.get(f"/api/follows/followers/{bob['id']}", headers=alice["headers"])
    assert r.status_code == 200
    followers = r.json()
    assert {u["id"] for u in followers} == {alice["id"], carol["id"]}
    assert set(followers[0]) == {"id", "name", "avatar"}

    r = client.get(f"/api/follows/following/{alice['id']}", headers=alice["headers"])
    assert {u["name"] for u in r.json()} == {"Bob", "Carol"}

    r = client.get(f"/api/users/{bob['id']}")
    assert r.json()["followerCount"] == 2
    assert r.json()["followingCount"] == 0


def test_follow_creates_exactly_one_notification(client, make_user):
    alice, bob = make_user("Alice"), make_user("Bob")
    client.post("/api/follows", json={"userId": bob["id"]}, headers=alice["headers"])
    # Rejected duplicate must not add another row
    client.post("/api/follows", json={"userId": bob["id"]}, headers=alice["headers"])

    r = client.get("/api/notifications", headers=bob["headers"])
    follow_rows = [n for n in r.json() if n["type"] == "follow"]
    assert len(follow_rows) == 1
    assert follow_rows[0]["userId"] == bob["id"]
    assert follow_rows[0]["message"] == "Alice followed you."
    assert follow_rows[0]["isRead"] is False

    # Unfollowing does not notify
    client.delete(f"/api/follows/{bob['id']}", headers=alice["headers"])
    assert len(client.get("/api/notifications", headers=bob["headers"]).json()) == 1


# =============================================================================
# Service layer
# =============================================================================


async def _user(db, name: str) -> User:
    user = User(name=name, email=f"{name.lower()}@example.com")
    db.add(user)
    await db.commit()
    return user


@pytest.mark.asyncio
async def test_service_follow_commits_edge_and_notification(db, recorder):
    alice, bob = await _user(db, "Alice"), await _user(db, "Bob")

    state = await follows.follow(db, recorder, alice, bob.id)

    assert state.is_following is True
    assert state.follower_count == 1
    assert await follows.is_following(db, alice.id, bob.id)
    count = await db.scalar(
        select(func.count()).select_from(Notification).where(
            Notification.user_id == bob.id, Notification.type == "follow"
        )
    )
    assert count == 1

    assert recorder.user_events[0][0] == str(bob.id)
    assert recorder.user_events[0][1] == "notification"
    assert recorder.user_events[0][2]["userId"] == bob.id
    assert recorder.broadcasts == [
        ("followUpdate", {"followerId": alice.id, "targetUserId": bob.id, "isFollowing": True})
    ]


@pytest.mark.asyncio
async def test_service_follow_errors(db, recorder):
    alice, bob = await _user(db, "Alice"), await _user(db, "Bob")

    with pytest.raises(CannotFollowSelf):
        await follows.follow(db, recorder, alice, alice.id)
    with pytest.raises(NotFound):
        await follows.follow(db, recorder, alice, 4242)
    await follows.follow(db, recorder, alice, bob.id)
    with pytest.raises(AlreadyFollowing):
        await follows.follow(db, recorder, alice, bob.id)
    with pytest.raises(NotFollowing):
        await follows.unfollow(db, recorder, bob, alice.id)

    edges = await db.scalar(select(func.count()).select_from(Follow))
    assert edges == 1


@pytest.mark.asyncio
async def test_service_unfollow_broadcasts_flag(db, recorder):
    alice, bob = await _user(db, "Alice"), await _user(db, "Bob")
    await follows.follow(db, recorder, alice, bob.id)
    recorder.broadcasts.clear()

    state = await follows.unfollow(db, recorder, alice, bob.id)

    assert state.is_following is False
    assert not await follows.is_following(db, alice.id, bob.id)
    assert recorder.broadcasts == [
        ("followUpdate", {"followerId": alice.id, "targetUserId": bob.id, "isFollowing": False})
    ]
