"""Tests for posts, moderation, likes and comments."""


def _submit(client, user, description="Hello DevConnect", images=None) -> dict:
    r = client.post(
        "/api/posts",
        json={"description": description, "images": images or []},
        headers=user["headers"],
    )
    assert r.status_code == 201, r.text
    return r.json()["post"]


def _approved_post(client, user, admin, description="Hello DevConnect") -> dict:
    post = _submit(client, user, description)
    r = client.put(f"/api/admin/posts/{post['id']}/approve", headers=admin["headers"])
    assert r.status_code == 200, r.text
    return r.json()


def _notifications(client, user) -> list[dict]:
    return client.get("/api/notifications", headers=user["headers"]).json()


def test_new_post_waits_for_review(client, make_user, admin):
    alice = make_user("Alice")

    r = client.post(
        "/api/posts",
        json={"description": "  First post  ", "images": ["a.png", "a.png", "b.png"]},
        headers=alice["headers"],
    )
    assert r.status_code == 201
    body = r.json()
    assert body["message"] == "Your post is under verification"
    assert body["post"]["status"] == "pending"
    assert body["post"]["description"] == "First post"
    assert body["post"]["images"] == ["a.png", "b.png"]
    assert body["post"]["user"]["name"] == "Alice"

    assert client.get("/api/posts").json() == []
    pending = client.get("/api/posts/user/pending", headers=alice["headers"]).json()
    assert [p["id"] for p in pending] == [body["post"]["id"]]
    queue = client.get("/api/admin/posts/pending", headers=admin["headers"]).json()
    assert [p["id"] for p in queue] == [body["post"]["id"]]


def test_blank_description_is_rejected(client, make_user):
    alice = make_user("Alice")
    r = client.post("/api/posts", json={"description": "   "}, headers=alice["headers"])
    assert r.status_code == 400
    assert r.json() == {"error": "Description is required."}


def test_approve_publishes_and_notifies(client, make_user, admin):
    alice = make_user("Alice")
    post = _approved_post(client, alice, admin)

    assert post["status"] == "approved"
    listed = client.get("/api/posts").json()
    assert [p["id"] for p in listed] == [post["id"]]
    assert client.get(f"/api/posts/user/{alice['id']}").json()[0]["id"] == post["id"]
    assert client.get(f"/api/users/{alice['id']}").json()["postCount"] == 1

    inbox = _notifications(client, alice)
    assert [(n["type"], n["message"]) for n in inbox] == [
        ("post_approved", "Your post has been approved!")
    ]

    r = client.put(f"/api/admin/posts/{post['id']}/approve", headers=admin["headers"])
    assert r.status_code == 409


def test_reject_removes_post_and_notifies(client, make_user, admin):
    alice = make_user("Alice")
    post = _submit(client, alice)

    r = client.put(f"/api/admin/posts/{post['id']}/reject", headers=admin["headers"])
    assert r.status_code == 200
    assert r.json() == {"message": "Post rejected successfully"}

    assert client.get("/api/posts/user/pending", headers=alice["headers"]).json() == []
    inbox = _notifications(client, alice)
    assert [(n["type"], n["message"]) for n in inbox] == [
        ("post_rejected", "Your post has been rejected!")
    ]

    r = client.put(f"/api/admin/posts/{post['id']}/reject", headers=admin["headers"])
    assert r.status_code == 404


def test_search_only_returns_approved_posts(client, make_user, admin):
    alice = make_user("Alice")
    _approved_post(client, alice, admin, "Learning FastAPI today")
    _submit(client, alice, "FastAPI draft still pending")

    r = client.get("/api/posts/search", params={"query": "fastapi"})
    assert r.status_code == 200
    assert [p["description"] for p in r.json()] == ["Learning FastAPI today"]


def test_like_toggle_twice_restores_state(client, make_user, admin):
    alice, bob = make_user("Alice"), make_user("Bob")
    post = _approved_post(client, alice, admin)

    r = client.post(f"/api/posts/{post['id']}/like", headers=bob["headers"])
    assert r.json() == {"message": "Post liked!", "likeCount": 1, "likedByUser": True}

    r = client.get(f"/api/posts/{post['id']}/likes", headers=bob["headers"])
    assert r.json() == {"likeCount": 1, "likedByUser": True}

    r = client.post(f"/api/posts/{post['id']}/like", headers=bob["headers"])
    assert r.json() == {"message": "Like removed!", "likeCount": 0, "likedByUser": False}

    # Only the like (not the unlike) notified the owner
    likes = [n for n in _notifications(client, alice) if n["type"] == "like"]
    assert [n["message"] for n in likes] == ["Bob liked your post."]


def test_self_like_does_not_notify(client, make_user, admin):
    alice = make_user("Alice")
    post = _approved_post(client, alice, admin)

    r = client.post(f"/api/posts/{post['id']}/like", headers=alice["headers"])
    assert r.json()["likedByUser"] is True
    assert [n["type"] for n in _notifications(client, alice)] == ["post_approved"]


def test_like_unknown_post(client, make_user):
    alice = make_user("Alice")
    r = client.post("/api/posts/999/like", headers=alice["headers"])
    assert r.status_code == 404
    assert r.json() == {"error": "Post not found"}


def test_comment_notifies_owner(client, make_user, admin):
    alice, bob = make_user("Alice"), make_user("Bob")
    post = _approved_post(client, alice, admin)

    r = client.post(
        f"/api/posts/{post['id']}/comment", json={"text": "Nice!"}, headers=bob["headers"]
    )
    assert r.status_code == 201
    comment = r.json()
    assert comment["text"] == "Nice!"
    assert comment["user"]["name"] == "Bob"

    r = client.get(f"/api/posts/{post['id']}/comments")
    assert [c["id"] for c in r.json()] == [comment["id"]]

    comments = [n for n in _notifications(client, alice) if n["type"] == "comment"]
    assert [n["message"] for n in comments] == ["Bob commented on your post."]

    client.post(
        f"/api/posts/{post['id']}/comment", json={"text": "Thanks"}, headers=alice["headers"]
    )
    assert len([n for n in _notifications(client, alice) if n["type"] == "comment"]) == 1


def test_delete_comment_permissions(client, make_user, admin):
    alice, bob, carol = make_user("Alice"), make_user("Bob"), make_user("Carol")
    post = _approved_post(client, alice, admin)
    comment = client.post(
        f"/api/posts/{post['id']}/comment", json={"text": "Hi"}, headers=bob["headers"]
    ).json()

    r = client.delete(f"/api/comments/{comment['id']}", headers=carol["headers"])
    assert r.status_code == 403

    r = client.delete(f"/api/comments/{comment['id']}", headers=bob["headers"])
    assert r.status_code == 200
    assert client.get(f"/api/posts/{post['id']}/comments").json() == []

    r = client.delete(f"/api/comments/{comment['id']}", headers=bob["headers"])
    assert r.status_code == 404


def test_delete_post_permissions(client, make_user, admin):
    alice, bob = make_user("Alice"), make_user("Bob")
    first = _approved_post(client, alice, admin, "first")
    second = _approved_post(client, alice, admin, "second")
    client.post(f"/api/posts/{first['id']}/like", headers=bob["headers"])

    r = client.delete(f"/api/posts/{first['id']}", headers=bob["headers"])
    assert r.status_code == 403
    assert r.json() == {"error": "Unauthorized to delete this post"}

    r = client.delete(f"/api/posts/{first['id']}", headers=alice["headers"])
    assert r.json() == {"message": "Post deleted successfully!", "postId": first["id"]}

    r = client.delete(f"/api/posts/{second['id']}", headers=admin["headers"])
    assert r.status_code == 200
    assert client.get("/api/posts").json() == []
