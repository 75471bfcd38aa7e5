#!/usr/bin/env python3
"""
Seed script: creates a small DevConnect community through the public API.

Creates:
  • 8 members
  • A follow graph (each member follows 2-4 others)
  • 3 posts per member, approved by an admin account
  • Likes and comments across approved posts

Every follow, like, comment and approval goes through the same endpoints the
web client uses, so the seeded accounts also get their notifications.

Run against a running API:
  python scripts/seed_data.py --api-url http://localhost:8000 \\
      --admin-email admin@devconnect.dev --admin-password <password>

Without admin credentials the posts stay pending.
"""
import argparse
import random
import time
from typing import Optional

import httpx

PASSWORD = "devconnect123"

MEMBERS = [
    ("Alice Chen", "alice@devconnect.dev"),
    ("Bob Martinez", "bob@devconnect.dev"),
    ("Carol Singh", "carol@devconnect.dev"),
    ("Dave Kim", "dave@devconnect.dev"),
    ("Eve Johnson", "eve@devconnect.dev"),
    ("Frank Williams", "frank@devconnect.dev"),
    ("Grace Li", "grace@devconnect.dev"),
    ("Henry Brown", "henry@devconnect.dev"),
]

SAMPLE_POSTS = [
    "Just shipped a new feature to production 🚀 Zero downtime deploys are beautiful.",
    "FastAPI dependency injection makes testing route handlers painless.",
    "TIL: Redis pub/sub is fire-and-forget. Nobody listening means nobody hears it.",
    "Finally wrote integration tests for our WebSocket layer. Worth every minute.",
    "Optimistic UI updates feel instant, as long as you remember the rollback path.",
    "SQLAlchemy 2.0 typed mappings are a huge readability win.",
    "Pair programming session today turned a two-day bug into a two-hour fix.",
    "Composite primary keys: the cheapest uniqueness guarantee you will ever get.",
    "Prometheus metrics: the difference between knowing and guessing in production.",
    "Reading through the asyncio docs again. Task cancellation is subtle.",
    "Code review tip: ask questions instead of giving orders.",
    "Moved our side project from polling to WebSockets. The server load dropped noticeably.",
]

SAMPLE_COMMENTS = [
    "Great point!",
    "Totally agree with this.",
    "Thanks for sharing 🙌",
    "Could you write a longer post about this?",
    "This saved me hours, thank you.",
]


class ApiClient:
    def __init__(self, base_url: str) -> None:
        self.http = httpx.Client(base_url=base_url, timeout=10)

    def request(
        self, method: str, path: str, token: Optional[str] = None, **kwargs
    ) -> Optional[dict]:
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        resp = self.http.request(method, path, headers=headers, **kwargs)
        if resp.is_error:
            print(f"  HTTP {resp.status_code} on {method} {path}: {resp.text}")
            return None
        return resp.json()

    def close(self) -> None:
        self.http.close()


def wait_for_api(client: ApiClient, retries: int = 15) -> None:
    print(f"Waiting for API at {client.http.base_url} ...")
    for _ in range(retries):
        try:
            result = client.request("GET", "/health")
            if result and result.get("status") == "ok":
                print("  API is ready!\n")
                return
        except httpx.TransportError:
            pass
        time.sleep(3)
    raise RuntimeError(f"API not reachable at {client.http.base_url} after {retries} retries")


def sign_in(client: ApiClient, name: str, email: str) -> Optional[dict]:
    """Register the member, or log in if the account already exists."""
    body = {"name": name, "email": email, "password": PASSWORD}
    result = client.request("POST", "/api/auth/register", json=body)
    if result is None:
        result = client.request(
            "POST", "/api/auth/login", json={"email": email, "password": PASSWORD}
        )
    return result


def main(api_url: str, admin_email: Optional[str], admin_password: Optional[str]) -> None:
    client = ApiClient(api_url)
    try:
        wait_for_api(client)
        seed(client, api_url, admin_email, admin_password)
    finally:
        client.close()


def seed(
    client: ApiClient,
    api_url: str,
    admin_email: Optional[str],
    admin_password: Optional[str],
) -> None:
    # ── Members ──────────────────────────────────────────────────────────
    print("Creating members...")
    members: list[dict] = []
    for name, email in MEMBERS:
        result = sign_in(client, name, email)
        if result:
            members.append({"id": result["user"]["id"], "name": name, "token": result["token"]})
            print(f"  ✓ {name} (id={result['user']['id']})")
        else:
            print(f"  ✗ Failed to sign in {email}")

    if len(members) < 2:
        print("Not enough members, aborting")
        return

    # ── Follow graph ─────────────────────────────────────────────────────
    print("\nCreating follow relationships...")
    follows = 0
    for member in members:
        others = [m for m in members if m["id"] != member["id"]]
        for target in random.sample(others, k=min(random.randint(2, 4), len(others))):
            if client.request(
                "POST", "/api/follows", member["token"], json={"userId": target["id"]}
            ):
                follows += 1
    print(f"  ✓ {follows} follow edges")

    # ── Posts ────────────────────────────────────────────────────────────
    print("\nSubmitting posts...")
    posts: list[dict] = []
    pool = random.sample(SAMPLE_POSTS, k=len(SAMPLE_POSTS))
    for i, member in enumerate(members):
        for j in range(3):
            description = pool[(i * 3 + j) % len(pool)]
            result = client.request(
                "POST", "/api/posts", member["token"], json={"description": description}
            )
            if result:
                posts.append(result["post"])
    print(f"  ✓ {len(posts)} posts submitted (pending review)")

    if not (admin_email and admin_password):
        print("\nNo admin credentials given, posts stay pending.")
        return

    admin = client.request(
        "POST", "/api/auth/login", json={"email": admin_email, "password": admin_password}
    )
    if admin is None or admin["user"]["role"] != "admin":
        print(f"\n{admin_email} is not an admin account, posts stay pending.")
        return

    print("\nApproving posts...")
    approved = [
        post for post in posts
        if client.request("PUT", f"/api/admin/posts/{post['id']}/approve", admin["token"])
    ]
    print(f"  ✓ {len(approved)} posts approved")

    # ── Likes and comments ───────────────────────────────────────────────
    print("\nAdding likes and comments...")
    likes = comments = 0
    for post in approved:
        for member in random.sample(members, k=random.randint(0, min(4, len(members)))):
            if client.request("POST", f"/api/posts/{post['id']}/like", member["token"]):
                likes += 1
            if random.random() < 0.3:
                text = random.choice(SAMPLE_COMMENTS)
                if client.request(
                    "POST",
                    f"/api/posts/{post['id']}/comment",
                    member["token"],
                    json={"text": text},
                ):
                    comments += 1
    print(f"  ✓ {likes} likes, {comments} comments")

    # ── Summary ──────────────────────────────────────────────────────────
    first = members[0]
    print("\n" + "=" * 60)
    print("Seed complete! Some commands to try:\n")
    print(f"# {first['name']}'s notifications (password: {PASSWORD}):")
    print(f"  curl -s '{api_url}/api/notifications' \\")
    print(f"    -H 'Authorization: Bearer {first['token']}' | python3 -m json.tool\n")
    print("# Listen for real-time events:")
    ws_url = api_url.replace("http", "ws", 1)
    print(f"  websocat '{ws_url}/ws?token={first['token']}'")
    print(f"  then send: {{\"event\": \"join\", \"data\": {first['id']}}}")
    print("=" * 60)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed the DevConnect API")
    parser.add_argument("--api-url", default="http://localhost:8000", help="API base URL")
    parser.add_argument("--admin-email", help="existing admin account used to approve posts")
    parser.add_argument("--admin-password", help="password of the admin account")
    args = parser.parse_args()
    main(args.api_url, args.admin_email, args.admin_password)
