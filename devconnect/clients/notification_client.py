"""
Python client for the DevConnect notification channel.

  NotificationClient: thin async REST wrapper (httpx) mapping error
                      responses back onto the server's error classes.
  NotificationView:   local inbox with read/unread state. The REST list is
                      authoritative: `reconcile()` replaces local state and
                      every push event only triggers a reconcile.
  FollowToggle:       optimistic follow button. The server-confirmed
                      response replaces the guess; an error rolls it back.
  RealtimeSession:    WebSocket loop (websockets) that joins the user's
                      room, answers pings and reconnects with one fixed
                      policy. Incoming events go to the handlers.

Real-time failures are logged and never raised: without the socket the
view still converges through `reconcile()`.
"""
import asyncio
import copy
import json
import logging
from typing import Any, Awaitable, Callable

import httpx
import websockets
from websockets.exceptions import WebSocketException

from devconnect.errors import (
    Conflict,
    DevConnectError,
    NotFound,
    TransportError,
    Unauthenticated,
    Unauthorized,
    ValidationError,
)

logger = logging.getLogger(__name__)

_ERRORS_BY_STATUS = {
    400: ValidationError,
    401: Unauthenticated,
    403: Unauthorized,
    404: NotFound,
    409: Conflict,
}

REFRESH_EVENTS = ("notification", "newNotification")


class NotificationClient:
    def __init__(self, http: httpx.AsyncClient, token: str) -> None:
        self._http = http
        self._headers = {"Authorization": f"Bearer {token}"}

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        resp = await self._http.request(method, path, headers=self._headers, **kwargs)
        if resp.is_error:
            try:
                message = resp.json().get("error") or resp.text
            except ValueError:
                message = resp.text
            error_cls = _ERRORS_BY_STATUS.get(resp.status_code, DevConnectError)
            raise error_cls(message)
        return resp.json()

    async def list_notifications(self) -> list[dict]:
        return await self._request("GET", "/api/notifications")

    async def mark_as_read(self, notification_id: int) -> dict:
        return await self._request("POST", "/api/notifications/read", json={"id": notification_id})

    async def mark_all_as_read(self) -> dict:
        return await self._request("POST", "/api/notifications/read-all")

    async def delete_notification(self, notification_id: int) -> dict:
        return await self._request("DELETE", f"/api/notifications/{notification_id}")

    async def follow(self, user_id: int) -> dict:
        return await self._request("POST", "/api/follows", json={"userId": user_id})

    async def unfollow(self, user_id: int) -> dict:
        return await self._request("DELETE", f"/api/follows/{user_id}")

    async def follow_status(self, user_id: int) -> bool:
        return (await self._request("GET", f"/api/follows/status/{user_id}"))["isFollowing"]

    async def profile(self, user_id: int) -> dict:
        return await self._request("GET", f"/api/users/{user_id}")

    async def realtime_config(self) -> dict:
        return await self._request("GET", "/api/config/realtime")


class NotificationView:
    def __init__(self, api: NotificationClient) -> None:
        self.api = api
        self.items: list[dict] = []

    @property
    def unread_count(self) -> int:
        return sum(1 for n in self.items if not n["isRead"])

    async def reconcile(self) -> None:
        self.items = await self.api.list_notifications()

    async def handle_event(self, event: str, data: Any) -> None:
        if event in REFRESH_EVENTS:
            logger.debug("%s received, refetching inbox", event)
            await self.reconcile()

    async def _optimistic(self, apply: Callable[[], None], call: Awaitable) -> None:
        snapshot = copy.deepcopy(self.items)
        apply()
        try:
            await call
        except DevConnectError:
            self.items = snapshot
            raise

    async def mark_as_read(self, notification_id: int) -> None:
        def apply():
            for n in self.items:
                if n["id"] == notification_id:
                    n["isRead"] = True

        await self._optimistic(apply, self.api.mark_as_read(notification_id))

    async def mark_all_as_read(self) -> None:
        def apply():
            for n in self.items:
                n["isRead"] = True

        await self._optimistic(apply, self.api.mark_all_as_read())

    async def delete(self, notification_id: int) -> None:
        def apply():
            self.items = [n for n in self.items if n["id"] != notification_id]

        await self._optimistic(apply, self.api.delete_notification(notification_id))


class FollowToggle:
    """Follow button state for one target user."""

    def __init__(self, api: NotificationClient, user_id: int) -> None:
        self.api = api
        self.user_id = user_id
        self.is_following = False
        self.follower_count = 0
        self.following_count = 0

    async def refresh(self) -> None:
        profile = await self.api.profile(self.user_id)
        self.is_following = await self.api.follow_status(self.user_id)
        self.follower_count = profile["followerCount"]
        self.following_count = profile["followingCount"]

    async def toggle(self) -> None:
        previous = (self.is_following, self.follower_count)
        self.is_following = not self.is_following
        self.follower_count += 1 if self.is_following else -1
        try:
            if self.is_following:
                confirmed = await self.api.follow(self.user_id)
            else:
                confirmed = await self.api.unfollow(self.user_id)
        except DevConnectError:
            self.is_following, self.follower_count = previous
            raise
        self.is_following = confirmed["isFollowing"]
        self.follower_count = confirmed["followerCount"]
        self.following_count = confirmed["followingCount"]

    async def handle_event(self, event: str, data: Any) -> None:
        if event == "followUpdate" and data and data.get("targetUserId") == self.user_id:
            await self.refresh()


class RealtimeSession:
    def __init__(
        self,
        ws_url: str,
        token: str,
        user_id: int,
        handlers: list = (),
        reconnect_attempts: int = 5,
        reconnect_delay: float = 1.0,
        connect: Callable = websockets.connect,
    ) -> None:
        self.url = f"{ws_url}?token={token}"
        self.user_id = user_id
        self.handlers = list(handlers)
        self.reconnect_attempts = reconnect_attempts
        self.reconnect_delay = reconnect_delay
        self._connect = connect
        self.joined = False
        self._stopped = False
        self._connected = False
        self._ws = None

    async def stop(self) -> None:
        """End `run()`, closing the open socket instead of waiting for its next frame."""
        self._stopped = True
        if self._ws is not None:
            await self._ws.close()

    async def _guarded(self, what: str, call: Awaitable) -> None:
        # REST refetches fail independently of the socket
        try:
            await call
        except (httpx.HTTPError, DevConnectError) as exc:
            logger.warning("%s failed: %s", what, exc)

    async def _on_frame(self, ws, frame: dict) -> None:
        event, data = frame.get("event"), frame.get("data")
        if event == "ping":
            await ws.send(json.dumps({"event": "pong"}))
            return
        if event == "joinAcknowledged":
            self.joined = bool(data and data.get("success"))
            if not self.joined:
                logger.warning("Join refused: %s", data and data.get("message"))
            return
        for handler in self.handlers:
            await self._guarded(f"{event} handler", handler.handle_event(event, data))

    async def _session(self) -> None:
        self._connected = False
        try:
            async with self._connect(self.url) as ws:
                self._ws = ws
                self._connected = True
                await ws.send(json.dumps({"event": "join", "data": self.user_id}))
                # Events may have been missed while disconnected
                for handler in self.handlers:
                    if isinstance(handler, NotificationView):
                        await self._guarded("Inbox reconcile", handler.reconcile())
                async for raw in ws:
                    if self._stopped:
                        return
                    try:
                        frame = json.loads(raw)
                    except ValueError:
                        logger.warning("Ignoring malformed frame: %r", raw)
                        continue
                    await self._on_frame(ws, frame)
        except (OSError, WebSocketException, asyncio.TimeoutError) as exc:
            if self._stopped:
                return
            raise TransportError(f"real-time channel lost: {exc}") from exc
        finally:
            self._ws = None

    async def run(self) -> None:
        """Stay connected until `stop()` or until reconnect attempts run out."""
        failures = 0
        while not self._stopped:
            try:
                await self._session()
                failures = 0
            except TransportError as exc:
                self.joined = False
                failures = 1 if self._connected else failures + 1
                logger.warning("%s (attempt %d)", exc.message, failures)
                if failures > self.reconnect_attempts:
                    logger.error(
                        "Giving up on real-time channel after %d attempts; "
                        "relying on polling",
                        self.reconnect_attempts,
                    )
                    return
            if not self._stopped:
                await asyncio.sleep(self.reconnect_delay)
