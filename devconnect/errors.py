"""
Domain errors raised by the service layer.

Routers never build error responses themselves: the handler registered in
main.py maps every DevConnectError to `{"error": message}` with the error's
HTTP status. TransportError describes a failed real-time push; it is
logged where it happens and never reaches a client.
"""
import logging

from fastapi import Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class DevConnectError(Exception):
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class Unauthenticated(DevConnectError):
    status_code = 401
    default_message = "Authentication required"


class Unauthorized(DevConnectError):
    status_code = 403
    default_message = "Not allowed"


class NotFound(DevConnectError):
    status_code = 404
    default_message = "Not found"


class Conflict(DevConnectError):
    status_code = 409
    default_message = "Already exists"


class ValidationError(DevConnectError):
    status_code = 400
    default_message = "Invalid request"


class TransportError(DevConnectError):
    default_message = "Real-time channel unreachable"


# Follow edges keep the 400 contract clients already depend on.

class CannotFollowSelf(ValidationError):
    default_message = "You cannot follow yourself"


class AlreadyFollowing(Conflict):
    status_code = 400
    default_message = "Already following this user"


class NotFollowing(NotFound):
    status_code = 400
    default_message = "You are not following this user"


async def devconnect_error_handler(request: Request, exc: DevConnectError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, Unauthenticated) else None
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.message},
        headers=headers,
    )
