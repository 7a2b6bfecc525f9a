"""Request correlation ids.

Every request to the intake and admin endpoints carries an ``X-Request-ID``.
The signup site forwards the id it generated so a failed submission can be
traced from the browser console to the intake log lines and the problem
response's ``correlation_id``.
"""

from __future__ import annotations

import uuid
from contextvars import ContextVar
from typing import TYPE_CHECKING, Any

import structlog

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, MutableMapping

    Message = MutableMapping[str, Any]

REQUEST_ID_HEADER = "X-Request-ID"
_HEADER_KEY = REQUEST_ID_HEADER.lower().encode("latin-1")

request_id_ctx: ContextVar[str] = ContextVar("request_id", default="")


def get_request_id() -> str:
    """Id of the request being handled, or an empty string outside one."""
    return request_id_ctx.get()


def resolve_request_id(candidate: str | None) -> str:
    """Keep a client-supplied id when it is a UUID, otherwise mint a UUID4."""
    if candidate:
        try:
            return str(uuid.UUID(candidate))
        except ValueError:
            pass
    return str(uuid.uuid4())


def _header_value(headers: list[tuple[bytes, bytes]]) -> str | None:
    for key, value in headers:
        if key.lower() == _HEADER_KEY:
            return value.decode("latin-1")
    return None


class RequestIdMiddleware:
    """ASGI middleware assigning each HTTP request a correlation id.

    The id is available through :func:`get_request_id`, as
    ``request.state.request_id``, and as ``request_id`` on every structlog
    event of the request. It is echoed back in the ``X-Request-ID`` response
    header. Lifespan and other non-HTTP scopes pass through untouched.
    """

    def __init__(self, app: Any) -> None:
        self.app = app

    async def __call__(
        self,
        scope: MutableMapping[str, Any],
        receive: Callable[[], Awaitable[Message]],
        send: Callable[[Message], Awaitable[None]],
    ) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request_id = resolve_request_id(_header_value(scope.get("headers", [])))
        scope.setdefault("state", {})["request_id"] = request_id
        token = request_id_ctx.set(request_id)
        structlog.contextvars.bind_contextvars(request_id=request_id)

        async def send_with_id(message: Message) -> None:
            if message["type"] == "http.response.start":
                headers = [*message.get("headers", []), (_HEADER_KEY, request_id.encode())]
                message = {**message, "headers": headers}
            await send(message)

        try:
            await self.app(scope, receive, send_with_id)
        finally:
            request_id_ctx.reset(token)
            structlog.contextvars.unbind_contextvars("request_id")
