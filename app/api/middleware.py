"""ASGI middleware in front of the API routes.

``AbuseGuardMiddleware`` runs the abuse guard before routing so throttled or
blocked traffic never reaches the validation engine. Booking submissions are
buffered once, up to a size cap, to extract ``booking.email`` for the
per-email throttle, then replayed to the route unchanged.
"""

import json
import logging
import time
from dataclasses import replace
from typing import Optional

from starlette.concurrency import run_in_threadpool
from starlette.responses import JSONResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from app.core.errors import RequestTooLarge, create_error_reference
from app.throttle.guard import AbuseGuard, GuardDecision, RequestInfo

logger = logging.getLogger(__name__)

RATE_LIMIT_MESSAGE = "Rate limit exceeded. Please try again later."


def _header(scope: Scope, name: bytes) -> str:
    for k, v in scope.get("headers", []):
        if k.lower() == name:
            return v.decode("latin-1")
    return ""


def extract_email(body: bytes):
    """booking.email from a JSON body, or None when it cannot be read."""
    try:
        data = json.loads(body or b"null")
    except (ValueError, UnicodeDecodeError):
        return None
    if not isinstance(data, dict) or not isinstance(data.get("booking"), dict):
        return None
    email = data["booking"].get("email")
    return email if isinstance(email, str) else None


def rate_limited_response(decision: GuardDecision) -> JSONResponse:
    headers = {
        "RateLimit-Limit": str(decision.limit),
        "RateLimit-Remaining": "0",
        "RateLimit-Reset": str(decision.reset_at),
        "Retry-After": str(decision.retry_after),
    }
    return JSONResponse(
        status_code=429,
        content={"error": RATE_LIMIT_MESSAGE, "retry_after": decision.retry_after},
        headers=headers,
    )


class AbuseGuardMiddleware:
    def __init__(self, app: ASGIApp, guard: AbuseGuard, max_body_bytes: int = 64 * 1024):
        self.app = app
        self.guard = guard
        self.max_body_bytes = max_body_bytes

    async def _read_body(self, scope: Scope, receive: Receive) -> Optional[bytes]:
        """The whole request body, or None if the client disconnected first."""
        declared = _header(scope, b"content-length")
        if declared.isdigit() and int(declared) > self.max_body_bytes:
            raise RequestTooLarge()
        chunks = []
        size = 0
        more_body = True
        while more_body:
            message = await receive()
            if message["type"] == "http.disconnect":
                return None
            chunk = message.get("body", b"")
            size += len(chunk)
            if size > self.max_body_bytes:
                raise RequestTooLarge()
            chunks.append(chunk)
            more_body = message.get("more_body", False)
        return b"".join(chunks)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        client = scope.get("client")
        info = RequestInfo(
            ip=client[0] if client else "unknown",
            method=scope["method"],
            path=scope["path"],
            query_string=scope.get("query_string", b"").decode("latin-1"),
            user_agent=_header(scope, b"user-agent"),
        )
        raw_path = scope.get("raw_path")
        if raw_path and b".." in raw_path and ".." not in info.path:
            info = replace(info, path=raw_path.decode("latin-1"))

        body = None
        if info.is_booking_submission:
            # Blocked clients are turned away before their body is read.
            early = await run_in_threadpool(self.guard.check_lists, info)
            if early is not None and not early.allowed:
                await rate_limited_response(early)(scope, receive, send)
                return
            try:
                body = await self._read_body(scope, receive)
            except RequestTooLarge:
                logger.warning("rejected oversized booking body from %s", info.ip)
                response = JSONResponse(status_code=413, content={"error": "Request body too large"})
                await response(scope, receive, send)
                return
            if body is None:
                return
            info = replace(info, email=extract_email(body))

        decision = await run_in_threadpool(self.guard.evaluate, info)
        if not decision.allowed:
            await rate_limited_response(decision)(scope, receive, send)
            return

        if body is None:
            await self.app(scope, receive, send)
            return

        replayed = False

        async def replay() -> Message:
            nonlocal replayed
            if not replayed:
                replayed = True
                return {"type": "http.request", "body": body, "more_body": False}
            return await receive()

        await self.app(scope, replay, send)


class OriginAllowlistMiddleware:
    """Rejects API calls whose Origin header is not on the CORS allowlist."""

    def __init__(self, app: ASGIApp, allowed_origins: list[str], prefix: str = "/api/"):
        self.app = app
        self.allowed = set(allowed_origins)
        self.prefix = prefix

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http" and scope["path"].startswith(self.prefix):
            origin = _header(scope, b"origin")
            if origin and origin not in self.allowed:
                logger.warning("rejected cross-origin request to %s", scope["path"])
                response = JSONResponse(status_code=403, content={"error": "Origin not allowed"})
                await response(scope, receive, send)
                return
        await self.app(scope, receive, send)


class RequestLogMiddleware:
    """One log line per request; never logs bodies or query strings.

    Unhandled errors are turned into the generic 500 here, inside the
    security headers layer, so error responses carry the same headers as
    every other response.
    """

    def __init__(self, app: ASGIApp):
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return
        start = time.perf_counter()
        status = {"code": 500, "started": False}

        async def send_wrapper(message: Message) -> None:
            if message["type"] == "http.response.start":
                status["code"] = message["status"]
                status["started"] = True
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        except Exception as exc:
            if status["started"]:
                raise
            ref = create_error_reference()
            logger.error("unhandled error %s on %s %s", ref, scope["method"], scope["path"], exc_info=exc)
            response = JSONResponse(status_code=500, content={"error": "Internal server error", "reference": ref})
            await response(scope, receive, send_wrapper)
        finally:
            logger.info(
                "%s %s %s %.1fms",
                scope["method"],
                scope["path"],
                status["code"],
                (time.perf_counter() - start) * 1000,
            )
