"""ASGI middleware that requires a session on every non-public path.

Evaluation order:
1. Allow-list check (prefix match on path-segment boundaries). Public paths
   short-circuit; no session lookup happens.
2. Session check via resolve_session(). On success the User is stored in
   ``scope["state"]["user"]`` (``request.state.user`` in handlers).
3. On failure the response depends on the request kind, which is decided
   explicitly by classify_request(), never by the path alone:
   - API requests get 401 with the standard error envelope.
   - Browser navigations get a 307 redirect to the login page.

This is a raw ASGI middleware (not BaseHTTPMiddleware) so the database
session used for the lookup is closed before the downstream app runs.
"""

from __future__ import annotations

from collections.abc import Iterable
from enum import Enum
from urllib.parse import urlencode

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from starlette.requests import HTTPConnection
from starlette.responses import JSONResponse, RedirectResponse, Response
from starlette.types import ASGIApp, Receive, Scope, Send

from weather_auth.core import database
from weather_auth.core.config import settings
from weather_auth.core.responses import ErrorDetail, ErrorResponse
from weather_auth.core.session import resolve_session, session_cookie_value

logger = structlog.get_logger()


class PathAccess(str, Enum):
    """Whether a path needs a session."""

    PUBLIC = "public"
    PROTECTED = "protected"


class RequestKind(str, Enum):
    """Who is asking: a script calling the API, or a browser navigating."""

    API = "api"
    BROWSER = "browser"


def _matches_prefix(path: str, prefix: str) -> bool:
    """Prefix match that respects path-segment boundaries.

    ``/`` only matches the root itself; otherwise ``/api/weather`` matches
    ``/api/weather`` and ``/api/weather/history`` but not ``/api/weatherman``.
    """
    if prefix == "/":
        return path == "/"
    prefix = prefix.rstrip("/")
    return path == prefix or path.startswith(prefix + "/")


def classify_path(path: str, public_prefixes: Iterable[str]) -> PathAccess:
    """Classify a request path against the public allow-list.

    Args:
        path: Request path (no query string).
        public_prefixes: Allow-listed path prefixes.

    Returns:
        PathAccess.PUBLIC if any prefix matches, PROTECTED otherwise.
    """
    if any(_matches_prefix(path, prefix) for prefix in public_prefixes):
        return PathAccess.PUBLIC
    return PathAccess.PROTECTED


def classify_request(path: str, accept: str) -> RequestKind:
    """Decide whether a request is an API call or a browser navigation.

    ``/api/`` paths are always API calls. Elsewhere, a request that accepts
    JSON but not HTML is treated as an API call; anything else is a browser
    navigation.

    Args:
        path: Request path.
        accept: Value of the Accept header ("" if absent).
    """
    if path == "/api" or path.startswith("/api/"):
        return RequestKind.API
    accept = accept.lower()
    if "application/json" in accept and "text/html" not in accept:
        return RequestKind.API
    return RequestKind.BROWSER


def _unauthorized_response() -> Response:
    # Generic body: never say why the session was rejected
    return JSONResponse(
        status_code=401,
        content=ErrorResponse(
            error=ErrorDetail(code="UNAUTHORIZED", message="Authentication required")
        ).model_dump(),
    )


def _login_redirect(path: str, query: str) -> Response:
    target = f"{path}?{query}" if query else path
    return RedirectResponse(
        url=f"{settings.login_path}?{urlencode({'next': target})}",
        status_code=307,
    )


class RouteGuardMiddleware:
    """Reject or redirect unauthenticated requests to protected paths.

    The database session factory is taken from ``app.state.session_factory``
    when set (tests point it at their own engine), else the application's
    default factory.
    """

    def __init__(
        self,
        app: ASGIApp,
        public_prefixes: Iterable[str] | None = None,
    ) -> None:
        """Initialize with the next ASGI application.

        Args:
            app: The next ASGI application in the middleware chain.
            public_prefixes: Allow-list override. Defaults to
                settings.public_path_prefixes.
        """
        self.app = app
        self.public_prefixes = tuple(
            public_prefixes
            if public_prefixes is not None
            else settings.public_path_prefixes
        )

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """Gate HTTP requests; pass everything else through."""
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        path = scope["path"]
        if classify_path(path, self.public_prefixes) is PathAccess.PUBLIC:
            await self.app(scope, receive, send)
            return

        connection = HTTPConnection(scope)
        async with self._session_factory(scope)() as db:
            user = await resolve_session(db, session_cookie_value(connection))

        if user is not None:
            scope.setdefault("state", {})["user"] = user
            await self.app(scope, receive, send)
            return

        kind = classify_request(path, connection.headers.get("accept", ""))
        logger.info("Unauthenticated request blocked", path=path, kind=kind.value)
        if kind is RequestKind.API:
            response = _unauthorized_response()
        else:
            query = scope.get("query_string", b"").decode("latin-1")
            response = _login_redirect(path, query)
        await response(scope, receive, send)

    @staticmethod
    def _session_factory(scope: Scope) -> async_sessionmaker[AsyncSession]:
        app = scope.get("app")
        factory = getattr(getattr(app, "state", None), "session_factory", None)
        return factory or database.async_session_factory
