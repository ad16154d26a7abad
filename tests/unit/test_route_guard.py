"""Tests for the route guard.

Path classification, request-kind classification, and the middleware's
three outcomes: pass through, 401 envelope, login redirect.
"""

from collections.abc import AsyncGenerator
from datetime import UTC, datetime, timedelta

import pytest
import pytest_asyncio
from fastapi import FastAPI, Request
from httpx import ASGITransport, AsyncClient

from weather_auth.core.route_guard import (
    PathAccess,
    RequestKind,
    RouteGuardMiddleware,
    classify_path,
    classify_request,
)
from weather_auth.core.tokens import TokenPurpose, issue_token

_PUBLIC = ["/", "/about", "/auth", "/api/weather", "/api/v1/auth"]


class TestClassifyPath:
    """Tests for classify_path()."""

    @pytest.mark.parametrize(
        "path",
        [
            "/",
            "/about",
            "/about/team",
            "/auth/login",
            "/api/weather",
            "/api/weather/current",
            "/api/v1/auth/login",
        ],
    )
    def test_public_paths(self, path):
        """Allow-listed prefixes and their sub-paths are public."""
        assert classify_path(path, _PUBLIC) is PathAccess.PUBLIC

    @pytest.mark.parametrize(
        "path",
        [
            "/dashboard",
            "/settings",
            "/api/v1/user/profile",
            "/api/weatherman",
            "/authors",
            "/aboutface",
        ],
    )
    def test_protected_paths(self, path):
        """Everything else is protected, including look-alike prefixes."""
        assert classify_path(path, _PUBLIC) is PathAccess.PROTECTED

    def test_root_prefix_only_matches_root(self):
        """'/' in the allow-list does not make every path public."""
        assert classify_path("/", ["/"]) is PathAccess.PUBLIC
        assert classify_path("/dashboard", ["/"]) is PathAccess.PROTECTED

    def test_trailing_slash_on_prefix_is_ignored(self):
        """'/about/' behaves like '/about'."""
        assert classify_path("/about", ["/about/"]) is PathAccess.PUBLIC
        assert classify_path("/about/us", ["/about/"]) is PathAccess.PUBLIC


class TestClassifyRequest:
    """Tests for classify_request()."""

    def test_api_path_is_api_regardless_of_accept(self):
        """/api/ paths are API calls even when a browser asks for HTML."""
        assert classify_request("/api/v1/user/profile", "text/html") is RequestKind.API

    def test_json_only_accept_is_api(self):
        """A non-API path asked for as JSON is an API call."""
        assert classify_request("/dashboard", "application/json") is RequestKind.API

    def test_html_accept_is_browser(self):
        """A typical browser navigation is redirected, not 401'd."""
        accept = "text/html,application/xhtml+xml,application/json;q=0.9,*/*;q=0.8"

        assert classify_request("/dashboard", accept) is RequestKind.BROWSER

    def test_missing_accept_is_browser(self):
        """No Accept header on a page path is a browser navigation."""
        assert classify_request("/dashboard", "") is RequestKind.BROWSER


@pytest_asyncio.fixture
async def guarded_client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """Client for a minimal app behind RouteGuardMiddleware."""
    app = FastAPI()
    app.state.session_factory = session_factory
    app.add_middleware(RouteGuardMiddleware, public_prefixes=["/", "/about"])

    @app.get("/about")
    def about() -> dict:
        return {"page": "about"}

    @app.get("/dashboard")
    def dashboard(request: Request) -> dict:
        return {"email": request.state.user.email}

    @app.get("/api/data")
    def data(request: Request) -> dict:
        return {"email": request.state.user.email}

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


class TestRouteGuardMiddleware:
    """Tests for RouteGuardMiddleware."""

    async def test_public_path_passes_without_session(self, guarded_client):
        """Public paths never consult the session."""
        response = await guarded_client.get("/about")

        assert response.status_code == 200
        assert response.json() == {"page": "about"}

    async def test_api_request_without_session_gets_401(self, guarded_client):
        """Unauthenticated API calls get the standard error envelope."""
        response = await guarded_client.get("/api/data")

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "UNAUTHORIZED"

    async def test_browser_request_without_session_is_redirected(
        self, guarded_client
    ):
        """Unauthenticated page loads go to the login page with next=."""
        response = await guarded_client.get(
            "/dashboard?tab=hourly", headers={"Accept": "text/html"}
        )

        assert response.status_code == 307
        assert response.headers["location"] == (
            "/auth/login?next=%2Fdashboard%3Ftab%3Dhourly"
        )

    async def test_json_request_to_page_path_gets_401(self, guarded_client):
        """A fetch() to a page path asking for JSON gets 401, not a redirect."""
        response = await guarded_client.get(
            "/dashboard", headers={"Accept": "application/json"}
        )

        assert response.status_code == 401

    async def test_valid_session_passes_and_exposes_user(
        self, guarded_client, test_user
    ):
        """A valid session reaches the handler with request.state.user set."""
        token = issue_token(str(test_user.id), TokenPurpose.SESSION)

        guarded_client.cookies.set("session", token)
        response = await guarded_client.get("/api/data")

        assert response.status_code == 200
        assert response.json() == {"email": test_user.email}

    async def test_expired_session_is_rejected(self, guarded_client, test_user):
        """An expired session is treated like no session."""
        issued = datetime.now(UTC) - timedelta(days=31)
        token = issue_token(str(test_user.id), TokenPurpose.SESSION, now=issued)

        guarded_client.cookies.set("session", token)
        response = await guarded_client.get("/api/data")

        assert response.status_code == 401

    async def test_reset_token_cookie_is_rejected(self, guarded_client, test_user):
        """A reset token in the session cookie does not authenticate."""
        token = issue_token(str(test_user.id), TokenPurpose.RESET)

        guarded_client.cookies.set("session", token)
        response = await guarded_client.get("/api/data")

        assert response.status_code == 401
