"""
Pytest configuration
Provides a fake Twitch upstream, a configured app and session helpers
"""

from collections.abc import Callable, Iterator
from typing import Any

import httpx
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from twitch_eye.app import create_app
from twitch_eye.core.config import get_settings
from twitch_eye.core.dependencies import get_twitch_api
from twitch_eye.services import SessionCodec, TwitchAPIClient

BASE_URL = "http://localhost:3000"
SESSION_SECRET = "test-session-secret-0123456789abcdef"

RouteValue = tuple[int, Any] | Callable[[httpx.Request], httpx.Response]


class FakeTwitch:
    """Canned Twitch responses keyed by (method, path), recording every request."""

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], RouteValue] = {}
        self.requests: list[httpx.Request] = []

    def add(self, method: str, path: str, status: int = 200, body: Any = None) -> None:
        self.routes[(method, path)] = (status, body)

    def add_handler(
        self, method: str, path: str, handler: Callable[[httpx.Request], httpx.Response]
    ) -> None:
        self.routes[(method, path)] = handler

    def calls(self, method: str, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == method and r.url.path == path]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get((request.method, request.url.path))
        if route is None:
            return httpx.Response(404, json={"error": "Not Found", "message": "no fake route"})
        if callable(route):
            return route(request)
        status, body = route
        if body is None:
            return httpx.Response(status)
        if isinstance(body, (bytes, str)):
            return httpx.Response(status, content=body)
        return httpx.Response(status, json=body)


@pytest.fixture(autouse=True)
def settings_env(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    monkeypatch.setenv("CLIENT_ID", "test-client-id")
    monkeypatch.setenv("CLIENT_SECRET", "test-client-secret")
    monkeypatch.setenv("SESSION_SECRET", SESSION_SECRET)
    monkeypatch.setenv("APP_BASE_URL", BASE_URL)
    monkeypatch.setenv("ENVIRONMENT", "test")
    monkeypatch.setenv("LOG_LEVEL", "INFO")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def fake_twitch() -> FakeTwitch:
    return FakeTwitch()


@pytest.fixture
def twitch_api(fake_twitch: FakeTwitch) -> TwitchAPIClient:
    http = httpx.AsyncClient(transport=httpx.MockTransport(fake_twitch.handler))
    return TwitchAPIClient(
        client_id="test-client-id",
        client_secret="test-client-secret",
        redirect_uri=f"{BASE_URL}/auth/callback",
        http_client=http,
    )


@pytest.fixture
def codec() -> SessionCodec:
    return SessionCodec(secret_key=SESSION_SECRET)


@pytest.fixture
def app(twitch_api: TwitchAPIClient) -> FastAPI:
    app = create_app()
    app.dependency_overrides[get_twitch_api] = lambda: twitch_api
    return app


@pytest.fixture
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app) as client:
        yield client


@pytest.fixture
def session_headers(codec: SessionCodec) -> Callable[..., dict[str, str]]:
    """Build a Cookie header for a logged-in user."""

    def _headers(user_id: str = "42", access_token: str = "tok", **extra: str) -> dict[str, str]:
        token, _ = codec.issue(user_id, access_token)
        return {"Cookie": f"session={token}", **extra}

    return _headers


def set_cookie_headers(response: httpx.Response, name: str) -> list[str]:
    """All Set-Cookie headers on *response* for cookie *name*."""
    return [
        h for h in response.headers.get_list("set-cookie") if h.startswith(f"{name}=")
    ]


def cookie_value(header: str) -> str:
    return header.split(";", 1)[0].split("=", 1)[1]
