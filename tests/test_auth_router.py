"""
OAuth login flow tests
"""

from urllib.parse import parse_qs, urlparse

from tests.conftest import BASE_URL, cookie_value, set_cookie_headers

USER = {"id": "42", "login": "viewer", "display_name": "Viewer"}
TOKEN = {
    "access_token": "tok",
    "refresh_token": "ref",
    "expires_in": 3600,
    "scope": ["user:read:follows"],
    "token_type": "bearer",
}


def _callback(client, query: str, state_cookie: str | None = "xyz"):
    headers = {"Cookie": f"oauth_state={state_cookie}"} if state_cookie else {}
    return client.get(f"/auth/callback?{query}", headers=headers, follow_redirects=False)


def _error_param(response) -> str:
    return parse_qs(urlparse(response.headers["location"]).query)["error"][0]


class TestLogin:
    def test_redirects_to_twitch_with_state(self, client) -> None:
        response = client.get("/auth/login", follow_redirects=False)

        assert response.status_code == 307
        location = urlparse(response.headers["location"])
        assert location.netloc == "id.twitch.tv"
        state = parse_qs(location.query)["state"][0]
        [state_cookie] = set_cookie_headers(response, "oauth_state")
        assert cookie_value(state_cookie) == state
        assert "httponly" in state_cookie.lower()

    def test_each_login_gets_fresh_state(self, client) -> None:
        first = client.get("/auth/login", follow_redirects=False)
        second = client.get("/auth/login", follow_redirects=False)

        assert first.headers["location"] != second.headers["location"]


class TestCallback:
    def test_success_sets_session_cookie(self, client, fake_twitch, codec) -> None:
        fake_twitch.add("POST", "/oauth2/token", body=TOKEN)
        fake_twitch.add("GET", "/helix/users", body={"data": [USER]})

        response = _callback(client, "code=abc123&state=xyz")

        assert response.status_code == 307
        assert response.headers["location"] == BASE_URL
        [session_cookie] = set_cookie_headers(response, "session")
        session = codec.verify(cookie_value(session_cookie))
        assert session is not None
        assert session.user_id == "42"
        assert session.access_token == "tok"
        assert "httponly" in session_cookie.lower()
        [users_call] = fake_twitch.calls("GET", "/helix/users")
        assert users_call.headers["Authorization"] == "Bearer tok"

    def test_user_declined(self, client, fake_twitch) -> None:
        response = _callback(
            client, "error=access_denied&error_description=User+declined&state=xyz"
        )

        assert response.status_code == 307
        assert response.headers["location"] == f"{BASE_URL}/?error=User%20declined"
        assert set_cookie_headers(response, "session") == []
        assert fake_twitch.requests == []

    def test_error_without_description(self, client) -> None:
        response = _callback(client, "error=server_error")

        assert _error_param(response) == "Twitch login failed"

    def test_redirect_mismatch_names_expected_uri(self, client) -> None:
        response = _callback(
            client, "error=redirect_mismatch&error_description=Parameter+redirect_uri+mismatch"
        )

        message = _error_param(response)
        assert message.startswith("Twitch OAuth Error: redirect_mismatch")
        assert message.endswith(f"{BASE_URL}/auth/callback")

    def test_missing_code(self, client, fake_twitch) -> None:
        response = _callback(client, "state=xyz")

        assert _error_param(response) == "Authorization code missing."
        assert fake_twitch.requests == []

    def test_state_mismatch(self, client, fake_twitch) -> None:
        response = _callback(client, "code=abc123&state=other")

        assert _error_param(response) == "Invalid OAuth state. Please try logging in again."
        assert set_cookie_headers(response, "session") == []
        assert fake_twitch.requests == []

    def test_missing_state_cookie(self, client, fake_twitch) -> None:
        response = _callback(client, "code=abc123&state=xyz", state_cookie=None)

        assert _error_param(response) == "Invalid OAuth state. Please try logging in again."
        assert fake_twitch.requests == []

    def test_exchange_failure_appends_redirect_hint(self, client, fake_twitch) -> None:
        fake_twitch.add(
            "POST", "/oauth2/token", status=400,
            body={"status": 400, "message": "Invalid authorization code"},
        )

        response = _callback(client, "code=expired&state=xyz")

        message = _error_param(response)
        assert message.startswith("Invalid authorization code")
        assert f"Ensure Twitch App Redirect URI is: {BASE_URL}/auth/callback" in message
        assert set_cookie_headers(response, "session") == []

    def test_no_user_returned(self, client, fake_twitch) -> None:
        fake_twitch.add("POST", "/oauth2/token", body=TOKEN)
        fake_twitch.add("GET", "/helix/users", body={"data": []})

        response = _callback(client, "code=abc123&state=xyz")

        assert _error_param(response).startswith("Failed to fetch user details from Twitch")
        assert set_cookie_headers(response, "session") == []


def test_logout_clears_session_cookie(client, session_headers) -> None:
    response = client.post("/auth/logout", headers=session_headers())

    assert response.status_code == 200
    assert response.json() == {"success": True}
    [cleared] = set_cookie_headers(response, "session")
    assert "Max-Age=0" in cleared
