"""Error taxonomy shared by services and routers.

Every failure a request can hit maps onto one of these types; the handlers
registered in ``app.create_app`` turn them into JSON responses.
"""

from typing import Any


class TwitchEyeError(Exception):
    """Base class for errors raised by this application."""

    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigurationError(TwitchEyeError):
    """Required configuration (secret, client id, base URL) is missing."""


class AuthFailure(TwitchEyeError):
    """No valid session is present on the request.

    ``clear_cookie`` is set when a cookie was sent but failed verification,
    so the response purges it and the browser stops replaying it.
    """

    status_code = 401

    def __init__(self, message: str = "Unauthorized", *, clear_cookie: bool = False):
        super().__init__(message)
        self.clear_cookie = clear_cookie


class InvalidRequestError(TwitchEyeError):
    """Malformed client input, rejected before any upstream call."""

    status_code = 400


class NotFoundError(TwitchEyeError):
    """A referenced Twitch user does not exist."""

    status_code = 404


class PermissionDeniedError(TwitchEyeError):
    """The session user is not a moderator of the target channel."""

    status_code = 403


class UpstreamAPIError(TwitchEyeError):
    """Non-2xx response (or transport failure) from the Twitch API.

    ``message`` is the best human-readable text Twitch gave us; ``raw_body``
    is the parsed error payload, kept for diagnostics.
    """

    def __init__(
        self,
        status_code: int,
        message: str,
        raw_body: Any = None,
        *,
        method: str = "GET",
        endpoint: str = "",
    ):
        super().__init__(message)
        self.status_code = status_code
        self.raw_body = raw_body
        self.method = method
        self.endpoint = endpoint

    def __str__(self) -> str:
        return (
            f"Twitch API Error ({self.status_code}) for {self.method} {self.endpoint}: "
            f"{self.message}"
        )

    @property
    def is_auth_error(self) -> bool:
        return self.status_code in (401, 403)

    @property
    def is_rate_limited(self) -> bool:
        return self.status_code == 429

    @property
    def is_transient(self) -> bool:
        return self.status_code == 429 or self.status_code >= 500
