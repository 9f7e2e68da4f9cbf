"""Helix and OAuth client used by every route.

All Helix traffic goes through ``TwitchAPIClient.call`` with the logged-in
user's access token. Non-2xx responses become a single error type,
``UpstreamAPIError``, carrying the HTTP status and Twitch's own message;
callers branch on ``status_code``. Nothing here retries.
"""

import json
import logging
from typing import Any
from urllib.parse import quote, urlencode

import httpx

from twitch_eye.core.errors import UpstreamAPIError
from twitch_eye.models import (
    ChannelModerationContext,
    Chatter,
    ChatSettings,
    ModeratedChannel,
    OAuthExchangeResult,
    Poll,
    Prediction,
    Stream,
    UpstreamUser,
)

logger = logging.getLogger(__name__)

HELIX_BASE = "https://api.twitch.tv/helix"
OAUTH_BASE = "https://id.twitch.tv/oauth2"


class TwitchAPIClient:
    """Per-user Twitch calls over one pooled httpx client.

    The access token is passed per call, so one instance serves every session.
    Requests are bounded by ``timeout`` seconds.
    """

    DASHBOARD_SCOPES = [
        "user:read:follows",
        "user:read:email",
        "moderation:read",
        "user:read:moderated_channels",
        "channel:moderate",
        "moderator:manage:banned_users",
        "moderator:manage:chat_messages",
        "moderator:read:chat_settings",
        "moderator:manage:chat_settings",
        "user:manage:whispers",
        "moderator:read:chatters",
        "channel:manage:polls",
        "channel:manage:predictions",
    ]

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        timeout: float = 10.0,
        http_client: httpx.AsyncClient | None = None,
    ):
        if not client_id or not client_secret:
            raise ValueError("TwitchAPIClient needs both client_id and client_secret")

        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri

        # Shared HTTP client, reused across requests
        self._http = http_client or httpx.AsyncClient(timeout=timeout)

    async def close(self) -> None:
        """Release pooled connections (app shutdown)."""
        await self._http.aclose()

    # ------------------------------------------------------------------
    # Core request
    # ------------------------------------------------------------------

    def _headers(self, access_token: str) -> dict[str, str]:
        return {
            "Client-Id": self.client_id,
            "Authorization": f"Bearer {access_token}",
            "Content-Type": "application/json",
        }

    async def call(
        self,
        endpoint: str,
        access_token: str,
        *,
        method: str = "GET",
        params: dict[str, Any] | None = None,
        json_body: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Send one request to Helix and return the decoded JSON body.

        Raises:
            UpstreamAPIError: on any non-2xx status or transport failure.
        """
        path = endpoint if endpoint.startswith("/") else f"/{endpoint}"
        try:
            response = await self._http.request(
                method,
                f"{HELIX_BASE}{path}",
                params=params,
                json=json_body,
                headers=self._headers(access_token),
            )
        except httpx.TimeoutException as e:
            logger.error(f"Timeout calling Twitch {method} {path}")
            raise UpstreamAPIError(
                504, "Twitch API request timed out.", method=method, endpoint=path
            ) from e
        except httpx.HTTPError as e:
            logger.error(f"Twitch {method} {path} transport error: {type(e).__name__}: {e}")
            raise UpstreamAPIError(
                502, "Could not reach the Twitch API.", method=method, endpoint=path
            ) from e

        if response.is_success:
            # Several mutation endpoints (unban, whisper) return no body
            if response.status_code == 204 or not response.content:
                return {}
            return self._decode(response, method, path)

        raise self._build_error(response, method, path)

    def _build_error(self, response: httpx.Response, method: str, path: str) -> UpstreamAPIError:
        status = response.status_code
        try:
            error_data = response.json()
        except (json.JSONDecodeError, ValueError):
            error_data = None
        if not isinstance(error_data, dict):
            error_data = {
                "message": f"Twitch API request failed with status {status} and unparseable body."
            }

        message = error_data.get("message") or f"Twitch API request failed with status {status}"
        error = UpstreamAPIError(status, message, error_data, method=method, endpoint=path)
        logger.error(f"{error}. Details: {error_data}")

        if status == 401:
            logger.error(
                f"Twitch 401 for {path}: missing scope, invalid token, or the token owner "
                f"does not match the requested ids. For moderator checks the token needs "
                f"'user:read:moderated_channels'."
            )
        elif status == 403:
            logger.error(
                f"Twitch 403 for {path}: the authenticated user is not allowed to "
                f"perform this action."
            )
        elif error.is_rate_limited:
            logger.warning(
                f"Twitch rate limit hit for {path}, "
                f"resets at {response.headers.get('Ratelimit-Reset', 'unknown')}"
            )
        return error

    @staticmethod
    def _decode(response: httpx.Response, method: str, path: str) -> dict[str, Any]:
        """JSON object body of a 2xx response."""
        try:
            data = response.json()
        except ValueError as e:
            logger.error(
                f"Twitch {method} {path} returned a non-JSON body: {response.text[:200]!r}"
            )
            raise UpstreamAPIError(
                502, "Twitch returned an unparseable response.", method=method, endpoint=path
            ) from e
        if not isinstance(data, dict):
            logger.error(f"Twitch {method} {path} returned {type(data).__name__}, not an object")
            raise UpstreamAPIError(
                502, "Twitch returned an unparseable response.", data,
                method=method, endpoint=path,
            )
        return data

    @staticmethod
    def _first(data: dict[str, Any], what: str, method: str, path: str) -> dict[str, Any]:
        items = data.get("data") or []
        if not items:
            raise UpstreamAPIError(
                502, f"Twitch returned no {what}.", data, method=method, endpoint=path
            )
        return items[0]

    # ------------------------------------------------------------------
    # OAuth flow
    # ------------------------------------------------------------------

    def generate_oauth_url(self, state: str | None = None) -> str:
        """Consent page URL. ``force_verify`` makes Twitch always show the prompt."""
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "scope": " ".join(self.DASHBOARD_SCOPES),
            "force_verify": "true",
        }
        if state:
            params["state"] = state
        return f"{OAUTH_BASE}/authorize?{urlencode(params, quote_via=quote)}"

    async def exchange_code_for_token(self, code: str) -> OAuthExchangeResult:
        """Exchange an authorization code for a user access token."""
        try:
            response = await self._http.post(
                f"{OAUTH_BASE}/token",
                data={
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                    "code": code,
                    "grant_type": "authorization_code",
                    "redirect_uri": self.redirect_uri,
                },
            )
        except httpx.TimeoutException as e:
            logger.error("Twitch token endpoint timed out")
            raise UpstreamAPIError(
                504, "Token exchange timed out.", method="POST", endpoint="/oauth2/token"
            ) from e
        except httpx.HTTPError as e:
            logger.error(f"Token exchange transport error: {type(e).__name__}: {e}")
            raise UpstreamAPIError(
                502, "Could not reach Twitch to exchange the code.",
                method="POST", endpoint="/oauth2/token",
            ) from e

        if not response.is_success:
            try:
                error_data = response.json()
            except ValueError:
                error_data = {"message": "Token exchange failed"}
            message = (
                error_data.get("message")
                if isinstance(error_data, dict) and error_data.get("message")
                else f"Token exchange failed with status {response.status_code}"
            )
            logger.error(f"Twitch token exchange error ({response.status_code}): {error_data}")
            raise UpstreamAPIError(
                response.status_code, message, error_data,
                method="POST", endpoint="/oauth2/token",
            )

        result = OAuthExchangeResult.from_dict(
            self._decode(response, "POST", "/oauth2/token")
        )
        if not result.access_token:
            logger.error("No access_token in token response")
            raise UpstreamAPIError(
                502, "Twitch did not return an access token.",
                method="POST", endpoint="/oauth2/token",
            )

        logger.debug(f"Code exchanged, scopes: {result.scope}")
        return result

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    async def get_user(self, access_token: str) -> UpstreamUser | None:
        """Get the user that owns *access_token*."""
        data = await self.call("/users", access_token)
        users = data.get("data") or []
        return UpstreamUser.model_validate(users[0]) if users else None

    async def get_user_by_login(self, login: str, access_token: str) -> UpstreamUser | None:
        """Look up a Twitch user by login name. None when no such user exists."""
        if not login:
            logger.warning("get_user_by_login called with empty login")
            return None
        data = await self.call("/users", access_token, params={"login": login})
        users = data.get("data") or []
        if not users:
            logger.info(f"No Twitch user with login '{login}'")
            return None
        return UpstreamUser.model_validate(users[0])

    # ------------------------------------------------------------------
    # Streams
    # ------------------------------------------------------------------

    async def get_followed_streams(self, user_id: str, access_token: str) -> list[Stream]:
        """Live streams the user follows, in Twitch's order (``order`` is 1-based)."""
        data = await self.call(
            "/streams/followed", access_token, params={"user_id": user_id, "first": 100}
        )
        return [
            Stream.model_validate({**stream, "order": index})
            for index, stream in enumerate(data.get("data") or [], start=1)
        ]

    # ------------------------------------------------------------------
    # Moderation
    # ------------------------------------------------------------------

    async def get_moderated_channels(
        self, user_id: str, access_token: str, first: int = 100
    ) -> list[ModeratedChannel]:
        """First page of channels *user_id* moderates."""
        data = await self.call(
            "/moderation/channels",
            access_token,
            params={"user_id": user_id, "first": min(first, 100)},
        )
        return [ModeratedChannel.model_validate(c) for c in data.get("data") or []]

    async def ban_user(
        self,
        ctx: ChannelModerationContext,
        target_user_id: str,
        access_token: str,
        *,
        duration: int | None = None,
        reason: str | None = None,
    ) -> dict[str, Any]:
        """Ban a user, or time them out when *duration* is given."""
        ban: dict[str, Any] = {"user_id": target_user_id}
        if duration is not None:
            ban["duration"] = duration
        if reason:
            ban["reason"] = reason
        data = await self.call(
            "/moderation/bans",
            access_token,
            method="POST",
            params={"broadcaster_id": ctx.broadcaster_id, "moderator_id": ctx.moderator_id},
            json_body={"data": ban},
        )
        items = data.get("data") or []
        return items[0] if items else {}

    async def timeout_user(
        self,
        ctx: ChannelModerationContext,
        target_user_id: str,
        duration: int,
        access_token: str,
        reason: str | None = None,
    ) -> dict[str, Any]:
        return await self.ban_user(
            ctx, target_user_id, access_token, duration=duration, reason=reason
        )

    async def unban_user(
        self, ctx: ChannelModerationContext, target_user_id: str, access_token: str
    ) -> None:
        await self.call(
            "/moderation/bans",
            access_token,
            method="DELETE",
            params={
                "broadcaster_id": ctx.broadcaster_id,
                "moderator_id": ctx.moderator_id,
                "user_id": target_user_id,
            },
        )

    # ------------------------------------------------------------------
    # Chat
    # ------------------------------------------------------------------

    async def get_chat_settings(
        self, ctx: ChannelModerationContext, access_token: str
    ) -> ChatSettings:
        params = {"broadcaster_id": ctx.broadcaster_id, "moderator_id": ctx.moderator_id}
        data = await self.call("/chat/settings", access_token, params=params)
        return ChatSettings.model_validate(
            self._first(data, "chat settings", "GET", "/chat/settings")
        )

    async def update_chat_settings(
        self, ctx: ChannelModerationContext, settings: dict[str, Any], access_token: str
    ) -> ChatSettings:
        params = {"broadcaster_id": ctx.broadcaster_id, "moderator_id": ctx.moderator_id}
        data = await self.call(
            "/chat/settings", access_token, method="PATCH", params=params, json_body=settings
        )
        return ChatSettings.model_validate(
            self._first(data, "chat settings", "PATCH", "/chat/settings")
        )

    async def get_chatters(
        self, ctx: ChannelModerationContext, access_token: str, first: int = 1000
    ) -> list[Chatter]:
        """Up to 1000 chatters currently in the channel (first page only)."""
        data = await self.call(
            "/chat/chatters",
            access_token,
            params={
                "broadcaster_id": ctx.broadcaster_id,
                "moderator_id": ctx.moderator_id,
                "first": min(first, 1000),
            },
        )
        return [Chatter.model_validate(c) for c in data.get("data") or []]

    async def send_whisper(
        self, from_user_id: str, to_user_id: str, message: str, access_token: str
    ) -> None:
        await self.call(
            "/whispers",
            access_token,
            method="POST",
            params={"from_user_id": from_user_id, "to_user_id": to_user_id},
            json_body={"message": message},
        )

    # ------------------------------------------------------------------
    # Polls / Predictions
    # ------------------------------------------------------------------

    async def create_poll(self, poll: dict[str, Any], access_token: str) -> Poll:
        data = await self.call("/polls", access_token, method="POST", json_body=poll)
        return Poll.model_validate(self._first(data, "poll", "POST", "/polls"))

    async def end_poll(
        self, broadcaster_id: str, poll_id: str, status: str, access_token: str
    ) -> Poll:
        data = await self.call(
            "/polls",
            access_token,
            method="PATCH",
            json_body={"broadcaster_id": broadcaster_id, "id": poll_id, "status": status},
        )
        return Poll.model_validate(self._first(data, "poll", "PATCH", "/polls"))

    async def create_prediction(self, prediction: dict[str, Any], access_token: str) -> Prediction:
        data = await self.call("/predictions", access_token, method="POST", json_body=prediction)
        return Prediction.model_validate(self._first(data, "prediction", "POST", "/predictions"))

    async def end_prediction(
        self,
        broadcaster_id: str,
        prediction_id: str,
        status: str,
        access_token: str,
        winning_outcome_id: str | None = None,
    ) -> Prediction:
        body: dict[str, Any] = {
            "broadcaster_id": broadcaster_id,
            "id": prediction_id,
            "status": status,
        }
        if winning_outcome_id:
            body["winning_outcome_id"] = winning_outcome_id
        data = await self.call("/predictions", access_token, method="PATCH", json_body=body)
        return Prediction.model_validate(
            self._first(data, "prediction", "PATCH", "/predictions")
        )
