"""Authentication API routes"""

import hmac
import logging
import secrets
from urllib.parse import quote

from fastapi import APIRouter, Cookie, Depends, Request, Response
from fastapi.responses import RedirectResponse
from pydantic import BaseModel

from twitch_eye.core.config import Settings, get_settings
from twitch_eye.core.dependencies import get_session_codec, get_twitch_api
from twitch_eye.core.errors import ConfigurationError, TwitchEyeError, UpstreamAPIError
from twitch_eye.core.logging import for_user
from twitch_eye.services import SessionCodec, TwitchAPIClient

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["authentication"])

OAUTH_STATE_COOKIE = "oauth_state"
OAUTH_STATE_TTL_SECONDS = 600


# ============================================
# Response Models
# ============================================


class LogoutResponse(BaseModel):
    success: bool


# ============================================
# Helpers
# ============================================


def _set_state_cookie(response: Response, state: str, secure: bool) -> None:
    response.set_cookie(
        key=OAUTH_STATE_COOKIE,
        value=state,
        max_age=OAUTH_STATE_TTL_SECONDS,
        path="/auth",
        httponly=True,
        secure=secure,
        samesite="lax",
    )


def _clear_state_cookie(response: Response, secure: bool) -> None:
    response.delete_cookie(
        key=OAUTH_STATE_COOKIE,
        path="/auth",
        httponly=True,
        secure=secure,
        samesite="lax",
    )


def _error_redirect(base_url: str, message: str, secure: bool) -> RedirectResponse:
    """Send the browser back to the app root with the error as ``?error=``."""
    response = RedirectResponse(url=f"{base_url}/?error={quote(message, safe='')}")
    _clear_state_cookie(response, secure)
    return response


def _with_redirect_hint(message: str, redirect_uri: str) -> str:
    if redirect_uri in message:
        return message
    return f"{message.rstrip('.')}. Ensure Twitch App Redirect URI is: {redirect_uri}"


def _state_matches(received: str | None, expected: str | None) -> bool:
    if not received or not expected:
        return False
    return hmac.compare_digest(received.encode(), expected.encode())


# ============================================
# Endpoints
# ============================================


@router.get("/login")
async def begin_login(
    twitch_api: TwitchAPIClient = Depends(get_twitch_api),
    settings: Settings = Depends(get_settings),
) -> RedirectResponse:
    """Redirect the browser to Twitch's consent page."""
    if not settings.app_base_url:
        raise ConfigurationError("Twitch configuration missing: APP_BASE_URL is not set")

    state = secrets.token_urlsafe(24)
    response = RedirectResponse(url=twitch_api.generate_oauth_url(state=state))
    _set_state_cookie(response, state, settings.is_production)
    return response


@router.get("/callback")
async def handle_callback(
    request: Request,
    code: str | None = None,
    error: str | None = None,
    error_description: str | None = None,
    state: str | None = None,
    oauth_state: str | None = Cookie(None, alias=OAUTH_STATE_COOKIE),
    twitch_api: TwitchAPIClient = Depends(get_twitch_api),
    codec: SessionCodec = Depends(get_session_codec),
    settings: Settings = Depends(get_settings),
) -> RedirectResponse:
    """Handle Twitch OAuth callback"""
    secure = settings.is_production

    if not settings.app_base_url:
        logger.error("APP_BASE_URL is not set")
        origin = str(request.base_url).rstrip("/")
        return _error_redirect(
            origin, "Application configuration error: Missing base URL.", secure
        )

    base_url = settings.app_base_url
    redirect_uri = settings.redirect_uri
    logger.debug(f"Callback received. Expected Twitch redirect URI: {redirect_uri}")

    if error:
        logger.error(f"OAuth error from Twitch: {error} - {error_description}")
        if error == "redirect_mismatch":
            detailed = (
                f"Twitch OAuth Error: {error} - {error_description}. Please ensure your "
                f"Twitch Application's OAuth Redirect URI is set to: {redirect_uri}"
            )
            return _error_redirect(base_url, detailed, secure)
        return _error_redirect(base_url, error_description or "Twitch login failed", secure)

    if not code:
        logger.error("No OAuth code received from Twitch")
        return _error_redirect(base_url, "Authorization code missing.", secure)

    if not _state_matches(state, oauth_state):
        logger.warning("OAuth state mismatch on callback")
        return _error_redirect(
            base_url, "Invalid OAuth state. Please try logging in again.", secure
        )

    try:
        token = await twitch_api.exchange_code_for_token(code)
        user = await twitch_api.get_user(token.access_token)
        if user is None:
            raise UpstreamAPIError(
                502, "Failed to fetch user details from Twitch.", endpoint="/users"
            )
        session_token, session = codec.issue(user.id, token.access_token)
    except TwitchEyeError as e:
        logger.error(f"Callback handling error: {e}")
        return _error_redirect(base_url, _with_redirect_hint(e.message, redirect_uri), secure)
    except Exception as e:
        logger.exception(f"Unexpected error during OAuth callback: {e}")
        return _error_redirect(
            base_url, _with_redirect_hint("Login process failed", redirect_uri), secure
        )

    response = RedirectResponse(url=base_url)
    codec.set_cookie(response, session_token, session)
    _clear_state_cookie(response, secure)

    logger.info(f"User logged in: {user.login} ({user.id})", extra=for_user(user.id))
    return response


@router.post("/logout", response_model=LogoutResponse)
async def logout(
    response: Response,
    codec: SessionCodec = Depends(get_session_codec),
) -> LogoutResponse:
    """Clear the session cookie. The Twitch token itself is not revoked."""
    codec.clear_cookie(response)
    logger.info("User logged out")
    return LogoutResponse(success=True)
