"""FastAPI dependency providers"""

import logging

from fastapi import Cookie, Depends, Request

from twitch_eye.core.config import get_settings
from twitch_eye.core.errors import AuthFailure
from twitch_eye.core.logging import LogBuffer
from twitch_eye.models import Session
from twitch_eye.services import SESSION_COOKIE, ModerationService, SessionCodec, TwitchAPIClient

logger = logging.getLogger(__name__)


# ============================================
# Shared services
# ============================================


def get_session_codec() -> SessionCodec:
    """Session codec configured from settings"""
    settings = get_settings()
    return SessionCodec(
        secret_key=settings.session_secret,
        expire_hours=settings.session_expire_hours,
        secure_cookie=settings.is_production,
    )


_twitch_api: TwitchAPIClient | None = None


def get_twitch_api() -> TwitchAPIClient:
    """Get shared TwitchAPIClient singleton (connection reuse)."""
    global _twitch_api
    if _twitch_api is None:
        settings = get_settings()
        _twitch_api = TwitchAPIClient(
            client_id=settings.client_id,
            client_secret=settings.client_secret,
            redirect_uri=settings.redirect_uri,
            timeout=settings.http_timeout,
        )
    return _twitch_api


async def close_twitch_api() -> None:
    """Drop the shared client; the next request builds a fresh one."""
    global _twitch_api
    if _twitch_api is not None:
        await _twitch_api.close()
        _twitch_api = None


def get_log_buffer(request: Request) -> LogBuffer:
    """The application-owned log buffer created in ``create_app``."""
    return request.app.state.log_buffer


# ============================================
# Session
# ============================================


def get_current_session(
    session_token: str | None = Cookie(None, alias=SESSION_COOKIE),
    codec: SessionCodec = Depends(get_session_codec),
) -> Session:
    """Verify the session cookie and return the session.

    A missing cookie and an invalid one both answer 401; the invalid one is
    also purged from the browser.
    """
    if not session_token:
        raise AuthFailure("Unauthorized")

    session = codec.verify(session_token)
    if session is None:
        raise AuthFailure("Invalid or expired session", clear_cookie=True)

    return session


def get_moderation_service(
    session: Session = Depends(get_current_session),
    twitch_api: TwitchAPIClient = Depends(get_twitch_api),
) -> ModerationService:
    """Get ModerationService bound to the current session"""
    return ModerationService(twitch_api, session)
