"""Signed session cookie codec"""

import logging
from datetime import UTC, datetime, timedelta

import jwt
from starlette.responses import Response

from twitch_eye.core.errors import ConfigurationError
from twitch_eye.models import Session

logger = logging.getLogger(__name__)

SESSION_COOKIE = "session"


class SessionCodec:
    """Issue and verify the JWT carried in the ``session`` cookie.

    The Twitch access token only ever leaves the server inside this signed
    token, so the browser cannot read or alter it without detection.
    """

    def __init__(
        self,
        secret_key: str,
        algorithm: str = "HS256",
        expire_hours: int = 24,
        secure_cookie: bool = False,
    ):
        if not secret_key:
            raise ConfigurationError("Session secret key cannot be empty")

        self.secret_key = secret_key
        self.algorithm = algorithm
        self.expire_hours = expire_hours
        self.secure_cookie = secure_cookie

    def issue(self, user_id: str, access_token: str) -> tuple[str, Session]:
        """Sign a session for a user. Returns (token, session)."""
        issued_at = datetime.now(UTC).replace(microsecond=0)
        expires_at = issued_at + timedelta(hours=self.expire_hours)

        payload = {
            "user_id": user_id,
            "access_token": access_token,
            "iat": issued_at,
            "exp": expires_at,
        }

        token = jwt.encode(payload, self.secret_key, algorithm=self.algorithm)
        logger.debug(f"Session issued for user: {user_id}")

        return token, Session(
            user_id=user_id,
            access_token=access_token,
            issued_at=issued_at,
            expires_at=expires_at,
        )

    def verify(self, token: str, response: Response | None = None) -> Session | None:
        """Verify a session token.

        Any failure (bad signature, expired, malformed) yields None, and when a
        response is given the stored cookie is deleted on it.
        """
        session = self._decode(token)
        if session is None and response is not None:
            self.clear_cookie(response)
        return session

    def _decode(self, token: str) -> Session | None:
        try:
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                options={"require": ["exp", "iat"]},
            )
        except jwt.ExpiredSignatureError:
            logger.warning("Session expired")
            return None
        except jwt.InvalidTokenError as e:
            logger.warning(f"Invalid session: {e}")
            return None

        user_id = payload.get("user_id")
        access_token = payload.get("access_token")
        if not user_id or not access_token:
            logger.warning("Session missing user_id or access_token")
            return None

        return Session(
            user_id=str(user_id),
            access_token=str(access_token),
            issued_at=datetime.fromtimestamp(payload["iat"], UTC),
            expires_at=datetime.fromtimestamp(payload["exp"], UTC),
        )

    def set_cookie(self, response: Response, token: str, session: Session) -> None:
        max_age = int((session.expires_at - datetime.now(UTC)).total_seconds())
        response.set_cookie(
            key=SESSION_COOKIE,
            value=token,
            max_age=max(max_age, 0),
            expires=session.expires_at,
            path="/",
            httponly=True,
            secure=self.secure_cookie,
            samesite="lax",
        )

    def clear_cookie(self, response: Response) -> None:
        response.delete_cookie(
            key=SESSION_COOKIE,
            path="/",
            httponly=True,
            secure=self.secure_cookie,
            samesite="lax",
        )
