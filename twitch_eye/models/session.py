"""Server-side session data"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime


@dataclass(frozen=True)
class Session:
    """Decoded session cookie: who is logged in and their Twitch token."""

    user_id: str
    access_token: str
    issued_at: datetime
    expires_at: datetime

    @property
    def is_expired(self) -> bool:
        return datetime.now(UTC) >= self.expires_at
