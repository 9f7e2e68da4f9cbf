"""Services layer - Business logic

Services are initialized with their dependencies and accessed through
dependency injection (see ``twitch_eye.core.dependencies``).
"""

from .moderation_service import ModerationService
from .permissions import is_moderator
from .session_codec import SESSION_COOKIE, SessionCodec
from .twitch_api import TwitchAPIClient

__all__ = [
    "SESSION_COOKIE",
    "ModerationService",
    "SessionCodec",
    "TwitchAPIClient",
    "is_moderator",
]
