"""Data models - session, Twitch payloads and moderation requests"""

from .moderation import (
    BanRequest,
    ChannelModerationContext,
    ChatSettingsPatch,
    ChatSettingsUpdateRequest,
    EndPollRequest,
    EndPredictionRequest,
    PollRequest,
    PredictionRequest,
    TimeoutRequest,
    UnbanRequest,
    WhisperRequest,
)
from .session import Session
from .twitch import (
    Chatter,
    ChatSettings,
    ModeratedChannel,
    OAuthExchangeResult,
    Poll,
    Prediction,
    Stream,
    UpstreamUser,
)

__all__ = [
    "BanRequest",
    "ChannelModerationContext",
    "ChatSettings",
    "ChatSettingsPatch",
    "ChatSettingsUpdateRequest",
    "Chatter",
    "EndPollRequest",
    "EndPredictionRequest",
    "ModeratedChannel",
    "OAuthExchangeResult",
    "Poll",
    "PollRequest",
    "Prediction",
    "PredictionRequest",
    "Session",
    "Stream",
    "TimeoutRequest",
    "UnbanRequest",
    "UpstreamUser",
    "WhisperRequest",
]
