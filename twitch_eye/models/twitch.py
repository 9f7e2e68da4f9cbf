"""Typed shapes of the Twitch Helix payloads this app consumes.

Unknown fields are kept (``extra="allow"``) so responses can be passed
through to the browser without dropping anything Twitch adds later.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from pydantic import BaseModel, ConfigDict


class HelixModel(BaseModel):
    model_config = ConfigDict(extra="allow")


@dataclass
class OAuthExchangeResult:
    """Token endpoint response. Used once to mint a session, never stored."""

    access_token: str
    token_type: str = "bearer"
    expires_in: int = 0
    scope: list[str] = field(default_factory=list)
    refresh_token: str | None = None

    @classmethod
    def from_dict(cls, data: dict) -> OAuthExchangeResult:
        return cls(
            access_token=str(data.get("access_token") or ""),
            token_type=str(data.get("token_type") or "bearer"),
            expires_in=int(data.get("expires_in") or 0),
            scope=list(data.get("scope") or []),
            refresh_token=data.get("refresh_token"),
        )


class UpstreamUser(HelixModel):
    id: str
    login: str
    display_name: str
    profile_image_url: str | None = None
    email: str | None = None


class Stream(HelixModel):
    id: str
    user_id: str
    user_login: str
    user_name: str
    game_id: str = ""
    game_name: str = ""
    type: str = "live"
    title: str = ""
    viewer_count: int = 0
    started_at: str = ""
    language: str = ""
    thumbnail_url: str = ""
    is_mature: bool = False
    order: int = 0


class ModeratedChannel(HelixModel):
    broadcaster_id: str
    broadcaster_login: str = ""
    broadcaster_name: str = ""


class Chatter(HelixModel):
    user_id: str
    user_login: str
    user_name: str


class ChatSettings(HelixModel):
    broadcaster_id: str
    moderator_id: str | None = None
    emote_mode: bool = False
    follower_mode: bool = False
    follower_mode_duration: int | None = None
    non_moderator_chat_delay: bool | None = None
    non_moderator_chat_delay_duration: int | None = None
    slow_mode: bool = False
    slow_mode_wait_time: int | None = None
    subscriber_mode: bool = False
    unique_chat_mode: bool = False


class PollChoice(HelixModel):
    id: str
    title: str
    votes: int = 0
    channel_points_votes: int = 0
    bits_votes: int = 0


class Poll(HelixModel):
    id: str
    broadcaster_id: str
    title: str
    choices: list[PollChoice] = []
    status: str
    duration: int = 0
    channel_points_voting_enabled: bool = False
    channel_points_per_vote: int = 0
    started_at: str | None = None
    ended_at: str | None = None


class PredictionOutcome(HelixModel):
    id: str
    title: str
    color: str = ""
    users: int = 0
    channel_points: int = 0


class Prediction(HelixModel):
    id: str
    broadcaster_id: str
    title: str
    outcomes: list[PredictionOutcome] = []
    status: str
    prediction_window: int = 0
    winning_outcome_id: str | None = None
    created_at: str | None = None
    ended_at: str | None = None
    locked_at: str | None = None
