"""Moderation request variants.

Each model validates its own shape, so an invalid request is rejected
locally (HTTP 400) before anything is sent to Twitch. None of them carries a
moderator id: the acting moderator always comes from the session via
``ChannelModerationContext``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from twitch_eye.models.session import Session

MAX_TIMEOUT_SECONDS = 1_209_600  # two weeks
MAX_REASON_LENGTH = 500
MAX_WHISPER_LENGTH = 500

POLL_TITLE_MAX = 60
POLL_CHOICE_TITLE_MAX = 25
POLL_MIN_CHOICES = 2
POLL_MAX_CHOICES = 5
POLL_MIN_DURATION = 15
POLL_MAX_DURATION = 1800
POLL_MAX_POINTS_PER_VOTE = 1_000_000

PREDICTION_TITLE_MAX = 45
PREDICTION_OUTCOME_TITLE_MAX = 25
PREDICTION_OUTCOMES = 2
PREDICTION_MIN_WINDOW = 30
PREDICTION_MAX_WINDOW = 1800

FOLLOWER_MODE_MAX_MINUTES = 129_600  # three months
SLOW_MODE_MIN_SECONDS = 3
SLOW_MODE_MAX_SECONDS = 120
CHAT_DELAY_CHOICES = (2, 4, 6)


@dataclass(frozen=True)
class ChannelModerationContext:
    """The (broadcaster, moderator) pair required by Helix moderation calls."""

    broadcaster_id: str
    moderator_id: str

    @classmethod
    def from_session(cls, session: Session, broadcaster_id: str) -> ChannelModerationContext:
        return cls(broadcaster_id=broadcaster_id, moderator_id=session.user_id)


class ModerationModel(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")


def _require_text(value: str, field_name: str) -> str:
    if not value:
        raise ValueError(f"Missing required field: {field_name}.")
    return value


class ChannelActionRequest(ModerationModel):
    """Base for actions performed on a user inside a broadcaster's channel."""

    broadcaster_id: str
    target_username: str

    @field_validator("broadcaster_id")
    @classmethod
    def required_broadcaster(cls, v: str) -> str:
        return _require_text(v, "broadcaster_id")

    @field_validator("target_username")
    @classmethod
    def required_username(cls, v: str) -> str:
        return _require_text(v.lstrip("@"), "target_username")


class TimeoutRequest(ChannelActionRequest):
    duration: int = Field(strict=True)
    reason: str | None = Field(default=None, max_length=MAX_REASON_LENGTH)

    @field_validator("duration")
    @classmethod
    def duration_in_range(cls, v: int) -> int:
        if not 1 <= v <= MAX_TIMEOUT_SECONDS:
            raise ValueError(
                f"Timeout duration must be between 1 and {MAX_TIMEOUT_SECONDS} seconds."
            )
        return v


class BanRequest(ChannelActionRequest):
    reason: str | None = Field(default=None, max_length=MAX_REASON_LENGTH)


class UnbanRequest(ChannelActionRequest):
    pass


class WhisperRequest(ModerationModel):
    target_username: str
    message: str

    @field_validator("target_username")
    @classmethod
    def required_username(cls, v: str) -> str:
        return _require_text(v.lstrip("@"), "target_username")

    @field_validator("message")
    @classmethod
    def message_length(cls, v: str) -> str:
        _require_text(v, "message")
        if len(v) > MAX_WHISPER_LENGTH:
            raise ValueError(f"Message exceeds {MAX_WHISPER_LENGTH} character limit.")
        return v


class ChatSettingsPatch(ModerationModel):
    """Partial chat settings. Only the fields that are set are sent to Twitch."""

    emote_mode: bool | None = None
    follower_mode: bool | None = None
    follower_mode_duration: int | None = None
    non_moderator_chat_delay: bool | None = None
    non_moderator_chat_delay_duration: int | None = None
    slow_mode: bool | None = None
    slow_mode_wait_time: int | None = None
    subscriber_mode: bool | None = None
    unique_chat_mode: bool | None = None

    @model_validator(mode="after")
    def check_modes(self) -> ChatSettingsPatch:
        if not self.model_dump(exclude_none=True):
            raise ValueError("At least one chat setting must be provided.")

        for mode, duration in (
            ("follower_mode", "follower_mode_duration"),
            ("non_moderator_chat_delay", "non_moderator_chat_delay_duration"),
            ("slow_mode", "slow_mode_wait_time"),
        ):
            if getattr(self, duration) is not None and getattr(self, mode) is False:
                raise ValueError(f"{duration} requires {mode} to be enabled.")

        if self.follower_mode_duration is not None and not (
            0 <= self.follower_mode_duration <= FOLLOWER_MODE_MAX_MINUTES
        ):
            raise ValueError(
                f"Follower mode duration must be between 0 and {FOLLOWER_MODE_MAX_MINUTES} minutes."
            )
        if self.slow_mode_wait_time is not None and not (
            SLOW_MODE_MIN_SECONDS <= self.slow_mode_wait_time <= SLOW_MODE_MAX_SECONDS
        ):
            raise ValueError(
                f"Slow mode wait time must be between {SLOW_MODE_MIN_SECONDS} "
                f"and {SLOW_MODE_MAX_SECONDS} seconds."
            )
        if (
            self.non_moderator_chat_delay_duration is not None
            and self.non_moderator_chat_delay_duration not in CHAT_DELAY_CHOICES
        ):
            raise ValueError("Non-moderator chat delay must be 2, 4, or 6 seconds.")
        return self


class ChatSettingsUpdateRequest(ModerationModel):
    broadcaster_id: str
    settings: ChatSettingsPatch

    @field_validator("broadcaster_id")
    @classmethod
    def required_broadcaster(cls, v: str) -> str:
        return _require_text(v, "broadcaster_id")


class TitleInput(ModerationModel):
    title: str


class PollRequest(ModerationModel):
    title: str
    choices: list[TitleInput]
    duration: int
    channel_points_voting_enabled: bool = False
    channel_points_per_vote: int | None = None

    @model_validator(mode="after")
    def check_poll(self) -> PollRequest:
        if (
            not self.title
            or not POLL_MIN_CHOICES <= len(self.choices) <= POLL_MAX_CHOICES
            or not self.duration
        ):
            raise ValueError("Invalid poll data. Title, 2-5 choices, and duration are required.")
        if any(not c.title or len(c.title) > POLL_CHOICE_TITLE_MAX for c in self.choices):
            raise ValueError(
                f"Invalid choice title. Max {POLL_CHOICE_TITLE_MAX} characters per choice."
            )
        if len(self.title) > POLL_TITLE_MAX:
            raise ValueError(f"Poll title exceeds {POLL_TITLE_MAX} characters.")
        if not POLL_MIN_DURATION <= self.duration <= POLL_MAX_DURATION:
            raise ValueError(
                f"Poll duration must be between {POLL_MIN_DURATION} "
                f"and {POLL_MAX_DURATION} seconds."
            )
        if self.channel_points_voting_enabled and (
            not self.channel_points_per_vote
            or not 1 <= self.channel_points_per_vote <= POLL_MAX_POINTS_PER_VOTE
        ):
            raise ValueError("Channel points per vote must be at least 1 if enabled.")
        return self

    def to_helix(self, broadcaster_id: str) -> dict:
        body = {
            "broadcaster_id": broadcaster_id,
            "title": self.title,
            "choices": [{"title": c.title} for c in self.choices],
            "duration": self.duration,
        }
        if self.channel_points_voting_enabled:
            body["channel_points_voting_enabled"] = True
            body["channel_points_per_vote"] = self.channel_points_per_vote
        return body


class EndPollRequest(ModerationModel):
    id: str = Field(min_length=1)
    status: Literal["TERMINATED", "ARCHIVED"] = "TERMINATED"


class PredictionRequest(ModerationModel):
    title: str
    outcomes: list[TitleInput]
    prediction_window: int

    @model_validator(mode="after")
    def check_prediction(self) -> PredictionRequest:
        if (
            not self.title
            or len(self.outcomes) != PREDICTION_OUTCOMES
            or not self.prediction_window
        ):
            raise ValueError(
                "Invalid prediction data. Title, exactly 2 outcomes, "
                "and prediction window are required."
            )
        if any(
            not o.title or len(o.title) > PREDICTION_OUTCOME_TITLE_MAX for o in self.outcomes
        ):
            raise ValueError(
                f"Invalid outcome title. Max {PREDICTION_OUTCOME_TITLE_MAX} characters per outcome."
            )
        if len(self.title) > PREDICTION_TITLE_MAX:
            raise ValueError(f"Prediction title exceeds {PREDICTION_TITLE_MAX} characters.")
        if not PREDICTION_MIN_WINDOW <= self.prediction_window <= PREDICTION_MAX_WINDOW:
            raise ValueError(
                f"Prediction window must be between {PREDICTION_MIN_WINDOW} "
                f"and {PREDICTION_MAX_WINDOW} seconds."
            )
        return self

    def to_helix(self, broadcaster_id: str) -> dict:
        return {
            "broadcaster_id": broadcaster_id,
            "title": self.title,
            "outcomes": [{"title": o.title} for o in self.outcomes],
            "prediction_window": self.prediction_window,
        }


class EndPredictionRequest(ModerationModel):
    id: str = Field(min_length=1)
    status: Literal["RESOLVED", "CANCELED", "LOCKED"]
    winning_outcome_id: str | None = None

    @model_validator(mode="after")
    def winner_required_when_resolved(self) -> EndPredictionRequest:
        if self.status == "RESOLVED" and not self.winning_outcome_id:
            raise ValueError("winning_outcome_id is required to resolve a prediction.")
        return self
