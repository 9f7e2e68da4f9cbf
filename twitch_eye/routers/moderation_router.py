"""Moderation API routes"""

import logging

from fastapi import APIRouter, Depends, Header
from pydantic import BaseModel

from twitch_eye.core.dependencies import get_current_session, get_moderation_service
from twitch_eye.core.errors import InvalidRequestError
from twitch_eye.models import (
    BanRequest,
    ChatSettings,
    ChatSettingsUpdateRequest,
    EndPollRequest,
    EndPredictionRequest,
    Poll,
    PollRequest,
    Prediction,
    PredictionRequest,
    Session,
    TimeoutRequest,
    UnbanRequest,
    WhisperRequest,
)
from twitch_eye.services import ModerationService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/moderate", tags=["moderation"])


# ============================================
# Response Models
# ============================================


class ActionResponse(BaseModel):
    success: bool = True
    message: str


class ChatSettingsResponse(ActionResponse):
    settings: ChatSettings


class PollResponse(ActionResponse):
    poll: Poll


class PredictionResponse(ActionResponse):
    prediction: Prediction


# ============================================
# Helpers
# ============================================


def require_broadcaster_header(
    x_broadcaster_id: str | None = Header(None, alias="X-Broadcaster-ID"),
    _session: Session = Depends(get_current_session),
) -> str:
    """Channel for poll/prediction calls, sent by the client as a header.

    Depends on the session so a missing login answers 401 before the header
    is looked at.
    """
    if not x_broadcaster_id or not x_broadcaster_id.strip():
        raise InvalidRequestError("X-Broadcaster-ID header is required.")
    return x_broadcaster_id.strip()


# ============================================
# User actions
# ============================================


@router.post("/timeout", response_model=ActionResponse)
async def timeout_user(
    body: TimeoutRequest,
    moderation: ModerationService = Depends(get_moderation_service),
) -> ActionResponse:
    return ActionResponse(message=await moderation.timeout(body))


@router.post("/ban", response_model=ActionResponse)
async def ban_user(
    body: BanRequest,
    moderation: ModerationService = Depends(get_moderation_service),
) -> ActionResponse:
    return ActionResponse(message=await moderation.ban(body))


@router.post("/unban", response_model=ActionResponse)
async def unban_user(
    body: UnbanRequest,
    moderation: ModerationService = Depends(get_moderation_service),
) -> ActionResponse:
    return ActionResponse(message=await moderation.unban(body))


@router.post("/whisper", response_model=ActionResponse)
async def send_whisper(
    body: WhisperRequest,
    moderation: ModerationService = Depends(get_moderation_service),
) -> ActionResponse:
    """Whisper a user as the logged-in account (used for warnings)"""
    return ActionResponse(message=await moderation.whisper(body))


# ============================================
# Channel actions
# ============================================


@router.post("/chat-settings", response_model=ChatSettingsResponse)
async def update_chat_settings(
    body: ChatSettingsUpdateRequest,
    moderation: ModerationService = Depends(get_moderation_service),
) -> ChatSettingsResponse:
    settings = await moderation.update_chat_settings(body.broadcaster_id, body.settings)
    return ChatSettingsResponse(settings=settings, message="Chat settings updated successfully.")


@router.post("/polls", response_model=PollResponse)
async def create_poll(
    body: PollRequest,
    broadcaster_id: str = Depends(require_broadcaster_header),
    moderation: ModerationService = Depends(get_moderation_service),
) -> PollResponse:
    poll = await moderation.create_poll(broadcaster_id, body)
    return PollResponse(poll=poll, message="Poll created successfully.")


@router.patch("/polls", response_model=PollResponse)
async def end_poll(
    body: EndPollRequest,
    broadcaster_id: str = Depends(require_broadcaster_header),
    moderation: ModerationService = Depends(get_moderation_service),
) -> PollResponse:
    poll = await moderation.end_poll(broadcaster_id, body)
    return PollResponse(poll=poll, message="Poll ended successfully.")


@router.post("/predictions", response_model=PredictionResponse)
async def create_prediction(
    body: PredictionRequest,
    broadcaster_id: str = Depends(require_broadcaster_header),
    moderation: ModerationService = Depends(get_moderation_service),
) -> PredictionResponse:
    prediction = await moderation.create_prediction(broadcaster_id, body)
    return PredictionResponse(prediction=prediction, message="Prediction created successfully.")


@router.patch("/predictions", response_model=PredictionResponse)
async def end_prediction(
    body: EndPredictionRequest,
    broadcaster_id: str = Depends(require_broadcaster_header),
    moderation: ModerationService = Depends(get_moderation_service),
) -> PredictionResponse:
    prediction = await moderation.end_prediction(broadcaster_id, body)
    return PredictionResponse(prediction=prediction, message="Prediction ended successfully.")
