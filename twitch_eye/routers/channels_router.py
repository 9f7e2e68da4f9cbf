"""Dashboard data API routes"""

import logging

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from twitch_eye.core.dependencies import (
    get_current_session,
    get_log_buffer,
    get_moderation_service,
    get_twitch_api,
)
from twitch_eye.core.errors import AuthFailure
from twitch_eye.core.logging import LogBuffer, for_user
from twitch_eye.models import Chatter, ChatSettings, Session, Stream, UpstreamUser
from twitch_eye.services import ModerationService, TwitchAPIClient

logger = logging.getLogger(__name__)

router = APIRouter(tags=["dashboard"])


# ============================================
# Response Models
# ============================================


class UserResponse(BaseModel):
    user: UpstreamUser


class StreamsResponse(BaseModel):
    streams: list[Stream]


class ChattersResponse(BaseModel):
    chatters: list[Chatter]


class ModeratorStatusResponse(BaseModel):
    is_moderator: bool


class LogEntryResponse(BaseModel):
    id: str
    timestamp: str
    level: str
    logger: str
    message: str


class LogsResponse(BaseModel):
    logs: list[LogEntryResponse]


# ============================================
# Endpoints
# ============================================


@router.get("/user", response_model=UserResponse)
async def get_current_user(
    session: Session = Depends(get_current_session),
    twitch_api: TwitchAPIClient = Depends(get_twitch_api),
) -> UserResponse:
    """Get the logged-in user, fetched fresh from Twitch"""
    user = await twitch_api.get_user(session.access_token)
    if user is None:
        # Token no longer resolves to a user
        raise AuthFailure("Session user not found", clear_cookie=True)
    return UserResponse(user=user)


@router.get("/streams", response_model=StreamsResponse)
async def get_followed_streams(
    session: Session = Depends(get_current_session),
    twitch_api: TwitchAPIClient = Depends(get_twitch_api),
) -> StreamsResponse:
    """Live channels the logged-in user follows"""
    streams = await twitch_api.get_followed_streams(session.user_id, session.access_token)
    logger.debug(
        f"{len(streams)} followed streams live for {session.user_id}",
        extra=for_user(session.user_id),
    )
    return StreamsResponse(streams=streams)


@router.get("/chatters", response_model=ChattersResponse)
async def get_chatters(
    broadcaster_id: str = Query(...),
    moderation: ModerationService = Depends(get_moderation_service),
) -> ChattersResponse:
    """Chatters currently in a channel (requires moderator:read:chatters)"""
    chatters = await moderation.get_chatters(broadcaster_id)
    return ChattersResponse(chatters=chatters)


@router.get("/chat-settings", response_model=ChatSettings)
async def get_chat_settings(
    broadcaster_id: str = Query(...),
    moderation: ModerationService = Depends(get_moderation_service),
) -> ChatSettings:
    return await moderation.get_chat_settings(broadcaster_id)


@router.get("/is-moderator", response_model=ModeratorStatusResponse)
async def get_moderator_status(
    broadcaster_id: str = Query(...),
    moderation: ModerationService = Depends(get_moderation_service),
) -> ModeratorStatusResponse:
    """Whether the logged-in user can moderate the given channel"""
    return ModeratorStatusResponse(is_moderator=await moderation.is_moderator(broadcaster_id))


@router.get("/logs", response_model=LogsResponse)
async def get_logs(
    limit: int = Query(default=100, ge=1, le=1000),
    session: Session = Depends(get_current_session),
    log_buffer: LogBuffer = Depends(get_log_buffer),
) -> LogsResponse:
    """The caller's own recent log entries, newest first"""
    entries = log_buffer.entries(limit, user_id=session.user_id)
    return LogsResponse(logs=[LogEntryResponse(**entry.to_dict()) for entry in entries])
