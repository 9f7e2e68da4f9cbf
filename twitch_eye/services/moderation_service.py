"""Moderation action facade"""

import logging

from twitch_eye.core.errors import InvalidRequestError, NotFoundError, PermissionDeniedError
from twitch_eye.core.logging import for_user
from twitch_eye.models import (
    BanRequest,
    ChannelModerationContext,
    Chatter,
    ChatSettings,
    ChatSettingsPatch,
    EndPollRequest,
    EndPredictionRequest,
    Poll,
    PollRequest,
    Prediction,
    PredictionRequest,
    Session,
    TimeoutRequest,
    UnbanRequest,
    UpstreamUser,
    WhisperRequest,
)
from twitch_eye.services.permissions import is_moderator
from twitch_eye.services.twitch_api import TwitchAPIClient

logger = logging.getLogger(__name__)


class ModerationService:
    """Moderation actions on behalf of the session user.

    Requests arrive already validated (see ``twitch_eye.models.moderation``).
    The acting moderator is always ``session.user_id``; mutating channel
    actions are gated on moderator status before anything is sent.
    """

    def __init__(self, twitch_api: TwitchAPIClient, session: Session):
        self.twitch_api = twitch_api
        self.session = session
        self._log_extra = for_user(session.user_id)

    @property
    def _token(self) -> str:
        return self.session.access_token

    def context(self, broadcaster_id: str) -> ChannelModerationContext:
        if not broadcaster_id:
            raise InvalidRequestError("Missing required field: broadcaster_id.")
        return ChannelModerationContext.from_session(self.session, broadcaster_id)

    async def is_moderator(self, broadcaster_id: str) -> bool:
        self.context(broadcaster_id)
        return await is_moderator(
            self.twitch_api, broadcaster_id, self.session.user_id, self._token
        )

    async def _require_moderator(self, broadcaster_id: str) -> ChannelModerationContext:
        ctx = self.context(broadcaster_id)
        if not await self.is_moderator(broadcaster_id):
            logger.warning(
                f"User {self.session.user_id} tried to moderate channel {broadcaster_id} "
                f"without moderator status",
                extra=self._log_extra,
            )
            raise PermissionDeniedError("You are not a moderator of this channel.")
        return ctx

    async def _resolve_user(self, username: str) -> UpstreamUser:
        user = await self.twitch_api.get_user_by_login(username, self._token)
        if user is None or not user.id:
            raise NotFoundError(f"User '{username}' not found.")
        return user

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    async def get_chat_settings(self, broadcaster_id: str) -> ChatSettings:
        return await self.twitch_api.get_chat_settings(self.context(broadcaster_id), self._token)

    async def get_chatters(self, broadcaster_id: str) -> list[Chatter]:
        return await self.twitch_api.get_chatters(self.context(broadcaster_id), self._token)

    # ------------------------------------------------------------------
    # User actions
    # ------------------------------------------------------------------

    async def timeout(self, request: TimeoutRequest) -> str:
        ctx = await self._require_moderator(request.broadcaster_id)
        target = await self._resolve_user(request.target_username)
        await self.twitch_api.timeout_user(
            ctx, target.id, request.duration, self._token, reason=request.reason
        )
        logger.info(
            f"{ctx.moderator_id} timed out {target.login} in {ctx.broadcaster_id} "
            f"for {request.duration}s",
            extra=self._log_extra,
        )
        return f"User {request.target_username} timed out for {request.duration} seconds."

    async def ban(self, request: BanRequest) -> str:
        ctx = await self._require_moderator(request.broadcaster_id)
        target = await self._resolve_user(request.target_username)
        await self.twitch_api.ban_user(ctx, target.id, self._token, reason=request.reason)
        logger.info(
            f"{ctx.moderator_id} banned {target.login} in {ctx.broadcaster_id}",
            extra=self._log_extra,
        )
        return f"User {request.target_username} banned."

    async def unban(self, request: UnbanRequest) -> str:
        ctx = await self._require_moderator(request.broadcaster_id)
        target = await self._resolve_user(request.target_username)
        await self.twitch_api.unban_user(ctx, target.id, self._token)
        logger.info(
            f"{ctx.moderator_id} unbanned {target.login} in {ctx.broadcaster_id}",
            extra=self._log_extra,
        )
        return f"User {request.target_username} unbanned."

    async def whisper(self, request: WhisperRequest) -> str:
        target = await self._resolve_user(request.target_username)
        if target.id == self.session.user_id:
            raise InvalidRequestError("You cannot send a whisper to yourself.")
        await self.twitch_api.send_whisper(
            self.session.user_id, target.id, request.message, self._token
        )
        logger.info(f"{self.session.user_id} whispered {target.login}", extra=self._log_extra)
        return f"Whisper sent to {request.target_username}."

    # ------------------------------------------------------------------
    # Channel actions
    # ------------------------------------------------------------------

    async def update_chat_settings(
        self, broadcaster_id: str, settings: ChatSettingsPatch
    ) -> ChatSettings:
        ctx = await self._require_moderator(broadcaster_id)
        changes = settings.model_dump(exclude_none=True)
        updated = await self.twitch_api.update_chat_settings(ctx, changes, self._token)
        logger.info(
            f"{ctx.moderator_id} updated chat settings in {broadcaster_id}: {changes}",
            extra=self._log_extra,
        )
        return updated

    async def create_poll(self, broadcaster_id: str, request: PollRequest) -> Poll:
        await self._require_moderator(broadcaster_id)
        poll = await self.twitch_api.create_poll(request.to_helix(broadcaster_id), self._token)
        logger.info(
            f"Poll {poll.id} created in {broadcaster_id}: {poll.title}",
            extra=self._log_extra,
        )
        return poll

    async def end_poll(self, broadcaster_id: str, request: EndPollRequest) -> Poll:
        await self._require_moderator(broadcaster_id)
        poll = await self.twitch_api.end_poll(
            broadcaster_id, request.id, request.status, self._token
        )
        logger.info(
            f"Poll {poll.id} in {broadcaster_id} ended ({request.status})",
            extra=self._log_extra,
        )
        return poll

    async def create_prediction(
        self, broadcaster_id: str, request: PredictionRequest
    ) -> Prediction:
        await self._require_moderator(broadcaster_id)
        prediction = await self.twitch_api.create_prediction(
            request.to_helix(broadcaster_id), self._token
        )
        logger.info(
            f"Prediction {prediction.id} created in {broadcaster_id}: {prediction.title}",
            extra=self._log_extra,
        )
        return prediction

    async def end_prediction(
        self, broadcaster_id: str, request: EndPredictionRequest
    ) -> Prediction:
        await self._require_moderator(broadcaster_id)
        prediction = await self.twitch_api.end_prediction(
            broadcaster_id,
            request.id,
            request.status,
            self._token,
            winning_outcome_id=request.winning_outcome_id,
        )
        logger.info(
            f"Prediction {prediction.id} in {broadcaster_id} ended ({request.status})",
            extra=self._log_extra,
        )
        return prediction
