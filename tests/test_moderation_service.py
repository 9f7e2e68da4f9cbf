"""
Moderation service tests
"""

from datetime import UTC, datetime, timedelta
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from twitch_eye.core.errors import InvalidRequestError, NotFoundError, PermissionDeniedError
from twitch_eye.models import (
    ChannelModerationContext,
    ChatSettingsPatch,
    EndPredictionRequest,
    PollRequest,
    Session,
    TimeoutRequest,
    UpstreamUser,
    WhisperRequest,
)
from twitch_eye.services import ModerationService


def _session(user_id: str = "42") -> Session:
    now = datetime.now(UTC)
    return Session(
        user_id=user_id,
        access_token="tok",
        issued_at=now,
        expires_at=now + timedelta(hours=24),
    )


def _user(user_id: str, login: str) -> UpstreamUser:
    return UpstreamUser(id=user_id, login=login, display_name=login.title())


@pytest.fixture
def api() -> AsyncMock:
    api = AsyncMock()
    api.get_moderated_channels.return_value = [SimpleNamespace(broadcaster_id="1")]
    api.get_user_by_login.return_value = _user("99", "spammer")
    return api


@pytest.fixture
def service(api: AsyncMock) -> ModerationService:
    return ModerationService(api, _session())


class TestTimeout:
    @pytest.mark.asyncio
    async def test_acts_as_session_user(self, service, api) -> None:
        message = await service.timeout(
            TimeoutRequest(broadcaster_id="1", target_username="@spammer", duration=600)
        )

        assert message == "User spammer timed out for 600 seconds."
        api.timeout_user.assert_awaited_once_with(
            ChannelModerationContext(broadcaster_id="1", moderator_id="42"),
            "99",
            600,
            "tok",
            reason=None,
        )

    @pytest.mark.asyncio
    async def test_unknown_user_sends_nothing(self, service, api) -> None:
        api.get_user_by_login.return_value = None

        with pytest.raises(NotFoundError, match="User 'nouser' not found."):
            await service.timeout(
                TimeoutRequest(broadcaster_id="1", target_username="nouser", duration=600)
            )

        api.timeout_user.assert_not_awaited()
        api.ban_user.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_non_moderator_is_refused(self, service, api) -> None:
        api.get_moderated_channels.return_value = []

        with pytest.raises(PermissionDeniedError):
            await service.timeout(
                TimeoutRequest(broadcaster_id="1", target_username="spammer", duration=600)
            )

        api.get_user_by_login.assert_not_awaited()
        api.timeout_user.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_own_channel_skips_membership_lookup(self, api) -> None:
        service = ModerationService(api, _session(user_id="1"))

        await service.timeout(
            TimeoutRequest(broadcaster_id="1", target_username="spammer", duration=60)
        )

        api.get_moderated_channels.assert_not_awaited()
        api.timeout_user.assert_awaited_once()


class TestWhisper:
    @pytest.mark.asyncio
    async def test_sends_from_session_user(self, service, api) -> None:
        message = await service.whisper(
            WhisperRequest(target_username="spammer", message="please stop")
        )

        assert message == "Whisper sent to spammer."
        api.send_whisper.assert_awaited_once_with("42", "99", "please stop", "tok")
        api.get_moderated_channels.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_whisper_to_self_rejected(self, service, api) -> None:
        api.get_user_by_login.return_value = _user("42", "me")

        with pytest.raises(InvalidRequestError, match="You cannot send a whisper to yourself."):
            await service.whisper(WhisperRequest(target_username="me", message="hi"))

        api.send_whisper.assert_not_awaited()


class TestChannelActions:
    @pytest.mark.asyncio
    async def test_chat_settings_sends_only_set_fields(self, service, api) -> None:
        patch = ChatSettingsPatch(slow_mode=True, slow_mode_wait_time=30)

        await service.update_chat_settings("1", patch)

        ctx, changes, token = api.update_chat_settings.await_args.args
        assert ctx.moderator_id == "42"
        assert changes == {"slow_mode": True, "slow_mode_wait_time": 30}
        assert token == "tok"

    @pytest.mark.asyncio
    async def test_poll_targets_header_channel(self, service, api) -> None:
        request = PollRequest(
            title="Best snack?",
            choices=[{"title": "Chips"}, {"title": "Fruit"}],
            duration=60,
        )

        await service.create_poll("1", request)

        body, token = api.create_poll.await_args.args
        assert body == {
            "broadcaster_id": "1",
            "title": "Best snack?",
            "choices": [{"title": "Chips"}, {"title": "Fruit"}],
            "duration": 60,
        }

    @pytest.mark.asyncio
    async def test_poll_refused_for_non_moderator(self, service, api) -> None:
        api.get_moderated_channels.return_value = []
        request = PollRequest(
            title="Best snack?", choices=[{"title": "A"}, {"title": "B"}], duration=60
        )

        with pytest.raises(PermissionDeniedError):
            await service.create_poll("1", request)

        api.create_poll.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_resolve_prediction_passes_winner(self, service, api) -> None:
        await service.end_prediction(
            "1", EndPredictionRequest(id="p1", status="RESOLVED", winning_outcome_id="o2")
        )

        api.end_prediction.assert_awaited_once_with(
            "1", "p1", "RESOLVED", "tok", winning_outcome_id="o2"
        )

    @pytest.mark.asyncio
    async def test_empty_broadcaster_rejected(self, service, api) -> None:
        with pytest.raises(InvalidRequestError):
            await service.get_chat_settings("")

        api.get_chat_settings.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_moderator_check_needs_broadcaster(self, service, api) -> None:
        with pytest.raises(InvalidRequestError, match="Missing required field: broadcaster_id."):
            await service.is_moderator("")

        api.get_moderated_channels.assert_not_awaited()
