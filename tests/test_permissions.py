"""
Moderator status resolution tests
"""

import pytest

from twitch_eye.services import is_moderator


@pytest.mark.asyncio
async def test_broadcaster_moderates_own_channel_without_network(
    twitch_api, fake_twitch
) -> None:
    assert await is_moderator(twitch_api, "42", "42", "tok") is True
    assert fake_twitch.requests == []


@pytest.mark.asyncio
async def test_listed_channel_is_moderated(twitch_api, fake_twitch) -> None:
    fake_twitch.add(
        "GET",
        "/helix/moderation/channels",
        body={"data": [{"broadcaster_id": "7"}, {"broadcaster_id": "1"}]},
    )

    assert await is_moderator(twitch_api, "1", "42", "tok") is True

    [request] = fake_twitch.requests
    assert request.url.params["user_id"] == "42"
    assert request.url.params["first"] == "100"


@pytest.mark.asyncio
async def test_unlisted_channel_is_not_moderated(twitch_api, fake_twitch) -> None:
    fake_twitch.add(
        "GET", "/helix/moderation/channels", body={"data": [{"broadcaster_id": "7"}]}
    )

    assert await is_moderator(twitch_api, "1", "42", "tok") is False


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [401, 403, 500])
async def test_upstream_failure_is_not_moderator(twitch_api, fake_twitch, status) -> None:
    fake_twitch.add(
        "GET", "/helix/moderation/channels", status=status,
        body={"status": status, "message": "Missing scope: user:read:moderated_channels"},
    )

    assert await is_moderator(twitch_api, "1", "42", "tok") is False
