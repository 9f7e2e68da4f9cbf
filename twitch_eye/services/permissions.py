"""Moderator status resolution"""

import logging

from twitch_eye.core.errors import UpstreamAPIError
from twitch_eye.core.logging import for_user
from twitch_eye.services.twitch_api import TwitchAPIClient

logger = logging.getLogger(__name__)


async def is_moderator(
    twitch_api: TwitchAPIClient,
    broadcaster_id: str,
    logged_in_user_id: str,
    access_token: str,
) -> bool:
    """Whether the logged-in user can moderate *broadcaster_id*'s channel.

    A broadcaster always moderates their own channel, so that case makes no
    network call. Otherwise the first page (100) of channels the user
    moderates is checked. Upstream failures resolve to False: being unable
    to prove moderator status never grants it.
    """
    if broadcaster_id == logged_in_user_id:
        return True

    try:
        channels = await twitch_api.get_moderated_channels(logged_in_user_id, access_token)
    except UpstreamAPIError as e:
        logger.error(
            f"Moderator check failed for user {logged_in_user_id} "
            f"on channel {broadcaster_id}: {e.message}",
            extra=for_user(logged_in_user_id),
        )
        if e.is_auth_error:
            logger.warning(
                f"Permission issue in moderator check (status {e.status_code}); "
                f"the token may lack 'user:read:moderated_channels'",
                extra=for_user(logged_in_user_id),
            )
        return False

    return any(channel.broadcaster_id == broadcaster_id for channel in channels)
