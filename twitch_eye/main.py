"""Entry point: ``python -m twitch_eye.main`` or ``uvicorn twitch_eye.main:app``"""

import uvicorn

from twitch_eye.app import create_app
from twitch_eye.core.config import get_settings

app = create_app()


if __name__ == "__main__":
    settings = get_settings()
    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_config=None,
    )
