"""Console logging and the in-memory buffer behind GET /logs"""

import logging
import threading
from collections import deque
from dataclasses import asdict, dataclass
from datetime import UTC, datetime
from itertools import count

from rich.console import Console
from rich.logging import RichHandler

from twitch_eye.core.config import Settings

_LEVEL_NAMES = {
    logging.DEBUG: "info",
    logging.INFO: "info",
    logging.WARNING: "warn",
    logging.ERROR: "error",
    logging.CRITICAL: "error",
}

# LogRecord attribute naming the user an entry belongs to
USER_ATTR = "user_id"


def for_user(user_id: str) -> dict[str, str]:
    """``extra=`` for a record that should show up in *user_id*'s /logs."""
    return {USER_ATTR: user_id}


@dataclass(frozen=True)
class LogEntry:
    """A single record kept by the log buffer."""

    id: str
    timestamp: datetime
    level: str  # "info" | "warn" | "error"
    logger: str
    message: str
    user_id: str | None = None

    def to_dict(self) -> dict:
        data = asdict(self)
        data["timestamp"] = self.timestamp.isoformat()
        return data


class LogBuffer(logging.Handler):
    """Bounded in-memory log store served by ``GET /logs``.

    Owned by the application (``app.state.log_buffer``), never a module global.
    Oldest entries are evicted once ``capacity`` is reached. Records logged
    with ``extra=for_user(...)`` carry that user id, which ``entries`` filters on.
    """

    def __init__(self, capacity: int = 100, level: int = logging.INFO):
        super().__init__(level=level)
        if capacity < 1:
            raise ValueError("Log buffer capacity must be at least 1")
        self.capacity = capacity
        self._entries: deque[LogEntry] = deque(maxlen=capacity)
        self._ids = count(1)
        self._entries_lock = threading.Lock()

    def emit(self, record: logging.LogRecord) -> None:
        try:
            entry = LogEntry(
                id=f"log{next(self._ids)}",
                timestamp=datetime.fromtimestamp(record.created, UTC),
                level=_LEVEL_NAMES.get(record.levelno, "info"),
                logger=record.name,
                message=record.getMessage(),
                user_id=getattr(record, USER_ATTR, None),
            )
        except Exception:
            self.handleError(record)
            return
        with self._entries_lock:
            self._entries.append(entry)

    def entries(
        self, limit: int | None = None, user_id: str | None = None
    ) -> list[LogEntry]:
        """Return buffered entries, newest first.

        With *user_id*, only entries logged ``for_user(user_id)`` are returned.
        """
        with self._entries_lock:
            items = list(reversed(self._entries))
        if user_id is not None:
            items = [e for e in items if e.user_id == user_id]
        return items[:limit] if limit is not None else items

    def clear(self) -> None:
        with self._entries_lock:
            self._entries.clear()

    @property
    def size(self) -> int:
        return len(self._entries)


def _console_handler() -> RichHandler:
    # markup off: messages carry usernames and raw Twitch error bodies
    handler = RichHandler(
        console=Console(stderr=True, width=120),
        show_path=False,
        markup=False,
        rich_tracebacks=True,
        tracebacks_width=120,
        log_time_format="[%Y-%m-%d %H:%M:%S]",
    )
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    return handler


def setup_logging(settings: Settings, log_buffer: LogBuffer | None = None) -> None:
    """Route all logging through Rich and, when given, the /logs buffer.

    Replaces any handlers already on the root logger (uvicorn installs its own).
    """
    handlers: list[logging.Handler] = [_console_handler()]
    if log_buffer is not None:
        handlers.append(log_buffer)

    logging.basicConfig(level=settings.log_level, handlers=handlers, force=True)

    for noisy in ("uvicorn.access", "httpx", "httpcore"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    logging.getLogger(__name__).info(
        f"Log level {settings.log_level}, environment {settings.environment}"
    )
