import logging
from dataclasses import dataclass
from typing import List, Literal

logger = logging.getLogger(__name__)

Level = Literal["success", "error", "warning"]

_LOG_LEVELS = {"success": logging.INFO, "warning": logging.WARNING, "error": logging.ERROR}


@dataclass(frozen=True)
class Toast:
    level: Level
    message: str


class Notifier:
    """Collects user-facing messages (the toasts of the web UI) and logs each one."""

    def __init__(self):
        self.toasts: List[Toast] = []

    def _push(self, level: Level, message: str) -> None:
        self.toasts.append(Toast(level, message))
        logger.log(_LOG_LEVELS[level], "%s: %s", level, message)

    def success(self, message: str) -> None:
        self._push("success", message)

    def warning(self, message: str) -> None:
        self._push("warning", message)

    def error(self, message: str) -> None:
        self._push("error", message)

    def messages(self, level: Level = None) -> List[str]:
        return [t.message for t in self.toasts if level is None or t.level == level]

    def clear(self) -> None:
        self.toasts.clear()
