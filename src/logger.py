"""Console logging for the engine.

Every module logs through `LOGGER`. Level and colour come from `src.settings`.
"""

import logging
from enum import StrEnum

from src import settings

LINE_TEMPLATE = "{asctime} - {name} - {levelname} - {message}"


class Ansi(StrEnum):
    """SGR escape sequences used to tint log lines."""

    RESET = "\033[0m"
    BOLD = "\033[1m"
    BLACK = "\033[30m"
    RED = "\033[31m"
    YELLOW = "\033[33m"
    BLUE = "\033[34m"
    LIGHT_GREY = "\033[37m"
    HIGHLIGHT_RED = "\033[41m"


LEVEL_TINTS: dict[int, str] = {
    logging.DEBUG: Ansi.LIGHT_GREY,
    logging.INFO: Ansi.BLUE,
    logging.WARNING: Ansi.YELLOW,
    logging.ERROR: Ansi.RED,
    logging.CRITICAL: Ansi.BOLD + Ansi.HIGHLIGHT_RED + Ansi.BLACK,
}


class PlainFormatter(logging.Formatter):
    """One line per record, no escape codes."""

    def __init__(self) -> None:
        super().__init__(LINE_TEMPLATE, style="{", validate=True)


class TintedFormatter(logging.Formatter):
    """Wraps each line in the tint registered for its level."""

    def __init__(self) -> None:
        super().__init__(LINE_TEMPLATE, style="{", validate=True)
        self._by_level = {
            level: logging.Formatter(f"{tint}{LINE_TEMPLATE}{Ansi.RESET}", style="{")
            for level, tint in LEVEL_TINTS.items()
        }

    def format(self, record: logging.LogRecord) -> str:
        formatter = self._by_level.get(record.levelno)
        if formatter is None:
            return super().format(record)
        return formatter.format(record)


def console_handler(*, tinted: bool) -> logging.Handler:
    """Stream handler at the configured level."""
    handler = logging.StreamHandler()
    handler.setLevel(settings.LOG_LEVEL)
    handler.setFormatter(TintedFormatter() if tinted else PlainFormatter())
    return handler


LOGGER = logging.getLogger(settings.LOGGER_NAME)
LOGGER.setLevel(settings.LOG_LEVEL)
if not LOGGER.handlers:  # pragma: nocover
    LOGGER.addHandler(console_handler(tinted=settings.LOG_COLOUR_ENABLED))
