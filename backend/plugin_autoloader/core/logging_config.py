from __future__ import annotations

import logging

# Messages emitted by every idle reload pass; only interesting when debugging.
_IDLE_SNIPPETS: tuple[str, ...] = (
    "reload pass complete checked=",
    "refreshing runtime state via",
    "runtime refresh complete",
)

_NOISY_LOGGERS: tuple[str, ...] = (
    "asyncio",
    "watchfiles",
    "watchfiles.main",
    "uvicorn.access",
)


class _SuppressIdleReloadFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:  # pragma: no cover - logging hook
        if record.levelno > logging.INFO:
            return True
        if logging.getLogger().isEnabledFor(logging.DEBUG):
            return True
        message = record.getMessage()
        for snippet in _IDLE_SNIPPETS:
            if snippet in message:
                return False
        return True


_IDLE_FILTER = _SuppressIdleReloadFilter()


def _ensure_stream_handler(logger: logging.Logger) -> None:
    handler_exists = any(isinstance(h, logging.StreamHandler) for h in logger.handlers)
    if handler_exists:
        return
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter('[%(levelname)s] %(name)s: %(message)s'))
    handler.addFilter(_IDLE_FILTER)
    logger.addHandler(handler)


def configure_logging(level_name: str | None = None) -> None:
    """Configure the root logger and quiet idle reload chatter."""

    lvl = getattr(logging, (level_name or 'INFO').upper(), None)
    if not isinstance(lvl, int):
        lvl = logging.INFO

    root_logger = logging.getLogger()
    root_logger.setLevel(lvl)
    _ensure_stream_handler(root_logger)

    for noisy_name in _NOISY_LOGGERS:
        logger = logging.getLogger(noisy_name)
        if logger.level < logging.WARNING:
            logger.setLevel(logging.WARNING)
