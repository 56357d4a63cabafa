"""Logging configuration and error reporting helpers."""

from __future__ import annotations

from collections.abc import Callable
import logging
from typing import Any, TypeVar, Union

from ocean_iodine.errors import IodineEmissionError

DEFAULT_LOGGER_NAME = "ocean_iodine"
DEFAULT_LOG_LEVEL = logging.INFO
DEFAULT_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

_T = TypeVar("_T")


def resolve_level(level: Union[int, str]) -> int:
    if isinstance(level, int):
        return level
    value = logging.getLevelName(str(level).strip().upper())
    if not isinstance(value, int):
        raise ValueError(f"Unknown log level: {level!r}.")
    return value


def configure_logging(
    level: Union[int, str] = DEFAULT_LOG_LEVEL,
    *,
    logger_name: str = DEFAULT_LOGGER_NAME,
    fmt: str = DEFAULT_LOG_FORMAT,
    force: bool = False,
) -> logging.Logger:
    level = resolve_level(level)
    logging.basicConfig(level=level, format=fmt, force=force)
    logger = logging.getLogger(logger_name)
    logger.setLevel(level)
    return logger


def get_user_message(exc: BaseException) -> str:
    if isinstance(exc, IodineEmissionError):
        return exc.user_message
    return f"Unexpected error: {exc}"


_INSTANCE_KEYS = (("instance_id", "instance"), ("ext_nr", "extension"))


def _instance_tag(exc: BaseException) -> str:
    if not isinstance(exc, IodineEmissionError):
        return ""
    parts = [
        f"{label} {exc.context[key]}"
        for key, label in _INSTANCE_KEYS
        if key in exc.context
    ]
    return f" [{', '.join(parts)}]" if parts else ""


def log_exception(
    logger: logging.Logger,
    exc: BaseException,
    *,
    show_traceback: bool = False,
) -> str:
    user_message = get_user_message(exc)
    # Failures from the iodine hooks carry the instance and extension ids.
    logger.error("%s%s", user_message, _instance_tag(exc))
    if isinstance(exc, IodineEmissionError) and exc.context:
        logger.debug("Error context: %s", exc.context)
    if show_traceback:
        logger.error("Detailed traceback:", exc_info=exc)
    else:
        logger.debug("Detailed traceback:", exc_info=exc)
    return user_message


def run_with_error_handling(
    func: Callable[..., _T],
    *args: Any,
    logger: logging.Logger,
    show_traceback: bool = False,
    **kwargs: Any,
) -> _T:
    try:
        return func(*args, **kwargs)
    except Exception as exc:
        log_exception(logger, exc, show_traceback=show_traceback)
        raise


__all__ = [
    "DEFAULT_LOGGER_NAME",
    "DEFAULT_LOG_LEVEL",
    "DEFAULT_LOG_FORMAT",
    "resolve_level",
    "configure_logging",
    "get_user_message",
    "log_exception",
    "run_with_error_handling",
]
