"""
Central logging configuration and debug decorator.

Provides the package logger (a NullHandler by default, with opt-in console
and file handlers), plus a decorator for automatic function-level
observability.
"""

import functools
import logging
import traceback
from time import time
from typing import Any, Callable, TypeVar

from market_insights.config import LOG_CONSOLE, LOG_FILE, LOG_LEVEL

# Type variable for function return types
F = TypeVar("F", bound=Callable[..., Any])

_FORMAT = "[%(asctime)s] [%(levelname)s] [%(module)s]: %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _console_handler(level: str) -> logging.Handler:
    handler = logging.StreamHandler()
    handler.setLevel(getattr(logging, level.upper(), logging.INFO))
    handler.setFormatter(logging.Formatter(_FORMAT, datefmt=_DATE_FORMAT))
    return handler


_logger = logging.getLogger("market_insights")


def enable_console_logging(level: str = LOG_LEVEL) -> logging.Handler:
    """
    Attach a console handler to the package logger.

    Repeated calls reuse the existing handler and only update its level.
    """
    for handler in _logger.handlers:
        if getattr(handler, "_market_insights_console", False):
            handler.setLevel(getattr(logging, level.upper(), logging.INFO))
            return handler

    handler = _console_handler(level)
    handler._market_insights_console = True  # type: ignore[attr-defined]
    _logger.addHandler(handler)
    _logger.setLevel(logging.DEBUG)
    return handler


# Configure package logger
# Prevent duplicate handlers
if not _logger.handlers:
    _logger.addHandler(logging.NullHandler())

    if LOG_CONSOLE:
        enable_console_logging(LOG_LEVEL)

    if LOG_FILE is not None:
        file_handler = logging.FileHandler(LOG_FILE, mode="a", encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(_FORMAT, datefmt=_DATE_FORMAT))
        _logger.addHandler(file_handler)
        _logger.setLevel(logging.DEBUG)


def get_logger(name: str | None = None) -> logging.Logger:
    """
    Get a logger instance for a module.

    Args:
        name: Optional module name. If None, returns the package logger.

    Returns:
        Logger instance under the ``market_insights`` hierarchy.
    """
    if name:
        if name.startswith("market_insights"):
            return logging.getLogger(name)
        return logging.getLogger(f"market_insights.{name}")
    return _logger


def debug_watcher(func: F) -> F:
    """
    Decorator that logs function entry, execution time, and exceptions.

    Logs:
    - Function start with (truncated) arguments
    - Function completion with execution time
    - Full traceback on exceptions (DEBUG level)

    Args:
        func: Function to wrap.

    Returns:
        Wrapped function with logging.
    """
    logger = get_logger(func.__module__)

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        func_name = func.__name__
        start_time = time()

        args_str = ", ".join([_short_repr(arg, 100) for arg in args[:3]])
        kwargs_str = ", ".join([f"{k}={_short_repr(v, 50)}" for k, v in list(kwargs.items())[:3]])
        params_str = ", ".join(filter(None, [args_str, kwargs_str]))
        logger.info(f"Starting {func_name}... ({params_str})")

        try:
            result = func(*args, **kwargs)

            elapsed = time() - start_time
            logger.info(f"Completed {func_name} in {elapsed:.3f} seconds.")

            return result

        except Exception as e:
            elapsed = time() - start_time
            error_msg = f"Exception in {func_name} after {elapsed:.3f} seconds: {type(e).__name__}: {str(e)}"
            logger.error(error_msg)
            logger.debug(f"Full traceback for {func_name}:\n{traceback.format_exc()}")

            # Re-raise to maintain normal error handling
            raise

    return wrapper  # type: ignore[return-value]


def _short_repr(value: Any, limit: int) -> str:
    # Raw workbook bytes are summarized rather than dumped
    if isinstance(value, (bytes, bytearray)):
        return f"<{len(value)} bytes>"
    return str(value)[:limit]
