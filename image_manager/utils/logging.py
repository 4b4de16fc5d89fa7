"""
Logging utilities for structured logging and method tracing.
"""
import functools
import logging
import time
from pathlib import Path
from typing import Any, Callable, TypeVar

from image_manager.config import settings

logger = logging.getLogger("image_manager")

F = TypeVar("F", bound=Callable[..., Any])

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str, log_dir: Path) -> None:
    """
    Configure the root logger with stdout and file handlers.

    Args:
        level: Logging level name
        log_dir: Directory for app.log (created if missing)
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "app.log"

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # Remove existing handlers to avoid duplicates
    root_logger.handlers.clear()

    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(log_level)
    stream_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root_logger.addHandler(stream_handler)

    file_handler = logging.FileHandler(log_file)
    file_handler.setLevel(log_level)
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root_logger.addHandler(file_handler)


def _summarize(name: str, value: Any) -> str:
    if isinstance(value, (str, int, float, bool, type(None))):
        return f"{name}={value}"
    if isinstance(value, bytes):
        return f"{name}=<bytes:{len(value)}>"
    if isinstance(value, Path):
        return f"{name}={value.as_posix()}"
    return f"{name}=<{type(value).__name__}>"


def trace_calls(func: F) -> F:
    """
    Decorator to log method entry/exit when TRACE_CALLS is enabled.

    Logs function name, args summary (excluding pixel buffers), and duration.
    The flag is checked per call so it can be toggled at runtime.
    """

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        if not settings.TRACE_CALLS:
            return func(*args, **kwargs)

        func_name = f"{func.__module__}.{func.__qualname__}"
        args_summary = [_summarize(f"arg{i}", arg) for i, arg in enumerate(args)]
        args_summary.extend(_summarize(key, value) for key, value in kwargs.items())

        logger.debug(f"[TRACE] ENTER {func_name}({', '.join(args_summary)})")
        start = time.perf_counter()
        try:
            result = func(*args, **kwargs)
            duration_ms = int((time.perf_counter() - start) * 1000)
            logger.debug(f"[TRACE] EXIT {func_name} durationMs={duration_ms}")
            return result
        except Exception as e:
            duration_ms = int((time.perf_counter() - start) * 1000)
            logger.debug(f"[TRACE] EXIT {func_name} durationMs={duration_ms} error={type(e).__name__}")
            raise

    return wrapper  # type: ignore
