#!/usr/bin/env python3

import time
import functools
import logging
from typing import Callable, Any, Optional

LOG_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'
LOG_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def setup_logging(level: str = "INFO", log_file: Optional[str] = None) -> logging.Logger:
    """
    Send all log records to one handler: the log file when given, stderr otherwise.

    Existing root handlers are dropped, so calling this again (e.g. once the
    configuration file is known) does not duplicate output.
    """
    root = logging.getLogger()
    root.setLevel(getattr(logging, str(level).upper(), logging.INFO))

    for handler in root.handlers[:]:
        root.removeHandler(handler)

    handler = logging.FileHandler(log_file, encoding='utf-8') if log_file else logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
    root.addHandler(handler)
    return root


class Timer:
    """Measures one pipeline phase, e.g. `with Timer("analysis", logger): ...`"""

    def __init__(self, phase: str = "Timer", logger: Optional[logging.Logger] = None):
        self.phase = phase
        self.logger = logger
        self._started_at = None
        self.elapsed_ms = None

    @property
    def running(self) -> bool:
        return self._started_at is not None

    def start(self):
        if not self.running:
            self._started_at = time.perf_counter()
            self.elapsed_ms = None
        return self

    def end(self) -> float:
        if not self.running:
            return self.elapsed_ms or 0.0

        self.elapsed_ms = (time.perf_counter() - self._started_at) * 1000
        self._started_at = None
        if self.logger is not None:
            self.logger.info("[TIMER] %s took %.2fms", self.phase, self.elapsed_ms)
        return self.elapsed_ms

    def __enter__(self):
        return self.start()

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.end()


def timer_decorator(func_name: Optional[str] = None, log_level: str = "INFO"):
    """Log how long each call of the decorated function takes, failures included."""

    def decorator(func: Callable) -> Callable:
        name = func_name or func.__name__
        level = getattr(logging, log_level.upper(), logging.INFO)
        logger = logging.getLogger('timer')

        @functools.wraps(func)
        def wrapper(*args, **kwargs) -> Any:
            started_at = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                logger.error("[TIMER] %s failed after %.2fms: %s",
                             name, (time.perf_counter() - started_at) * 1000, e)
                raise
            logger.log(level, "[TIMER] %s finished in %.2fms",
                       name, (time.perf_counter() - started_at) * 1000)
            return result

        return wrapper
    return decorator


def timer(func: Callable) -> Callable:
    """Simplified synchronous function timer decorator"""
    return timer_decorator()(func)
