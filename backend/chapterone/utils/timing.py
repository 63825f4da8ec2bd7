"""Timing helpers for logging how long catalog fan-outs and searches take."""
import time
from contextlib import contextmanager
from typing import Optional
import logging

logger = logging.getLogger(__name__)


def now_ms() -> float:
    """Current time in milliseconds from the high-resolution counter."""
    return time.perf_counter() * 1000


def elapsed_ms(start_ms: float) -> float:
    return now_ms() - start_ms


@contextmanager
def timed(label: str, log: Optional[logging.Logger] = None, min_ms: float = 0.0):
    """
    Log ``label`` with its elapsed time once the block exits.

    Example:
        with timed("external search 'dune'", logger):
            books = fetch_external(...)

    Logs at INFO when a logger is given, otherwise at DEBUG on this module's
    logger. Blocks faster than ``min_ms`` are not logged.
    """
    start = now_ms()
    try:
        yield
    finally:
        elapsed = elapsed_ms(start)
        if elapsed >= min_ms:
            if log is not None:
                log.info("%s took %.2fms", label, elapsed)
            else:
                logger.debug("%s took %.2fms", label, elapsed)
