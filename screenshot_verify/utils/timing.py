# screenshot_verify/utils/timing.py
from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Optional, TypeVar, ParamSpec

from screenshot_verify.utils.logger import get_logger

P = ParamSpec("P")
T = TypeVar("T")


# ---------------- Monotonic time helpers ----------------

def now_ms() -> int:
    """Monotonic time in milliseconds."""
    return time.monotonic_ns() // 1_000_000


def sleep_ms(ms: int) -> None:
    """Sleep for `ms` milliseconds (blocking)."""
    if ms <= 0:
        return
    time.sleep(ms / 1000.0)


def sleep_seconds(seconds: float) -> None:
    sleep_ms(int(round(seconds * 1000)))


# ---------------- Stopwatch ----------------

@dataclass
class Stopwatch:
    """Simple stopwatch usable as a context manager."""
    start_ms: Optional[int] = None

    def start(self) -> "Stopwatch":
        self.start_ms = now_ms()
        return self

    def elapsed_ms(self) -> int:
        if self.start_ms is None:
            return 0
        return max(0, now_ms() - self.start_ms)

    def __enter__(self) -> "Stopwatch":
        return self.start()

    def __exit__(self, exc_type, exc, tb) -> None:
        return None


def human_duration(ms: int) -> str:
    return f"{ms} ms" if ms < 1000 else f"{ms / 1000:.3f} s"


# ---------------- measure decorator ----------------

def measure(label: str = "", level: str = "DEBUG") -> Callable[[Callable[P, T]], Callable[P, T]]:
    """
    Decorator to log the execution time of a function.
    Example:
        @measure("screencapture")
        def capture(...): ...
    """
    def decorator(func: Callable[P, T]) -> Callable[P, T]:
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            with Stopwatch() as sw:
                try:
                    return func(*args, **kwargs)
                finally:
                    log = get_logger(__name__)
                    log_fn = getattr(log, level.lower(), log.debug)
                    log_fn(f"{label or func.__name__} took {human_duration(sw.elapsed_ms())}")
        wrapper.__name__ = func.__name__
        wrapper.__doc__ = func.__doc__
        return wrapper
    return decorator
