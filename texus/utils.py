"""General helpers: signing, sorting, conversions, a bounded stack and timing."""

from __future__ import annotations

import base64
import hashlib
import hmac
import logging
import random
import re
import string
import threading
import time
from collections import deque
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Sequence

logger = logging.getLogger(__name__)

_LETTERS = string.ascii_uppercase + string.ascii_lowercase
_INT_PATTERN = re.compile(r"[+-]?\d+")


class BoundedStack:
    """A thread-safe stack that drops its oldest element once full."""

    def __init__(self, capacity: int, ctype: str = "") -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.capacity = capacity
        self.ctype = ctype
        self._items: deque[Any] = deque(maxlen=capacity)
        self._lock = threading.Lock()

    def push(self, obj: Any) -> None:
        """Push an element, discarding the oldest one when full."""
        with self._lock:
            self._items.append(obj)

    def pop(self) -> Any:
        """Remove and return the newest element."""
        with self._lock:
            if not self._items:
                raise IndexError("Pop Error: Stack is empty")
            return self._items.pop()

    def front(self) -> Any:
        """Return the newest element without removing it."""
        with self._lock:
            if not self._items:
                raise IndexError("Peep Error: Stack is empty")
            return self._items[-1]

    def __len__(self) -> int:
        return len(self._items)

    def is_empty(self) -> bool:
        return not self._items

    def __iter__(self):
        return iter(list(self._items))


def compute_hmac256(message: str, secret: str) -> str:
    """Return the base64 encoded HMAC-SHA256 of message under secret."""
    digest = hmac.new(secret.encode(), message.encode(), hashlib.sha256).digest()
    return base64.b64encode(digest).decode("ascii")


def sort_descending(values: Iterable[int]) -> list[int]:
    """Return the values ordered from largest to smallest."""
    return sorted(values, reverse=True)


def random_int_strings(upper: int, count: int) -> list[str]:
    """Return count random integers in [0, upper) as strings."""
    if upper <= 0:
        raise ValueError("upper must be positive")
    return [str(random.randrange(upper)) for _ in range(count)]


def random_string(length: int) -> str:
    """Return a random string of ASCII letters."""
    return "".join(random.choice(_LETTERS) for _ in range(length))


def in_array(value: Any, sequence: Any) -> tuple[bool, int]:
    """Return whether value is in sequence and its first index (-1 if absent)."""
    if not isinstance(sequence, (list, tuple)):
        return False, -1
    for index, item in enumerate(sequence):
        if item == value:
            return True, index
    return False, -1


def sqrt(x: float) -> float:
    """Square root by Newton's method, accurate to 1e-6 in the square."""
    if x < 0:
        raise ValueError("math domain error")
    z = 1.0
    while abs(z * z - x) > 0.000001:
        z -= (z * z - x) / (2 * z)
    return z


def _sleep_until(moment: float) -> None:
    remaining = moment - time.monotonic()
    if remaining > 0:
        time.sleep(remaining)


def _run_callback(callback: Callable[[int, list[str]], Any], index: int, items: list[str]) -> None:
    try:
        callback(index, items)
    except Exception as exc:  # noqa: BLE001 - errors are reported, not propagated
        logger.error("inner err: %s", exc)


def ticker_wrapper(
    duration: float,
    items: Sequence[str],
    callback: Callable[[int, list[str]], Any],
) -> None:
    """Spread callback(index, items) calls evenly over duration seconds.

    Calls are made for every index but the last, each in its own thread,
    at intervals of duration / (len(items) + 2), never shorter than 0.1 s.
    Returns once duration has passed and the started calls have finished.
    """
    items = list(items)
    start = time.monotonic()
    deadline = start + duration
    step = max(duration / (len(items) + 2), 0.1)
    workers: list[threading.Thread] = []
    for index in range(len(items) - 1):
        fire_at = start + step * (index + 1)
        if fire_at > deadline:
            break
        _sleep_until(fire_at)
        worker = threading.Thread(
            target=_run_callback, args=(callback, index, items), daemon=True
        )
        worker.start()
        workers.append(worker)
    _sleep_until(deadline)
    for worker in workers:
        worker.join()


def hash_dispatch(origin_name: str, count: int) -> int:
    """Map a name onto a bucket in [0, count) via its MD5 byte sum."""
    if not 0 < count < 256:
        raise ValueError("count must be between 1 and 255")
    total = sum(hashlib.md5(origin_name.encode()).digest()) % 256
    return total % count


def _as_utc(now: datetime | None) -> datetime:
    if now is None:
        return datetime.now(timezone.utc)
    if now.tzinfo is None:
        return now.replace(tzinfo=timezone.utc)
    return now.astimezone(timezone.utc)


def iso_time(now: datetime | None = None) -> str:
    """Return a UTC ISO 8601 timestamp with milliseconds, e.g. 2021-04-06T03:33:21.681Z."""
    moment = _as_utc(now)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"


def minute_alarm(count: int, now: datetime | None = None) -> bool:
    """Tell whether the current minute, in epoch seconds, is a multiple of count."""
    seconds = int(_as_utc(now).timestamp())
    seconds -= seconds % 60
    return seconds % count == 0


def to_str(value: Any) -> str:
    """Convert strings, floats (six decimals) and ints (hexadecimal) to text."""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return ""
    if isinstance(value, float):
        return f"{value:f}"
    if isinstance(value, int):
        return format(value, "x")
    return ""


def to_int(value: Any) -> int:
    """Convert decimal strings and numbers to int; anything else gives 0."""
    if isinstance(value, str):
        if _INT_PATTERN.fullmatch(value):
            return int(value)
        return 0
    if isinstance(value, bool):
        return 0
    if isinstance(value, float):
        return int(value)
    if isinstance(value, int):
        return value
    return 0


def to_float(value: Any) -> float:
    """Convert strings and numbers to float; anything else gives 0.0."""
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return 0.0
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    logger.warning("convert err: %r : %s", value, type(value).__name__)
    return 0.0