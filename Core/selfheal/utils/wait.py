from __future__ import annotations

import time
from typing import Callable, TypeVar

T = TypeVar("T")


def wait_until(predicate: Callable[[], T], timeout: float, interval: float = 0.2) -> T:
    """Polls ``predicate`` until it returns a truthy value or ``timeout`` elapses.

    The predicate is evaluated one final time after the deadline so a zero
    timeout still performs a single lookup.
    """

    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        result = predicate()
        if result:
            return result
        time.sleep(interval)
    return predicate()
