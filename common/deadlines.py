"""Request-scoped time budgets for slow collaborators."""

import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from typing import Callable, Optional, TypeVar

from .exceptions import OperationTimeout

T = TypeVar("T")


class Deadline:
    """Monotonic deadline shared by every lookup made on behalf of one request."""

    def __init__(self, seconds: Optional[float]):
        self.seconds = seconds
        self.expires_at = None if seconds is None else time.monotonic() + float(seconds)

    @classmethod
    def never(cls) -> "Deadline":
        return cls(None)

    def remaining(self) -> Optional[float]:
        if self.expires_at is None:
            return None
        return max(0.0, self.expires_at - time.monotonic())

    def expired(self) -> bool:
        remaining = self.remaining()
        return remaining is not None and remaining <= 0

    def check(self, what: str = "operation") -> None:
        if self.expired():
            raise OperationTimeout(f"Timed out during {what}", budget_seconds=self.seconds)


def call_with_timeout(func: Callable[..., T], timeout: Optional[float], *args, what: str = "call", **kwargs) -> T:
    """Run `func` on a worker thread and give up after `timeout` seconds.

    The worker is not killed on expiry; the caller is released and gets an
    `OperationTimeout` it may retry.
    """

    if timeout is None:
        return func(*args, **kwargs)
    executor = ThreadPoolExecutor(max_workers=1)
    future = executor.submit(func, *args, **kwargs)
    try:
        return future.result(timeout=timeout)
    except FutureTimeout:
        future.cancel()
        raise OperationTimeout(f"Timed out during {what}", budget_seconds=timeout)
    finally:
        executor.shutdown(wait=False)
