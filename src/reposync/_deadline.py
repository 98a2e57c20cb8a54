"""Overall deadline for a deploy call."""

from __future__ import annotations

import time

from .exceptions import DeadlineExceeded


class Deadline:
    """A monotonic point in time; ``None`` timeout never expires."""

    __slots__ = ("_expires",)

    def __init__(self, timeout: float | None):
        self._expires = None if timeout is None else time.monotonic() + timeout

    def remaining(self) -> float | None:
        if self._expires is None:
            return None
        return max(0.0, self._expires - time.monotonic())

    @property
    def expired(self) -> bool:
        return self._expires is not None and time.monotonic() >= self._expires

    def check(self, what: str) -> None:
        """Raise :class:`DeadlineExceeded` if the deadline has passed."""
        if self.expired:
            raise DeadlineExceeded(f"Deadline exceeded before {what}")
