from __future__ import annotations

import threading
from typing import Callable, Optional


class CancellationToken:
    """Caller-owned cancel flag, checked at every phase boundary of a scan."""

    def __init__(self, predicate: Optional[Callable[[], bool]] = None) -> None:
        self._event = threading.Event()
        self._predicate = predicate

    @classmethod
    def from_callback(cls, predicate: Callable[[], bool]) -> "CancellationToken":
        return cls(predicate)

    def cancel(self) -> None:
        self._event.set()

    @property
    def is_canceled(self) -> bool:
        if self._event.is_set():
            return True
        if self._predicate is not None and self._predicate():
            self._event.set()
            return True
        return False
