from __future__ import annotations

from typing import Callable

from chat_client.application.ports.scheduler import Cancellable, Scheduler


class DebounceTimer:
    """Single-slot cancellable delayed action.

    ``arm`` always cancels the pending action before scheduling a new one, so
    at most one action is outstanding.
    """

    def __init__(self, scheduler: Scheduler, delay: float) -> None:
        self._scheduler = scheduler
        self._delay = delay
        self._handle: Cancellable | None = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def arm(self, action: Callable[[], None]) -> None:
        self.cancel()

        def _fire() -> None:
            self._handle = None
            action()

        self._handle = self._scheduler.call_later(self._delay, _fire)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
