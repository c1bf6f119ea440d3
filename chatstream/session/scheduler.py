"""Single-slot deferred action used to coalesce state propagation."""

import asyncio
from collections.abc import Callable


class DeferredAction:
    """Runs an action once, ``delay`` seconds after the last ``schedule()``.

    At most one run is pending at a time; scheduling again pushes it back.
    ``flush()`` runs a pending action immediately and ``cancel()`` drops it.

    Args:
        action: Callable to run. Takes no arguments.
        delay: Seconds to wait after the most recent schedule.
    """

    def __init__(self, action: Callable[[], None], delay: float) -> None:
        self._action = action
        self._delay = delay
        self._handle: asyncio.TimerHandle | None = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def schedule(self) -> None:
        """(Re)arm the timer. Requires a running event loop."""
        self.cancel()
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(self._delay, self._fire)

    def flush(self) -> bool:
        """Run the pending action now.

        Returns:
            True if an action was pending and ran.
        """
        if self._handle is None:
            return False
        self.cancel()
        self._action()
        return True

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self) -> None:
        self._handle = None
        self._action()
