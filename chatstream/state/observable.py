"""Minimal observable state cell with selector-based change detection."""

from collections.abc import Callable
from typing import Any, Generic, TypeVar

S = TypeVar("S")

Listener = Callable[[Any, Any], None]
Selector = Callable[[Any], Any]


def _identity(value: Any) -> Any:
    return value


class Observable(Generic[S]):
    """Holds one state value and notifies subscribers when it changes.

    A subscriber registers a selector; it is only called when the selected
    value differs from the previous one (same object or equal values count
    as unchanged).
    """

    def __init__(self, initial: S) -> None:
        self._state = initial
        self._listeners: list[tuple[Selector, Listener]] = []

    @property
    def state(self) -> S:
        return self._state

    def subscribe(self, listener: Listener, selector: Selector | None = None) -> Callable[[], None]:
        """Register a listener.

        Args:
            listener: Called as ``listener(new_value, old_value)``.
            selector: Projects the state to the value the listener cares
                about. Defaults to the whole state.

        Returns:
            A callable that removes the subscription. Safe to call twice.
        """
        entry = (selector or _identity, listener)
        self._listeners.append(entry)

        def unsubscribe() -> None:
            if entry in self._listeners:
                self._listeners.remove(entry)

        return unsubscribe

    def _set_state(self, new_state: S) -> None:
        old_state = self._state
        if new_state is old_state:
            return
        self._state = new_state

        for selector, listener in list(self._listeners):
            old_value = selector(old_state)
            new_value = selector(new_state)
            if new_value is old_value or new_value == old_value:
                continue
            listener(new_value, old_value)
