"""Side-store for large tool result payloads.

Tool results can be big (search hits, query rows, file contents) and are
rarely looked at. Keeping them here rather than in the conversation state
means subscribers of the live message are not notified when a payload
lands; the message only carries the stable ``content_ref`` key, and a
reader resolves it when it actually needs the payload.
"""

import logging
from collections.abc import Callable
from typing import Any

from chatstream.state.observable import Listener, Observable

logger = logging.getLogger(__name__)

CONTENT_REF_PREFIX = "tool-content-"


def tool_content_ref(tool_id: str) -> str:
    """Deterministic side-store key for a tool call id."""
    return f"{CONTENT_REF_PREFIX}{tool_id}"


class ToolContentStore(Observable[dict[str, Any]]):
    """Keyed map of ``content_ref -> payload``.

    Every write replaces the underlying dict so subscribers can compare
    snapshots by identity.
    """

    def __init__(self) -> None:
        super().__init__({})

    def set(self, ref: str, payload: Any) -> None:
        """Insert or overwrite the payload for ``ref``."""
        contents = dict(self.state)
        contents[ref] = payload
        self._set_state(contents)

    def get(self, ref: str | None, default: Any = None) -> Any:
        if ref is None:
            return default
        return self.state.get(ref, default)

    def clear(self, ref: str) -> None:
        if ref not in self.state:
            return
        contents = dict(self.state)
        del contents[ref]
        self._set_state(contents)

    def clear_all(self) -> None:
        if self.state:
            logger.debug(f"Clearing {len(self.state)} tool payloads")
        self._set_state({})

    def subscribe(self, listener: Listener, ref: str | None = None) -> Callable[[], None]:
        """Watch one payload (or the whole map when ``ref`` is None)."""
        if ref is None:
            return super().subscribe(listener)
        return super().subscribe(listener, lambda contents: contents.get(ref))

    def __contains__(self, ref: object) -> bool:
        return ref in self.state

    def __len__(self) -> int:
        return len(self.state)
