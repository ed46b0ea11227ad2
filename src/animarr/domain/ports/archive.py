"""Port for triggering the external archival worker."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class ArchiveDispatcherPort(Protocol):
    """Fire a 'process queue' event at the external worker."""

    async def dispatch(self, payload: dict[str, object] | None = None) -> bool:
        """Send the trigger. Returns False on failure, never raises."""
        ...
