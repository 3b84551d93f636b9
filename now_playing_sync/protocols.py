"""Protocol definitions for dependency injection."""

from collections.abc import Callable
from typing import Any, Protocol


class MessagingSurface(Protocol):
    """Where the now-playing message is posted.

    Implementations raise MessagingError with kind NOT_FOUND when the
    channel or message does not exist, and kind OTHER for any other failure.
    """

    async def fetch_surface(self, channel_id: str) -> dict[str, Any]: ...

    async def fetch_artifact(self, channel_id: str, message_id: str) -> dict[str, Any]: ...

    async def create_artifact(self, channel_id: str, payload: dict[str, Any]) -> str: ...

    async def update_artifact(self, channel_id: str, message_id: str, payload: dict[str, Any]) -> None: ...


class Timer(Protocol):
    """Cancellable delayed execution of an async callback."""

    def arm(self, delay: float, callback: Callable[[], Any]) -> Any:
        """Schedule `callback` to run after `delay` seconds and return a handle."""
        ...

    def cancel(self, handle: Any) -> None:
        """Prevent an armed callback from running. No effect once it has started."""
        ...
