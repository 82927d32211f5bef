from __future__ import annotations

from typing import Any, Awaitable, Callable, Protocol, Union

from couch_client.changes.contracts import ChangeBatch, Cursor

ChangeListener = Callable[[ChangeBatch], Union[None, Awaitable[Any]]]


class ChangesHandle(Protocol):
    """Caller-facing control surface of a running subscription."""

    @property
    def cursor(self) -> Cursor | None: ...

    @property
    def active(self) -> bool: ...

    @property
    def listeners(self) -> tuple[ChangeListener, ...]: ...

    def add_listener(self, listener: ChangeListener) -> ChangeListener: ...

    def stop(self) -> None: ...

    async def wait_closed(self) -> None: ...

    async def close(self) -> None: ...
