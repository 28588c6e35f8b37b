from __future__ import annotations

from typing import Protocol


class ConnectionHandle(Protocol):
    """A live push channel to one connected client."""

    @property
    def is_open(self) -> bool: ...

    async def send_text(self, data: str) -> None: ...
