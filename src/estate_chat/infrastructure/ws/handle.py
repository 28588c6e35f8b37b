from __future__ import annotations

from fastapi import WebSocket
from starlette.websockets import WebSocketState


class WebSocketHandle:
    """Connection handle over a Starlette WebSocket."""

    __slots__ = ("_ws",)

    def __init__(self, ws: WebSocket) -> None:
        self._ws = ws

    @property
    def is_open(self) -> bool:
        return (
            self._ws.client_state == WebSocketState.CONNECTED
            and self._ws.application_state == WebSocketState.CONNECTED
        )

    async def send_text(self, data: str) -> None:
        await self._ws.send_text(data)

    def __repr__(self) -> str:
        return f"WebSocketHandle(client={self._ws.client})"
