from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect

from estate_chat.api.deps import RelayDep
from estate_chat.config import settings
from estate_chat.infrastructure.ws.handle import WebSocketHandle
from estate_chat.infrastructure.ws.protocol import WsOutbound
from estate_chat.infrastructure.ws.relay import MessageRelay

logger = logging.getLogger(__name__)
router = APIRouter(tags=["websocket"])


@router.websocket("/ws/chat")
async def ws_chat(
    websocket: WebSocket,
    relay: RelayDep,
    user_id: int | None = Query(None, alias="userId", gt=0),
) -> None:
    handle = WebSocketHandle(websocket)
    # Registry keys are canonical ids so "05" and "5" reach the same user.
    key = str(user_id) if user_id is not None else None
    # Anonymous connections may still send; they just never receive forwards.
    if key is not None:
        relay.registry.register(key, handle)

    heartbeat_task: asyncio.Task[None] | None = None
    try:
        await websocket.accept()
        heartbeat_task = asyncio.create_task(
            _heartbeat(handle), name=f"ws-heartbeat-{key or 'anon'}",
        )
        await _read_loop(websocket, handle, relay)
    except WebSocketDisconnect:
        pass
    except Exception:
        logger.exception("WS error for user %s", user_id)
    finally:
        if heartbeat_task is not None:
            heartbeat_task.cancel()
        if key is not None:
            relay.registry.remove(key, handle)


async def _heartbeat(handle: WebSocketHandle) -> None:
    interval = settings.WS_HEARTBEAT_SECONDS
    raw = WsOutbound(type="ping").model_dump_json()
    try:
        while handle.is_open:
            await asyncio.sleep(interval)
            await handle.send_text(raw)
    except asyncio.CancelledError:
        pass
    except Exception:
        logger.debug("Heartbeat stopped", exc_info=True)


async def _read_loop(ws: WebSocket, handle: WebSocketHandle, relay: MessageRelay) -> None:
    """Frames from one connection are handled strictly in arrival order."""
    while True:
        message = await ws.receive()
        if message["type"] == "websocket.disconnect":
            raise WebSocketDisconnect(message.get("code", 1000))

        raw = message.get("text")
        if raw is None:
            raw = message.get("bytes")
        if raw is None:
            continue

        await relay.handle_inbound(handle, raw)
