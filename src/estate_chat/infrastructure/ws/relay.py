"""Relay inbound chat frames to the other participant of a conversation."""
from __future__ import annotations

import asyncio
import logging

import pydantic

from estate_chat.application.exceptions import (
    AppError,
    ForbiddenError,
    NotFoundError,
    StoreError,
    ValidationError,
)
from estate_chat.application.ports.connection import ConnectionHandle
from estate_chat.application.uow import UoWFactory
from estate_chat.domain.entities.conversation import Conversation
from estate_chat.domain.entities.message import Message
from estate_chat.infrastructure.ws.protocol import InboundChatMessage, MessageFrame, WsOutbound
from estate_chat.infrastructure.ws.registry import ConnectionRegistry
from estate_chat.services import message_service

logger = logging.getLogger(__name__)

_ERROR_CODES: dict[type[AppError], str] = {
    ValidationError: "invalid_message",
    NotFoundError: "conversation_not_found",
    ForbiddenError: "not_a_participant",
    StoreError: "store_unavailable",
}


class MessageRelay:
    """Persist each inbound message, then forward it to the recipient and echo it to the sender.

    Every failure is confined to the frame that caused it: the message is
    dropped, the sender's connection stays usable and no other connection
    is affected.
    """

    def __init__(
        self,
        registry: ConnectionRegistry,
        uow_factory: UoWFactory,
        *,
        error_frames: bool = True,
    ) -> None:
        self._registry = registry
        self._uow_factory = uow_factory
        self._error_frames = error_frames

    @property
    def registry(self) -> ConnectionRegistry:
        return self._registry

    async def handle_inbound(
        self,
        handle: ConnectionHandle,
        raw: str | bytes,
    ) -> Message | None:
        """Process one frame. Returns the persisted message, or None if it was dropped."""
        try:
            inbound = InboundChatMessage.model_validate_json(raw)
        except pydantic.ValidationError as exc:
            logger.info("Dropping malformed frame (%d errors)", exc.error_count())
            await self._reject(handle, "invalid_payload", "Expected {conversationId, senderId, content}")
            return None

        write = asyncio.create_task(self._persist(inbound))
        try:
            message, conversation = await asyncio.shield(write)
        except asyncio.CancelledError:
            # The connection went away mid-write; the write still completes,
            # only forward and echo are skipped.
            write.add_done_callback(_log_detached_failure)
            raise
        except StoreError as exc:
            logger.warning(
                "Store failure for message from %s in conversation %s: %s",
                inbound.sender_id, inbound.conversation_id, exc.detail,
            )
            await self._reject(handle, _ERROR_CODES[StoreError], exc.detail)
            return None
        except AppError as exc:
            logger.info(
                "Dropping message from %s in conversation %s: %s",
                inbound.sender_id, inbound.conversation_id, exc.detail,
            )
            await self._reject(handle, _ERROR_CODES.get(type(exc), "send_failed"), exc.detail)
            return None
        except Exception:
            logger.exception(
                "Unexpected failure persisting message from %s in conversation %s",
                inbound.sender_id, inbound.conversation_id,
            )
            await self._reject(handle, "send_failed", "Message could not be stored")
            return None

        await self.deliver(message, conversation, echo_to=handle)
        return message

    async def _persist(self, inbound: InboundChatMessage) -> tuple[Message, Conversation]:
        async with self._uow_factory() as uow:
            return await message_service.send_message(
                inbound.conversation_id,
                inbound.sender_id,
                inbound.content,
                uow,
            )

    async def deliver(
        self,
        message: Message,
        conversation: Conversation,
        *,
        echo_to: ConnectionHandle | None = None,
    ) -> bool:
        """Forward a persisted message to the other participant, and echo it if asked.

        Forward and echo carry the same serialized bytes. Returns True if the
        recipient had an open connection and the send went through.
        """
        raw = MessageFrame.dump(message)

        delivered = False
        recipient_id = conversation.other_participant(message.sender_id)
        if recipient_id is not None:
            recipient = self._registry.lookup(str(recipient_id))
            if recipient is None:
                logger.debug("Recipient %s offline; message %s not pushed", recipient_id, message.id)
            else:
                delivered = await _send(recipient, raw)

        if echo_to is not None:
            await _send(echo_to, raw)

        return delivered

    async def _reject(self, handle: ConnectionHandle, code: str, detail: str) -> None:
        if not self._error_frames:
            return
        frame = WsOutbound(type="error", data={"code": code, "detail": detail})
        await _send(handle, frame.model_dump_json())


async def _send(handle: ConnectionHandle, raw: str) -> bool:
    """Best-effort send. A closed or failing handle is skipped, never raised."""
    if not handle.is_open:
        return False
    try:
        await handle.send_text(raw)
    except Exception:
        logger.debug("Send to %r failed; skipping", handle, exc_info=True)
        return False
    return True


def _log_detached_failure(task: asyncio.Task) -> None:
    if task.cancelled() or task.exception() is None:
        return
    logger.warning("Write of a message whose connection closed failed: %r", task.exception())
